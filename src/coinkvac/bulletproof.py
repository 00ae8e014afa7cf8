import logging
from dataclasses import dataclass
from typing import List, Tuple

from .errors import EmptyInput, MalformedEncoding, RangeViolation
from .generators import O, G_amount, G_blind, get_generators
from .models import RANGE_BITS, RANGE_LIMIT, AmountAttribute
from .secp import ELEMENT_SIZE, SCALAR_SIZE, GroupElement, Scalar, scalar_zero, scalar_one
from .transcript import CoinTranscript

logger = logging.getLogger(__name__)

# Scalars in powers of 2
SCALAR_POWERS_2 = [Scalar.from_int(1 << i) for i in range(RANGE_BITS)]

# <1^n, 2^n>
SUM_POWERS_2 = Scalar.from_int(RANGE_LIMIT - 1)

@dataclass
class InnerProductArgument:
    public_inputs: List[Tuple[GroupElement, GroupElement]]
    tail_end_scalars: Tuple[Scalar, Scalar]

def is_power_of_2(n: int) -> bool:
    return n > 0 and n & (n - 1) == 0

def next_power_of_2(n: int) -> int:
    return 1 if n <= 1 else 1 << (n - 1).bit_length()

def inner_product(l: List[Scalar], r: List[Scalar]) -> Scalar:
    return sum([ll * rr for ll, rr in zip(l, r)], scalar_zero)

def powers(x: Scalar, n: int) -> List[Scalar]:
    xs = [scalar_one]
    for _ in range(1, n):
        xs.append(xs[-1] * x)
    return xs

# https://eprint.iacr.org/2017/1066.pdf
def get_folded_IPA(
    transcript: CoinTranscript,
    generators: Tuple[List[GroupElement], List[GroupElement], GroupElement],
    P: GroupElement,
    a: List[Scalar],
    b: List[Scalar],
) -> InnerProductArgument:
    if len(a) != len(b):
        raise ValueError("the two lists have different length")
    # Ensure len is a power of 2
    if not is_power_of_2(len(a)):
        raise ValueError("len(a) and len(b) is not a power of 2")

    # Work on copies, folded in place below
    G, H, U = generators
    G, H, a, b = list(G), list(H), list(a), list(b)

    ## PROTOCOL 1 ##
    # `get_folded_IPA` implements Protocol 2, a proof system for relation (3).
    # Protocol 1 (here) makes Protocol 2 into a proof system for relation (2).
    transcript.append(b"Com(P)_", P)
    tetha = transcript.get_challenge(b"tetha_chall_")

    # Switch generator U
    U = tetha*U
    ## END PROTOCOL 1 ##

    n = len(a)
    ipa = []

    # Halve until one element is left
    while n > 1:
        n >>= 1
        c_left = inner_product(a[:n], b[n:])
        c_right = inner_product(a[n:], b[:n])
        L = sum(
            [a_i * G_i + b_i * H_i for (a_i, G_i, b_i, H_i)
                in zip(a[:n], G[n:2*n], b[n:2*n], H[:n])],
            c_left * U
        )
        R = sum(
            [a_i * G_i + b_i * H_i for (a_i, G_i, b_i, H_i)
                in zip(a[n:2*n], G[:n], b[:n], H[n:2*n])],
            c_right * U
        )

        ipa.append((L, R))

        # Prover -> Verifier : L, R
        # Verifier -> Prover : x (challenge)

        transcript.append(b"IPA_L_", L)
        transcript.append(b"IPA_R_", R)

        x = transcript.get_challenge(b"IPA_chall_")
        x_inv = x.invert()

        # fold a, b and the generators into their low halves
        for i in range(n):
            a[i] = a[i] * x + a[n+i] * x_inv
            b[i] = b[i] * x_inv + b[n+i] * x
            G[i] = G[i] * x_inv + G[n+i] * x
            H[i] = H[i] * x + H[n+i] * x_inv
        del a[n:], b[n:], G[n:], H[n:]

    return InnerProductArgument(
        public_inputs=ipa,
        tail_end_scalars=(a[0], b[0]),
    )

def verify_folded_IPA(
    transcript: CoinTranscript,
    generators: Tuple[List[GroupElement], List[GroupElement], GroupElement],
    ipa: InnerProductArgument,
    P: GroupElement, # <- the commitment
    c: Scalar, # <- the inner product
) -> bool:
    G, H, U = generators
    log2_n = len(ipa.public_inputs)
    if len(G) != 1 << log2_n or len(H) != len(G):
        return False

    ## PROTOCOL 1 ##
    transcript.append(b"Com(P)_", P)
    tetha = transcript.get_challenge(b"tetha_chall_")

    # Switch generator U
    U = tetha*U
    # Tweak commitment P
    P += c*U
    ## END PROTOCOL 1 ##

    ## PROTOCOL 2 ##
    # Extract scalars of the recursion end from IPA
    a, b = ipa.tail_end_scalars

    # Get challenges
    challs = []
    for L, R in ipa.public_inputs:
        transcript.append(b"IPA_L_", L)
        transcript.append(b"IPA_R_", R)
        x = transcript.get_challenge(b"IPA_chall_")
        challs.append((x, x.invert()))

    # Recursion unrolling - We reduce O(n*log_2(n)) GroupElement multiplications
    # to O(n) by unrolling the prover's loop (we have the challenges) and
    # performing the O(log_2(n)) arithmetic operations on scalars instead.
    G_aH_b = O
    for i, (G_i, H_i) in enumerate(zip(G, H)):
        s, s_inv = scalar_one, scalar_one
        for j, x in enumerate(reversed(challs)):
            # Use x if the j-th bit of i is 1
            # else use x^-1
            bit = (i>>j) & 1
            s *= x[bit^1]
            s_inv *= x[bit]
        G_aH_b += (a*s)*G_i + (b*s_inv)*H_i

    P_ = sum(
        [(x[0]*x[0])*L + (x[1]*x[1])*R
            for x, (L, R) in zip(challs, ipa.public_inputs)],
        P
    )

    return G_aH_b + (a*b)*U == P_

@dataclass
class BulletProof:

    A: GroupElement
    S: GroupElement
    T_1: GroupElement
    T_2: GroupElement
    t_x: Scalar
    tau_x: Scalar
    mu: Scalar
    ipa: InnerProductArgument

    @classmethod
    def create(
        cls,
        transcript: CoinTranscript,
        attributes: List[AmountAttribute],
    ) -> "BulletProof":
        """
        Proves that every attribute encodes an amount in [0, 2**32).

        The amounts are batched in a single proof. The number of attributes is
        padded with zero attributes up to a power of 2.

        Parameters:
            transcript (CoinTranscript): The transcript
            attributes (List[AmountAttribute]): The attributes whose amounts are bounded.

        Returns:
            BulletProof: The range proof.

        Raises:
            EmptyInput: no attributes were given.
            RangeViolation: an amount is at or above 2**32.
        """
        if not attributes:
            raise EmptyInput("range proof needs at least one attribute")
        for attribute in attributes:
            if attribute.a.to_int() >= RANGE_LIMIT:
                raise RangeViolation("amount exceeds the provable range")

        # Domain separation
        transcript.domain_sep(b"Bulletproof_Statement_")

        V = [attribute.Ma for attribute in attributes]
        n = RANGE_BITS
        m = next_power_of_2(len(attributes))
        if m != len(attributes):
            logger.debug("padding range proof from %d to %d attributes", len(attributes), m)

        # Extract amount and blinding factor, padding with zero attributes
        amounts = [attribute.a.to_int() for attribute in attributes] + [0] * (m - len(attributes))
        gamma = [attribute.r for attribute in attributes] + [scalar_zero] * (m - len(attributes))

        # Decompose attribute's amounts into bits.
        # a_right = a_left - 1
        minus_one = -scalar_one
        a_left = []
        a_right = []
        for amount in amounts:
            for i in range(n):
                bit = (amount >> i) & 1
                a_left.append(scalar_one if bit else scalar_zero)
                a_right.append(scalar_zero if bit else minus_one)

        # Append the commitments to the transcript
        for j, V_j in enumerate(V):
            transcript.append(f"Com(V_{j})_".encode("utf-8"), V_j)

        # Get generators
        G, H, U = get_generators(m*n)

        # Compute Com(A)
        alpha = Scalar()
        A = sum(
            [a_l_i * G_i + a_r_i * H_i
                for (a_l_i, G_i, a_r_i, H_i) in zip(a_left, G, a_right, H)],
            alpha * G_blind,
        )

        # Compute Com(S)
        rho = Scalar()
        s_l, s_r = [Scalar() for _ in a_left], [Scalar() for _ in a_right]
        S = sum(
            [s_l_i * G_i + s_r_i * H_i
                for (s_l_i, G_i, s_r_i, H_i) in zip(s_l, G, s_r, H)],
            rho * G_blind,
        )

        # Prover -> Verifier: A, S
        # Verifier -> Prover: y, z
        transcript.append(b"Com(A)_", A)
        transcript.append(b"Com(S)_", S)

        y = transcript.get_challenge(b"y_chall_")
        z = transcript.get_challenge(b"z_chall_")

        zs = powers(z, m+3)
        ys = powers(y, n*m)
        twos = SCALAR_POWERS_2

        # l(X) and r(X) linear vector polynomials   (70-71)
        l: List[List[Scalar]] = [[], []]
        r: List[List[Scalar]] = [[], []]
        for j in range(m):
            for i in range(n):
                k = j*n+i
                l[0].append(a_left[k] - z)
                l[1].append(s_l[k])

                r[0].append(ys[k] * (a_right[k] + z)
                    + zs[2+j] * twos[i]
                )
                r[1].append(ys[k] * s_r[k])

        # t(X) = <l(X), r(X)> = t_0 + t_1 * X + t_2 * X^2
        t_1 = inner_product(l[1], r[0]) + inner_product(l[0], r[1])
        t_2 = inner_product(l[1], r[1])

        # Hide t_1, t_2 coefficients of t(x)
        # into Pedersen commitments     (52-53)
        tau_1, tau_2 = [Scalar() for _ in range(2)]
        T_1 = t_1 * G_amount + tau_1 * G_blind
        T_2 = t_2 * G_amount + tau_2 * G_blind

        # Prover -> Verifier: T_1, T_2
        # Verifier -> Prover: x
        transcript.append(b"Com(T_1)_", T_1)
        transcript.append(b"Com(T_2)_", T_2)

        x = transcript.get_challenge(b"x_chall_")
        x_2 = x*x

        # now evaluate t(x) at x    (58-60)
        l_x = [l_0 + l_1 * x for l_0, l_1 in zip(l[0], l[1])]
        r_x = [r_0 + r_1 * x for r_0, r_1 in zip(r[0], r[1])]
        t_x = inner_product(l_x, r_x)

        # and compute tau_x, which blinds t(x)    (61)
        tau_0 = sum([zs[2+j] * g_j for j, g_j in enumerate(gamma)], scalar_zero)
        tau_x = tau_0 + tau_1 * x + tau_2 * x_2

        # blinding factors for A, S     (62)
        mu = alpha + rho * x

        # Switch generators H -> y^-n*H    (64)
        ys_inv = powers(y.invert(), n*m)
        H_ = [y_i_inv*H_i for y_i_inv, H_i in zip(ys_inv, H)]

        # Compute commitment P = l(x)*G + r(x)*H'
        P = sum(
            [l_x_i*G_i + r_x_i*H_i
                for (l_x_i, G_i, r_x_i, H_i) in zip(l_x, G, r_x, H_)],
            O
        )

        # Now instead of sending l and r we fold them.
        ipa = get_folded_IPA(transcript, (G, H_, U), P, l_x, r_x)

        # Prover -> Verifier: t_x, tau_x, mu, ipa
        return cls(
            A=A,
            S=S,
            T_1=T_1,
            T_2=T_2,
            t_x=t_x,
            tau_x=tau_x,
            mu=mu,
            ipa=ipa
        )

    def serialize(self) -> bytes:
        """
        A || S || T_1 || T_2 || t_x || tau_x || mu || (L_i || R_i)* || a || b
        """
        points = [self.A, self.S, self.T_1, self.T_2]
        scalars = [self.t_x, self.tau_x, self.mu]
        data = b"".join(P.serialize(True) for P in points)
        data += b"".join(s.to_bytes() for s in scalars)
        for L, R in self.ipa.public_inputs:
            data += L.serialize(True) + R.serialize(True)
        a, b = self.ipa.tail_end_scalars
        return data + a.to_bytes() + b.to_bytes()

    @classmethod
    def deserialize(cls, data: bytes) -> "BulletProof":
        """
        Decodes a range proof produced by `serialize`.

        Raises:
            MalformedEncoding: bad length, invalid point or non-canonical scalar.
        """
        head = 4*ELEMENT_SIZE + 3*SCALAR_SIZE
        tail = 2*SCALAR_SIZE
        rounds, rest = divmod(len(data) - head - tail, 2*ELEMENT_SIZE)
        if len(data) < head + tail or rest != 0:
            raise MalformedEncoding("range proof encoding has a bad length")

        def element(offset):
            return GroupElement(data[offset:offset+ELEMENT_SIZE])

        def scalar(offset):
            return Scalar(data[offset:offset+SCALAR_SIZE])

        A, S, T_1, T_2 = [element(i*ELEMENT_SIZE) for i in range(4)]
        t_x, tau_x, mu = [scalar(4*ELEMENT_SIZE + i*SCALAR_SIZE) for i in range(3)]
        public_inputs = []
        for i in range(rounds):
            offset = head + 2*i*ELEMENT_SIZE
            public_inputs.append((element(offset), element(offset+ELEMENT_SIZE)))
        offset = head + 2*rounds*ELEMENT_SIZE
        ipa = InnerProductArgument(
            public_inputs=public_inputs,
            tail_end_scalars=(scalar(offset), scalar(offset+SCALAR_SIZE)),
        )
        return cls(A=A, S=S, T_1=T_1, T_2=T_2, t_x=t_x, tau_x=tau_x, mu=mu, ipa=ipa)

    def verify(
        self,
        transcript: CoinTranscript,
        attributes: List[GroupElement],
    ) -> bool:
        if not attributes:
            raise EmptyInput("range proof needs at least one commitment")

        n = RANGE_BITS
        m = next_power_of_2(len(attributes))

        # The IPA must fold n*m elements, a power of 2
        if 1 << len(self.ipa.public_inputs) != n*m:
            logger.debug("range proof has %d IPA rounds for %d bits",
                len(self.ipa.public_inputs), n*m)
            return False

        transcript.domain_sep(b"Bulletproof_Statement_")

        G, H, U = get_generators(n*m)

        V = attributes
        for j, V_j in enumerate(V):
            transcript.append(f"Com(V_{j})_".encode("utf-8"), V_j)

        # Prover -> Verifier: A, S
        # Verifier -> Prover: y, z
        A, S = self.A, self.S
        transcript.append(b"Com(A)_", A)
        transcript.append(b"Com(S)_", S)

        y = transcript.get_challenge(b"y_chall_")
        z = transcript.get_challenge(b"z_chall_")

        zs = powers(z, m+3)
        ys = powers(y, n*m)
        twos = SCALAR_POWERS_2

        # Calculate ẟ(y, z)     Definition (39)
        # (z - z^2) * <1, y^nm> - Σ z^(3+j) * <1, 2^n>
        delta_y_z = (z - zs[2]) * sum(ys, scalar_zero) - sum(
            [zs[3+j] for j in range(m)],
            scalar_zero
        ) * SUM_POWERS_2

        # Prover -> Verifier: T_1, T_2
        # Verifier -> Prover: x
        T_1, T_2 = self.T_1, self.T_2
        transcript.append(b"Com(T_1)_", T_1)
        transcript.append(b"Com(T_2)_", T_2)

        x = transcript.get_challenge(b"x_chall_")
        x_2 = x*x

        # Check that t_x = t(x) = t_0 + t_1*x + t_2*x^2     (72)
        t_x = self.t_x
        tau_x = self.tau_x
        V_z_m = sum([zs[2+j] * V_j for j, V_j in enumerate(V)], O)
        if not t_x*G_amount + tau_x*G_blind == V_z_m + delta_y_z*G_amount + x*T_1 + x_2*T_2:
            logger.debug("range proof polynomial identity does not hold")
            return False

        # Switch generators H -> y^-n*H    (64)
        ys_inv = powers(y.invert(), n*m)
        H_ = [y_i_inv*H_i for y_i_inv, H_i in zip(ys_inv, H)]

        # Compute commitment to l(x) and r(x)   (72)
        P = -self.mu*G_blind + A + x*S
        minus_z = -z
        for j in range(m):
            for i in range(n):
                k = j*n+i
                P += minus_z*G[k] + (z*ys[k] + zs[2+j]*twos[i])*H_[k]

        # Check l and r are correct using IPA   (67)
        # Check t_x is correct                  (68)
        return verify_folded_IPA(transcript, (G, H_, U), self.ipa, P, t_x)

def prove_range(
    transcript: CoinTranscript,
    attributes: List[AmountAttribute],
) -> BulletProof:
    return BulletProof.create(transcript, attributes)

def verify_range(
    transcript: CoinTranscript,
    attributes: List[GroupElement],
    proof: BulletProof,
) -> bool:
    return proof.verify(transcript, attributes)
