import logging
from enum import Enum
from typing import List, Optional

from .errors import EmptyInput, MalformedEncoding, NoScriptProvided, ProofInvalid
from .generators import (
    O, W, W_, X0, X1,
    Gz_mac, Gz_attribute, Gz_script,
    G_amount, G_script, G_blind,
    hash_to_curve,
)
from .models import (
    AmountAttribute,
    Coin,
    Equation,
    MAC,
    MintPrivateKey,
    MintPublicKey,
    RandomizedCoin,
    ScriptAttribute,
    Statement,
    ZKP,
    hash_script,
)
from .secp import GroupElement, Scalar, scalar_zero
from .transcript import CoinTranscript

logger = logging.getLogger(__name__)

class LinearRelationMode(Enum):
    PROVE = 0
    VERIFY = 1

    @property
    def isProve(self):
        return self == LinearRelationMode.PROVE

    @property
    def isVerify(self):
        return self == LinearRelationMode.VERIFY

class LinearRelationProverVerifier:
    """
    A class for proving and verifying linear relations in zero-knowledge.

    This class provides methods for adding statements to be proven or verified,
    and for generating or verifying a zero-knowledge proof. Every equation of
    every added statement is bound to one shared Fiat-Shamir challenge.

    Attributes:
        random_terms (List[Scalar]): Random terms used in the proof.
        secrets (List[Scalar]): The secrets used to compute the proof.
        responses (List[Scalar]): The responses used in the verification.
        c (Scalar): The challenge extracted from the provided proof.
        transcript (CoinTranscript): The Fiat-Shamir transcript.
        mode (LinearRelationMode): The mode of the class, either PROVE or VERIFY.
    """
    random_terms: List[Scalar]
    secrets: List[Scalar]
    responses: List[Scalar]
    c: Scalar
    transcript: CoinTranscript
    mode: LinearRelationMode

    def __init__(self,
        mode: LinearRelationMode,
        transcript: CoinTranscript,
        secrets: Optional[List[Scalar]] = None,
        proof: Optional[ZKP] = None,
    ):
        """
        Initializes the LinearRelationProverVerifier class.

        Parameters:
            mode (LinearRelationMode): The mode of the class, either PROVE or VERIFY.
            transcript (CoinTranscript): The transcript challenges are drawn from.
            secrets (Optional[List[Scalar]]): The secrets used in the proof, required if mode is PROVE.
            proof (Optional[ZKP]): The proof used in the verification, required if mode is VERIFY.
        """
        match mode:
            case LinearRelationMode.PROVE:
                if not secrets:
                    raise ValueError("mode is PROVE but no secrets provided")
                self.secrets = secrets
                self.random_terms = [Scalar() for _ in secrets]
            case LinearRelationMode.VERIFY:
                if proof is None:
                    raise ValueError("mode is VERIFY but no ZKP provided")
                try:
                    self.responses = [Scalar(s) for s in proof.s]
                    self.c = Scalar(proof.c)
                except MalformedEncoding as e:
                    raise ProofInvalid("proof contains a malformed scalar") from e
                if not self.responses:
                    raise ProofInvalid("provided proof has no responses")
                if self.c.is_zero:
                    raise ProofInvalid("provided proof has a scalar zero challenge")
            case _:
                raise ValueError("unrecognized mode")

        self.transcript = transcript
        self.mode = mode
        self.statements = 0

    def add_statement(self, statement: Statement):
        """
        Adds a statement to be proven or verified.

        Commitment terms are computed for each equation and absorbed into the
        transcript, each one followed by the equation's left hand side.

        Parameters:
            statement (Statement): The statement to be added.
        """
        if not statement.equations:
            raise ProofInvalid("add_statement: statement has no equations")
        width = len(self.random_terms) if self.mode.isProve else len(self.responses)
        if statement.secret_count != width:
            if self.mode.isProve:
                raise ValueError(
                    f"statement expects {statement.secret_count} secrets, got {width}"
                )
            raise ProofInvalid(
                f"statement expects {statement.secret_count} responses, got {width}"
            )

        self.transcript.domain_sep(statement.domain_separator)
        for eq in statement.equations:
            R = O
            V = eq.value

            if self.mode.isProve:
                for row in eq.construction:
                    for i, P in enumerate(row):
                        R += self.random_terms[i] * P
            elif self.mode.isVerify:
                for row in eq.construction:
                    for i, P in enumerate(row):
                        R += self.responses[i] * P
                R -= self.c*V

            self.transcript.append(b"Com(R)_", R)
            self.transcript.append(b"Com(V)_", V)

        self.statements += 1

    def prove(self) -> ZKP:
        """
        Generates a zero-knowledge proof.

        Returns:
            ZKP: The generated zero-knowledge proof.
        """
        if not self.mode.isProve:
            raise ValueError("mode is not PROVE!")
        if self.statements == 0:
            raise ValueError("no statement to prove")

        c = self.transcript.get_challenge(b"chall_")

        responses = [(k + c*s).to_bytes()
            for k, s in zip(self.random_terms, self.secrets)]

        return ZKP(s=responses, c=c.to_bytes())

    def verify(self) -> bool:
        """
        Verifies a zero-knowledge proof.

        Returns:
            bool: True if the proof is valid, False otherwise.
        """
        if not self.mode.isVerify:
            raise ValueError("mode is not VERIFY!")
        if self.statements == 0:
            raise ValueError("no statement to verify")

        c_ = self.transcript.get_challenge(b"chall_")

        return self.c == c_

class BootstrapStatement:

    @classmethod
    def create(cls, Ma: GroupElement) -> Statement:
        return Statement(
            domain_separator=b"Bootstrap_Statement_",
            equations=[
                Equation(                   # Ma = r*G_blind
                    value=Ma,
                    construction=[[G_blind]]
                )
            ]
        )

class IparamsStatement:

    @classmethod
    def create(cls,
        Cw: GroupElement,
        I: GroupElement,
        V: GroupElement,
        Ma: GroupElement,
        Ms: GroupElement,
        t: Scalar,
    ) -> Statement:
        U = hash_to_curve(t.to_bytes())
        return Statement(
            domain_separator=b"Iparams_Statement_",
            equations=[
                Equation(                   # Cw = w*W  + w_*W_
                    value=Cw,
                    construction=[[W, W_,]]
                ),
                Equation(                   # I = Gz_mac - x0*X0 - x1*X1 - ya*Gz_attribute - ys*Gz_script
                    value=Gz_mac-I,
                    construction=[[O, O, X0, X1, Gz_attribute, Gz_script]]
                ),
                Equation(                   # V = w*W + x0*U + x1*t*U + ya*Ma + ys*Ms
                    value=V,
                    construction=[[W, O, U, t*U, Ma, Ms]]
                )
            ]
        )

class MacStatement:

    @classmethod
    def create(cls,
        Z: GroupElement,
        I: GroupElement,
        randomized_coin: RandomizedCoin,
    ) -> Statement:
        Ca, Cs, Cx0, Cx1 = (
            randomized_coin.Ca,
            randomized_coin.Cs,
            randomized_coin.Cx0,
            randomized_coin.Cx1,
        )
        # secrets: [r_a, -t*r_a, t, a, r, s, r_s]
        return Statement(
            domain_separator=b"MAC_Statement_",
            equations=[
                Equation(           # Z = r_a*I
                    value=Z,
                    construction=[[I]]
                ),
                Equation(           # Cx1 = t*Cx0 + (-t*r_a)*X0 + r_a*X1
                    value=Cx1,
                    construction=[[X1, X0, Cx0]]
                ),
                Equation(           # Ca = r_a*Gz_attribute + a*G_amount + r*G_blind
                    value=Ca,
                    construction=[[Gz_attribute, O, O, G_amount, G_blind]]
                ),
                Equation(           # Cs = r_a*Gz_script + s*G_script + r_s*G_blind
                    value=Cs,
                    construction=[[Gz_script, O, O, O, O, G_script, G_blind]]
                ),
            ]
        )

class BalanceStatement:

    @classmethod
    def create(cls, B: GroupElement) -> Statement:
        return Statement(
            domain_separator=b"Balance_Statement_",
            equations=[Equation(             # B = r_a*Gz_attribute + 𝚫r*G_blind
                value=B,
                construction=[[Gz_attribute, G_blind]]
            )]
        )

class ScriptEqualityStatement:

    @classmethod
    def create(cls, creds: List[GroupElement], attr: List[GroupElement]) -> Statement:
        # secrets: [s, r_a_0..r_a_n, r_s_0..r_s_n, new_r_s_0..new_r_s_k]
        equations = [
            Equation(
                value=Cs,
                construction=[
                    [G_script]+
                    [O] * i +
                    [Gz_script] +
                    [O] * (len(creds)-1) +
                    [G_blind]
                ]
            )
        for i, Cs in enumerate(creds)]
        equations += [
            Equation(
                value=Ms,
                construction=[
                    [G_script] +
                    [O] * (2*len(creds)+i) +
                    [G_blind]
                ]
            )
        for i, Ms in enumerate(attr)]
        return Statement(
            domain_separator=b"Script_Equality_Statement_",
            equations=equations,
        )

def prove_bootstrap(
    transcript: CoinTranscript,
    bootstrap: AmountAttribute
) -> ZKP:
    """
    Generates a zero-knowledge proofs that the bootstrap attribute does not encode value.

    Parameters:
        transcript (CoinTranscript): The transcript
        bootstrap (AmountAttribute): the bootstrap attribute.

    Returns:
        ZKP: The generated zero-knowledge proof
    """
    prover = LinearRelationProverVerifier(
        LinearRelationMode.PROVE,
        transcript,
        secrets=[bootstrap.r]
    )
    prover.add_statement(BootstrapStatement.create(bootstrap.Ma))

    return prover.prove()

def verify_bootstrap(
    transcript: CoinTranscript,
    bootstrap: GroupElement,
    proof: ZKP,
) -> bool:
    """
    Verifies that bootstrap does not encode value.

    Parameters:
        transcript (CoinTranscript): The transcript
        bootstrap (GroupElement): the bootstrap attribute.
        proof (ZKP): the proof.

    Returns:
        bool: True if verified successfully, False otherwise.
    """
    verifier = LinearRelationProverVerifier(
        LinearRelationMode.VERIFY,
        transcript,
        proof=proof,
    )
    verifier.add_statement(BootstrapStatement.create(bootstrap))

    return verifier.verify()

def prove_iparams(
    transcript: CoinTranscript,
    privkey: MintPrivateKey,
    mac: MAC,
    attribute: GroupElement,
    script: Optional[GroupElement] = None,
) -> ZKP:
    """
    Generates a zero-knowledge proof that mac was generated from attribute and sk.

    This function takes as input a secret key, an attribute, and a MAC, and returns a zero-knowledge proof that the MAC is valid for the given attribute and secret key.

    Parameters:
        transcript (CoinTranscript): The transcript
        privkey (MintPrivateKey): The secret key.
        mac (MAC): The MAC.
        attribute (GroupElement): The amount attribute.
        script (Optional[GroupElement]): Optional script attribute.

    Returns:
        ZKP: The generated zero-knowledge proof.
    """
    Ms = script if script is not None else O

    prover = LinearRelationProverVerifier(
        LinearRelationMode.PROVE,
        transcript,
        secrets=privkey.sk,
    )
    prover.add_statement(IparamsStatement.create(
        privkey.Cw, privkey.I, mac.V, attribute, Ms, mac.t
    ))

    return prover.prove()

def verify_iparams(
    transcript: CoinTranscript,
    mac: MAC,
    mint_pubkey: MintPublicKey,
    proof: ZKP,
    attribute: GroupElement,
    script: Optional[GroupElement] = None,
) -> bool:
    """
    Verifies that MAC was generated from AmountAttribute using iparams.

    This function takes as input an attribute, a MAC, iparams, and a
    proof, and returns True if the proof is valid for the given attribute
    and MAC, and False otherwise.

    Parameters:
        transcript (CoinTranscript): The transcript
        mac (MAC): The MAC.
        mint_pubkey (MintPublicKey): The mint's public key.
        proof (ZKP): The proof.
        attribute (GroupElement): The amount attribute.
        script (Optional[GroupElement]): The script attribute.

    Returns:
        bool: True if the proof is valid, False otherwise.
    """
    Ms = script if script is not None else O

    verifier = LinearRelationProverVerifier(
        LinearRelationMode.VERIFY,
        transcript,
        proof=proof,
    )
    verifier.add_statement(IparamsStatement.create(
        mint_pubkey.Cw, mint_pubkey.I, mac.V, attribute, Ms, mac.t
    ))

    return verifier.verify()

def prove_MAC(
    transcript: CoinTranscript,
    mint_pubkey: MintPublicKey,
    coin: Coin,
    randomized_coin: RandomizedCoin,
) -> ZKP:
    """
    Generates a zero-knowledge proof that the given randomized commitments were derived
    from a coin whose MAC was issued by the mint.

    Only who knows the opening of iparams can correctly verify this proof.

    Parameters:
        transcript (CoinTranscript): The transcript
        mint_pubkey (MintPublicKey): The public key of the Mint.
        coin (Coin): The coin being presented.
        randomized_coin (RandomizedCoin): Its randomization, as produced by `RandomizedCoin.create`.

    Returns:
        ZKP: The generated zero-knowledge proof.
    """
    r_a = randomized_coin.randomizer
    if r_a is None:
        raise ValueError("randomized coin does not carry its randomizer")
    t = coin.mac.t
    r0 = -(t*r_a)
    attribute = coin.amount_attribute

    s, r_s = scalar_zero, scalar_zero
    if coin.script_attribute is not None:
        r_s = coin.script_attribute.r
        if not randomized_coin.script_revealed:
            s = coin.script_attribute.s

    Z = r_a*mint_pubkey.I

    prover = LinearRelationProverVerifier(
        LinearRelationMode.PROVE,
        transcript,
        secrets=[r_a, r0, t, attribute.a, attribute.r, s, r_s]
    )
    prover.add_statement(MacStatement.create(Z, mint_pubkey.I, randomized_coin))

    return prover.prove()

def verify_MAC(
    transcript: CoinTranscript,
    privkey: MintPrivateKey,
    randomized_coin: RandomizedCoin,
    proof: ZKP,
    script: Optional[bytes] = None,
) -> bool:
    """
    Verifies a zero-knowledge proof that `randomized_coin` hides a coin carrying a valid MAC.

    The mint recomputes `Z` with its private key instead of relying on a public commitment.

    Parameters:
        transcript (CoinTranscript): The transcript
        privkey (MintPrivateKey): The mint secret key.
        randomized_coin (RandomizedCoin): The randomized commitments.
        proof (ZKP): The zero-knowledge proof.
        script (Optional[bytes], optional): The script if revealed

    Returns:
        bool: True if the proof is valid, False otherwise.
    """
    Ca, Cs, Cx0, Cx1, Cv = (
        randomized_coin.Ca,
        randomized_coin.Cs,
        randomized_coin.Cx0,
        randomized_coin.Cx1,
        randomized_coin.Cv,
    )
    S = O
    if script is not None:
        S = hash_script(script)*G_script
    Z = Cv - (
        privkey.w*W
        + privkey.x0*Cx0
        + privkey.x1*Cx1
        + privkey.ya*Ca
        + privkey.ys*(Cs+S)
    )

    verifier = LinearRelationProverVerifier(
        LinearRelationMode.VERIFY,
        transcript,
        proof=proof,
    )
    verifier.add_statement(MacStatement.create(Z, privkey.I, randomized_coin))

    return verifier.verify()

def prove_balance(
    transcript: CoinTranscript,
    randomized_coins: List[RandomizedCoin],
    old_attributes: List[AmountAttribute],
    new_attributes: List[AmountAttribute],
) -> ZKP:
    """
    This function takes as input the randomized inputs with their amount attributes and
    a list of new attributes, and returns a zero-knowledge proof of the balance between them.

    Parameters:
        transcript (CoinTranscript): The transcript
        randomized_coins (List[RandomizedCoin]): The randomized inputs.
        old_attributes (List[AmountAttribute]): The amount attributes of the inputs, same order.
        new_attributes (List[AmountAttribute]): The list of new amount attributes.

    Returns:
        ZKP: The generated zero-knowledge proof.
    """
    if not randomized_coins:
        raise EmptyInput("balance proof needs at least one input")
    if len(randomized_coins) != len(old_attributes):
        raise ValueError("every randomized input needs its amount attribute")
    if any(c.randomizer is None for c in randomized_coins):
        raise ValueError("randomized coin does not carry its randomizer")

    r_a = sum([c.randomizer for c in randomized_coins], scalar_zero)
    r = sum([att.r for att in old_attributes], scalar_zero)
    r_ = sum([att.r for att in new_attributes], scalar_zero)

    delta_r = r - r_
    B = r_a*Gz_attribute + delta_r*G_blind

    prover = LinearRelationProverVerifier(
        LinearRelationMode.PROVE,
        transcript,
        secrets=[r_a, delta_r]
    )
    prover.add_statement(BalanceStatement.create(B))

    return prover.prove()

def verify_balance(
    transcript: CoinTranscript,
    randomized_coins: List[RandomizedCoin],
    new_attributes: List[GroupElement],
    balance_proof: ZKP,
    delta_amount: int,
) -> bool:
    """
    This function computes a balance from a list of "old" randomized attributes,
    a list of attributes and a public Δamount,
    then verifies zero-knowledge balance proof and returns True if the proof is valid, and False otherwise.

    The balance holds when Σ inputs == Σ outputs + Δamount.

    Parameters:
        transcript (CoinTranscript): The transcript
        randomized_coins (List[RandomizedCoin]): The list of randomized inputs.
        new_attributes (List[GroupElement]): The list of new attribute commitments.
        balance_proof (ZKP): The zero-knowledge proof.
        delta_amount (int): The amount by which inputs and new attributes supposedly differ.

    Returns:
        bool: True if the proof is valid, False otherwise.
    """
    if not randomized_coins:
        raise EmptyInput("balance proof needs at least one input")

    delta_a = Scalar.from_int(abs(delta_amount))
    B = -delta_a*G_amount if delta_amount >= 0 else delta_a*G_amount
    for coin in randomized_coins:
        B += coin.Ca
    for Ma in new_attributes:
        B -= Ma

    verifier = LinearRelationProverVerifier(
        LinearRelationMode.VERIFY,
        transcript,
        proof=balance_proof,
    )
    verifier.add_statement(BalanceStatement.create(B))

    return verifier.verify()

def prove_script_equality(
    transcript: CoinTranscript,
    randomized_coins: List[RandomizedCoin],
    old_script_attributes: List[Optional[ScriptAttribute]],
    new_script_attributes: List[ScriptAttribute],
) -> ZKP:
    """
    Parameters:
        transcript (CoinTranscript): The transcript
        randomized_coins (List[RandomizedCoin]): The randomized inputs (script not revealed)
        old_script_attributes (List[Optional[ScriptAttribute]]): The script attributes of the inputs, same order
        new_script_attributes (List[ScriptAttribute]): The new script attributes
    Returns:
        (ZKP) Proof that `s` is the same in the old `Cs` and new `Ms`

    Raises:
        NoScriptProvided: if any input has no script attribute.
    """
    if not randomized_coins:
        raise EmptyInput("script equality needs at least one input")
    if len(randomized_coins) != len(old_script_attributes):
        raise ValueError("every randomized input needs its script attribute")
    if any(att is None for att in old_script_attributes):
        raise NoScriptProvided("an input carries no script attribute")

    s = old_script_attributes[0].s
    ra_list = [c.randomizer for c in randomized_coins]          # randomizers
    r_list = [att.r for att in old_script_attributes]           # `ScriptAttribute`s blinding factors
    new_r_list = [att.r for att in new_script_attributes]       # new `ScriptAttribute`s blinding factors

    prover = LinearRelationProverVerifier(
        LinearRelationMode.PROVE,
        transcript,
        secrets=[s]+ra_list+r_list+new_r_list,
    )
    prover.add_statement(ScriptEqualityStatement.create(
        [c.Cs for c in randomized_coins],
        [att.Ms for att in new_script_attributes]
    ))

    return prover.prove()

def verify_script_equality(
    transcript: CoinTranscript,
    randomized_coins: List[RandomizedCoin],
    new_script_attributes: List[GroupElement],
    proof: ZKP,
) -> bool:
    """
    Verifies a proof of same script used across all `randomized_coins` and `new_script_attributes`

    Parameters:
        transcript (CoinTranscript): The transcript
        randomized_coins (List[RandomizedCoin]): The old randomized coins
        new_script_attributes (List[GroupElement]): New script attributes
    Returns:
        (bool) True if successfully verified, False otherwise
    """
    if not randomized_coins:
        raise EmptyInput("script equality needs at least one input")

    verifier = LinearRelationProverVerifier(
        LinearRelationMode.VERIFY,
        transcript,
        proof=proof,
    )
    verifier.add_statement(ScriptEqualityStatement.create(
        [c.Cs for c in randomized_coins],
        new_script_attributes,
    ))

    return verifier.verify()
