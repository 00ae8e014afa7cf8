import hashlib
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import InvalidSecretKey, MalformedEncoding, MissingScript
from .generators import *
from .secp import ELEMENT_SIZE, GroupElement, Scalar

# Maximum allowed for a single amount attribute (exclusive)
RANGE_BITS = 32
RANGE_LIMIT = 1 << RANGE_BITS

@dataclass
class MintPublicKey:
    Cw: GroupElement
    I: GroupElement

@dataclass
class MintPrivateKey:
    w: Scalar
    w_: Scalar
    x0: Scalar
    x1: Scalar
    ya: Scalar
    ys: Scalar

    _I: Optional[GroupElement] = field(default=None, repr=False, compare=False)
    _Cw: Optional[GroupElement] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        for name, s in zip(("w", "w_", "x0", "x1", "ya", "ys"), self.sk):
            if not isinstance(s, Scalar) or s.is_zero:
                raise InvalidSecretKey(f"private key component {name} is zero or not a scalar")

    @classmethod
    def generate(cls) -> "MintPrivateKey":
        return cls(*[Scalar() for _ in range(6)])

    @classmethod
    def from_bytes(cls, *components: bytes) -> "MintPrivateKey":
        if len(components) != 6:
            raise InvalidSecretKey("a mint private key has exactly 6 components")
        try:
            sk = [Scalar(c) for c in components]
        except MalformedEncoding as e:
            raise InvalidSecretKey("private key component out of field range") from e
        return cls(*sk)

    @property
    def sk(self):
        return [
            self.w,
            self.w_,
            self.x0,
            self.x1,
            self.ya,
            self.ys,
        ]

    @property
    def Cw(self):
        if self._Cw is None:
            self._Cw = W*self.w + W_*self.w_
        return self._Cw

    @property
    def I(self):
        if self._I is None:
            self._I = Gz_mac - (
                X0*self.x0
                + X1*self.x1
                + Gz_attribute*self.ya  # amount
                + Gz_script*self.ys     # script
            )
        return self._I

    @property
    def pubkey(self) -> MintPublicKey:
        return MintPublicKey(Cw=self.Cw, I=self.I)

@dataclass
class ZKP:
    s: List[bytes]
    c: bytes

@dataclass
class ScriptAttribute:
    r: Scalar
    s: Scalar

    _Ms: Optional[GroupElement] = field(default=None, repr=False, compare=False)

    @classmethod
    def create(
        cls,
        script: bytes,
        blinding_factor: Optional[bytes] = None,
    ):
        """
        Creates a script attribute that encodes the hash of a given script.

        This function takes as input an array of bytes and returns an attribute.

        Parameters:
            script (bytes): The script
            blinding_factor (Optional[bytes]): Optionally a raw 32-byte blinding factor

        Returns:
            ScriptAttribute: The created attribute.
        """
        s = hash_script(script)
        r = (
            Scalar(blinding_factor) if blinding_factor
            else Scalar()
        )

        return cls(r, s)

    @property
    def Ms(self):
        if self._Ms is None:
            self._Ms = self.r * G_blind + self.s * G_script
        return self._Ms

def hash_script(script: bytes) -> Scalar:
    return Scalar.from_int(int.from_bytes(hashlib.sha256(script).digest(), "big"))

@dataclass
class AmountAttribute:
    r: Scalar
    a: Scalar

    _Ma: Optional[GroupElement] = field(default=None, repr=False, compare=False)

    @classmethod
    def create(
        cls,
        amount: int,
        blinding_factor: Optional[bytes] = None,
    ):
        """
        Creates an attribute worth the given amount.

        This function takes as input an amount and returns an attribute that represents the given amount.

        Parameters:
            amount (int): The amount
            blinding_factor (Optional[bytes]): Optionally a raw 32-byte blinding factor

        Returns:
            AmountAttribute: The created attribute.
        """
        a = Scalar.from_int(amount)
        r = (
            Scalar(blinding_factor) if blinding_factor
            else Scalar()
        )

        return cls(r, a)

    @property
    def Ma(self):
        if self._Ma is None:
            self._Ma = self.r * G_blind + self.a * G_amount
        return self._Ma

    @property
    def amount(self) -> int:
        return self.a.to_int()

    def tweak(self, delta: int) -> "AmountAttribute":
        """Same blinding factor, amount shifted by `delta`."""
        return AmountAttribute(self.r, self.a + Scalar.from_int(delta))

    @classmethod
    def tweak_commitment(cls, Ma: GroupElement, delta: int) -> GroupElement:
        d = Scalar.from_int(abs(delta))
        D = d * G_amount if delta >= 0 else -d * G_amount
        return Ma+D

@dataclass
class MAC:
    t: Scalar
    V: GroupElement

    @classmethod
    def generate(
        cls,
        privkey: MintPrivateKey,
        attribute: GroupElement,
        script: Optional[GroupElement] = None,
        t: Optional[Scalar] = None,
    ):
        """
        Generates a MAC for a given attribute and secret key.

        This function takes as input an attribute and a secret key, and returns a MAC that can be used to authenticate the attribute.

        Parameters:
            privkey (MintPrivateKey): The mint's secret parameters.
            attribute (GroupElement): The amount attribute.
            script (GroupElement): The script attribute.
            t (Optional[Scalar])

        Returns:
            MAC: The generated MAC.
        """
        if t is None:
            t = Scalar()
        sk = privkey.sk
        Ma = attribute
        Ms = script if script is not None else O
        U = hash_to_curve(t.to_bytes())
        V = (
            sk[0] * W
            + sk[2] * U
            + sk[3] * t * U
            + sk[4] * Ma
            + sk[5] * Ms
        )
        return cls(t=t, V=V)

@dataclass
class Coin:
    amount_attribute: AmountAttribute
    mac: MAC
    script_attribute: Optional[ScriptAttribute] = None

@dataclass
class RandomizedCoin:
    Ca: GroupElement
    Cs: GroupElement
    Cx0: GroupElement
    Cx1: GroupElement
    Cv: GroupElement

    # Known to the client only, never serialized
    randomizer: Optional[Scalar] = field(default=None, repr=False, compare=False)
    script_revealed: bool = field(default=False, repr=False, compare=False)

    @classmethod
    def create(cls,
        coin: Coin,
        reveal_script: bool = False,
    ) -> "RandomizedCoin":
        """
        Produces randomized commitments for the given coin.

        A fresh randomizer `r_a` is sampled and used in all five commitments.

        Parameters:
            coin (Coin): The coin to present.
            reveal_script (bool, optional): If True, only randomize the blinding factor of the script
                commitment, so that the mint can bind the script it is shown. Defaults to False

        Returns:
            RandomizedCoin: The randomized commitment set.

        Raises:
            MissingScript: if `reveal_script` is requested for a coin without a script.
        """
        mac = coin.mac
        script_attribute = coin.script_attribute
        t = mac.t
        V = mac.V
        Ma = coin.amount_attribute.Ma
        Ms = O
        if reveal_script:
            if script_attribute is None:
                raise MissingScript("cannot reveal the script of a coin without a script")
            # Mint will be able to open `s` so we only randomize the r*G_blind part
            Ms = script_attribute.r*G_blind
        elif script_attribute is not None:
            Ms = script_attribute.Ms

        U = hash_to_curve(t.to_bytes())
        r = Scalar()

        Ca = r*Gz_attribute + Ma
        Cs = r*Gz_script + Ms
        Cx0 = r*X0 + U
        Cx1 = r*X1 + t*U
        Cv = r*Gz_mac + V

        return cls(
            Ca=Ca, Cs=Cs, Cx0=Cx0, Cx1=Cx1, Cv=Cv,
            randomizer=r,
            script_revealed=reveal_script,
        )

    def serialize(self) -> bytes:
        return b"".join(C.serialize(True) for C in (self.Ca, self.Cs, self.Cx0, self.Cx1, self.Cv))

    @classmethod
    def deserialize(cls, data: bytes) -> "RandomizedCoin":
        if len(data) != 5*ELEMENT_SIZE:
            raise MalformedEncoding(f"randomized coin encoding must be {5*ELEMENT_SIZE} bytes")
        Ca, Cs, Cx0, Cx1, Cv = [
            GroupElement(data[i:i+ELEMENT_SIZE])
            for i in range(0, len(data), ELEMENT_SIZE)
        ]
        return cls(Ca=Ca, Cs=Cs, Cx0=Cx0, Cx1=Cx1, Cv=Cv)

@dataclass
class Equation:
    value: GroupElement
    construction: List[List[GroupElement]]

@dataclass
class Statement:
    domain_separator: bytes
    equations: List[Equation]

    @property
    def secret_count(self) -> int:
        return max(
            (len(row) for eq in self.equations for row in eq.construction),
            default=0,
        )
