import hmac

from secp256k1 import PrivateKey, PublicKey

from .errors import MalformedEncoding

# Encoded sizes
SCALAR_SIZE = 32
ELEMENT_SIZE = 33

# Constant scalar 0
SCALAR_ZERO = b"\x00"*32
# Constant point to infinity (x = 0 is not on the curve)
ELEMENT_ZERO = b"\x02" + b"\x00" * 32

# Order of the curve
q = int('FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141', 16)

def div2(M, x):
    """Helper routine to compute x/2 mod M (where M is odd)."""
    if x & 1: # If x is odd, make it even by adding M.
        x += M
    # x must be even now, so a clean division by 2 is possible.
    return x >> 1

# safegcd (constant-time):
def modinv(M, x):
    """Compute the inverse of x mod M (given that it exists, and M is odd)."""
    delta, f, g, d, e = 1, M, x, 0, 1
    while g != 0:
        # Division by two for f and g is only ever done on even inputs, this is
        # not true for d and e, so we need the div2 helper function.
        if delta > 0 and g & 1:
            delta, f, g, d, e = 1 - delta, g, (g - f) // 2, e, div2(M, e - d)
        elif g & 1:
            delta, f, g, d, e = 1 + delta, f, (g + f) // 2, d, div2(M, e + d)
        else:
            delta, f, g, d, e = 1 + delta, f, (g    ) // 2, d, div2(M, e    )
    if f not in (1, -1):  # |f| is the GCD, it must be 1
        raise ValueError("value is not invertible")
    # Because of invariant d = f/x (mod M), 1/x = d/f (mod M). As |f|=1, d/f = d*f.
    return (d * f) % M

class Scalar(PrivateKey):
    """
    An element of the secp256k1 scalar field.

    `Scalar()` samples a uniformly random non-zero scalar, `Scalar(data)`
    decodes a 32 byte big-endian encoding and raises `MalformedEncoding`
    when the encoding has the wrong length or is not reduced modulo q.
    """

    def __init__(self, data: bytes | None = None):
        if data is None:
            self.is_zero = False
            super().__init__(None, raw=True)
            return
        if not isinstance(data, bytes) or len(data) != SCALAR_SIZE:
            raise MalformedEncoding(f"scalar encoding must be {SCALAR_SIZE} bytes")
        if int.from_bytes(data, "big") >= q:
            raise MalformedEncoding("scalar encoding is not reduced modulo q")
        if data == SCALAR_ZERO:
            self.is_zero = True
        else:
            self.is_zero = False
            super().__init__(data, raw=True)

    @classmethod
    def from_int(cls, n: int) -> "Scalar":
        return cls((n % q).to_bytes(32, "big"))

    def __add__(self, scalar2):
        if isinstance(scalar2, Scalar):
            if scalar2.is_zero:
                return Scalar(self.to_bytes())
            elif self.is_zero:
                return Scalar(scalar2.to_bytes())
            elif self == -scalar2:
                # libsecp refuses to produce a zero key
                return Scalar(SCALAR_ZERO)
            else:
                new_scalar = self.tweak_add(scalar2.to_bytes())
                return Scalar(new_scalar)
        else:
            raise TypeError(f"Cannot add {scalar2.__class__} and Scalar")

    def __neg__(self):
        if self.is_zero:
            return Scalar(SCALAR_ZERO)
        s = int.from_bytes(self.to_bytes(), "big")
        s_ = q - s
        return Scalar(s_.to_bytes(32, "big"))

    def __sub__(self, scalar2):
        if isinstance(scalar2, Scalar):
            return self + (-scalar2)
        else:
            raise TypeError(f"Cannot subtract {scalar2.__class__} and Scalar")

    def __mul__(self, obj):
        if isinstance(obj, Scalar):
            if self.is_zero or obj.is_zero:
                return Scalar(SCALAR_ZERO)
            else:
                new_scalar = self.tweak_mul(obj.to_bytes())
                return Scalar(new_scalar)
        elif isinstance(obj, GroupElement):
            return obj.__mul__(self)
        else:
            raise TypeError(f"Cannot multiply {obj.__class__} and Scalar")

    def __eq__(self, scalar2):
        if isinstance(scalar2, Scalar):
            return hmac.compare_digest(self.to_bytes(), scalar2.to_bytes())
        return NotImplemented

    __hash__ = None

    def invert(self):
        if self.is_zero:
            raise ZeroDivisionError("Cannot compute inverse of 0")
        s = int.from_bytes(self.to_bytes(), "big")
        s_inv = modinv(q, s)
        return Scalar(s_inv.to_bytes(32, "big"))

    def to_bytes(self):
        return self.private_key if not self.is_zero else SCALAR_ZERO

    def to_int(self) -> int:
        return int.from_bytes(self.to_bytes(), "big")

    def __repr__(self):
        return f"Scalar({self.to_bytes().hex()})"

scalar_zero = Scalar(SCALAR_ZERO)
scalar_one = Scalar.from_int(1)

# We extend the public key to define some operations on points
# Adapted from https://github.com/WTRMQDev/secp256k1-zkp-py/blob/master/secp256k1_zkp/__init__.py
class GroupElement(PublicKey):
    """
    A point on secp256k1, or the point at infinity.

    `GroupElement(data)` decodes a 33 byte compressed encoding and raises
    `MalformedEncoding` on bad lengths or points that are not on the curve.
    """

    def __init__(self, data: bytes | None = None):
        if data is not None and (not isinstance(data, bytes) or len(data) != ELEMENT_SIZE):
            raise MalformedEncoding(f"group element encoding must be {ELEMENT_SIZE} bytes")
        if data == ELEMENT_ZERO:
            self.is_zero = True
            return
        self.is_zero = False
        try:
            super().__init__(data, raw=True)
        except Exception as e:
            # the binding raises a bare Exception for invalid points
            raise MalformedEncoding("invalid curve point") from e

    def __add__(self, pubkey2):
        if isinstance(pubkey2, GroupElement):
            if pubkey2.is_zero:
                return GroupElement(self.serialize(True))
            elif self.is_zero:
                return GroupElement(pubkey2.serialize(True))
            a, b = self.serialize(True), pubkey2.serialize(True)
            if a[1:] == b[1:] and a[0] != b[0]:
                # P + (-P)
                return GroupElement(ELEMENT_ZERO)
            new_pub = GroupElement()
            new_pub.combine([self.public_key, pubkey2.public_key])
            return new_pub
        else:
            raise TypeError("Cant add pubkey and %s" % pubkey2.__class__)

    def __neg__(self):
        if self.is_zero:
            return GroupElement(ELEMENT_ZERO)
        serialized = self.serialize()
        first_byte, remainder = serialized[:1], serialized[1:]
        # flip odd/even byte
        first_byte = {b"\x03": b"\x02", b"\x02": b"\x03"}[first_byte]
        return GroupElement(first_byte + remainder)

    def __sub__(self, pubkey2):
        if isinstance(pubkey2, GroupElement):
            return self + (-pubkey2)
        else:
            raise TypeError("Can't subtract element and %s" % pubkey2.__class__)

    def __mul__(self, scalar):
        if isinstance(scalar, Scalar):
            if scalar.is_zero or self.is_zero:
                return GroupElement(ELEMENT_ZERO)
            result = self.tweak_mul(scalar.to_bytes())
            return GroupElement(result.serialize(True))
        else:
            raise TypeError(f"Can't multiply GroupElement with {scalar.__class__}")

    def __eq__(self, el2):
        if isinstance(el2, GroupElement):
            return self.serialize(True) == el2.serialize(True)
        return NotImplemented

    __hash__ = None

    def serialize(self, compressed = True):
        if self.is_zero:
            return ELEMENT_ZERO
        else:
            return super().serialize(compressed=compressed)

    def __repr__(self):
        return f"GroupElement({self.serialize(True).hex()})"
