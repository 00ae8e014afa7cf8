import hashlib
import logging
import threading
from typing import List, Tuple

from .errors import MalformedEncoding
from .secp import GroupElement, ELEMENT_ZERO

logger = logging.getLogger(__name__)

DOMAIN_SEPARATOR = b"Secp256k1_HashToCurve_Cashu_"

def hash_to_curve(message: bytes) -> GroupElement:
    msg_to_hash = hashlib.sha256(DOMAIN_SEPARATOR + message).digest()
    counter = 0
    while counter < 2**16:
        _hash = hashlib.sha256(msg_to_hash + counter.to_bytes(4, "little")).digest()
        try:
            # will error if point does not lie on curve
            point = GroupElement(b"\x02" + _hash)
            if not point.is_zero:
                return point
        except MalformedEncoding:
            pass
        counter += 1
    # it should never reach this point
    raise ValueError("No valid point found")

# Point at infinity
O = GroupElement(ELEMENT_ZERO)

# Generators drawn with NUMS
W, W_, X0, X1, Gz_mac, Gz_attribute, Gz_script, G_amount, G_script, G_blind = (
    hash_to_curve(b"W"),
    hash_to_curve(b"W_"),
    hash_to_curve(b"X0"),
    hash_to_curve(b"X1"),
    hash_to_curve(b"Gz_mac"),
    hash_to_curve(b"Gz_attribute"),
    hash_to_curve(b"Gz_script"),
    hash_to_curve(b"G_amount"),
    hash_to_curve(b"G_script"),
    hash_to_curve(b"G_blind"),
)

# Inner product argument generators, grown on demand and never mutated
_ipa_lock = threading.Lock()
_ipa_G: Tuple[GroupElement, ...] = ()
_ipa_H: Tuple[GroupElement, ...] = ()
IPA_U = hash_to_curve(b"IPA_U_")

def get_generators(length: int) -> Tuple[List[GroupElement], List[GroupElement], GroupElement]:
    """
    Returns the first `length` elements of the `G` and `H` vector generators
    together with the `U` generator used by the inner product argument.

    The tables are computed deterministically from fixed labels the first time
    a given length is requested and are shared read-only afterwards.
    """
    global _ipa_G, _ipa_H
    if length < 1:
        raise ValueError("generator length must be positive")
    if length > len(_ipa_G):
        with _ipa_lock:
            if length > len(_ipa_G):
                logger.debug("extending IPA generators from %d to %d", len(_ipa_G), length)
                _ipa_G = _ipa_G + tuple(hash_to_curve(f"IPA_G_{i}_".encode("utf-8"))
                    for i in range(len(_ipa_G), length))
                _ipa_H = _ipa_H + tuple(hash_to_curve(f"IPA_H_{i}_".encode("utf-8"))
                    for i in range(len(_ipa_H), length))
    return (list(_ipa_G[:length]), list(_ipa_H[:length]), IPA_U)
