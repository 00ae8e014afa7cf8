from merlin_transcripts import MerlinTranscript

from .secp import GroupElement, Scalar, q

PROTOCOL_LABEL = b"Secp256k1_Cashu_"

# Wide challenges, reduced mod q with negligible bias
CHALLENGE_SIZE = 64

class CoinTranscript:
    """
    Fiat-Shamir transcript over Merlin.

    Challenges are drawn from the transcript state, so that prover and
    verifier absorbing the same messages in the same order derive the
    same challenges.
    """
    t: MerlinTranscript

    def __init__(self, label: bytes = PROTOCOL_LABEL):
        if len(label) == 0:
            raise ValueError("Cannot instantiate a transcript with no label")
        self.t = MerlinTranscript(label)

    def __copy__(self):
        raise TypeError(f"Copying of {self.__class__.__name__} is not allowed")

    def __deepcopy__(self, memo):
        raise TypeError(f"Deep copying of {self.__class__.__name__} is not allowed")

    def domain_sep(self, tag: bytes):
        if len(tag) == 0:
            raise ValueError("Domain separator of size zero is not allowed")
        self.t.append_message(b"dom-sep", tag)

    def append_bytes(self, label: bytes, data: bytes):
        if len(label) == 0:
            raise ValueError("Label of size zero is not allowed")
        self.t.append_message(label, data)

    def append(self, label: bytes, element: GroupElement):
        self.append_bytes(label, element.serialize(True))

    def get_challenge(self, label: bytes) -> Scalar:
        if len(label) == 0:
            raise ValueError("Label of size zero is not allowed")
        while True:
            challenge_bytes = self.t.challenge_bytes(label, CHALLENGE_SIZE)
            c = Scalar.from_int(int.from_bytes(challenge_bytes, "big") % q)
            # every draw advances the state, so a retry yields fresh bytes
            if not c.is_zero:
                return c
