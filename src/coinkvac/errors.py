class KVACError(Exception):
    """Base class for every error raised by coinkvac."""


class MalformedEncoding(KVACError, ValueError):
    """Bad byte length, out-of-range scalar or invalid curve point."""


class InvalidSecretKey(KVACError, ValueError):
    """A mint private key component is zero or out of the scalar field."""


class EmptyInput(KVACError, ValueError):
    """A coin or attribute list is empty where at least one is required."""


class MissingScript(KVACError):
    """A script operation was requested on a coin without a script attribute."""


class NoScriptProvided(MissingScript):
    """Script equality was requested but an input carries no script."""


class ProofInvalid(KVACError):
    """A proof is malformed or does not verify."""


class RangeViolation(KVACError, ValueError):
    """An amount lies outside [0, RANGE_LIMIT) at proof construction time."""
