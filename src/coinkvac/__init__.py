from .bulletproof import BulletProof, InnerProductArgument
from .errors import (
    EmptyInput,
    InvalidSecretKey,
    KVACError,
    MalformedEncoding,
    MissingScript,
    NoScriptProvided,
    ProofInvalid,
    RangeViolation,
)
from .models import (
    MAC,
    RANGE_LIMIT,
    AmountAttribute,
    Coin,
    MintPrivateKey,
    MintPublicKey,
    RandomizedCoin,
    ScriptAttribute,
    ZKP,
)
from .protocol import (
    SpendRequest,
    accept_issuance,
    issue_bootstrap,
    mint_credential,
    process_bootstrap,
    process_spend,
    prove_range,
    spend,
    verify_bootstrap,
    verify_issuance,
    verify_range,
    verify_spend,
    verify_spends,
)
from .secp import GroupElement, Scalar
from .transcript import CoinTranscript

__version__ = "0.1.0"
