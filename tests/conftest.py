import pytest

from coinkvac.models import MintPrivateKey
from coinkvac.secp import Scalar
from coinkvac.transcript import CoinTranscript

@pytest.fixture
def transcripts():
    prove_transcript = CoinTranscript()
    verify_transcript = CoinTranscript()
    return prove_transcript, verify_transcript

@pytest.fixture
def mint_privkey():
    sk = [Scalar() for _ in range(6)]
    mint_privkey = MintPrivateKey(*sk)
    return mint_privkey

@pytest.fixture
def mint_pubkey(mint_privkey):
    return mint_privkey.pubkey
