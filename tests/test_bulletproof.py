import pytest

from coinkvac.bulletproof import *
from coinkvac.errors import EmptyInput, MalformedEncoding, RangeViolation
from coinkvac.generators import get_generators
from coinkvac.models import AmountAttribute
from coinkvac.secp import Scalar, scalar_one
from coinkvac.transcript import CoinTranscript

def test_range_proof(transcripts):
    cli_transcript, mint_transcript = transcripts

    attribute = AmountAttribute.create(14)
    range_proof = BulletProof.create(cli_transcript, [attribute])
    assert range_proof.verify(mint_transcript, [attribute.Ma])

def test_range_proof_boundaries(transcripts):
    cli_transcript, mint_transcript = transcripts

    # 3 attributes are padded to 4
    attributes = [AmountAttribute.create(a) for a in [5, 0, 4294967295]]
    range_proof = prove_range(cli_transcript, attributes)
    assert len(range_proof.ipa.public_inputs) == 7
    assert verify_range(mint_transcript, [att.Ma for att in attributes], range_proof)

def test_range_proof_multiple(transcripts):
    cli_transcript, mint_transcript = transcripts

    attributes = [AmountAttribute.create(a) for a in [1, 2, 3, 4, 5, 6, 7, 8]]
    range_proof = prove_range(cli_transcript, attributes)
    assert verify_range(mint_transcript, [att.Ma for att in attributes], range_proof)

def test_out_of_range():
    with pytest.raises(RangeViolation):
        BulletProof.create(CoinTranscript(), [AmountAttribute.create(1 << 32)])
    # negative amounts wrap around modulo q
    with pytest.raises(RangeViolation):
        BulletProof.create(CoinTranscript(), [AmountAttribute.create(-1)])

def test_empty_range_proof():
    with pytest.raises(EmptyInput):
        prove_range(CoinTranscript(), [])
    attribute = AmountAttribute.create(1)
    range_proof = prove_range(CoinTranscript(), [attribute])
    with pytest.raises(EmptyInput):
        verify_range(CoinTranscript(), [], range_proof)

def test_wrong_range(transcripts):
    cli_transcript, mint_transcript = transcripts

    # Amount is above range: forge the attribute after proving
    attribute = AmountAttribute.create(1 << 31)
    range_proof = BulletProof.create(cli_transcript, [attribute])
    forged = AmountAttribute.tweak_commitment(attribute.Ma, 1 << 31)
    assert not range_proof.verify(mint_transcript, [forged])

def test_wrong_commitments(transcripts):
    cli_transcript, mint_transcript = transcripts

    attributes = [AmountAttribute.create(a) for a in [10, 20]]
    range_proof = prove_range(cli_transcript, attributes)
    swapped = [attributes[1].Ma, attributes[0].Ma]
    assert not verify_range(mint_transcript, swapped, range_proof)

def test_tampered_t_x(transcripts):
    cli_transcript, mint_transcript = transcripts

    attribute = AmountAttribute.create(1000)
    range_proof = prove_range(cli_transcript, [attribute])
    range_proof.t_x = range_proof.t_x + scalar_one
    assert not verify_range(mint_transcript, [attribute.Ma], range_proof)

def test_truncated_ipa(transcripts):
    cli_transcript, mint_transcript = transcripts

    attribute = AmountAttribute.create(1000)
    range_proof = prove_range(cli_transcript, [attribute])
    range_proof.ipa.public_inputs = range_proof.ipa.public_inputs[:-1]
    assert not verify_range(mint_transcript, [attribute.Ma], range_proof)

def test_different_commitment_count(transcripts):
    cli_transcript, mint_transcript = transcripts

    attributes = [AmountAttribute.create(a) for a in [10, 20]]
    range_proof = prove_range(cli_transcript, attributes)
    # 3 commitments need 4*32 folded elements
    extra = attributes + [AmountAttribute.create(30)]
    assert not verify_range(mint_transcript, [att.Ma for att in extra], range_proof)

def test_inner_product_argument(transcripts):
    cli_transcript, mint_transcript = transcripts

    n = 16
    G, H, U = get_generators(n)
    a = [Scalar() for _ in range(n)]
    b = [Scalar() for _ in range(n)]
    P = sum([a_i*G_i + b_i*H_i for a_i, b_i, G_i, H_i in zip(a, b, G, H)], O)
    c = inner_product(a, b)

    ipa = get_folded_IPA(cli_transcript, (G, H, U), P, a, b)
    assert len(ipa.public_inputs) == 4
    assert verify_folded_IPA(mint_transcript, (G, H, U), ipa, P, c)

    # the inner product is bound by the argument
    assert not verify_folded_IPA(CoinTranscript(), (G, H, U), ipa, P, c + scalar_one)

def test_inner_product_argument_length():
    G, H, U = get_generators(4)
    with pytest.raises(ValueError):
        get_folded_IPA(CoinTranscript(), (G[:3], H[:3], U), O, [Scalar()] * 3, [Scalar()] * 3)
    with pytest.raises(ValueError):
        get_folded_IPA(CoinTranscript(), (G, H, U), O, [Scalar()] * 4, [Scalar()] * 2)

def test_helpers():
    assert [next_power_of_2(n) for n in [0, 1, 2, 3, 5, 8]] == [1, 1, 2, 4, 8, 8]
    assert is_power_of_2(1) and is_power_of_2(64) and not is_power_of_2(0) and not is_power_of_2(6)
    x = Scalar.from_int(3)
    assert [p.to_int() for p in powers(x, 4)] == [1, 3, 9, 27]

def test_range_proof_encoding(transcripts):
    cli_transcript, mint_transcript = transcripts

    attributes = [AmountAttribute.create(a) for a in [21, 1 << 20, 0]]
    range_proof = prove_range(cli_transcript, attributes)
    data = range_proof.serialize()
    # 4 points, 3 scalars, 7 rounds of (L, R), 2 tail scalars
    assert len(data) == 4*33 + 3*32 + 7*2*33 + 2*32

    decoded = BulletProof.deserialize(data)
    assert decoded == range_proof
    assert verify_range(mint_transcript, [att.Ma for att in attributes], decoded)

def test_range_proof_encoding_flipped_t_x():
    attribute = AmountAttribute.create(1000)
    data = bytearray(prove_range(CoinTranscript(), [attribute]).serialize())

    # lowest bit of t_x
    data[4*33 + 31] ^= 0x01
    decoded = BulletProof.deserialize(bytes(data))
    assert not verify_range(CoinTranscript(), [attribute.Ma], decoded)

def test_range_proof_malformed_encoding():
    attribute = AmountAttribute.create(1000)
    data = prove_range(CoinTranscript(), [attribute]).serialize()

    with pytest.raises(MalformedEncoding):
        BulletProof.deserialize(data[:-1])
    with pytest.raises(MalformedEncoding):
        BulletProof.deserialize(data[:100])
    # A is not a curve point
    with pytest.raises(MalformedEncoding):
        BulletProof.deserialize(b"\x05" + data[1:])
