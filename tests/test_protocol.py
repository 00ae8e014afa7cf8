import logging

import pytest

from coinkvac import protocol
from coinkvac.errors import EmptyInput, MissingScript, NoScriptProvided, ProofInvalid
from coinkvac.models import AmountAttribute, MintPrivateKey, ScriptAttribute, ZKP
from coinkvac.kvac import prove_MAC
from coinkvac.protocol import *
from coinkvac.transcript import CoinTranscript

def bootstrap_coins(mint_privkey, mint_pubkey, count=2, scripts=None):
    attributes = [AmountAttribute.create(0) for _ in range(count)]
    issued = []
    for i, attribute in enumerate(attributes):
        Ma, proof = issue_bootstrap(attribute)
        Ms = scripts[i].Ms if scripts is not None else None
        issued.append(process_bootstrap(mint_privkey, Ma, proof, Ms))
    return accept_issuance(mint_pubkey, attributes, issued, scripts)

def test_bootstrap_flow(mint_privkey, mint_pubkey):
    coins = bootstrap_coins(mint_privkey, mint_pubkey)
    assert len(coins) == 2
    assert all(coin.amount_attribute.amount == 0 for coin in coins)

def test_bootstrap_rejects_value(mint_privkey):
    attribute = AmountAttribute.create(1)
    Ma, proof = issue_bootstrap(attribute)
    assert not verify_bootstrap(Ma, proof)
    with pytest.raises(ProofInvalid):
        process_bootstrap(mint_privkey, Ma, proof)

def test_end_to_end(mint_privkey, mint_pubkey, caplog):
    caplog.set_level(logging.INFO, logger="coinkvac")
    coins = bootstrap_coins(mint_privkey, mint_pubkey)

    # Top up: the mint receives 100 from outside
    outputs = [AmountAttribute.create(60), AmountAttribute.create(40)]
    request = spend(mint_pubkey, coins, outputs, delta_amount=-100)
    issued = process_spend(mint_privkey, request)
    coins = accept_issuance(mint_pubkey, outputs, issued)
    assert [coin.amount_attribute.amount for coin in coins] == [60, 40]

    # Swap 60 + 40 for 75 + 25
    outputs = [AmountAttribute.create(75), AmountAttribute.create(25)]
    request = spend(mint_pubkey, coins, outputs)
    assert verify_spend(mint_privkey, request)
    issued = process_spend(mint_privkey, request)
    coins = accept_issuance(mint_pubkey, outputs, issued)
    assert len(coins) == 2

    # Melt: 30 leaves the mint
    outputs = [AmountAttribute.create(70)]
    request = spend(mint_pubkey, coins, outputs, delta_amount=30)
    assert verify_spend(mint_privkey, request, max_workers=1)

    assert any("minting" in record.getMessage() for record in caplog.records)

def test_spend_unbalanced(mint_privkey, mint_pubkey):
    coins = bootstrap_coins(mint_privkey, mint_pubkey)
    outputs = [AmountAttribute.create(1)]
    request = spend(mint_pubkey, coins, outputs)
    assert not verify_spend(mint_privkey, request)
    with pytest.raises(ProofInvalid):
        process_spend(mint_privkey, request)

def test_spend_other_mint(mint_privkey, mint_pubkey):
    coins = bootstrap_coins(mint_privkey, mint_pubkey)
    other_pubkey = MintPrivateKey.generate().pubkey

    outputs = [AmountAttribute.create(0)]
    request = spend(other_pubkey, coins, outputs)
    assert not verify_spend(mint_privkey, request)
    with pytest.raises(ProofInvalid):
        process_spend(mint_privkey, request)

def test_spend_swapped_proofs(mint_privkey, mint_pubkey):
    coins = bootstrap_coins(mint_privkey, mint_pubkey)
    request = spend(mint_pubkey, coins, [AmountAttribute.create(0)])
    request.mac_proofs = list(reversed(request.mac_proofs))
    assert not verify_spend(mint_privkey, request)

def test_spend_missing_proof(mint_privkey, mint_pubkey):
    coins = bootstrap_coins(mint_privkey, mint_pubkey)
    request = spend(mint_pubkey, coins, [AmountAttribute.create(0)])
    request.mac_proofs = request.mac_proofs[:1]
    with pytest.raises(ProofInvalid):
        verify_spend(mint_privkey, request)

def test_spend_empty(mint_privkey, mint_pubkey):
    coins = bootstrap_coins(mint_privkey, mint_pubkey, count=1)
    with pytest.raises(EmptyInput):
        spend(mint_pubkey, [], [AmountAttribute.create(0)])
    with pytest.raises(EmptyInput):
        spend(mint_pubkey, coins, [])

def test_spend_with_scripts(mint_privkey, mint_pubkey):
    script = b"\x51\x21" + b"\x02" * 33 + b"\xac"
    scripts = [ScriptAttribute.create(script) for _ in range(2)]
    coins = bootstrap_coins(mint_privkey, mint_pubkey, scripts=scripts)

    outputs = [AmountAttribute.create(0) for _ in range(3)]
    output_scripts = [ScriptAttribute.create(script) for _ in range(3)]
    request = spend(mint_pubkey, coins, outputs, output_scripts=output_scripts)
    assert request.script_proof is not None
    issued = process_spend(mint_privkey, request)
    coins = accept_issuance(mint_pubkey, outputs, issued, output_scripts)
    assert len(coins) == 3

    # outputs locked to another script
    outputs = [AmountAttribute.create(0)]
    other_scripts = [ScriptAttribute.create(b"\x00")]
    request = spend(mint_pubkey, coins, outputs, output_scripts=other_scripts)
    assert not verify_spend(mint_privkey, request)

def test_spend_script_without_input_script(mint_privkey, mint_pubkey):
    coins = bootstrap_coins(mint_privkey, mint_pubkey)
    with pytest.raises(NoScriptProvided):
        spend(
            mint_pubkey,
            coins,
            [AmountAttribute.create(0)],
            output_scripts=[ScriptAttribute.create(b"\x51")],
        )

def test_spend_revealed_script(mint_privkey, mint_pubkey):
    script = b"\x51"
    scripts = [ScriptAttribute.create(script) for _ in range(2)]
    coins = bootstrap_coins(mint_privkey, mint_pubkey, scripts=scripts)

    request = spend(mint_pubkey, coins, [AmountAttribute.create(0)], revealed_script=script)
    assert verify_spend(mint_privkey, request)

    request.revealed_script = b"\x52"
    assert not verify_spend(mint_privkey, request)

def test_spend_revealed_missing_script(mint_privkey, mint_pubkey):
    coins = bootstrap_coins(mint_privkey, mint_pubkey)
    with pytest.raises(MissingScript):
        spend(mint_pubkey, coins, [AmountAttribute.create(0)], revealed_script=b"\x51")

def test_accept_issuance_rejects_bad_proof(mint_privkey, mint_pubkey):
    attributes = [AmountAttribute.create(0)]
    mac, proof = mint_credential(MintPrivateKey.generate(), attributes[0].Ma)
    with pytest.raises(ProofInvalid):
        accept_issuance(mint_pubkey, attributes, [(mac, proof)])

def test_verify_spends(mint_privkey, mint_pubkey):
    coins = bootstrap_coins(mint_privkey, mint_pubkey, count=4)
    good = spend(mint_pubkey, coins[:2], [AmountAttribute.create(0)])
    bad = spend(mint_pubkey, coins[2:], [AmountAttribute.create(5)])
    assert verify_spends(mint_privkey, [good, bad, good]) == [True, False, True]

def test_range_helpers():
    attributes = [AmountAttribute.create(a) for a in [7, 11]]
    proof = protocol.prove_range(attributes)
    assert protocol.verify_range(proof, [att.Ma for att in attributes])

def test_spend_keeps_script_lock(mint_privkey, mint_pubkey):
    scripts = [ScriptAttribute.create(b"\x51")]
    coins = bootstrap_coins(mint_privkey, mint_pubkey, count=1, scripts=scripts)
    with pytest.raises(NoScriptProvided):
        spend(mint_pubkey, coins, [AmountAttribute.create(0)])

def test_spend_one_input_from_other_mint(mint_privkey, mint_pubkey):
    coins = bootstrap_coins(mint_privkey, mint_pubkey)
    outputs = [AmountAttribute.create(0), AmountAttribute.create(0)]
    request = spend(mint_pubkey, coins, outputs)
    assert verify_spend(mint_privkey, request)

    # replace the second MAC proof with one built against another issuer key
    other_pubkey = MintPrivateKey.generate().pubkey
    coin, randomized = coins[1], request.inputs[1]
    request.mac_proofs[1] = prove_MAC(CoinTranscript(), other_pubkey, coin, randomized)
    assert not verify_spend(mint_privkey, request)
    with pytest.raises(ProofInvalid):
        process_spend(mint_privkey, request)
