"""
Client and mint flows.

Every proof is generated and checked against its own fresh transcript, so the
proofs of one transaction are independent of each other and can be verified
concurrently. Verification helpers are pure predicates; the `process_*`
helpers mint only after every proof of a request has been accepted.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Tuple

from . import bulletproof, kvac
from .bulletproof import BulletProof
from .errors import EmptyInput, NoScriptProvided, ProofInvalid
from .models import (
    MAC,
    AmountAttribute,
    Coin,
    MintPrivateKey,
    MintPublicKey,
    RandomizedCoin,
    ScriptAttribute,
    ZKP,
)
from .secp import GroupElement
from .transcript import CoinTranscript

logger = logging.getLogger(__name__)

@dataclass
class SpendRequest:
    """Everything a client sends to the mint to swap `inputs` for new outputs."""
    inputs: List[RandomizedCoin]
    mac_proofs: List[ZKP]
    outputs: List[GroupElement]
    balance_proof: ZKP
    range_proof: BulletProof
    delta_amount: int = 0
    output_scripts: Optional[List[GroupElement]] = None
    script_proof: Optional[ZKP] = None
    revealed_script: Optional[bytes] = None

def issue_bootstrap(amount_attribute: AmountAttribute) -> Tuple[GroupElement, ZKP]:
    """Commitment to a zero-value attribute together with a proof that it holds no value."""
    proof = kvac.prove_bootstrap(CoinTranscript(), amount_attribute)
    return amount_attribute.Ma, proof

def verify_bootstrap(commitment: GroupElement, proof: ZKP) -> bool:
    return kvac.verify_bootstrap(CoinTranscript(), commitment, proof)

def mint_credential(
    privkey: MintPrivateKey,
    amount_commitment: GroupElement,
    script_commitment: Optional[GroupElement] = None,
) -> Tuple[MAC, ZKP]:
    """Issues a MAC over the commitments and proves it was issued with the published key."""
    mac = MAC.generate(privkey, amount_commitment, script_commitment)
    proof = kvac.prove_iparams(
        CoinTranscript(), privkey, mac, amount_commitment, script_commitment
    )
    return mac, proof

def verify_issuance(
    mint_pubkey: MintPublicKey,
    coin: Coin,
    issuance_proof: ZKP,
) -> bool:
    script = coin.script_attribute.Ms if coin.script_attribute is not None else None
    return kvac.verify_iparams(
        CoinTranscript(),
        coin.mac,
        mint_pubkey,
        issuance_proof,
        coin.amount_attribute.Ma,
        script,
    )

def accept_issuance(
    mint_pubkey: MintPublicKey,
    attributes: List[AmountAttribute],
    issued: List[Tuple[MAC, ZKP]],
    scripts: Optional[List[ScriptAttribute]] = None,
) -> List[Coin]:
    """
    Builds coins from the mint's response, accepting them only if every
    issuance proof verifies.

    Raises:
        ProofInvalid: an issuance proof does not verify; no coin is returned.
    """
    if len(attributes) != len(issued):
        raise ValueError("the mint returned a different number of MACs")
    if scripts is None:
        scripts = [None] * len(attributes)
    elif len(scripts) != len(attributes):
        raise ValueError("every attribute needs its script attribute")

    coins = []
    for i, (attribute, script, (mac, proof)) in enumerate(zip(attributes, scripts, issued)):
        coin = Coin(amount_attribute=attribute, mac=mac, script_attribute=script)
        if not verify_issuance(mint_pubkey, coin, proof):
            raise ProofInvalid(f"issuance proof {i} does not verify")
        coins.append(coin)
    return coins

def process_bootstrap(
    privkey: MintPrivateKey,
    amount_commitment: GroupElement,
    proof: ZKP,
    script_commitment: Optional[GroupElement] = None,
) -> Tuple[MAC, ZKP]:
    """
    Mint side of the bootstrap flow.

    Raises:
        ProofInvalid: the commitment is not shown to hold zero value.
    """
    if not verify_bootstrap(amount_commitment, proof):
        raise ProofInvalid("bootstrap proof does not verify")
    logger.info("minting bootstrap credential")
    return mint_credential(privkey, amount_commitment, script_commitment)

def spend(
    mint_pubkey: MintPublicKey,
    inputs: List[Coin],
    outputs: List[AmountAttribute],
    output_scripts: Optional[List[ScriptAttribute]] = None,
    delta_amount: int = 0,
    revealed_script: Optional[bytes] = None,
) -> SpendRequest:
    """
    Builds a spend request swapping `inputs` for `outputs`.

    Parameters:
        mint_pubkey (MintPublicKey): The mint's public key.
        inputs (List[Coin]): The coins to spend.
        outputs (List[AmountAttribute]): The new attributes to be signed.
        output_scripts (Optional[List[ScriptAttribute]]): Script attributes for the outputs.
            When given, a script equality proof binds them to the inputs' script.
        delta_amount (int): Σ inputs - Σ outputs
        revealed_script (Optional[bytes]): The inputs' script, if revealed to the mint.

    Returns:
        SpendRequest: The request to send to the mint.

    Raises:
        EmptyInput: no inputs or no outputs.
        NoScriptProvided: output scripts requested but an input has no script, or
            an input carries a script and neither output scripts nor the script are given.
        MissingScript: a script is revealed but an input has no script.
        RangeViolation: an output amount is out of range.
    """
    if not inputs:
        raise EmptyInput("a spend needs at least one input")
    if not outputs:
        raise EmptyInput("a spend needs at least one output")
    if output_scripts is not None and len(output_scripts) != len(outputs):
        raise ValueError("every output needs its script attribute")
    if output_scripts is not None and revealed_script is not None:
        raise ValueError("script equality cannot be proven for a revealed script")
    if (
        output_scripts is None
        and revealed_script is None
        and any(coin.script_attribute is not None for coin in inputs)
    ):
        # the outputs would come back unlocked
        raise NoScriptProvided(
            "inputs carry a script: pass output_scripts or reveal the script"
        )

    reveal = revealed_script is not None
    randomized = [RandomizedCoin.create(coin, reveal) for coin in inputs]

    mac_proofs = [
        kvac.prove_MAC(CoinTranscript(), mint_pubkey, coin, randomized_coin)
        for coin, randomized_coin in zip(inputs, randomized)
    ]
    balance_proof = kvac.prove_balance(
        CoinTranscript(),
        randomized,
        [coin.amount_attribute for coin in inputs],
        outputs,
    )
    range_proof = bulletproof.prove_range(CoinTranscript(), outputs)

    script_proof = None
    if output_scripts is not None:
        script_proof = kvac.prove_script_equality(
            CoinTranscript(),
            randomized,
            [coin.script_attribute for coin in inputs],
            output_scripts,
        )

    return SpendRequest(
        inputs=randomized,
        mac_proofs=mac_proofs,
        outputs=[att.Ma for att in outputs],
        balance_proof=balance_proof,
        range_proof=range_proof,
        delta_amount=delta_amount,
        output_scripts=[att.Ms for att in output_scripts] if output_scripts is not None else None,
        script_proof=script_proof,
        revealed_script=revealed_script,
    )

def _verify_mac_proofs(
    privkey: MintPrivateKey,
    request: SpendRequest,
    max_workers: Optional[int],
) -> List[bool]:
    def check(item):
        randomized_coin, proof = item
        return kvac.verify_MAC(
            CoinTranscript(), privkey, randomized_coin, proof, request.revealed_script
        )

    items = list(zip(request.inputs, request.mac_proofs))
    if len(items) == 1 or max_workers == 1:
        return [check(item) for item in items]
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(check, items))

def verify_spend(
    privkey: MintPrivateKey,
    request: SpendRequest,
    max_workers: Optional[int] = None,
) -> bool:
    """
    Verifies every proof of a spend request. Any single failure rejects the
    whole request.

    The per-input MAC proofs are independent and are checked on a thread pool.
    """
    if not request.inputs:
        raise EmptyInput("a spend needs at least one input")
    if not request.outputs:
        raise EmptyInput("a spend needs at least one output")
    if len(request.inputs) != len(request.mac_proofs):
        raise ProofInvalid("every input needs exactly one MAC proof")
    if (request.output_scripts is None) != (request.script_proof is None):
        raise ProofInvalid("output scripts and script proof must come together")
    if request.output_scripts is not None and len(request.output_scripts) != len(request.outputs):
        raise ProofInvalid("every output needs its script commitment")

    for i, ok in enumerate(_verify_mac_proofs(privkey, request, max_workers)):
        if not ok:
            logger.debug("MAC proof %d does not verify", i)
            return False

    if not kvac.verify_balance(
        CoinTranscript(),
        request.inputs,
        request.outputs,
        request.balance_proof,
        request.delta_amount,
    ):
        logger.debug("balance proof does not verify")
        return False

    if not bulletproof.verify_range(CoinTranscript(), request.outputs, request.range_proof):
        logger.debug("range proof does not verify")
        return False

    if request.script_proof is not None and not kvac.verify_script_equality(
        CoinTranscript(),
        request.inputs,
        request.output_scripts,
        request.script_proof,
    ):
        logger.debug("script equality proof does not verify")
        return False

    return True

def process_spend(
    privkey: MintPrivateKey,
    request: SpendRequest,
    max_workers: Optional[int] = None,
) -> List[Tuple[MAC, ZKP]]:
    """
    Mint side of the spend flow: verifies the request atomically, then issues
    one MAC with its issuance proof per output.

    Raises:
        ProofInvalid: any proof of the request does not verify; nothing is minted.
    """
    if not verify_spend(privkey, request, max_workers):
        raise ProofInvalid("spend request rejected")

    scripts = request.output_scripts or [None] * len(request.outputs)
    logger.info("minting %d credentials", len(request.outputs))
    return [
        mint_credential(privkey, Ma, Ms)
        for Ma, Ms in zip(request.outputs, scripts)
    ]

def verify_spends(
    privkey: MintPrivateKey,
    requests: List[SpendRequest],
    max_workers: Optional[int] = None,
) -> List[bool]:
    """Verifies unrelated spend requests concurrently, one result per request."""
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(lambda r: verify_spend(privkey, r, 1), requests))

def prove_range(attributes: List[AmountAttribute]) -> BulletProof:
    return bulletproof.prove_range(CoinTranscript(), attributes)

def verify_range(proof: BulletProof, commitments: List[GroupElement]) -> bool:
    return bulletproof.verify_range(CoinTranscript(), commitments, proof)
