"""
Batch submission to the SequencerInbox contract.

Two paths are offered. `add_sequencer_batch` lets the authority manage nonce
and fees itself. `add_sequencer_batch_custom_nonce` uses a nonce tracked by
the caller, which is incremented on success, and prices the transaction under
a fixed cost ceiling. The second path exists to deal with a stuck transaction
being present on startup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from web3 import Web3

from .abi import ContractDescriptors, encode_call
from .errors import RPCFailure
from .gas_limits import (
    ADD_SEQUENCER_BATCH_GAS_LIMIT,
    BATCH_PRIORITY_FEE_PER_GAS,
    CALLDATA_NONZERO_BYTE_COST,
    CALLDATA_ZERO_BYTE_COST,
    MAX_GAS_CHARGE_WEI,
    SMALLER_ADD_SEQUENCER_BATCH_GAS_LIMIT,
)
from .transact_auth import SubmittedTransaction, TransactAuth, broadcast_signed

logger = logging.getLogger("sequencer_inbox")


@dataclass(frozen=True)
class SequencerBatch:
    """Pre-serialised batch; the contract owns the meaning of its fields."""

    transactions: bytes
    lengths: Sequence[int]
    sections_metadata: Sequence[int]
    after_acc: bytes

    def __post_init__(self) -> None:
        if len(self.after_acc) != 32:
            raise ValueError(
                f"after_acc must be 32 bytes, got {len(self.after_acc)}"
            )


@dataclass
class TrackedNonce:
    """Caller-owned nonce, threaded through explicit-nonce submissions."""

    value: int


@dataclass(frozen=True)
class GasPricing:
    base_fee: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    gas_limit: int
    data_gas: int
    tier: int
    reduced_gas_limit: bool = False
    ceiling: int = field(default=MAX_GAS_CHARGE_WEI, repr=False)

    @property
    def max_cost(self) -> int:
        return self.max_fee_per_gas * self.gas_limit

    @property
    def exceeds_ceiling(self) -> bool:
        return self.max_cost > self.ceiling


def compute_data_gas(data: bytes) -> int:
    """Calldata gas: 4 per zero byte, 16 per non-zero byte."""
    zero_bytes = data.count(0)
    non_zero_bytes = len(data) - zero_bytes
    return (
        zero_bytes * CALLDATA_ZERO_BYTE_COST
        + non_zero_bytes * CALLDATA_NONZERO_BYTE_COST
    )


def price_batch_submission(
    base_fee: int,
    data_gas: int,
    priority_fee: int = BATCH_PRIORITY_FEE_PER_GAS,
    ceiling: int = MAX_GAS_CHARGE_WEI,
) -> GasPricing:
    """
    Choose fee cap and gas limit for a batch so the worst-case charge stays
    under `ceiling` where possible.

    The fee cap starts at twice the base fee plus tip, drops to 3/2 of the
    base fee plus tip, and only then is the gas limit reduced. If the charge
    is still above the ceiling the last pricing is returned as is.
    """
    gas_limit = ADD_SEQUENCER_BATCH_GAS_LIMIT + data_gas
    pricing = GasPricing(
        base_fee=base_fee,
        max_fee_per_gas=base_fee * 2 + priority_fee,
        max_priority_fee_per_gas=priority_fee,
        gas_limit=gas_limit,
        data_gas=data_gas,
        tier=1,
        ceiling=ceiling,
    )
    if pricing.exceeds_ceiling:
        # try to reduce the gas charge by setting the fee cap to 3/2 the base fee
        pricing = GasPricing(
            base_fee=base_fee,
            max_fee_per_gas=base_fee * 3 // 2 + priority_fee,
            max_priority_fee_per_gas=priority_fee,
            gas_limit=gas_limit,
            data_gas=data_gas,
            tier=2,
            ceiling=ceiling,
        )
    if pricing.exceeds_ceiling:
        # try to reduce the gas charge by using a lower gas limit
        pricing = GasPricing(
            base_fee=base_fee,
            max_fee_per_gas=pricing.max_fee_per_gas,
            max_priority_fee_per_gas=priority_fee,
            gas_limit=SMALLER_ADD_SEQUENCER_BATCH_GAS_LIMIT + data_gas,
            data_gas=data_gas,
            tier=2,
            reduced_gas_limit=True,
            ceiling=ceiling,
        )
    return pricing


def _batch_args(batch: SequencerBatch) -> List[Any]:
    return [
        bytes(batch.transactions),
        [int(length) for length in batch.lengths],
        [int(meta) for meta in batch.sections_metadata],
        bytes(batch.after_acc),
    ]


def add_sequencer_batch(
    sequencer_inbox_address: str,
    auth: TransactAuth,
    batch: SequencerBatch,
    descriptors: Optional[ContractDescriptors] = None,
) -> SubmittedTransaction:
    """Submit a batch letting `auth` choose nonce, fees and gas limit."""
    descriptors = descriptors or ContractDescriptors.default()
    data = encode_call(descriptors.add_sequencer_batch, _batch_args(batch))
    to = Web3.to_checksum_address(sequencer_inbox_address)

    def build(tx_params: Dict[str, Any]) -> Dict[str, Any]:
        tx_params["to"] = to
        tx_params["data"] = Web3.to_hex(data)
        return tx_params

    return auth.make_tx(build)


def add_sequencer_batch_custom_nonce(
    client: Web3,
    sequencer_inbox_address: str,
    auth: TransactAuth,
    nonce: TrackedNonce,
    batch: SequencerBatch,
    gas_refunder: str,
    descriptors: Optional[ContractDescriptors] = None,
) -> SubmittedTransaction:
    """
    Submit a batch with a caller-tracked nonce that is incremented on success.

    This handles the case of a stuck transaction being present on startup:
    the nonce is not read back from the network, so a resubmission replaces
    the stuck transaction instead of queueing behind it. The gas limit is
    computed from calldata rather than estimated. Calls sharing `nonce` and
    `auth` must be serialised by the caller.
    """
    descriptors = descriptors or ContractDescriptors.default()
    data = encode_call(
        descriptors.add_sequencer_batch_with_gas_refunder,
        _batch_args(batch) + [gas_refunder],
    )
    data_gas = compute_data_gas(data)

    try:
        latest_header = client.eth.get_block("latest")
    except Exception as exc:
        raise RPCFailure(f"Failed to fetch latest header: {exc}") from exc
    base_fee = latest_header.get("baseFeePerGas")
    if base_fee is None:
        raise RPCFailure("latest header has no baseFeePerGas")

    pricing = price_batch_submission(int(base_fee), data_gas)
    logger.debug(
        "Batch pricing: base=%s tier=%s maxFee=%s gas=%s dataGas=%s cost=%s",
        pricing.base_fee,
        pricing.tier,
        pricing.max_fee_per_gas,
        pricing.gas_limit,
        pricing.data_gas,
        pricing.max_cost,
    )
    if pricing.exceeds_ceiling:
        logger.warning(
            "Batch max gas charge %s wei exceeds ceiling %s wei at the cheapest tier; submitting anyway",
            pricing.max_cost,
            pricing.ceiling,
        )

    tx: Dict[str, Any] = {
        "chainId": auth.chain_id,
        "nonce": nonce.value,
        "maxPriorityFeePerGas": pricing.max_priority_fee_per_gas,
        "maxFeePerGas": pricing.max_fee_per_gas,
        "gas": pricing.gas_limit,
        "to": Web3.to_checksum_address(sequencer_inbox_address),
        "value": 0,
        "data": Web3.to_hex(data),
    }
    signed = auth.sign_transaction(auth.sender, tx)
    submitted = broadcast_signed(client, tx, signed, auth.sender)

    nonce.value += 1
    auth.advance_nonce_to(nonce.value)

    logger.info(
        "Sequencer batch submitted: nonce=%s gas=%s maxFee=%s tx=%s",
        submitted.nonce,
        submitted.gas,
        submitted.max_fee_per_gas,
        submitted.hash_hex,
    )
    return submitted
