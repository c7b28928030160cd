"""
ABI fragments for the Inbox and SequencerInbox contracts.

Only the events and methods the bridge touches are listed. The parsed
topics, selectors and input types are gathered in `ContractDescriptors`,
which is built explicitly and handed to the watcher and the submitters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from eth_abi import encode as abi_encode
from eth_abi.exceptions import EncodingError
from eth_utils import event_abi_to_log_topic, function_abi_to_4byte_selector

from .errors import EncodingFailure


INBOX_ABI: List[Dict[str, Any]] = [
    {
        "anonymous": False,
        "inputs": [
            {
                "indexed": True,
                "internalType": "uint256",
                "name": "messageNum",
                "type": "uint256",
            },
            {"indexed": False, "internalType": "bytes", "name": "data", "type": "bytes"},
        ],
        "name": "InboxMessageDelivered",
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            {
                "indexed": True,
                "internalType": "uint256",
                "name": "messageNum",
                "type": "uint256",
            }
        ],
        "name": "InboxMessageDeliveredFromOrigin",
        "type": "event",
    },
    {
        "inputs": [
            {"internalType": "bytes", "name": "messageData", "type": "bytes"}
        ],
        "name": "sendL2MessageFromOrigin",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

SEQUENCER_INBOX_ABI: List[Dict[str, Any]] = [
    {
        "inputs": [
            {"internalType": "bytes", "name": "transactions", "type": "bytes"},
            {"internalType": "uint256[]", "name": "lengths", "type": "uint256[]"},
            {
                "internalType": "uint256[]",
                "name": "sectionsMetadata",
                "type": "uint256[]",
            },
            {"internalType": "bytes32", "name": "afterAcc", "type": "bytes32"},
        ],
        "name": "addSequencerL2BatchFromOrigin",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "bytes", "name": "transactions", "type": "bytes"},
            {"internalType": "uint256[]", "name": "lengths", "type": "uint256[]"},
            {
                "internalType": "uint256[]",
                "name": "sectionsMetadata",
                "type": "uint256[]",
            },
            {"internalType": "bytes32", "name": "afterAcc", "type": "bytes32"},
            {
                "internalType": "contract IGasRefunder",
                "name": "gasRefunder",
                "type": "address",
            },
        ],
        "name": "addSequencerL2BatchFromOriginWithGasRefunder",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


@dataclass(frozen=True)
class MethodDescriptor:
    """Selector and input schema of a contract method."""

    name: str
    selector: bytes
    input_names: Tuple[str, ...]
    input_types: Tuple[str, ...]


def _find_entry(abi: List[Dict[str, Any]], name: str, kind: str) -> Dict[str, Any]:
    for entry in abi:
        if entry.get("type") == kind and entry.get("name") == name:
            return entry
    raise KeyError(f"{kind} '{name}' not present in ABI")


def event_topic(abi: List[Dict[str, Any]], name: str) -> bytes:
    """Return the topic-0 hash of the named event."""
    return bytes(event_abi_to_log_topic(_find_entry(abi, name, "event")))


def method_descriptor(abi: List[Dict[str, Any]], name: str) -> MethodDescriptor:
    """Parse the named function entry into a `MethodDescriptor`."""
    entry = _find_entry(abi, name, "function")
    inputs = entry.get("inputs", [])
    return MethodDescriptor(
        name=name,
        selector=bytes(function_abi_to_4byte_selector(entry)),
        input_names=tuple(inp["name"] for inp in inputs),
        input_types=tuple(inp["type"] for inp in inputs),
    )


def encode_call(method: MethodDescriptor, args: Sequence[Any]) -> bytes:
    """Return selector plus ABI-encoded arguments for `method`."""
    try:
        return method.selector + abi_encode(list(method.input_types), list(args))
    except (EncodingError, TypeError, ValueError, OverflowError) as exc:
        raise EncodingFailure(f"Failed to encode {method.name} calldata: {exc}") from exc


@dataclass(frozen=True)
class ContractDescriptors:
    """Parsed topics and methods used across the bridge."""

    inbox_message_delivered_topic: bytes
    inbox_message_from_origin_topic: bytes
    send_l2_message_from_origin: MethodDescriptor
    add_sequencer_batch: MethodDescriptor
    add_sequencer_batch_with_gas_refunder: MethodDescriptor

    @classmethod
    def from_abis(
        cls,
        inbox_abi: List[Dict[str, Any]],
        sequencer_inbox_abi: List[Dict[str, Any]],
    ) -> "ContractDescriptors":
        return cls(
            inbox_message_delivered_topic=event_topic(
                inbox_abi, "InboxMessageDelivered"
            ),
            inbox_message_from_origin_topic=event_topic(
                inbox_abi, "InboxMessageDeliveredFromOrigin"
            ),
            send_l2_message_from_origin=method_descriptor(
                inbox_abi, "sendL2MessageFromOrigin"
            ),
            add_sequencer_batch=method_descriptor(
                sequencer_inbox_abi, "addSequencerL2BatchFromOrigin"
            ),
            add_sequencer_batch_with_gas_refunder=method_descriptor(
                sequencer_inbox_abi, "addSequencerL2BatchFromOriginWithGasRefunder"
            ),
        )

    @classmethod
    def default(cls) -> "ContractDescriptors":
        """Descriptors for the bundled Inbox and SequencerInbox ABIs."""
        return cls.from_abis(INBOX_ABI, SEQUENCER_INBOX_ABI)
