"""
Decoding of Inbox delivery logs and origin calldata.

A delivery log is either an `InlineDelivery`, which carries its payload in the
log data, or an `OriginDelivery`, which only names the message. The payload of
the latter lives in the calldata of the `sendL2MessageFromOrigin` transaction
that produced it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Union

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from hexbytes import HexBytes

from .abi import ContractDescriptors, MethodDescriptor
from .errors import DecodeFailure, UnexpectedLogKind

MAX_MESSAGE_NUM = 2**256 - 1


def message_topic(message_num: int) -> HexBytes:
    """Encode a message number as a 32-byte big-endian log topic."""
    if message_num < 0 or message_num > MAX_MESSAGE_NUM:
        raise ValueError(f"message number {message_num} does not fit in uint256")
    return HexBytes(int(message_num).to_bytes(32, "big"))


def message_key(message_num: int) -> bytes:
    """Encode a message number as its minimal big-endian bytes (zero is empty)."""
    if message_num < 0:
        raise ValueError(f"message number {message_num} is negative")
    return int(message_num).to_bytes((message_num.bit_length() + 7) // 8, "big")


@dataclass(frozen=True)
class InlineDelivery:
    message_num: int
    data: bytes


@dataclass(frozen=True)
class OriginDelivery:
    message_num: int


DeliveryEvent = Union[InlineDelivery, OriginDelivery]


@dataclass(frozen=True)
class OriginMessageCall:
    """Arguments of a `sendL2MessageFromOrigin` call."""

    message_data: bytes


def log_field(log: Mapping[str, Any], name: str) -> Any:
    try:
        return log[name]
    except (KeyError, TypeError) as exc:
        raise DecodeFailure(f"log is missing '{name}'") from exc


def _as_bytes(value: Any, what: str) -> bytes:
    try:
        return bytes(HexBytes(value))
    except (ValueError, TypeError) as exc:
        raise DecodeFailure(f"{what} is not valid hex bytes: {value!r}") from exc


def _message_num_from_topics(topics: Any) -> int:
    if len(topics) != 2:
        raise DecodeFailure(
            f"delivery log should carry 2 topics, found {len(topics)}"
        )
    raw = _as_bytes(topics[1], "message number topic")
    if len(raw) != 32:
        raise DecodeFailure(f"message number topic is {len(raw)} bytes, expected 32")
    return int.from_bytes(raw, "big")


def decode_delivery_log(
    log: Mapping[str, Any], descriptors: ContractDescriptors
) -> DeliveryEvent:
    """Classify a raw log by topic-0 and decode it into a `DeliveryEvent`."""
    topics = log_field(log, "topics")
    if not topics:
        raise DecodeFailure("log has no topics")
    topic0 = _as_bytes(topics[0], "event topic")

    if topic0 == descriptors.inbox_message_delivered_topic:
        message_num = _message_num_from_topics(topics)
        try:
            (data,) = abi_decode(
                ["bytes"], _as_bytes(log_field(log, "data"), "log data")
            )
        except DecodingError as exc:
            raise DecodeFailure(
                f"malformed InboxMessageDelivered data for message {message_num}"
            ) from exc
        return InlineDelivery(message_num=message_num, data=bytes(data))

    if topic0 == descriptors.inbox_message_from_origin_topic:
        return OriginDelivery(message_num=_message_num_from_topics(topics))

    raise UnexpectedLogKind(f"unexpected log type with topic {HexBytes(topic0).hex()}")


def transaction_input(tx: Any) -> bytes:
    """Return the calldata of a web3 transaction mapping or raw calldata."""
    if isinstance(tx, (bytes, bytearray, str)):
        return _as_bytes(tx, "calldata")
    for field in ("input", "data"):
        try:
            value = tx[field]
        except (KeyError, TypeError):
            continue
        if value is not None:
            return _as_bytes(value, f"transaction {field}")
    raise DecodeFailure("transaction has no calldata")


def decode_origin_call(calldata: bytes, method: MethodDescriptor) -> OriginMessageCall:
    """Decode `sendL2MessageFromOrigin` calldata, skipping the 4-byte selector."""
    if len(calldata) < 4:
        raise DecodeFailure("calldata shorter than a method selector")
    try:
        args = abi_decode(list(method.input_types), calldata[4:])
    except DecodingError as exc:
        raise DecodeFailure(f"malformed {method.name} calldata") from exc
    named = dict(zip(method.input_names, args))
    message_data = named.get("messageData")
    if not isinstance(message_data, bytes):
        raise DecodeFailure(f"{method.name} calldata carries no messageData")
    return OriginMessageCall(message_data=message_data)
