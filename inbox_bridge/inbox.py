"""
Inbox watcher and sender.

`StandardInboxWatcher` recovers message payloads for a block range from the
Inbox's delivery logs. Messages delivered inline carry their payload in the
log; messages delivered from origin are resolved through the calldata of the
transaction that sent them. `StandardInbox` adds a signing authority so the
same contract can be written to.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from hexbytes import HexBytes
from web3 import Web3

from .abi import ContractDescriptors, encode_call
from .errors import DecodeFailure, MissingTransactionError, RPCFailure
from .events import (
    InlineDelivery,
    OriginDelivery,
    decode_delivery_log,
    decode_origin_call,
    log_field,
    message_key,
    message_topic,
    transaction_input,
)
from .transact_auth import SubmittedTransaction, TransactAuth


@dataclass(frozen=True)
class BlockRange:
    """Block interval for log queries; both bounds are inclusive."""

    from_block: int
    to_block: int

    def __post_init__(self) -> None:
        if self.from_block < 0:
            raise ValueError(f"from_block must be non-negative, got {self.from_block}")
        if self.to_block < self.from_block:
            raise ValueError(
                f"to_block {self.to_block} is before from_block {self.from_block}"
            )


class StandardInboxWatcher:
    """Reads delivered messages from the Inbox contract."""

    def __init__(
        self,
        address: str,
        client: Web3,
        descriptors: Optional[ContractDescriptors] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._logger: logging.Logger = logger or logging.getLogger("inbox_watcher")
        self._address = Web3.to_checksum_address(address)
        self._client = client
        self._descriptors = descriptors or ContractDescriptors.default()

    @property
    def address(self) -> str:
        return self._address

    @property
    def descriptors(self) -> ContractDescriptors:
        return self._descriptors

    def _filter_logs(
        self,
        block_range: BlockRange,
        event_topics: List[bytes],
        message_nums: Iterable[int],
    ) -> List[Any]:
        msg_query = [Web3.to_hex(message_topic(num)) for num in message_nums]
        query = {
            "fromBlock": block_range.from_block,
            "toBlock": block_range.to_block,
            "address": self._address,
            "topics": [[Web3.to_hex(topic) for topic in event_topics], msg_query],
        }
        try:
            return list(self._client.eth.get_logs(query))
        except Exception as exc:
            raise RPCFailure(
                f"Failed to filter inbox logs for blocks "
                f"{block_range.from_block}-{block_range.to_block}: {exc}"
            ) from exc

    def parse_message(
        self, tx_data: Mapping[bytes, Any], log: Mapping[str, Any]
    ) -> Tuple[int, bytes]:
        """Return `(message_num, payload)` for a single delivery log."""
        event = decode_delivery_log(log, self._descriptors)
        if isinstance(event, InlineDelivery):
            return event.message_num, event.data
        if isinstance(event, OriginDelivery):
            tx = tx_data.get(message_key(event.message_num))
            if tx is None:
                raise MissingTransactionError(event.message_num)
            call = decode_origin_call(
                transaction_input(tx), self._descriptors.send_l2_message_from_origin
            )
            return event.message_num, call.message_data
        raise TypeError(f"unhandled delivery event {event!r}")

    def reconcile(
        self,
        block_range: BlockRange,
        message_nums: Iterable[int],
        tx_data: Mapping[bytes, Any],
    ) -> Dict[bytes, bytes]:
        """
        Recover the payload of every delivered message in `block_range`.

        `message_nums` bounds the log query. `tx_data` maps `message_key(n)`
        to the transaction that sent message `n` from origin, and must cover
        every origin delivery in range. The result is keyed by `message_key`
        and holds one entry per message actually seen in the logs.
        """
        message_nums = list(message_nums)
        messages: Dict[bytes, bytes] = {}
        if not message_nums:
            return messages

        logs = self._filter_logs(
            block_range,
            [
                self._descriptors.inbox_message_delivered_topic,
                self._descriptors.inbox_message_from_origin_topic,
            ],
            message_nums,
        )
        for log in logs:
            message_num, payload = self.parse_message(tx_data, log)
            messages[message_key(message_num)] = payload
        self._logger.debug(
            "Reconciled %s/%s messages in blocks %s-%s",
            len(messages),
            len(message_nums),
            block_range.from_block,
            block_range.to_block,
        )
        return messages

    def fill_message_details(
        self,
        message_nums: Iterable[int],
        tx_data: Mapping[bytes, Any],
        messages: Dict[bytes, bytes],
        block_range: BlockRange,
    ) -> None:
        """Like `reconcile`, merging results into `messages` only on success."""
        messages.update(self.reconcile(block_range, message_nums, tx_data))

    def lookup_origin_transactions(
        self, block_range: BlockRange, message_nums: Iterable[int]
    ) -> Dict[bytes, Any]:
        """Build a transaction index for origin deliveries by fetching each sender tx."""
        message_nums = list(message_nums)
        tx_data: Dict[bytes, Any] = {}
        if not message_nums:
            return tx_data

        logs = self._filter_logs(
            block_range,
            [self._descriptors.inbox_message_from_origin_topic],
            message_nums,
        )
        for log in logs:
            event = decode_delivery_log(log, self._descriptors)
            if not isinstance(event, OriginDelivery):
                continue
            try:
                tx_hash = HexBytes(log_field(log, "transactionHash"))
            except (ValueError, TypeError) as exc:
                raise DecodeFailure(
                    f"origin log for message {event.message_num} has an "
                    f"invalid transactionHash"
                ) from exc
            try:
                tx = self._client.eth.get_transaction(tx_hash)
            except Exception as exc:
                raise RPCFailure(
                    f"Failed to fetch transaction {tx_hash.hex()} for message "
                    f"{event.message_num}: {exc}"
                ) from exc
            tx_data[message_key(event.message_num)] = tx
        return tx_data


class StandardInbox(StandardInboxWatcher):
    """Inbox watcher that can also send messages through a signing authority."""

    def __init__(
        self,
        address: str,
        client: Web3,
        auth: TransactAuth,
        descriptors: Optional[ContractDescriptors] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(address, client, descriptors=descriptors, logger=logger)
        self._auth = auth

    @property
    def sender(self) -> str:
        return self._auth.sender

    def send_l2_message_from_origin(self, data: bytes) -> SubmittedTransaction:
        """Submit `sendL2MessageFromOrigin(data)` to the Inbox."""
        calldata = encode_call(self._descriptors.send_l2_message_from_origin, [data])

        def build(tx_params: Dict[str, Any]) -> Dict[str, Any]:
            tx_params["to"] = self._address
            tx_params["data"] = Web3.to_hex(calldata)
            return tx_params

        submitted = self._auth.make_tx(build)
        self._logger.info(
            "sendL2MessageFromOrigin submitted: bytes=%s tx=%s",
            len(data),
            submitted.hash_hex,
        )
        return submitted
