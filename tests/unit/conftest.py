"""Shared fixtures for the inbox bridge unit tests."""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from eth_abi import encode as abi_encode
from eth_account import Account
from hexbytes import HexBytes
from web3 import Web3

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from inbox_bridge.abi import ContractDescriptors, encode_call
from inbox_bridge.events import message_topic

# Well-known throwaway key from the web3.py documentation.
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
INBOX_ADDRESS = "0x" + "11" * 20
SEQUENCER_INBOX_ADDRESS = "0x" + "22" * 20
GAS_REFUNDER_ADDRESS = "0x" + "33" * 20


@pytest.fixture
def descriptors():
    return ContractDescriptors.default()


@pytest.fixture
def account():
    return Account.from_key(TEST_PRIVATE_KEY)


@pytest.fixture
def w3():
    """MagicMock standing in for a connected Web3 client."""
    client = MagicMock()
    client.eth.get_logs.return_value = []
    client.eth.get_block.return_value = {"baseFeePerGas": Web3.to_wei(100, "gwei")}
    client.eth.send_raw_transaction.return_value = HexBytes(b"\x12" * 32)
    client.eth.get_transaction_count.return_value = 0
    client.eth.estimate_gas.return_value = 100_000
    client.eth.chain_id = 1
    return client


@pytest.fixture
def inline_log(descriptors):
    """Factory for InboxMessageDelivered logs."""

    def _make(message_num, payload, tx_hash=b"\xaa" * 32):
        return {
            "address": Web3.to_checksum_address(INBOX_ADDRESS),
            "topics": [
                HexBytes(descriptors.inbox_message_delivered_topic),
                message_topic(message_num),
            ],
            "data": HexBytes(abi_encode(["bytes"], [payload])),
            "transactionHash": HexBytes(tx_hash),
        }

    return _make


@pytest.fixture
def origin_log(descriptors):
    """Factory for InboxMessageDeliveredFromOrigin logs."""

    def _make(message_num, tx_hash=b"\xbb" * 32):
        return {
            "address": Web3.to_checksum_address(INBOX_ADDRESS),
            "topics": [
                HexBytes(descriptors.inbox_message_from_origin_topic),
                message_topic(message_num),
            ],
            "data": HexBytes(b""),
            "transactionHash": HexBytes(tx_hash),
        }

    return _make


@pytest.fixture
def origin_tx(descriptors):
    """Factory for sendL2MessageFromOrigin transactions as returned by web3."""

    def _make(payload):
        calldata = encode_call(descriptors.send_l2_message_from_origin, [payload])
        return {"input": HexBytes(calldata), "to": INBOX_ADDRESS}

    return _make
