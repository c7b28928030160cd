"""
Command line entry point for the inbox bridge.

    inbox-bridge sender
    inbox-bridge reconcile --from-block 100 --to-block 200 17 18 19
    inbox-bridge send-message 0xdeadbeef
"""

import argparse
import logging
import sys
from typing import List, Optional

from eth_account import Account
from web3 import Web3

from .config import BridgeConfig, connect, load_config
from .errors import InboxBridgeError
from .events import message_key
from .inbox import BlockRange, StandardInbox, StandardInboxWatcher
from .transact_auth import TransactAuth

DEFAULT_VERSION = "0.1.0"


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure root logging.

    Format: [YYYY-MM-DD HH:MM:SS,mmm] [LOG_LEVEL] [logger] message
    """
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    return logging.getLogger("inbox_bridge")


def _prepare_private_key_material(
    key_data: str, password: Optional[str]
) -> str:
    """Return a usable private key, decrypting keystores when a password is given."""
    key_data = key_data.strip()
    if password is None:
        return key_data
    decrypted_bytes = Account.decrypt(key_data, password)
    return f"0x{decrypted_bytes.hex()}"


def build_auth(
    config: BridgeConfig, w3: Web3, password: Optional[str] = None
) -> TransactAuth:
    if not config.private_key:
        raise ValueError("INBOX_BRIDGE_PRIVATE_KEY is required for signing")
    private_key = _prepare_private_key_material(config.private_key, password)
    account = Account.from_key(private_key)
    return TransactAuth(w3, account, chain_id=config.chain_id)


def cmd_sender(args: argparse.Namespace, config: BridgeConfig, w3: Web3) -> int:
    auth = build_auth(config, w3, args.password)
    print(auth.sender)
    return 0


def cmd_reconcile(args: argparse.Namespace, config: BridgeConfig, w3: Web3) -> int:
    watcher = StandardInboxWatcher(config.inbox_address, w3)
    block_range = BlockRange(args.from_block, args.to_block)
    tx_data = watcher.lookup_origin_transactions(block_range, args.messages)
    messages = watcher.reconcile(block_range, args.messages, tx_data)
    for message_num in args.messages:
        payload = messages.get(message_key(message_num))
        if payload is None:
            print(f"{message_num}: <not delivered in range>")
        else:
            print(f"{message_num}: {Web3.to_hex(payload)}")
    return 0


def cmd_send_message(args: argparse.Namespace, config: BridgeConfig, w3: Web3) -> int:
    auth = build_auth(config, w3, args.password)
    inbox = StandardInbox(config.inbox_address, w3, auth)
    submitted = inbox.send_l2_message_from_origin(Web3.to_bytes(hexstr=args.data))
    print(submitted.hash_hex)
    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(description="Inbox bridge client.")
    parser.add_argument("--env-file", type=str, help="Path to a .env file.")
    parser.add_argument(
        "--password",
        type=str,
        help="Password to decrypt a keystore given as the private key.",
    )
    parser.add_argument("--verbose", "-v", action="store_true")
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print the version and exit.",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("sender", help="Print the signing address.")

    reconcile = sub.add_parser("reconcile", help="Recover delivered message payloads.")
    reconcile.add_argument("--from-block", type=int, required=True)
    reconcile.add_argument(
        "--to-block", type=int, required=True, help="Inclusive upper bound."
    )
    reconcile.add_argument("messages", type=int, nargs="+")

    send = sub.add_parser("send-message", help="Send a message from origin.")
    send.add_argument("data", type=str, help="Hex encoded message payload.")

    return parser.parse_args(argv)


COMMANDS = {
    "sender": cmd_sender,
    "reconcile": cmd_reconcile,
    "send-message": cmd_send_message,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.version:
        print(f"inbox-bridge {DEFAULT_VERSION}")
        return 0
    if not args.command:
        print("No command given; see --help", file=sys.stderr)
        return 2

    logger = setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    try:
        config = load_config(env_file=args.env_file)
        w3 = connect(config)
        return COMMANDS[args.command](args, config, w3)
    except (InboxBridgeError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
