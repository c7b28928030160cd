"""
Runtime configuration for the inbox bridge.

Values are read from the environment, after loading a `.env` file when one
is present.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

from dotenv import load_dotenv
from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from .gas_limits import ZERO_ADDRESS

ENV_PREFIX = "INBOX_BRIDGE_"

logger = logging.getLogger("bridge_config")


@dataclass
class BridgeConfig:
    """Connection and contract settings shared by the watcher and submitters."""

    rpc_url: str
    inbox_address: str
    sequencer_inbox_address: Optional[str] = None
    private_key: Optional[str] = None
    gas_refunder_address: str = ZERO_ADDRESS
    chain_id: Optional[int] = None
    # Needed for chains whose block extraData exceeds 32 bytes
    inject_poa_middleware: bool = False


def _env(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(f"{ENV_PREFIX}{name}")
    if value is None or not value.strip():
        return None
    return value.strip()


def _parse_bool(raw: Optional[str]) -> bool:
    return (raw or "").lower() in ("1", "true", "yes", "on")


def load_config(
    env_file: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> BridgeConfig:
    """Build a `BridgeConfig` from `INBOX_BRIDGE_*` environment variables."""
    if environ is None:
        if env_file is not None:
            load_dotenv(dotenv_path=env_file)
        else:
            load_dotenv()
        environ = os.environ

    rpc_url = _env(environ, "RPC_URL")
    if not rpc_url:
        raise ValueError(f"{ENV_PREFIX}RPC_URL is required")
    inbox_address = _env(environ, "INBOX_ADDRESS")
    if not inbox_address:
        raise ValueError(f"{ENV_PREFIX}INBOX_ADDRESS is required")

    private_key = _env(environ, "PRIVATE_KEY")
    if private_key and not private_key.startswith("0x"):
        private_key = f"0x{private_key}"

    chain_id_raw = _env(environ, "CHAIN_ID")
    try:
        chain_id = int(chain_id_raw, 0) if chain_id_raw else None
    except ValueError as exc:
        raise ValueError(f"Invalid {ENV_PREFIX}CHAIN_ID '{chain_id_raw}'") from exc

    return BridgeConfig(
        rpc_url=rpc_url,
        inbox_address=inbox_address,
        sequencer_inbox_address=_env(environ, "SEQUENCER_INBOX_ADDRESS"),
        private_key=private_key,
        gas_refunder_address=_env(environ, "GAS_REFUNDER_ADDRESS") or ZERO_ADDRESS,
        chain_id=chain_id,
        inject_poa_middleware=_parse_bool(_env(environ, "POA")),
    )


def connect(config: BridgeConfig) -> Web3:
    """Create a Web3 client for `config.rpc_url`."""
    w3 = Web3(Web3.HTTPProvider(config.rpc_url))
    if config.inject_poa_middleware:
        try:
            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        except ValueError:
            # already injected
            pass
    logger.debug("Web3 client created for %s", config.rpc_url)
    return w3
