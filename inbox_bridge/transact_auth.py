"""
Signing authority used to submit transactions to the bridge contracts.

`TransactAuth` owns the sender account, an in-memory nonce counter and the
EIP-1559 fee defaults. `make_tx` is the generic submission primitive: it
prices, signs and broadcasts whatever transaction a builder callback returns.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, cast

from eth_account.signers.local import LocalAccount
from hexbytes import HexBytes
from web3 import Web3
from web3.types import TxParams

from .errors import RPCFailure, SigningFailure
from .gas_limits import BATCH_PRIORITY_FEE_PER_GAS, MAX_TRANSACTION_GAS


@dataclass(frozen=True)
class SubmittedTransaction:
    """Handle for a signed transaction that has been broadcast."""

    tx_hash: HexBytes
    raw_transaction: bytes
    nonce: int
    sender: str
    to: str
    gas: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    data: bytes

    @property
    def hash_hex(self) -> str:
        return Web3.to_hex(self.tx_hash)


def _raw_transaction(signed: Any) -> bytes:
    raw_tx = getattr(signed, "raw_transaction", None) or getattr(
        signed, "rawTransaction", None
    )
    if raw_tx is None:
        raise SigningFailure("SignedTransaction missing raw transaction payload")
    return bytes(raw_tx)


def broadcast_signed(
    w3: Web3, tx: Dict[str, Any], signed: Any, sender: str
) -> SubmittedTransaction:
    """Broadcast a signed transaction and wrap it in a `SubmittedTransaction`."""
    raw_tx = _raw_transaction(signed)
    try:
        w3.eth.send_raw_transaction(raw_tx)
    except Exception as exc:
        raise RPCFailure(f"Failed to broadcast transaction: {exc}") from exc
    return SubmittedTransaction(
        tx_hash=HexBytes(signed.hash),
        raw_transaction=raw_tx,
        nonce=int(tx["nonce"]),
        sender=sender,
        to=str(tx["to"]),
        gas=int(tx["gas"]),
        max_fee_per_gas=int(tx["maxFeePerGas"]),
        max_priority_fee_per_gas=int(tx["maxPriorityFeePerGas"]),
        data=bytes(HexBytes(tx.get("data", b""))),
    )


class TransactAuth:
    """Sender account plus the nonce counter the bridge submits with."""

    def __init__(
        self,
        w3: Web3,
        account: LocalAccount,
        chain_id: Optional[int] = None,
        priority_fee_per_gas: int = BATCH_PRIORITY_FEE_PER_GAS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._logger: logging.Logger = logger or logging.getLogger("transact_auth")
        self._w3 = w3
        self._account = account
        self._chain_id = chain_id
        self._priority_fee_per_gas = int(priority_fee_per_gas)
        self._nonce_lock = threading.Lock()
        self._nonce_cache: Optional[int] = None

    @property
    def sender(self) -> str:
        """Return the checksummed sender address."""
        return Web3.to_checksum_address(self._account.address)

    @property
    def chain_id(self) -> int:
        if self._chain_id is None:
            try:
                self._chain_id = int(self._w3.eth.chain_id)
            except Exception as exc:
                raise RPCFailure(f"Failed to fetch chain id: {exc}") from exc
        return self._chain_id

    @property
    def nonce(self) -> Optional[int]:
        """The next nonce this authority will use, or None before first use."""
        return self._nonce_cache

    def advance_nonce_to(self, nonce: int) -> None:
        """Move the internal nonce forward to `nonce`; never moves it back."""
        with self._nonce_lock:
            if self._nonce_cache is None or self._nonce_cache < nonce:
                self._logger.debug(
                    "Advancing authority nonce from %s to %s", self._nonce_cache, nonce
                )
                self._nonce_cache = int(nonce)

    def _resolve_nonce(self) -> int:
        """Return the next transaction nonce, caching between submissions."""
        if self._nonce_cache is None:
            try:
                self._nonce_cache = int(
                    self._w3.eth.get_transaction_count(self.sender, "pending")
                )
            except Exception as exc:
                raise RPCFailure(f"Failed to fetch pending nonce: {exc}") from exc
        return self._nonce_cache

    def sign_transaction(self, sender: str, tx: Dict[str, Any]) -> Any:
        """Sign `tx` on behalf of `sender`, which must be this authority's account."""
        try:
            checksummed = Web3.to_checksum_address(sender)
        except (ValueError, TypeError) as exc:
            raise SigningFailure(f"invalid sender address {sender!r}") from exc
        if checksummed != self.sender:
            raise SigningFailure(
                f"authority for {self.sender} cannot sign for {sender}"
            )
        try:
            return self._account.sign_transaction(tx)
        except Exception as exc:
            raise SigningFailure(f"Failed to sign transaction: {exc}") from exc

    def _apply_fee_parameters(self, tx_params: Dict[str, Any]) -> None:
        """Populate EIP-1559 fee fields from the latest block's base fee."""
        try:
            latest_block = self._w3.eth.get_block("latest")
        except Exception as exc:
            raise RPCFailure(f"Failed to fetch latest block: {exc}") from exc
        base_fee = latest_block.get("baseFeePerGas")
        if base_fee is None:
            raise RPCFailure("latest block has no baseFeePerGas")

        max_fee = int(base_fee) * 2 + self._priority_fee_per_gas
        tx_params["maxPriorityFeePerGas"] = self._priority_fee_per_gas
        tx_params["maxFeePerGas"] = max_fee
        self._logger.debug(
            "Fee params: base=%s priority=%s max=%s",
            base_fee,
            self._priority_fee_per_gas,
            max_fee,
        )

    def _cap_transaction_gas(self, gas_value: int, context: str) -> int:
        """Cap gas values to the per-transaction limit with logging."""
        gas_int = int(gas_value)
        if gas_int <= MAX_TRANSACTION_GAS:
            return gas_int
        self._logger.warning(
            "%s (%s) exceeds per-transaction gas limit (%s); capping to limit",
            context,
            gas_int,
            MAX_TRANSACTION_GAS,
        )
        return MAX_TRANSACTION_GAS

    def make_tx(
        self, build: Callable[[Dict[str, Any]], Dict[str, Any]]
    ) -> SubmittedTransaction:
        """
        Submit the transaction produced by `build` using the authority's nonce.

        `build` receives the sender, nonce, chain id and fee fields and must
        return the complete transaction (at least `to` and `data`). The gas
        limit is estimated when `build` leaves it out. The internal nonce only
        moves once the transaction has been broadcast.
        """
        with self._nonce_lock:
            nonce = self._resolve_nonce()
            tx_params: Dict[str, Any] = {
                "from": self.sender,
                "nonce": nonce,
                "value": 0,
                "chainId": self.chain_id,
            }
            self._apply_fee_parameters(tx_params)
            tx = dict(build(dict(tx_params)))

            if "gas" not in tx:
                try:
                    estimate = self._w3.eth.estimate_gas(cast(TxParams, tx))
                except Exception as exc:
                    raise RPCFailure(f"Gas estimation failed: {exc}") from exc
                tx["gas"] = estimate
            tx["gas"] = self._cap_transaction_gas(tx["gas"], "Transaction gas limit")

            sender = tx.pop("from", self.sender)
            signed = self.sign_transaction(sender, tx)
            submitted = broadcast_signed(self._w3, tx, signed, self.sender)
            self._nonce_cache = max(self._nonce_cache or 0, nonce + 1)

        self._logger.info(
            "Transaction submitted: to=%s nonce=%s tx=%s",
            submitted.to,
            submitted.nonce,
            submitted.hash_hex,
        )
        return submitted
