"""Chain client capability consumed by the crowdsale workflows.

Workflows only talk to the ``ChainClient`` protocol; ``Web3ChainClient`` is the
web3.py implementation used at runtime.
"""
from __future__ import annotations

import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Protocol, Sequence

from web3 import Web3
from web3.contract import Contract
from web3.exceptions import TimeExhausted

from .errors import ChainError, ConfigError, ConfirmationTimeoutError, TransactionRevertedError
from .logging_utils import get_operator_logger
from .tx_helpers import extract_revert_reason, fee_params, format_receipt, to_base_units

logger = get_operator_logger()


class PendingTransaction:
    """A submitted state-changing call awaiting confirmation."""

    def __init__(self, tx_id: str, waiter: Callable[[int], dict[str, Any]]) -> None:
        self.id = tx_id
        self._waiter = waiter

    def confirm(self, confirmations: int = 1) -> dict[str, Any]:
        return self._waiter(confirmations)

    def __repr__(self) -> str:
        return f"PendingTransaction({self.id!r})"


class ChainClient(Protocol):
    def read(self, contract: Any, method: str, args: Optional[Sequence[Any]] = None) -> Any:
        ...

    def read_as(
        self,
        contract: Any,
        decode: Callable[[Any], Any],
        method: str,
        args: Optional[Sequence[Any]] = None,
    ) -> Any:
        ...

    def read_date(self, contract: Any, field: str) -> datetime:
        ...

    def read_currency(
        self, contract: Any, unit: str, field: str, args: Optional[Sequence[Any]] = None
    ) -> Decimal:
        ...

    def submit(
        self,
        contract: Any,
        method: str,
        args: Optional[Sequence[Any]] = None,
        *,
        amount: Optional[Decimal] = None,
        unit: str = "ether",
        gas_limit: Optional[int] = None,
        sender: Optional[str] = None,
    ) -> PendingTransaction:
        ...


def get_web3_client(rpc_url: Optional[str]) -> Web3:
    if not rpc_url:
        raise ConfigError("no RPC URL configured")
    w3 = Web3(Web3.HTTPProvider(rpc_url))
    if not w3.is_connected():
        raise ChainError(f"RPC endpoint not reachable: {rpc_url}")
    return w3


def epoch_to_datetime(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


class Web3ChainClient:
    def __init__(
        self,
        w3: Web3,
        *,
        private_key: Optional[str] = None,
        gas_price_gwei: str = "1",
        priority_fee_gwei: Optional[str] = None,
        max_fee_gwei: Optional[str] = None,
        tx_timeout: float = 120.0,
        poll_interval: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.w3 = w3
        self._account = w3.eth.account.from_key(private_key) if private_key else None
        self.gas_price_gwei = gas_price_gwei
        self.priority_fee_gwei = priority_fee_gwei
        self.max_fee_gwei = max_fee_gwei
        self.tx_timeout = tx_timeout
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock
        self._last_nonce: Dict[str, int] = {}

    @property
    def signer_address(self) -> Optional[str]:
        return self._account.address if self._account else None

    def contract(self, address: str, abi: list[dict[str, Any]]) -> Contract:
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    # ---- Reads ----
    def read(self, contract: Contract, method: str, args: Optional[Sequence[Any]] = None) -> Any:
        return getattr(contract.functions, method)(*(args or [])).call()

    def read_as(
        self,
        contract: Contract,
        decode: Callable[[Any], Any],
        method: str,
        args: Optional[Sequence[Any]] = None,
    ) -> Any:
        return decode(self.read(contract, method, args))

    def read_date(self, contract: Contract, field: str) -> datetime:
        return epoch_to_datetime(self.read(contract, field))

    def read_currency(
        self, contract: Contract, unit: str, field: str, args: Optional[Sequence[Any]] = None
    ) -> Decimal:
        return Decimal(Web3.from_wei(int(self.read(contract, field, args)), unit))

    # ---- Writes ----
    def submit(
        self,
        contract: Contract,
        method: str,
        args: Optional[Sequence[Any]] = None,
        *,
        amount: Optional[Decimal] = None,
        unit: str = "ether",
        gas_limit: Optional[int] = None,
        sender: Optional[str] = None,
    ) -> PendingTransaction:
        call_args = list(args or [])
        fn = getattr(contract.functions, method)(*call_args)
        tx_params: Dict[str, Any] = {}
        if amount:
            tx_params["value"] = to_base_units(amount, unit)
        if gas_limit:
            tx_params["gas"] = gas_limit

        account = self._signing_account(sender)
        if account is not None:
            tx_params["from"] = account.address
            tx_params["nonce"] = self._next_nonce(account.address)
            tx_params["chainId"] = self.w3.eth.chain_id
            tx_params.update(
                fee_params(self.w3, self.gas_price_gwei, self.priority_fee_gwei, self.max_fee_gwei)
            )
            tx = fn.build_transaction(tx_params)
            signed = account.sign_transaction(tx)
            raw_tx = getattr(signed, "raw_transaction", None) or getattr(
                signed, "rawTransaction", None
            )
            if raw_tx is None:
                raise ChainError("signed transaction missing raw_transaction")
            tx_hash = self.w3.eth.send_raw_transaction(raw_tx)
        else:
            if not sender:
                raise ConfigError(
                    f"cannot send {method}: no PRIVATE_KEY configured and no sender address given"
                )
            tx_params["from"] = Web3.to_checksum_address(sender)
            tx = {
                **tx_params,
                "to": contract.address,
                "data": contract.encode_abi(method, args=call_args),
            }
            tx_hash = fn.transact(tx_params)

        tx_id = Web3.to_hex(tx_hash)
        logger.debug("submitted %s.%s as %s", contract.address, method, tx_id)
        return PendingTransaction(tx_id, lambda n: self._wait(tx_id, n, tx))

    def _signing_account(self, sender: Optional[str]) -> Optional[Any]:
        """Return the local account when it should sign for ``sender``."""
        if self._account is None:
            return None
        if sender is None or sender.lower() == self._account.address.lower():
            return self._account
        return None

    def _next_nonce(self, addr: str) -> int:
        """Pending nonce + monotonic bump so back-to-back sends never collide."""
        pending = self.w3.eth.get_transaction_count(addr, "pending")
        key = addr.lower()
        last = self._last_nonce.get(key)
        if last is not None and pending <= last:
            pending = last + 1
        self._last_nonce[key] = pending
        return pending

    def _wait(self, tx_id: str, confirmations: int, tx: Dict[str, Any]) -> dict[str, Any]:
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(
                tx_id, timeout=self.tx_timeout, poll_latency=self.poll_interval
            )
        except TimeExhausted as exc:
            raise ConfirmationTimeoutError(tx_id, confirmations, self.tx_timeout) from exc

        formatted = format_receipt(receipt)
        if receipt.get("status") == 0:
            reason = extract_revert_reason(self.w3, tx, receipt)
            raise TransactionRevertedError(tx_id, formatted, reason)

        target = int(receipt["blockNumber"]) + confirmations - 1
        deadline = self._clock() + self.tx_timeout
        while self.w3.eth.block_number < target:
            if self._clock() >= deadline:
                raise ConfirmationTimeoutError(tx_id, confirmations, self.tx_timeout)
            self._sleep(self.poll_interval)
        return formatted
