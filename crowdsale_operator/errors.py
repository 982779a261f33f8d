from __future__ import annotations

from typing import Any, Optional


class OperatorError(Exception):
    """Base class for errors raised by the crowdsale operator."""


class ConfigError(OperatorError):
    """Raised when required configuration is missing or invalid."""


class UsageError(OperatorError):
    """Raised when a command receives the wrong arguments."""


class GuardViolation(OperatorError):
    """Raised when a workflow refuses to act on the current contract state."""


class AlreadyFinalizedError(GuardViolation):
    def __init__(self) -> None:
        super().__init__("crowdsale already finalized")


class ChainError(OperatorError):
    """Raised when a submitted transaction does not succeed."""


class TransactionRevertedError(ChainError):
    def __init__(
        self,
        tx_id: str,
        receipt: dict[str, Any],
        reason: Optional[str] = None,
    ) -> None:
        message = f"transaction {tx_id} reverted"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.tx_id = tx_id
        self.receipt = receipt
        self.reason = reason


class ConfirmationTimeoutError(ChainError):
    def __init__(self, tx_id: str, confirmations: int, timeout: float) -> None:
        super().__init__(
            f"transaction {tx_id} did not reach {confirmations} confirmation(s) within {timeout}s"
        )
        self.tx_id = tx_id
        self.confirmations = confirmations
        self.timeout = timeout


class UnknownStateError(ValueError):
    def __init__(self, code: Any) -> None:
        super().__init__(f"unknown crowdsale state code: {code!r}")
        self.code = code
