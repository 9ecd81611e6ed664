"""
Exception hierarchy for tokenlock.

Provides typed exceptions for token, registry and vesting ledger operations
so callers can tell authorization and input violations apart from failed
asset movements, and log them with consistent context.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class TokenlockError(Exception):
    """Base exception for all tokenlock errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the operation can be retried unchanged
    """

    recoverable: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if recoverable is not None:
            self.recoverable = recoverable


# ==================== Contract Execution Errors ====================


class ContractExecutionError(TokenlockError):
    """Raised when a token or registry call is rejected.

    Examples: balance or allowance too low, zero address, caller not owner,
    self delegation.
    """
    pass


# ==================== Vesting Ledger Errors ====================


class VestingError(TokenlockError):
    """Base class for vesting ledger failures.

    Every vesting error aborts the whole operation; ledger state is left
    exactly as it was before the call.
    """
    pass


class BeneficiaryMismatch(VestingError):
    """Raised when a deposit names a beneficiary other than the ledger's."""

    def __init__(self, expected: str, actual: str, **kwargs: Any) -> None:
        super().__init__(
            f"Beneficiary mismatch: ledger pays {actual}, caller expected {expected}",
            **kwargs,
        )
        self.expected = expected
        self.actual = actual


class UnauthorizedDepositor(VestingError):
    """Raised when someone other than the authorized depositor deposits."""

    def __init__(self, caller: str, **kwargs: Any) -> None:
        super().__init__(f"Unauthorized depositor: {caller}", **kwargs)
        self.caller = caller


class VestingPeriodDecrease(VestingError):
    """Raised when a deposit would move the vesting end earlier."""

    def __init__(self, current_end: int, requested_end: int, **kwargs: Any) -> None:
        super().__init__(
            f"Vesting period decrease: end {requested_end} is before current end {current_end}",
            **kwargs,
        )
        self.current_end = current_end
        self.requested_end = requested_end


class TransferFailure(VestingError):
    """Raised when the value store did not complete a requested transfer.

    The underlying token error, if any, is available as ``__cause__``.
    """
    pass


# ==================== Storage Errors ====================


class StateFileError(TokenlockError):
    """Raised when deployment state cannot be read or written."""
    recoverable = True


# ==================== Utility Functions ====================


def get_error_context(exc: Exception) -> Dict[str, Any]:
    """Extract error context from an exception for logging.

    Args:
        exc: The exception to extract context from

    Returns:
        Dictionary containing error type, message, and any additional details
    """
    context: Dict[str, Any] = {
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    if isinstance(exc, TokenlockError):
        context["recoverable"] = exc.recoverable
        if exc.details:
            context["details"] = exc.details

    if isinstance(exc, TransferFailure) and exc.__cause__ is not None:
        context["cause"] = str(exc.__cause__)

    return context
