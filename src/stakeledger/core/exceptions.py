"""
Ledger exception hierarchy for stakeledger.

Every failure aborts the triggering operation as a whole; these types let
callers tell apart why it was rejected without parsing messages.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class LedgerError(Exception):
    """Base exception for all ledger errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the caller may retry the operation
    """

    recoverable = False

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


# ==================== Operation Errors ====================


class Unauthorized(LedgerError):
    """Raised when the caller is not the administrator, or not an active
    participant where one is required."""
    pass


class InvalidArgument(LedgerError):
    """Raised for zero amounts, out-of-bounds parameters, bad indexes and
    mismatched bulk-load sequences."""
    pass


class InsufficientState(LedgerError):
    """Raised when the ledger holds nothing to act on.

    Examples: no pending rewards on claim, no collected fees, no stake on withdraw.
    """
    pass


class ArithmeticOverflow(LedgerError):
    """Raised when an intermediate accrual computation leaves the uint256 range."""
    pass


class ExternalCallFailure(LedgerError):
    """Raised when the stake or reward asset rejects a transfer or mint."""
    recoverable = True


# ==================== Collaborator & Setup Errors ====================


class ContractRevert(LedgerError):
    """Raised by the asset contracts when a call reverts."""

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.reason = reason


class ConfigurationError(LedgerError):
    """Raised when ledger configuration is invalid."""
    pass


# ==================== Utility Functions ====================


def get_error_context(exc: Exception) -> Dict[str, Any]:
    """Extract error context from an exception for logging.

    Args:
        exc: The exception to extract context from

    Returns:
        Dictionary containing error type, message, and any additional details
    """
    context = {
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    if isinstance(exc, LedgerError):
        context["recoverable"] = exc.recoverable
        if exc.details:
            context["details"] = exc.details

    if isinstance(exc, ContractRevert) and exc.reason:
        context["revert_reason"] = exc.reason

    cause = exc.__cause__
    if isinstance(cause, ContractRevert) and cause.reason:
        context["revert_reason"] = cause.reason

    return context
