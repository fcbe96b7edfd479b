"""
Range-update exception hierarchy for clrange.

Every failure of a pool operation surfaces as one of the typed exceptions
below so callers can tell the failure kinds apart without parsing messages.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    """Discriminator for the outcome of a range update."""

    ACCESS_DENIED = "access_denied"
    INVALID_POSITION = "invalid_position"
    INVALID_RANGE = "invalid_range"
    NO_OP_RANGE = "no_op_range"
    CONTINUITY_VIOLATION = "continuity_violation"
    CALLBACK_REJECTED = "callback_rejected"
    REENTRANCY_DETECTED = "reentrancy_detected"
    ARITHMETIC_FAULT = "arithmetic_fault"
    CONFIGURATION = "configuration"


class RangeUpdateError(Exception):
    """Base exception for all pool and range-update errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether resubmitting the same call could succeed
    """

    kind: ErrorKind = ErrorKind.ARITHMETIC_FAULT

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable


# ==================== Caller Errors ====================


class AccessDenied(RangeUpdateError):
    """Raised when the caller is neither owner, approved delegate nor operator."""

    kind = ErrorKind.ACCESS_DENIED


class InvalidPosition(RangeUpdateError):
    """Raised when a position is not eligible (unknown or without liquidity)."""

    kind = ErrorKind.INVALID_POSITION


class PositionNotFound(InvalidPosition):
    """Raised when no position matches the given id or key."""
    pass


class InvalidRange(RangeUpdateError):
    """Raised when a tick range is malformed or already occupied.

    Examples: lower >= upper, ticks off the pool's spacing, target key taken.
    """

    kind = ErrorKind.INVALID_RANGE


class ContinuityViolation(RangeUpdateError):
    """Raised when must_continue_trading is set and the new range excludes the price."""

    kind = ErrorKind.CONTINUITY_VIOLATION


# ==================== Callback & Concurrency Errors ====================


class CallbackRejected(RangeUpdateError):
    """Raised when a hook returns the wrong acknowledgement or fails."""

    kind = ErrorKind.CALLBACK_REJECTED

    def __init__(
        self,
        message: str,
        callback: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.callback = callback


class ReentrancyDetected(RangeUpdateError):
    """Raised when a pool operation is re-entered while one is in progress."""

    kind = ErrorKind.REENTRANCY_DETECTED

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.operation = operation


# ==================== Arithmetic Errors ====================


class ArithmeticFault(RangeUpdateError):
    """Raised for out-of-bounds ticks and computations modular wrap cannot resolve."""

    kind = ErrorKind.ARITHMETIC_FAULT


# ==================== Pool Setup Errors ====================


class PoolNotFound(RangeUpdateError):
    """Raised when a factory lookup does not match a deployed pool."""

    kind = ErrorKind.INVALID_POSITION


class PoolAlreadyExists(RangeUpdateError):
    """Raised when a pool already exists for the pair and fee."""

    kind = ErrorKind.CONFIGURATION


class PermissionRegistryError(RangeUpdateError):
    """Raised when hook permissions are registered twice or inconsistently."""

    kind = ErrorKind.CONFIGURATION


class ConfigurationError(RangeUpdateError):
    """Raised when engine configuration is missing or invalid."""

    kind = ErrorKind.CONFIGURATION


# ==================== Utility Functions ====================


def get_error_context(exc: BaseException) -> Dict[str, Any]:
    """Extract error context from an exception for logging.

    Args:
        exc: The exception to extract context from

    Returns:
        Dictionary containing error type, kind, message, and any details
    """
    context: Dict[str, Any] = {
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    if isinstance(exc, RangeUpdateError):
        context["kind"] = exc.kind.value
        context["recoverable"] = exc.recoverable
        if exc.details:
            context["details"] = exc.details

    if isinstance(exc, CallbackRejected) and exc.callback:
        context["callback"] = exc.callback

    if isinstance(exc, ReentrancyDetected) and exc.operation:
        context["operation"] = exc.operation

    return context
