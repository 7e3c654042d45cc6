"""
LogPulse AI - Error Taxonomy
============================

Only InvalidInput, RateLimited and PersistenceFailure ever leave the
orchestrator. ProviderError is raised by backends and absorbed by the
provider layer.
"""

from enum import Enum
from typing import Optional

from logpulse_shared.constants import ErrorKind


class InvalidInputReason(str, Enum):
    """Why a submitted log was rejected."""
    EMPTY = "empty"
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"


class LogPulseError(Exception):
    """Base class for errors surfaced to callers."""

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class InvalidInput(LogPulseError):
    """The submitted log text failed validation."""

    kind = ErrorKind.INVALID_INPUT

    def __init__(self, reason: InvalidInputReason, message: str, max_words: int = 200):
        super().__init__(
            message,
            detail=f"Please provide valid error logs ({max_words} words or less)."
        )
        self.reason = reason


class RateLimited(LogPulseError):
    """The caller has used up its quota for the current window."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, limit: int, window_hours: int):
        super().__init__(
            f"Rate limit exceeded. Maximum {limit} requests allowed per {window_hours} hours.",
            detail="Please try again later."
        )
        self.limit = limit
        self.window_hours = window_hours


class PersistenceFailure(LogPulseError):
    """The analysis could not be stored; no result is returned."""

    kind = ErrorKind.PERSISTENCE_FAILURE

    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(
            message,
            detail="Please try again later. If the problem persists, contact support."
        )


class ProviderError(Exception):
    """A diagnosis backend call failed (transport, status, timeout or body)."""

    def __init__(self, backend: str, message: str):
        super().__init__(f"{backend}: {message}")
        self.backend = backend
