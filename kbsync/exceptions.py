"""Errors raised by the revision sync core.

Recoverable conditions (missing or corrupt records, empty changelog windows)
never escape the core; everything defined here is surfaced to the caller.
"""

from typing import Any


class KbSyncError(RuntimeError):
    """Base exception for revision sync failures."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize sync error.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.details = details or {}


class RecordNotFoundError(KbSyncError):
    """Raised when a build has no readable revision record.

    Covers both an absent record and one that cannot be decoded.
    """

    def __init__(self, message: str, build_number: int | None = None, corrupt: bool = False):
        super().__init__(message, {"build_number": build_number, "corrupt": corrupt})
        self.build_number = build_number
        self.corrupt = corrupt


class RemoteQueryError(KbSyncError):
    """Raised when the remote revision source cannot answer a query."""


class SynchronizationError(KbSyncError):
    """Raised when checkout or update of the local workspace fails."""


class SyncCancelledError(KbSyncError):
    """Raised when the surrounding build signals cancellation."""
