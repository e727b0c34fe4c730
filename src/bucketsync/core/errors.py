"""Exception hierarchy for bucketsync."""

from __future__ import annotations


class SyncError(Exception):
    """Base exception for bucketsync errors."""


class ConfigError(SyncError):
    """Project configuration is incomplete or invalid."""


class CatalogError(SyncError):
    """The persisted catalog could not be read or written."""


class ReconcileError(SyncError):
    """A reconciliation pass was aborted."""


class CancelledException(SyncError):
    """Raised when an operation observes a cancellation request."""


class TransportError(SyncError):
    """Base exception for transport adapter failures.

    Attributes:
        path: Object path the failure relates to, if any.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class NotFoundError(TransportError):
    """The requested object does not exist."""


class TransientError(TransportError):
    """Network or timeout failure that may succeed on retry."""


class PermanentError(TransportError):
    """Failure that will not succeed on retry (auth, malformed request, exhausted retries)."""
