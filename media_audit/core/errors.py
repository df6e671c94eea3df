"""
Error taxonomy for the audit core.

None of these escape the component that raised them: StateStore converts
storage failures to defaults or dropped writes, AnnouncementPoller converts
feed failures to a tagged FetchResult.
"""
from __future__ import annotations


class AuditError(RuntimeError):
    """Base class for recoverable core errors."""


class StorageError(AuditError):
    """Raised when the durable state entry cannot be read or written."""


class ParseError(AuditError):
    """Raised for malformed feed payloads or malformed persisted JSON."""


class FeedError(AuditError):
    """Raised for announcement feed transport failures."""

    def __init__(self, message: str, *, http_status: int | None = None):
        super().__init__(message)
        self.http_status = http_status


class NetworkError(FeedError):
    """Connection-level failure talking to the feed."""


class FeedTimeoutError(FeedError):
    """The feed did not answer within the configured timeout."""
