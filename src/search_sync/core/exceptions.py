"""
Error Taxonomy

Every failure raised by this package derives from SearchSyncError so callers
can catch the whole family at once. The idempotent no-ops (deleting a missing
index or document, creating an existing index) never raise.

Retry policy is not applied anywhere in this package. SearchConnectionError
marks the failures a caller may reasonably retry; everything else is fatal
for the operation that raised it.
"""

from __future__ import annotations

from typing import Any, Optional


class SearchSyncError(Exception):
    """Base error for the search synchronization core."""


class ConfigurationError(SearchSyncError, ValueError):
    """Invalid or missing analyzer, field or entity declaration."""


class EntityNotRegisteredError(ConfigurationError, LookupError):
    """Raised when a searchable entity name is not in the registry."""


class NotFoundError(SearchSyncError, LookupError):
    """Raised when a partial update targets a missing document or index."""

    def __init__(self, index: str, doc_id: str, detail: Any = None) -> None:
        super().__init__(f"Document {doc_id!r} not found in index {index!r}")
        self.index = index
        self.doc_id = doc_id
        self.detail = detail


class SearchConnectionError(SearchSyncError, ConnectionError):
    """Transient network failure or backend unavailability."""


class BackendRejectionError(SearchSyncError):
    """
    Structural rejection from the search backend (bad mapping, bad query).

    The backend's response body is preserved verbatim on ``detail``.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        detail: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is None:
            return base
        return f"{base} (status {self.status_code}): {self.detail}"


class IndexCreationError(BackendRejectionError):
    """Raised when the backend refuses to create an index."""
