"""Exception taxonomy for discussions_sync.

Per-document errors (``MalformedDocument``, ``InvalidDateFormat``) are
caught and reported by the engine so one bad article never blocks the
others.  Per-run errors (``PreconditionFailed``, ``CategoryNotFound``,
``RemoteUnavailable``, ``RemoteQueryError`` raised while fetching) abort
the run before any mutation is attempted.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for all sync errors."""


class MalformedDocument(SyncError):
    """A document has no complete ``---`` delimited metadata block."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class InvalidDateFormat(SyncError, ValueError):
    """A date value does not have exactly three components."""

    def __init__(self, value: object, separator: str) -> None:
        self.value = value
        self.separator = separator
        super().__init__(
            f"Invalid date '{value}': expected three components separated by '{separator}'"
        )


class RemoteUnavailable(SyncError):
    """The GraphQL endpoint could not be reached or returned an HTTP error."""


class RemoteQueryError(SyncError):
    """The endpoint returned an error payload or an undecodable response."""


class CategoryNotFound(SyncError):
    """The configured discussion category does not exist in the repository."""

    def __init__(self, category: str, available: list[str] | None = None) -> None:
        self.category = category
        self.available = available or []
        message = f"Category '{category}' not found in repository"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class PreconditionFailed(SyncError):
    """A run precondition (credential, articles root, documents) is missing."""
