"""Typed errors raised by the retrieval layer."""

from typing import Optional


class CatchupFeedError(Exception):
    """Base class for all catchup-feed errors."""


class ValidationError(CatchupFeedError):
    """Raised when caller input has the wrong shape. Never retried."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"validation error on field '{field}': {message}")


class NotFoundError(CatchupFeedError):
    """Raised by services when a by-ID lookup finds nothing."""


class PredicateBuildError(CatchupFeedError):
    """Raised when the predicate builder is handed an impossible column or operator."""


class StorageError(CatchupFeedError):
    """Raised when the backend fails. The message names the operation, never row values."""

    default_message = "query failed"

    def __init__(self, operation: str, message: Optional[str] = None):
        self.operation = operation
        super().__init__(f"{operation}: {message or self.default_message}")


class NoRowsAffectedError(StorageError):
    """Raised when an update or delete matched zero rows."""

    default_message = "no rows affected"


class DuplicateError(StorageError):
    """Raised when a write violates a uniqueness constraint (article url, source feed_url)."""

    default_message = "duplicate value for a unique column"


class SearchTimeoutError(StorageError):
    """Raised when a bounded search, count or similarity query exceeds its deadline."""

    def __init__(self, operation: str, timeout: float, message: str = "query failed"):
        self.timeout = timeout
        super().__init__(operation, f"{message}: timed out after {timeout:g}s")


class TooManyParametersError(StorageError):
    """Raised when a batch lookup exceeds the backend's bound-parameter ceiling."""

    def __init__(self, operation: str, count: int, ceiling: int):
        self.count = count
        self.ceiling = ceiling
        super().__init__(operation, f"too many parameters ({count} > {ceiling})")
