# =============================================================================
# Error Taxonomy
# =============================================================================
#
# Every failure the query pipeline can raise is a FinQueryError subclass so
# the HTTP layer can map it with a single except clause.
#
#   ValidationError        — bad input shape/length, raised before any I/O
#   TranslationParseError  — LLM returned something that isn't a query
#   InvalidCollection      — query targets a collection outside the allow-list
#   UnsupportedOperation   — query uses an operation outside the allow-list
#   ExecutionError         — document store call failed or timed out
#   CacheError             — cache store failure; never leaves the cache layer
# =============================================================================

from __future__ import annotations


class FinQueryError(Exception):
    """Base class for all query pipeline errors."""


class ValidationError(FinQueryError):
    """The caller's input is malformed. Safe to show to the user."""


class TranslationParseError(FinQueryError):
    """The translation step produced output that is not a structured query."""

    def __init__(self, message: str, raw_output: str = "") -> None:
        super().__init__(message)
        self.raw_output = raw_output


class InvalidCollection(FinQueryError):
    """The structured query names a collection that is not allow-listed."""

    def __init__(self, collection: object) -> None:
        super().__init__(f"Invalid collection: {collection!r}")
        self.collection = collection


class UnsupportedOperation(FinQueryError):
    """The structured query names an operation that is not allow-listed."""

    def __init__(self, operation: object) -> None:
        super().__init__(f"Unsupported operation: {operation!r}")
        self.operation = operation


class ExecutionError(FinQueryError):
    """The document store rejected or failed to complete a query."""


class CacheError(FinQueryError):
    """The cache store is unreachable or returned an unusable payload."""
