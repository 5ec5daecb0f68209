"""Error taxonomy for ingestion, queries and the Redis-backed structures."""

from __future__ import annotations

import enum


class TrendsError(Exception):
    """Base error for hashtag-trends."""


class ValidationError(TrendsError):
    """Client-caused input error, always reported as HTTP 400."""

    reason = "invalid"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class EmptyContent(ValidationError):
    reason = "empty_content"


class TooLong(ValidationError):
    reason = "too_long"


class MissingParameter(ValidationError):
    reason = "missing_parameter"


class NotAPositiveInteger(ValidationError):
    reason = "not_a_positive_integer"


class ExceedsMaximum(ValidationError):
    reason = "exceeds_maximum"


class StoreErrorKind(enum.StrEnum):
    ALREADY_EXISTS = "already_exists"
    MISSING = "missing"
    UNAVAILABLE = "unavailable"
    UNEXPECTED = "unexpected"


class StoreError(TrendsError):
    """Failure reported by the membership filter or the frequency ranking."""

    def __init__(self, message: str, *, kind: StoreErrorKind, operation: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.operation = operation


class ProcessingError(TrendsError):
    """Failure after a post was acknowledged. Logged, never returned to the submitter."""


class QueryError(TrendsError):
    """Failure reading the frequency ranking while answering a top-N query."""
