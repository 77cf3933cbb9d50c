"""Failure kinds raised along the search pipeline.

Every error derives from `SearchError` so the transport layer can map the
whole family to one opaque failure, while logs keep the concrete class.
`retryable` tells the caller whether re-issuing the same search can help.
"""

from __future__ import annotations

from typing import Optional


class SearchError(Exception):
    retryable: bool = False


class ParseError(SearchError, ValueError):
    """The uploaded region document is malformed."""


class EmptyRegionError(ParseError):
    """The region document decoded to nothing with a bounding rectangle."""


class SourceUnavailableError(SearchError):
    """The listings source could not be reached."""

    retryable = True


class ScriptNotFoundError(SearchError):
    """The search page no longer carries the listings script."""


class ExtractionError(SearchError):
    pass


class EvaluationError(ExtractionError):
    """The listings script failed, timed out or ran out of memory."""


class MissingFieldError(ExtractionError):
    def __init__(self, binding: str, reason: str = "missing"):
        super().__init__(f"binding {binding!r} is {reason}")
        self.binding = binding
        self.reason = reason


class FieldCoercionError(ExtractionError):
    def __init__(self, field: str, index: int, value: object, expected: str):
        super().__init__(
            f"{field}[{index}]: expected {expected}, got {value!r}"
        )
        self.field = field
        self.index = index
        self.value = value
        self.expected = expected


def error_kind(exc: BaseException) -> Optional[str]:
    """Return the class name for pipeline errors, None for anything else."""

    if isinstance(exc, SearchError):
        return type(exc).__name__
    return None
