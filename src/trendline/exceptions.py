"""Custom exception types for the trend engine."""

from __future__ import annotations

from typing import Any, Sequence


class QueryValidationError(ValueError):
    """Raised when a trend query or filter is rejected before evaluation."""

    def __init__(self, message: str, reasons: Sequence[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.reasons: list[dict[str, Any]] = list(reasons or [])


class ParlayValidationError(ValueError):
    """Raised when parlay or teaser legs cannot be priced."""


class RuleTableError(ValueError):
    """Raised when a tier rule table is malformed or fails monotonicity checks."""


class PickStateError(RuntimeError):
    """Raised on an illegal pick result transition."""


class FieldTableError(RuntimeError):
    """Raised at import when the field whitelist and resolver table drift apart."""


class DataSourceError(RuntimeError):
    """Raised when an external data source cannot be reached or parsed.

    The core never retries; ``retryable`` tells the adapter layer whether it may.
    """

    def __init__(self, message: str, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class RatingNotFoundError(LookupError):
    """Raised when no rating row can be matched to a team name."""
