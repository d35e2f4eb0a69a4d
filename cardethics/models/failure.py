"""
Failure classification for the rating and deck-construction engine.

Every rejection the engine raises is a KnownError: the engine knows exactly
why it refused, and the caller can turn the error into a FailureDetail for
whatever surface it owns.

INVARIANT: Rejected votes never mutate ratings. Validation happens before
any read-modify-write against the rating store.
"""

from enum import Enum

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"
    MISSING_REQUIRED = "missing_required"

    # Vote constraint violations
    SELF_COMPARISON = "self_comparison"
    WINNER_NOT_CANDIDATE = "winner_not_candidate"
    VARIANT_MISMATCH = "variant_mismatch"
    UNKNOWN_VARIANT = "unknown_variant"

    # Catalog failures
    INSUFFICIENT_CATALOG = "insufficient_catalog"

    # Unknown
    UNKNOWN = "unknown"


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="Explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the caller",
    )


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the engine knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        super().__init__(message)

    def to_detail(self) -> FailureDetail:
        """Convert to a FailureDetail."""
        return FailureDetail(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
        )


class VoteValidationError(KnownError):
    """
    Raised when a vote is structurally invalid.

    The vote is rejected as a whole; neither card is touched.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        field: str | None = None,
        detail: str | None = None,
    ):
        self.field = field
        super().__init__(
            kind=kind,
            message=message,
            detail=detail,
            suggestion="Submit a vote between two distinct cards, naming one of them as winner.",
        )


class InvalidDeckInputError(KnownError):
    """
    Raised when deck construction receives structurally invalid input.

    Insufficient inventory is NOT an error; it yields a partially filled deck.
    """

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(
            kind=FailureKind.INVALID_INPUT,
            message=message,
            detail=detail,
            suggestion="Check the arena target level and deck options.",
        )


class InsufficientCatalogError(KnownError):
    """Raised when the catalog cannot supply a comparison pair."""

    def __init__(self, available: int):
        self.available = available
        super().__init__(
            kind=FailureKind.INSUFFICIENT_CATALOG,
            message=f"Not enough cards available. Found {available} cards.",
            suggestion="Load a catalog with at least two cards.",
        )
