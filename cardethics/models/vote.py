"""
Vote models.

A vote pits two card variants against each other. The winner is one of
the two candidates, or nobody (a skip).
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cardethics.models.card import CardVariant
from cardethics.models.failure import FailureKind, VoteValidationError
from cardethics.models.rating import RatingKey


class VoteRequest(BaseModel):
    """One pairwise comparison event."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    card1_id: int = Field(..., alias="card1Id")
    card1_variant: CardVariant = Field(default=CardVariant.BASE, alias="card1Variant")
    card2_id: int = Field(..., alias="card2Id")
    card2_variant: CardVariant = Field(default=CardVariant.BASE, alias="card2Variant")
    winner_card_id: int | None = Field(default=None, alias="winnerCardId")
    winner_variant: CardVariant | None = Field(default=None, alias="winnerVariant")

    @property
    def card1_key(self) -> RatingKey:
        return RatingKey(self.card1_id, self.card1_variant)

    @property
    def card2_key(self) -> RatingKey:
        return RatingKey(self.card2_id, self.card2_variant)

    @property
    def is_skip(self) -> bool:
        """True if neither card was selected."""
        return self.winner_card_id is None and self.winner_variant is None


class RatingDelta(BaseModel):
    """Rating change applied to one card variant by a vote."""

    card_id: int
    variant: CardVariant
    previous_rating: float
    new_rating: float
    previous_count: int
    new_count: int

    @property
    def delta(self) -> float:
        return self.new_rating - self.previous_rating


class VoteResult(BaseModel):
    """Outcome of a processed vote."""

    skipped: bool
    winner: RatingDelta | None = None
    loser: RatingDelta | None = None
    changes: list[RatingDelta] = Field(default_factory=list)
    message: str = "Vote processed successfully"


def parse_vote_request(payload: dict[str, Any]) -> VoteRequest:
    """
    Parse an inbound vote payload.

    Pydantic validation errors are surfaced as VoteValidationError so that
    callers only ever handle one rejection type.
    """
    try:
        return VoteRequest.model_validate(payload)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise VoteValidationError(
            kind=FailureKind.INVALID_INPUT,
            message="Vote payload is malformed",
            field=location or None,
            detail=str(first.get("msg", "")) or None,
        ) from e
