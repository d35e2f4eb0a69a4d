"""
Rating records for (card, variant) pairs.

A record holds an unbounded rating and the number of comparisons the
variant has taken part in. Missing or malformed records read as the
neutral anchor with zero comparisons.
"""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, NamedTuple

from cardethics.config import ELO_NEUTRAL
from cardethics.models.card import CardVariant

logger = logging.getLogger(__name__)


class RatingKey(NamedTuple):
    """Unit of rating: one variant of one card."""

    card_id: int
    variant: CardVariant

    def __str__(self) -> str:
        return f"{self.card_id}-{self.variant.value}"


@dataclass(frozen=True, slots=True)
class CardRating:
    """
    Rating state of one card variant.

    INVARIANT: comparison_count never decreases except through an
    explicit administrative reset.
    """

    rating: float = ELO_NEUTRAL
    comparison_count: int = 0

    @classmethod
    def neutral(cls) -> "CardRating":
        return cls()

    def with_rating(self, rating: float) -> "CardRating":
        return CardRating(rating=rating, comparison_count=self.comparison_count)

    def incremented(self) -> "CardRating":
        return CardRating(rating=self.rating, comparison_count=self.comparison_count + 1)


def coerce_rating_record(record: Mapping[str, Any] | None) -> CardRating:
    """
    Convert a stored rating document into a CardRating.

    Accepts both the engine's field names (rating, comparison_count) and
    the legacy document names (elo, matchups). Anything missing or
    malformed falls back to the neutral default for that field.
    """
    if not record:
        return CardRating.neutral()

    raw_rating = record.get("rating", record.get("elo"))
    raw_count = record.get("comparison_count", record.get("matchups"))

    rating = ELO_NEUTRAL
    if raw_rating is not None:
        try:
            rating = float(raw_rating)
        except (TypeError, ValueError):
            logger.warning("Malformed rating %r coerced to neutral", raw_rating)
            rating = ELO_NEUTRAL
        if not math.isfinite(rating):
            logger.warning("Non-finite rating %r coerced to neutral", raw_rating)
            rating = ELO_NEUTRAL

    count = 0
    if raw_count is not None:
        try:
            count = int(raw_count)
        except (TypeError, ValueError):
            logger.warning("Malformed comparison count %r coerced to 0", raw_count)
            count = 0
        if count < 0:
            logger.warning("Negative comparison count %d coerced to 0", count)
            count = 0

    return CardRating(rating=rating, comparison_count=count)
