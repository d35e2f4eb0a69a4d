"""
Card rating read models.

Joins the card catalog with the rating store: the ranked card listing,
single-card ethics lookups, and random comparison pairs for voting.
"""

import logging
import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from cardethics.analysis.ethics import to_ethics_score
from cardethics.db.rating_store import RatingStore, get_many
from cardethics.models.card import Card, CardVariant
from cardethics.models.failure import InsufficientCatalogError
from cardethics.models.rating import RatingKey

logger = logging.getLogger(__name__)

VARIANT_SUFFIXES: dict[CardVariant, str] = {
    CardVariant.EVO: "Evo",
    CardVariant.HERO: "Hero",
}


def display_name(name: str, variant: CardVariant) -> str:
    """Listing name of a variant: "Knight", "Knight (Evo)", "Knight (Hero)"."""
    suffix = VARIANT_SUFFIXES.get(variant)
    return f"{name} ({suffix})" if suffix else name


@dataclass(frozen=True, slots=True)
class RatedCard:
    """One row of the card listing."""

    card_id: int
    name: str
    variant: CardVariant
    rating: float
    ethics_score: float
    comparison_count: int

    @property
    def key(self) -> RatingKey:
        return RatingKey(self.card_id, self.variant)


@dataclass(frozen=True, slots=True)
class ComparisonCard:
    """One side of a comparison pair."""

    card: Card
    variant: CardVariant

    @property
    def key(self) -> RatingKey:
        return RatingKey(self.card.id, self.variant)


def list_rated_cards(catalog: Iterable[Card], store: RatingStore) -> list[RatedCard]:
    """
    Every variant in the catalog with its rating and ethics score.

    Each existing evolution/hero variant gets its own row next to the base
    card. Rows are sorted by display name. Unrated variants read as neutral.
    """
    cards = list(catalog)
    keys = [RatingKey(card.id, variant) for card in cards for variant in card.variants()]
    ratings = get_many(store, keys)

    rows = []
    for card in cards:
        for variant in card.variants():
            record = ratings[RatingKey(card.id, variant)]
            rows.append(
                RatedCard(
                    card_id=card.id,
                    name=display_name(card.name, variant),
                    variant=variant,
                    rating=record.rating,
                    ethics_score=to_ethics_score(record.rating),
                    comparison_count=record.comparison_count,
                )
            )

    rows.sort(key=lambda row: (row.name.casefold(), row.name))
    return rows


def card_ethics_score(
    store: RatingStore, card_id: int, variant: CardVariant = CardVariant.BASE
) -> float:
    """Ethics score of one card variant."""
    return to_ethics_score(store.get(RatingKey(card_id, variant)).rating)


def pick_comparison_pair(
    catalog: Sequence[Card], rng: random.Random | None = None
) -> tuple[ComparisonCard, ComparisonCard]:
    """
    Pick two distinct cards to compare, each in a random available variant.

    Args:
        catalog: Cards eligible for voting
        rng: Random source; pass a seeded Random for reproducible pairs

    Raises:
        InsufficientCatalogError: If fewer than two distinct cards are available
    """
    distinct = list({card.id: card for card in catalog}.values())
    if len(distinct) < 2:
        raise InsufficientCatalogError(len(distinct))

    source = rng or random.Random()
    first, second = source.sample(distinct, 2)
    pair = (
        ComparisonCard(first, source.choice(first.variants())),
        ComparisonCard(second, source.choice(second.variants())),
    )
    logger.debug("Comparison pair: %s vs %s", pair[0].key, pair[1].key)
    return pair
