"""
Player ethics score.

A player's score is the sum of the ethics scores of the card variants
shown in their current deck, plus a donation-balance score in [-1, +1].

Which variant a deck slot shows depends on trophies:
- Slot 0 is always an evolution slot
- Slot 1 is an evolution slot above 3000 trophies
- Slot 2 is a hero slot from 5000 trophies
- Slot 3 is a hero slot from 10000 trophies

A slot shows a special variant only if the player has unlocked it and the
card has that variant; otherwise the base variant is scored.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from cardethics.analysis.ethics import to_ethics_score
from cardethics.config import DECK_SIZE
from cardethics.db.rating_store import RatingStore
from cardethics.models.card import Card, CardVariant
from cardethics.models.owned_card import OwnedCard
from cardethics.models.rating import RatingKey

logger = logging.getLogger(__name__)

SECOND_EVOLUTION_SLOT_TROPHIES = 3000  # strictly above
FIRST_HERO_SLOT_TROPHIES = 5000
SECOND_HERO_SLOT_TROPHIES = 10000


@dataclass(frozen=True, slots=True)
class ScoredSlot:
    """A deck slot with the variant shown and its ethics score."""

    slot: int
    card_id: int
    name: str
    variant: CardVariant
    ethics_score: float


@dataclass
class PlayerEthics:
    """Ethics breakdown for one player."""

    ethics_score: float
    deck_score: float
    donation_score: float
    donations: int
    donations_received: int
    slots: list[ScoredSlot] = field(default_factory=list)


def special_slot_layout(trophies: int) -> dict[int, CardVariant]:
    """Deck slots that show a special variant at a trophy count."""
    layout = {0: CardVariant.EVO}
    if trophies > SECOND_EVOLUTION_SLOT_TROPHIES:
        layout[1] = CardVariant.EVO
    if trophies >= FIRST_HERO_SLOT_TROPHIES:
        layout[2] = CardVariant.HERO
    if trophies >= SECOND_HERO_SLOT_TROPHIES:
        layout[3] = CardVariant.HERO
    return layout


def donation_score(donations: int, donations_received: int) -> float:
    """
    Score the balance between cards donated and cards received.

    With ratio = received / donated:
        ratio >= 2    -> -1  (takes twice what they give)
        ratio <= 0.5  -> +1  (gives twice what they take)
        1 < ratio < 2 -> linear from 0 down to -1
        0.5 < ratio <= 1 -> linear from +1 down to 0

    Receiving without ever donating scores -1; no activity scores 0.
    """
    if donations > 0:
        ratio = donations_received / donations
        if ratio >= 2:
            return -1.0
        if ratio <= 0.5:
            return 1.0
        if ratio > 1:
            return 1.0 - ratio
        return 2.0 - 2.0 * ratio
    if donations_received > 0:
        return -1.0
    return 0.0


def shown_variant(
    card: OwnedCard,
    slot: int,
    layout: Mapping[int, CardVariant],
    catalog: Mapping[int, Card] | None = None,
) -> CardVariant:
    variant = layout.get(slot, CardVariant.BASE)
    unlocked = (variant == CardVariant.EVO and card.has_evolution) or (
        variant == CardVariant.HERO and card.has_hero
    )
    if not unlocked:
        return CardVariant.BASE
    if catalog is not None:
        entry = catalog.get(card.card_id)
        if entry is None or not entry.has_variant(variant):
            return CardVariant.BASE
    return variant


def calculate_player_ethics(
    current_deck: Sequence[OwnedCard],
    trophies: int,
    donations: int,
    donations_received: int,
    store: RatingStore,
    catalog: Mapping[int, Card] | None = None,
) -> PlayerEthics:
    """
    Calculate a player's ethics score from their profile.

    Args:
        current_deck: Cards of the player's current deck in slot order;
            anything past the eighth card is ignored
        trophies: Current trophy count
        donations: Cards donated this season
        donations_received: Cards received this season
        store: Rating store supplying card variant ratings
        catalog: Optional catalog used to confirm a variant exists
    """
    layout = special_slot_layout(trophies)
    slots = []
    for index, card in enumerate(current_deck[:DECK_SIZE]):
        variant = shown_variant(card, index, layout, catalog)
        rating = store.get(RatingKey(card.card_id, variant)).rating
        slots.append(
            ScoredSlot(
                slot=index,
                card_id=card.card_id,
                name=card.name,
                variant=variant,
                ethics_score=to_ethics_score(rating),
            )
        )

    deck_score = sum(slot.ethics_score for slot in slots)
    donation = donation_score(donations, donations_received)
    logger.info(
        "Player ethics: deck %.3f + donations %.3f (%d received / %d donated)",
        deck_score,
        donation,
        donations_received,
        donations,
    )
    return PlayerEthics(
        ethics_score=deck_score + donation,
        deck_score=deck_score,
        donation_score=donation,
        donations=donations,
        donations_received=donations_received,
        slots=slots,
    )
