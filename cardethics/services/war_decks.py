"""
Multi-deck building: clan war deck sets and per-win-condition deck choices.

War decks never share a card. Decks are built one at a time; every card
placed in an earlier deck is excluded from the later ones.
"""

import logging
import math
from collections.abc import Mapping, Sequence

from cardethics.config import EVOLUTION_SLOTS, HERO_SLOTS, settings
from cardethics.models.deck import (
    BuiltDeck,
    DeckOption,
    WarDeckStrategy,
    WinConditionCategory,
    WinConditionDeckSet,
)
from cardethics.models.failure import InvalidDeckInputError
from cardethics.models.owned_card import OwnedCard
from cardethics.services.deck_builder import SpecialSlotQuota, build_deck
from cardethics.services.taxonomy import DEFAULT_TAXONOMY, CardTaxonomy

logger = logging.getLogger(__name__)

# Order in which win-condition deck options are offered
WIN_CONDITION_PREFERENCES: tuple[WinConditionCategory, ...] = (
    WinConditionCategory.DEFENSE,
    WinConditionCategory.BEATDOWN,
    WinConditionCategory.OFFENSE,
    WinConditionCategory.SECONDARY,
)


def parse_strategy(strategy: WarDeckStrategy | str) -> WarDeckStrategy:
    """
    Resolve a strategy name.

    Raises:
        InvalidDeckInputError: If the strategy is not recognized
    """
    try:
        return WarDeckStrategy(strategy)
    except ValueError:
        valid = ", ".join(s.value for s in WarDeckStrategy)
        raise InvalidDeckInputError(
            f"Unknown war deck strategy '{strategy}'",
            detail=f"expected one of: {valid}",
        ) from None


def fair_share(remaining_eligible: int, remaining_decks: int, slot_count: int) -> int:
    """Special-slot cap for the next deck when spreading cards evenly."""
    share = max(1, math.ceil(remaining_eligible / max(1, remaining_decks)))
    return min(slot_count, share)


def build_war_decks(
    owned_cards: Sequence[OwnedCard],
    arena_target_level: float | None = None,
    strategy: WarDeckStrategy | str = WarDeckStrategy.BALANCED,
    *,
    deck_count: int | None = None,
    win_rates: Mapping[int, float] | None = None,
    taxonomy: CardTaxonomy = DEFAULT_TAXONOMY,
) -> list[BuiltDeck]:
    """
    Build a set of decks with no card shared between them.

    Args:
        owned_cards: Player inventory
        arena_target_level: Average normalized level for the arena
        strategy: "balanced" spreads evolution/hero cards across the decks,
            "stacked" lets the earliest decks take all of them
        deck_count: Number of decks (defaults to settings.war_deck_count)
        win_rates: Observed win rate per card id
        taxonomy: Category lookup

    Returns:
        deck_count decks in build order; later decks may be partially filled

    Raises:
        InvalidDeckInputError: On an unknown strategy or a deck count below 1
    """
    resolved = parse_strategy(strategy)
    count = settings.war_deck_count if deck_count is None else deck_count
    if count < 1:
        raise InvalidDeckInputError(
            "Deck count must be at least 1",
            detail=f"got {count}",
        )

    decks: list[BuiltDeck] = []
    used: set[int] = set()
    for position in range(count):
        quota = None
        if resolved == WarDeckStrategy.BALANCED:
            remaining = [card for card in owned_cards if card.card_id not in used]
            remaining_decks = count - position
            quota = SpecialSlotQuota(
                evolution=fair_share(
                    sum(1 for card in remaining if card.has_evolution),
                    remaining_decks,
                    len(EVOLUTION_SLOTS),
                ),
                hero=fair_share(
                    sum(1 for card in remaining if card.has_hero),
                    remaining_decks,
                    len(HERO_SLOTS),
                ),
                hold_back=True,
            )

        deck = build_deck(
            owned_cards,
            arena_target_level,
            win_rates=win_rates,
            taxonomy=taxonomy,
            exclude_card_ids=used,
            special_slot_quota=quota,
        )
        used.update(deck.card_ids())
        decks.append(deck)
        logger.debug(
            "War deck %d/%d (%s): %d cards, %.1f avg elixir",
            position + 1,
            count,
            resolved.value,
            deck.filled_count(),
            deck.average_elixir,
        )

    logger.info(
        "Built %d war decks (%s) using %d distinct cards", count, resolved.value, len(used)
    )
    return decks


def build_win_condition_decks(
    owned_cards: Sequence[OwnedCard],
    arena_target_level: float | None = None,
    *,
    win_rates: Mapping[int, float] | None = None,
    taxonomy: CardTaxonomy = DEFAULT_TAXONOMY,
) -> WinConditionDeckSet:
    """
    Build one deck per win-condition style the inventory can support.

    A style is offered only when the inventory has a win condition for it.
    optimal_index points at the option identical to the unconstrained build.
    """
    optimal = build_deck(
        owned_cards, arena_target_level, win_rates=win_rates, taxonomy=taxonomy
    )

    options: list[DeckOption] = []
    for preference in WIN_CONDITION_PREFERENCES:
        deck = build_deck(
            owned_cards,
            arena_target_level,
            win_rates=win_rates,
            taxonomy=taxonomy,
            preferred_win_condition=preference,
        )
        if not deck.win_conditions or deck.win_condition_category != preference:
            continue
        options.append(
            DeckOption(
                deck=deck,
                label=f"{preference.value.title()} deck",
                preferred_win_condition=preference,
            )
        )

    for index, option in enumerate(options):
        if (
            option.deck.slots == optimal.slots
            and option.deck.win_condition_category == optimal.win_condition_category
        ):
            return WinConditionDeckSet(decks=options, optimal_index=index)

    # No style matched (e.g., no win condition at all): offer the plain build
    options.insert(0, DeckOption(deck=optimal, label="Optimal deck"))
    return WinConditionDeckSet(decks=options, optimal_index=0)
