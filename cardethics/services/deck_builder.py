"""
Deck building service.

Builds an 8-slot deck from a player's owned cards for a target arena level.

Strategy:
1. Gate cards by normalized level against the arena target
2. Select a primary win condition (defense > beatdown > offense tiers)
3. Fall back to up to two secondary/bait threats
4. Guarantee one hero-eligible and one evolution-eligible card
5. Fill hero slots (2-3) and evolution slots (0-1)
6. Place remaining win conditions in base slots
7. Satisfy spell, damage, and style-specific category quotas
8. Greedy-fill remaining slots on level and elixir curve fit
9. Keep only one tank

Construction is deterministic: identical inputs produce identical decks.
"""

import logging
import math
from collections.abc import Collection, Iterable, Mapping, Sequence
from dataclasses import dataclass

from cardethics.config import (
    BASE_SLOTS,
    DECK_SIZE,
    DEFAULT_ARENA_TARGET_LEVEL,
    EVOLUTION_SLOTS,
    HERO_SLOTS,
    LEVEL_AGNOSTIC_ALLOWANCE,
    NEUTRAL_WIN_RATE,
    TARGET_AVERAGE_ELIXIR,
)
from cardethics.models.card import Rarity
from cardethics.models.deck import BuiltDeck, WinConditionCategory
from cardethics.models.failure import InvalidDeckInputError
from cardethics.models.owned_card import OwnedCard
from cardethics.services.taxonomy import (
    DEFAULT_TAXONOMY,
    PRIMARY_WIN_CONDITION_TIERS,
    WIN_CONDITION_STYLES,
    CardTaxonomy,
    Category,
)

logger = logging.getLogger(__name__)

# Categories every deck should cover at least once, in placement order
CORE_CATEGORIES: tuple[Category, ...] = (
    Category.BIG_SPELL,
    Category.MINI_SPELL,
    Category.GROUND_DAMAGE,
    Category.AIR_DAMAGE,
)

# Minimum cards per category by deck style, in placement order
STYLE_QUOTAS: dict[WinConditionCategory, tuple[tuple[Category, int], ...]] = {
    WinConditionCategory.DEFENSE: (
        (Category.MINI_TANK, 1),
        (Category.CYCLE, 2),
        (Category.STRUCTURE, 1),
    ),
    WinConditionCategory.SECONDARY: (
        (Category.MINI_TANK, 1),
        (Category.CYCLE, 2),
        (Category.STRUCTURE, 1),
    ),
    WinConditionCategory.OFFENSE: (
        (Category.MINI_TANK, 1),
        (Category.CYCLE, 1),
        (Category.STRUCTURE, 1),
    ),
    WinConditionCategory.BEATDOWN: ((Category.SUPPORT, 2),),
}

# Quota categories that evict a base card when no slot is free
FORCED_CATEGORIES = frozenset({Category.STRUCTURE})

MAX_SECONDARY_WIN_CONDITIONS = 2


@dataclass(frozen=True)
class SpecialSlotQuota:
    """
    How many evolution/hero-eligible cards one deck may take into special slots.

    With hold_back set, eligible cards that did not get a special slot are
    kept out of the rest of the deck so a later deck can use them.
    """

    evolution: int = len(EVOLUTION_SLOTS)
    hero: int = len(HERO_SLOTS)
    hold_back: bool = False


@dataclass(frozen=True, slots=True)
class DeckCandidate:
    """An owned card that passed the level gate, with its ranking inputs."""

    card: OwnedCard
    level: int
    index: int  # position in the original inventory
    win_rate: float
    categories: frozenset[Category]

    @property
    def card_id(self) -> int:
        return self.card.card_id

    @property
    def elixir_cost(self) -> int:
        return self.card.elixir_cost

    def has(self, category: Category) -> bool:
        return category in self.categories


def rank_key(candidate: DeckCandidate) -> tuple[int, float, int]:
    """Sort key: higher level, then higher win rate, then inventory order."""
    return (-candidate.level, -candidate.win_rate, candidate.index)


def combined_score(candidate: DeckCandidate, deck_cards: Sequence[DeckCandidate]) -> float:
    """
    Greedy fill score for adding a candidate to a deck.

    2 * level - |next_average_elixir - TARGET_AVERAGE_ELIXIR|, where the
    next average includes the candidate.
    """
    total = sum(card.elixir_cost for card in deck_cards) + candidate.elixir_cost
    next_average = total / (len(deck_cards) + 1)
    return 2 * candidate.level - abs(next_average - TARGET_AVERAGE_ELIXIR)


def fit_key(
    candidate: DeckCandidate, deck_cards: Sequence[DeckCandidate]
) -> tuple[float, int, float, int]:
    """Max-is-best key: combined score, then level, win rate, inventory order."""
    return (
        combined_score(candidate, deck_cards),
        candidate.level,
        candidate.win_rate,
        -candidate.index,
    )


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def average_elixir(slots: Iterable[OwnedCard | None]) -> float:
    """Mean elixir of filled slots, one decimal. 0.0 for an empty deck."""
    costs = [card.elixir_cost for card in slots if card is not None]
    if not costs:
        return 0.0
    return round(sum(costs) / len(costs), 1)


class _SlotBoard:
    """Slot layout for a single build. Enforces one copy per card id."""

    def __init__(self) -> None:
        self.slots: list[DeckCandidate | None] = [None] * DECK_SIZE
        self.placed: set[int] = set()

    def put(self, slot: int, candidate: DeckCandidate) -> bool:
        if self.slots[slot] is not None or candidate.card_id in self.placed:
            return False
        self.slots[slot] = candidate
        self.placed.add(candidate.card_id)
        return True

    def clear(self, slot: int) -> DeckCandidate | None:
        removed = self.slots[slot]
        if removed is not None:
            self.slots[slot] = None
            self.placed.discard(removed.card_id)
        return removed

    def filled(self, exclude_slot: int | None = None) -> list[DeckCandidate]:
        return [
            card
            for slot, card in enumerate(self.slots)
            if card is not None and slot != exclude_slot
        ]

    def count(self, category: Category) -> int:
        return sum(1 for card in self.filled() if card.has(category))

    def is_placed(self, candidate: DeckCandidate) -> bool:
        return candidate.card_id in self.placed


def build_deck(
    owned_cards: Sequence[OwnedCard],
    arena_target_level: float | None = None,
    *,
    win_rates: Mapping[int, float] | None = None,
    taxonomy: CardTaxonomy = DEFAULT_TAXONOMY,
    preferred_win_condition: WinConditionCategory | None = None,
    exclude_card_ids: Collection[int] = (),
    special_slot_quota: SpecialSlotQuota | None = None,
) -> BuiltDeck:
    """
    Build a deck from a player's owned cards.

    Args:
        owned_cards: Player inventory, in profile order (used as final tie-break)
        arena_target_level: Average normalized level for the player's arena;
            None means no historical average (defaults to the level ceiling)
        win_rates: Observed win rate per card id, used only to break ties
        taxonomy: Category lookup for card names
        preferred_win_condition: Restrict the win condition to one style
        exclude_card_ids: Cards unavailable to this deck (e.g., used by another war deck)
        special_slot_quota: Caps on evolution/hero cards in special slots

    Returns:
        BuiltDeck with exactly 8 slots; unfilled slots are None

    Raises:
        InvalidDeckInputError: If the arena target level is not a finite number
    """
    target = _resolve_target_level(arena_target_level)
    quota = special_slot_quota or SpecialSlotQuota()
    rates = win_rates or {}
    notes: list[str] = []

    # Step 1: level gate
    candidates = _gate_candidates(owned_cards, target, rates, taxonomy, exclude_card_ids)

    # Steps 2-3: win conditions
    selected, category = _select_win_conditions(candidates, preferred_win_condition)
    win_condition_ids = {c.card_id for c in selected}
    if selected:
        notes.append(
            f"Win condition ({category.value}): " + ", ".join(c.card.name for c in selected)
        )
    else:
        notes.append("No win condition available")
    logger.debug(
        "Selected win conditions %s (%s)", [c.card.name for c in selected], category.value
    )

    # Step 4: evolution/hero guarantee
    selected_ids = {c.card_id for c in selected}
    if quota.hero > 0 and not any(c.card.has_hero for c in selected):
        hero = _best(c for c in candidates if c.card.has_hero and c.card_id not in selected_ids)
        if hero is not None:
            selected.append(hero)
            selected_ids.add(hero.card_id)
    if quota.evolution > 0 and not any(c.card.has_evolution for c in selected):
        evolution = _best(
            c for c in candidates if c.card.has_evolution and c.card_id not in selected_ids
        )
        if evolution is not None:
            selected.append(evolution)
            selected_ids.add(evolution.card_id)

    # Step 5: special slots
    board = _SlotBoard()
    _fill_special_slots(board, candidates, selected, quota)
    if quota.hold_back:
        candidates = [
            c
            for c in candidates
            if c.card_id in selected_ids
            or board.is_placed(c)
            or not (c.card.has_evolution or c.card.has_hero)
        ]

    # Step 6: base slots
    if any(board.slots[slot] is None for slot in (*EVOLUTION_SLOTS, *HERO_SLOTS)):
        base_slots: tuple[int, ...] = tuple(range(DECK_SIZE))
    else:
        base_slots = BASE_SLOTS

    for candidate in selected:
        if candidate.card_id in win_condition_ids:
            _place_in_base_slot(board, base_slots, candidate)

    # Step 7: category quotas
    for core in CORE_CATEGORIES:
        if board.count(core) == 0:
            pick = _best_in(candidates, board, core)
            if pick is not None:
                _place_in_base_slot(board, base_slots, pick)

    for quota_category, desired in STYLE_QUOTAS[category]:
        _ensure_count(board, base_slots, candidates, quota_category, desired)
        if quota_category in FORCED_CATEGORIES and board.count(quota_category) == 0:
            _force_insert(board, candidates, quota_category, selected_ids)

    # Step 8: greedy fill
    while (slot := _next_free(board, base_slots)) is not None:
        remaining = [c for c in candidates if not board.is_placed(c)]
        if not remaining:
            break
        board.put(slot, _best_fit(remaining, board.filled()))

    # Step 9: tank deduplication
    replaced = _deduplicate_tanks(board, candidates, win_condition_ids)
    if replaced:
        notes.append(f"Replaced {replaced} duplicate tank(s)")

    slots = [c.card if c is not None else None for c in board.slots]
    filled = sum(1 for card in slots if card is not None)
    if filled < DECK_SIZE:
        notes.append(f"Only {filled} of {DECK_SIZE} slots could be filled")

    return BuiltDeck(
        slots=slots,
        average_elixir=average_elixir(slots),
        win_condition_category=category,
        win_conditions=[c.card for c in selected if c.card_id in win_condition_ids],
        notes=notes,
    )


def _resolve_target_level(arena_target_level: float | None) -> float:
    if arena_target_level is None:
        return DEFAULT_ARENA_TARGET_LEVEL
    if isinstance(arena_target_level, bool) or not isinstance(arena_target_level, int | float):
        raise InvalidDeckInputError(
            "Arena target level must be a number",
            detail=f"got {type(arena_target_level).__name__}",
        )
    if not math.isfinite(arena_target_level):
        raise InvalidDeckInputError(
            "Arena target level must be finite",
            detail=f"got {arena_target_level!r}",
        )
    return float(arena_target_level)


def _gate_candidates(
    owned_cards: Sequence[OwnedCard],
    target_level: float,
    win_rates: Mapping[int, float],
    taxonomy: CardTaxonomy,
    exclude_card_ids: Collection[int],
) -> list[DeckCandidate]:
    """Apply the level gate and resolve categories once per card."""
    min_level = round_half_up(target_level) - 1
    agnostic_min_level = min_level - LEVEL_AGNOSTIC_ALLOWANCE

    candidates: list[DeckCandidate] = []
    seen: set[int] = set()
    for index, card in enumerate(owned_cards):
        if card.card_id in seen or card.card_id in exclude_card_ids:
            continue
        seen.add(card.card_id)

        categories = taxonomy.categories_of(card.name)
        level = card.normalized_level
        floor = agnostic_min_level if Category.LEVEL_AGNOSTIC in categories else min_level
        if level < floor:
            continue

        candidates.append(
            DeckCandidate(
                card=card,
                level=level,
                index=index,
                win_rate=win_rates.get(card.card_id, NEUTRAL_WIN_RATE),
                categories=categories,
            )
        )
    return candidates


def _select_win_conditions(
    candidates: list[DeckCandidate],
    preferred: WinConditionCategory | None,
) -> tuple[list[DeckCandidate], WinConditionCategory]:
    """
    Pick the primary win condition, or up to two secondary threats.

    The primary is the highest-level card across all primary tiers; on a
    level tie the earlier tier wins, then inventory order.
    """
    tiers = [
        tier
        for tier in PRIMARY_WIN_CONDITION_TIERS
        if preferred is None or WIN_CONDITION_STYLES[tier] == preferred
    ]
    primary_pool = [c for c in candidates if any(c.has(tier) for tier in tiers)]
    if primary_pool:
        top_level = max(c.level for c in primary_pool)
        for tier in tiers:
            match = next((c for c in candidates if c.has(tier) and c.level == top_level), None)
            if match is not None:
                return [match], WIN_CONDITION_STYLES[tier]

    secondary = sorted(
        (c for c in candidates if c.has(Category.WIN_CONDITION_SECONDARY)), key=rank_key
    )
    return secondary[:MAX_SECONDARY_WIN_CONDITIONS], WinConditionCategory.SECONDARY


def _fill_special_slots(
    board: _SlotBoard,
    candidates: list[DeckCandidate],
    selected: list[DeckCandidate],
    quota: SpecialSlotQuota,
) -> None:
    """Hero slots first (champions, then hero-eligible), then evolution slots."""
    champions = [c for c in selected if c.card.rarity == Rarity.CHAMPION]
    for slot, champion in zip(HERO_SLOTS, champions, strict=False):
        board.put(slot, champion)

    heroes = sorted((c for c in candidates if c.card.has_hero), key=rank_key)
    _fill_slots(board, HERO_SLOTS, heroes, quota.hero, "hero")

    evolutions = sorted((c for c in candidates if c.card.has_evolution), key=rank_key)
    _fill_slots(board, EVOLUTION_SLOTS, evolutions, quota.evolution, "evolution")

    logger.debug(
        "Special slots filled: evolution=%d hero=%d",
        sum(1 for slot in EVOLUTION_SLOTS if board.slots[slot] is not None),
        sum(1 for slot in HERO_SLOTS if board.slots[slot] is not None),
    )


def _fill_slots(
    board: _SlotBoard,
    slots: tuple[int, ...],
    ranked: list[DeckCandidate],
    limit: int,
    label: str,
) -> None:
    placed = 0
    for slot in slots:
        if placed >= limit:
            return
        if board.slots[slot] is not None:
            continue
        for candidate in ranked:
            if board.is_placed(candidate):
                continue
            logger.debug(
                "%s slot %d takes %s (lvl %d)", label, slot, candidate.card.name, candidate.level
            )
            board.put(slot, candidate)
            placed += 1
            break


def _next_free(board: _SlotBoard, base_slots: tuple[int, ...]) -> int | None:
    return next((slot for slot in base_slots if board.slots[slot] is None), None)


def _place_in_base_slot(
    board: _SlotBoard, base_slots: tuple[int, ...], candidate: DeckCandidate
) -> bool:
    slot = _next_free(board, base_slots)
    if slot is None:
        return False
    return board.put(slot, candidate)


def _best(pool: Iterable[DeckCandidate]) -> DeckCandidate | None:
    ranked = sorted(pool, key=rank_key)
    return ranked[0] if ranked else None


def _best_fit(
    pool: Sequence[DeckCandidate], deck_cards: Sequence[DeckCandidate]
) -> DeckCandidate:
    return max(pool, key=lambda c: fit_key(c, deck_cards))


def _best_in(
    candidates: list[DeckCandidate], board: _SlotBoard, category: Category
) -> DeckCandidate | None:
    return _best(c for c in candidates if c.has(category) and not board.is_placed(c))


def _ensure_count(
    board: _SlotBoard,
    base_slots: tuple[int, ...],
    candidates: list[DeckCandidate],
    category: Category,
    desired: int,
) -> None:
    count = board.count(category)
    while count < desired:
        pick = _best_in(candidates, board, category)
        if pick is None or not _place_in_base_slot(board, base_slots, pick):
            return
        count += 1


def _force_insert(
    board: _SlotBoard,
    candidates: list[DeckCandidate],
    category: Category,
    protected_ids: set[int],
) -> None:
    """
    Evict the weakest evictable base card to make room for a category.

    Evictable: slots 4-7 holding a card that is neither selected (win
    condition or guaranteed special card) nor already in the category.
    """
    pick = _best_in(candidates, board, category)
    if pick is None:
        return

    evictable = [
        slot
        for slot in BASE_SLOTS
        if (card := board.slots[slot]) is not None
        and card.card_id not in protected_ids
        and not card.has(category)
    ]
    if not evictable:
        return

    def eviction_key(slot: int) -> tuple[float, int, float, int]:
        return fit_key(board.slots[slot], board.filled(exclude_slot=slot))  # type: ignore[arg-type]

    victim_slot = min(evictable, key=eviction_key)
    victim = board.clear(victim_slot)
    board.put(victim_slot, pick)
    logger.debug(
        "Evicted %s from slot %d for %s",
        victim.card.name if victim else None,
        victim_slot,
        pick.card.name,
    )


def _slot_accepts(slot: int, candidate: DeckCandidate) -> bool:
    """Whether a card's own unlock state allows it in a special slot."""
    if slot in HERO_SLOTS:
        return candidate.card.has_hero or candidate.card.rarity == Rarity.CHAMPION
    if slot in EVOLUTION_SLOTS:
        return candidate.card.has_evolution
    return True


def _slot_range(slot: int) -> tuple[int, ...]:
    if slot in HERO_SLOTS:
        return HERO_SLOTS
    if slot in EVOLUTION_SLOTS:
        return EVOLUTION_SLOTS
    return ()


def _range_covered_without(board: _SlotBoard, slot: int) -> bool:
    """Whether another slot in the same special range holds an eligible card."""
    return any(
        (card := board.slots[other]) is not None and _slot_accepts(other, card)
        for other in _slot_range(slot)
        if other != slot
    )


def _deduplicate_tanks(
    board: _SlotBoard,
    candidates: list[DeckCandidate],
    win_condition_ids: set[int],
) -> int:
    """
    Keep a single tank; refill other tank slots with non-tanks.

    A tank that is a selected win condition is always the keeper. Special
    slots are refilled with cards eligible for them first. A special-slot
    tank that is the last eligible card of its range and has no eligible
    replacement stays in place.
    """
    tank_slots = [
        slot
        for slot, card in enumerate(board.slots)
        if card is not None and card.has(Category.TANK)
    ]
    if len(tank_slots) <= 1:
        return 0

    non_tanks = [card for card in board.filled() if not card.has(Category.TANK)]
    protected = [
        slot
        for slot in tank_slots
        if board.slots[slot].card_id in win_condition_ids  # type: ignore[union-attr]
    ]
    keeper = max(
        protected or tank_slots,
        key=lambda slot: fit_key(board.slots[slot], non_tanks),  # type: ignore[arg-type]
    )

    replaced = 0
    for slot in tank_slots:
        if slot == keeper:
            continue
        pool = [c for c in candidates if not c.has(Category.TANK) and not board.is_placed(c)]
        eligible = [c for c in pool if _slot_accepts(slot, c)]
        tank = board.slots[slot]
        if (
            _slot_range(slot)
            and not eligible
            and tank is not None
            and _slot_accepts(slot, tank)
            and not _range_covered_without(board, slot)
        ):
            logger.debug("Kept tank %s in slot %d, no eligible replacement", tank.card.name, slot)
            continue

        removed = board.clear(slot)
        replaced += 1
        if not pool:
            logger.debug(
                "Dropped tank %s from slot %d, no replacement",
                removed.card.name if removed else None,
                slot,
            )
            continue
        replacement = _best_fit(eligible or pool, board.filled())
        board.put(slot, replacement)
        logger.debug(
            "Replaced tank %s in slot %d with %s",
            removed.card.name if removed else None,
            slot,
            replacement.card.name,
        )
    return replaced
