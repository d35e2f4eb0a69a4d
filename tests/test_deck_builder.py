"""Tests for deck builder service."""

import math
from collections.abc import Callable

import pytest

from cardethics.models.card import Rarity
from cardethics.models.deck import BuiltDeck, WinConditionCategory
from cardethics.models.failure import FailureKind, InvalidDeckInputError
from cardethics.models.owned_card import OwnedCard, UnlockState
from cardethics.services.deck_builder import (
    DeckCandidate,
    SpecialSlotQuota,
    average_elixir,
    build_deck,
    combined_score,
    rank_key,
    round_half_up,
)
from cardethics.services.taxonomy import DEFAULT_TAXONOMY, Category

OwnedCardFactory = Callable[..., OwnedCard]


def _names(deck: BuiltDeck) -> list[str | None]:
    return [card.name if card else None for card in deck.slots]


def _assert_valid(deck: BuiltDeck) -> None:
    assert len(deck.slots) == 8
    ids = deck.card_ids()
    assert len(ids) == len(set(ids))
    costs = [card.elixir_cost for card in deck.cards()]
    expected = sum(costs) / len(costs) if costs else 0.0
    assert abs(deck.average_elixir - expected) <= 0.05 + 1e-9


@pytest.fixture
def siege_inventory(make_owned: OwnedCardFactory) -> list[OwnedCard]:
    """Hog Rider deck with one card for every quota."""
    return [
        make_owned(1, "Hog Rider", elixir=4),
        make_owned(2, "Fireball", elixir=4),
        make_owned(3, "The Log", elixir=2),
        make_owned(4, "Musketeer", elixir=4),
        make_owned(5, "Knight", elixir=3),
        make_owned(6, "Ice Spirit", elixir=1),
        make_owned(7, "Skeletons", elixir=1),
        make_owned(8, "Cannon", elixir=3),
        make_owned(9, "Valkyrie", elixir=4),
        make_owned(10, "Archers", elixir=3),
    ]


@pytest.fixture
def beatdown_inventory(make_owned: OwnedCardFactory) -> list[OwnedCard]:
    """Golem deck whose greedy fill picks up a second tank."""
    return [
        make_owned(1, "Golem", level=15, elixir=8),
        make_owned(2, "Giant", elixir=5),
        make_owned(3, "P.E.K.K.A", elixir=7),
        make_owned(4, "Fireball", elixir=4),
        make_owned(5, "Zap", elixir=2),
        make_owned(6, "Musketeer", elixir=4),
        make_owned(7, "Night Witch", elixir=4),
        make_owned(8, "Witch", elixir=5),
        make_owned(9, "Arrows", elixir=3),
        make_owned(10, "Bats", level=13, elixir=2),
    ]


class TestHelpers:
    def test_round_half_up(self) -> None:
        assert round_half_up(13.5) == 14
        assert round_half_up(14.5) == 15
        assert round_half_up(14.49) == 14
        assert round_half_up(16.0) == 16

    def test_average_elixir(self, make_owned: OwnedCardFactory) -> None:
        assert average_elixir([None] * 8) == 0.0
        cards = [make_owned(1, "A", elixir=3), None, make_owned(2, "B", elixir=4)]
        assert average_elixir(cards) == 3.5

    def test_combined_score(self, make_owned: OwnedCardFactory) -> None:
        """2 * level minus distance of the next average from 3.6."""
        deck = [
            DeckCandidate(make_owned(1, "A", elixir=4), 14, 0, 0.5, frozenset()),
            DeckCandidate(make_owned(2, "B", elixir=2), 14, 1, 0.5, frozenset()),
        ]
        candidate = DeckCandidate(make_owned(3, "C", elixir=6), 13, 2, 0.5, frozenset())

        assert combined_score(candidate, deck) == pytest.approx(26 - 0.4)

    def test_rank_key_order(self, make_owned: OwnedCardFactory) -> None:
        low = DeckCandidate(make_owned(1, "A"), 13, 0, 0.9, frozenset())
        high = DeckCandidate(make_owned(2, "B"), 14, 5, 0.1, frozenset())
        high_rate = DeckCandidate(make_owned(3, "C"), 14, 6, 0.6, frozenset())
        early = DeckCandidate(make_owned(4, "D"), 14, 1, 0.6, frozenset())

        ranked = sorted([low, high, high_rate, early], key=rank_key)

        assert [c.card.name for c in ranked] == ["D", "C", "B", "A"]


class TestBuildDeckBasics:
    def test_empty_inventory(self) -> None:
        deck = build_deck([], 14.0)

        assert deck.slots == [None] * 8
        assert deck.average_elixir == 0.0
        assert deck.win_condition_category == WinConditionCategory.SECONDARY
        assert deck.win_conditions == []

    def test_partial_inventory_leaves_empty_slots(self, make_owned: OwnedCardFactory) -> None:
        deck = build_deck(
            [make_owned(1, "Knight"), make_owned(2, "Fireball", elixir=4)],
            14.0,
        )

        assert deck.filled_count() == 2
        assert deck.slots.count(None) == 6
        _assert_valid(deck)

    def test_full_siege_deck(self, siege_inventory: list[OwnedCard]) -> None:
        deck = build_deck(siege_inventory, 14.0)

        assert _names(deck) == [
            "Hog Rider",
            "Fireball",
            "The Log",
            "Musketeer",
            "Knight",
            "Ice Spirit",
            "Skeletons",
            "Cannon",
        ]
        assert deck.win_condition_category == WinConditionCategory.DEFENSE
        assert [card.name for card in deck.win_conditions] == ["Hog Rider"]
        assert deck.average_elixir == pytest.approx(2.75, abs=0.051)
        _assert_valid(deck)

    def test_deterministic(self, siege_inventory: list[OwnedCard]) -> None:
        first = build_deck(siege_inventory, 14.0, win_rates={5: 0.52, 9: 0.55})
        second = build_deck(siege_inventory, 14.0, win_rates={5: 0.52, 9: 0.55})

        assert first == second

    def test_duplicate_inventory_entries_used_once(self, make_owned: OwnedCardFactory) -> None:
        knight = make_owned(1, "Knight")
        deck = build_deck([knight, knight, make_owned(2, "Zap", elixir=2)], 14.0)

        assert deck.card_ids().count(1) == 1
        _assert_valid(deck)

    def test_excluded_cards_are_skipped(self, siege_inventory: list[OwnedCard]) -> None:
        deck = build_deck(siege_inventory, 14.0, exclude_card_ids={1, 2})

        assert 1 not in deck.card_ids()
        assert 2 not in deck.card_ids()
        _assert_valid(deck)


class TestTargetLevel:
    def test_non_finite_target_rejected(self, siege_inventory: list[OwnedCard]) -> None:
        for bad in (math.nan, math.inf, -math.inf):
            with pytest.raises(InvalidDeckInputError) as exc_info:
                build_deck(siege_inventory, bad)
            assert exc_info.value.kind == FailureKind.INVALID_INPUT

    def test_non_numeric_target_rejected(self, siege_inventory: list[OwnedCard]) -> None:
        with pytest.raises(InvalidDeckInputError):
            build_deck(siege_inventory, "14")  # type: ignore[arg-type]

    def test_missing_target_uses_level_ceiling(self, siege_inventory: list[OwnedCard]) -> None:
        """Without an arena average the floor is 15; only level-agnostic cards pass at 14."""
        deck = build_deck(siege_inventory, None)

        assert deck.card_ids() == [7]

    def test_level_gate(self, make_owned: OwnedCardFactory) -> None:
        inventory = [
            make_owned(1, "Knight", level=12),
            make_owned(2, "Ice Spirit", level=13, elixir=1),
            make_owned(3, "Skeletons", level=11, elixir=1),
            make_owned(4, "Freeze", level=10, elixir=4),
        ]

        deck = build_deck(inventory, 14.0)

        assert sorted(deck.card_ids()) == [2, 3]

    def test_target_rounds_half_up(self, make_owned: OwnedCardFactory) -> None:
        """14.5 rounds to 15, so the floor is 14."""
        inventory = [make_owned(1, "Knight", level=13), make_owned(2, "Valkyrie", level=14)]

        deck = build_deck(inventory, 14.5)

        assert deck.card_ids() == [2]

    def test_normalized_levels_compare_across_rarities(
        self, make_owned: OwnedCardFactory
    ) -> None:
        inventory = [
            make_owned(1, "Princess", level=6, rarity=Rarity.LEGENDARY),
            make_owned(2, "Baby Dragon", level=7, rarity=Rarity.EPIC),
        ]

        deck = build_deck(inventory, 14.0)

        assert deck.card_ids() == [1]


class TestWinConditionSelection:
    def test_highest_level_across_tiers(self, make_owned: OwnedCardFactory) -> None:
        inventory = [make_owned(1, "Hog Rider", level=14), make_owned(2, "Golem", level=15)]

        deck = build_deck(inventory, 14.0)

        assert deck.win_conditions[0].name == "Golem"
        assert deck.win_condition_category == WinConditionCategory.BEATDOWN

    def test_level_tie_prefers_defense_tier(self, make_owned: OwnedCardFactory) -> None:
        inventory = [make_owned(1, "Golem", level=14), make_owned(2, "Hog Rider", level=14)]

        deck = build_deck(inventory, 14.0)

        assert deck.win_conditions[0].name == "Hog Rider"
        assert deck.win_condition_category == WinConditionCategory.DEFENSE

    def test_preferred_win_condition(self, make_owned: OwnedCardFactory) -> None:
        inventory = [make_owned(1, "Hog Rider", level=14), make_owned(2, "Golem", level=15)]

        deck = build_deck(inventory, 14.0, preferred_win_condition=WinConditionCategory.DEFENSE)

        assert deck.win_conditions[0].name == "Hog Rider"

    def test_secondary_fallback(self, make_owned: OwnedCardFactory) -> None:
        """Without a primary, the top two secondary threats are selected."""
        inventory = [
            make_owned(1, "Goblin Barrel", level=14),
            make_owned(2, "Princess", level=15),
            make_owned(3, "Bandit", level=14),
            make_owned(4, "Fireball", level=14, elixir=4),
        ]

        deck = build_deck(inventory, 14.0, win_rates={3: 0.6})

        assert deck.win_condition_category == WinConditionCategory.SECONDARY
        assert [card.name for card in deck.win_conditions] == ["Princess", "Bandit"]

    def test_secondary_preference_skips_primary(self, make_owned: OwnedCardFactory) -> None:
        inventory = [make_owned(1, "Hog Rider", level=15), make_owned(2, "Bandit", level=14)]

        deck = build_deck(
            inventory, 14.0, preferred_win_condition=WinConditionCategory.SECONDARY
        )

        assert [card.name for card in deck.win_conditions] == ["Bandit"]
        assert deck.win_condition_category == WinConditionCategory.SECONDARY

    def test_no_win_condition(self, make_owned: OwnedCardFactory) -> None:
        deck = build_deck([make_owned(1, "Knight")], 14.0)

        assert deck.win_conditions == []
        assert deck.win_condition_category == WinConditionCategory.SECONDARY
        assert "No win condition available" in deck.notes


class TestSpecialSlots:
    def test_evolution_and_hero_slots(
        self, siege_inventory: list[OwnedCard], make_owned: OwnedCardFactory
    ) -> None:
        inventory = list(siege_inventory)
        inventory[4] = make_owned(5, "Knight", unlock=UnlockState.EVOLUTION_ONLY)
        inventory[9] = make_owned(10, "Archers", unlock=UnlockState.HERO_ONLY)

        deck = build_deck(inventory, 14.0)

        assert deck.slots[0] is not None and deck.slots[0].name == "Knight"
        assert deck.slots[2] is not None and deck.slots[2].name == "Archers"
        _assert_valid(deck)

    def test_champion_win_condition_takes_hero_slot(self, make_owned: OwnedCardFactory) -> None:
        inventory = [
            make_owned(1, "Knight"),
            make_owned(2, "Boss Bandit", level=4, elixir=6, rarity=Rarity.CHAMPION),
        ]

        deck = build_deck(inventory, 14.0)

        assert deck.slots[2] is not None and deck.slots[2].name == "Boss Bandit"
        assert deck.win_condition_category == WinConditionCategory.OFFENSE

    def test_zero_quota_keeps_cards_in_regular_slots(
        self, make_owned: OwnedCardFactory
    ) -> None:
        inventory = [make_owned(1, "Knight", unlock=UnlockState.EVOLUTION_ONLY)]

        deck = build_deck(inventory, 14.0, special_slot_quota=SpecialSlotQuota(0, 0))

        assert deck.card_ids() == [1]

    def test_hold_back_excludes_unslotted_special_cards(
        self, make_owned: OwnedCardFactory
    ) -> None:
        inventory = [
            make_owned(1, "Knight", unlock=UnlockState.EVOLUTION_ONLY),
            make_owned(2, "Archers", unlock=UnlockState.EVOLUTION_ONLY),
            make_owned(3, "Zap", elixir=2),
        ]

        deck = build_deck(
            inventory, 14.0, special_slot_quota=SpecialSlotQuota(1, 1, hold_back=True)
        )

        assert sorted(deck.card_ids()) == [1, 3]


class TestQuotas:
    def test_structure_is_forced_into_full_deck(self, make_owned: OwnedCardFactory) -> None:
        """With every slot taken, the weakest base card makes way for a structure."""
        inventory = [
            make_owned(1, "Hog Rider", elixir=4),
            make_owned(2, "Fireball", elixir=4),
            make_owned(3, "The Log", elixir=2),
            make_owned(4, "Musketeer", elixir=4),
            make_owned(5, "Cannon", level=13, elixir=3),
            make_owned(6, "Electro Wizard", elixir=4, unlock=UnlockState.EVOLUTION_ONLY),
            make_owned(7, "Bowler", elixir=5, unlock=UnlockState.EVOLUTION_ONLY),
            make_owned(8, "Mega Minion", elixir=3, unlock=UnlockState.HERO_ONLY),
            make_owned(9, "Magic Archer", elixir=4, unlock=UnlockState.HERO_ONLY),
        ]

        deck = build_deck(inventory, 14.0)

        assert _names(deck) == [
            "Electro Wizard",
            "Bowler",
            "Mega Minion",
            "Magic Archer",
            "Hog Rider",
            "Fireball",
            "The Log",
            "Cannon",
        ]
        _assert_valid(deck)

    def test_defense_deck_covers_quotas(self, siege_inventory: list[OwnedCard]) -> None:
        deck = build_deck(siege_inventory, 14.0)
        tags = [DEFAULT_TAXONOMY.categories_of(card.name) for card in deck.cards()]

        def count(category: Category) -> int:
            return sum(1 for t in tags if category in t)

        assert count(Category.BIG_SPELL) >= 1
        assert count(Category.MINI_SPELL) >= 1
        assert count(Category.GROUND_DAMAGE) >= 1
        assert count(Category.AIR_DAMAGE) >= 1
        assert count(Category.MINI_TANK) >= 1
        assert count(Category.CYCLE) >= 2
        assert count(Category.STRUCTURE) >= 1


class TestTankDeduplication:
    def test_single_tank_kept(self, beatdown_inventory: list[OwnedCard]) -> None:
        deck = build_deck(beatdown_inventory, 14.0)
        tanks = [
            card.name for card in deck.cards() if DEFAULT_TAXONOMY.has(card.name, Category.TANK)
        ]

        assert tanks == ["Golem"]
        assert _names(deck) == [
            "Golem",
            "Fireball",
            "Zap",
            "Musketeer",
            "Night Witch",
            "Witch",
            "Arrows",
            "Bats",
        ]
        assert any("duplicate tank" in note for note in deck.notes)
        _assert_valid(deck)

    def test_tank_slot_left_empty_without_replacement(
        self, beatdown_inventory: list[OwnedCard]
    ) -> None:
        inventory = [card for card in beatdown_inventory if card.name != "Bats"]

        deck = build_deck(inventory, 14.0)

        assert deck.slots[7] is None
        assert "Giant" not in _names(deck)
        _assert_valid(deck)

    def test_hero_slot_refilled_with_hero_card(self, make_owned: OwnedCardFactory) -> None:
        """Tanks removed from special slots are replaced by cards unlocked for them."""
        inventory = [
            make_owned(1, "Golem", level=16, elixir=8),
            make_owned(2, "Giant", level=15, elixir=5, unlock=UnlockState.HERO_ONLY),
            make_owned(3, "Mega Knight", level=15, elixir=7, unlock=UnlockState.HERO_ONLY),
            make_owned(4, "Knight", level=14, unlock=UnlockState.HERO_ONLY),
            make_owned(5, "Archers", level=15, unlock=UnlockState.EVOLUTION_ONLY),
            make_owned(6, "Bats", level=15, elixir=2, unlock=UnlockState.EVOLUTION_ONLY),
            make_owned(7, "Fireball", level=15, elixir=4),
            make_owned(8, "Zap", level=15, elixir=2),
            make_owned(9, "Musketeer", level=15, elixir=4),
            make_owned(10, "Night Witch", level=15, elixir=4),
            make_owned(11, "Witch", level=15, elixir=5),
        ]

        deck = build_deck(inventory, 15.0)

        assert _names(deck) == [
            "Archers",
            "Bats",
            "Knight",
            "Musketeer",
            "Golem",
            "Fireball",
            "Zap",
            "Night Witch",
        ]
        assert deck.slots[2] is not None and deck.slots[2].has_hero
        assert "Replaced 2 duplicate tank(s)" in deck.notes
        _assert_valid(deck)

    def test_win_condition_tank_is_kept(self, make_owned: OwnedCardFactory) -> None:
        """A higher-level tank never displaces the selected win condition."""
        inventory = [
            make_owned(1, "Giant", level=15, elixir=5),
            make_owned(2, "P.E.K.K.A", level=16, elixir=7),
            make_owned(3, "Archers", level=15),
            make_owned(4, "Fireball", level=15, elixir=4),
            make_owned(5, "Zap", level=15, elixir=2),
            make_owned(6, "Musketeer", level=15, elixir=4),
            make_owned(7, "Valkyrie", level=15, elixir=4),
            make_owned(8, "Skeletons", level=15, elixir=1),
            make_owned(9, "Cannon", level=15),
            make_owned(10, "Ice Spirit", level=15, elixir=1),
        ]

        deck = build_deck(inventory, 15.0)

        assert deck.win_condition_category == WinConditionCategory.OFFENSE
        assert all(card in deck.slots for card in deck.win_conditions)
        assert _names(deck) == [
            "Giant",
            "Fireball",
            "Zap",
            "Archers",
            "Valkyrie",
            "Skeletons",
            "Cannon",
            "Musketeer",
        ]
        _assert_valid(deck)

    def test_last_hero_tank_stays_without_eligible_replacement(
        self, make_owned: OwnedCardFactory
    ) -> None:
        inventory = [
            make_owned(1, "Golem", level=16, elixir=8),
            make_owned(2, "Giant", level=15, elixir=5, unlock=UnlockState.HERO_ONLY),
            make_owned(3, "Fireball", level=15, elixir=4),
            make_owned(4, "Zap", level=15, elixir=2),
            make_owned(5, "Musketeer", level=15, elixir=4),
            make_owned(6, "Night Witch", level=15, elixir=4),
            make_owned(7, "Witch", level=15, elixir=5),
            make_owned(8, "Archers", level=15),
            make_owned(9, "Bats", level=15, elixir=2),
        ]

        deck = build_deck(inventory, 15.0)

        assert deck.slots[2] is not None and deck.slots[2].name == "Giant"
        assert "Archers" not in _names(deck)
        assert not any("duplicate tank" in note for note in deck.notes)
        _assert_valid(deck)


def _inventory_sweep(make_owned: OwnedCardFactory) -> dict[str, list[OwnedCard]]:
    hero = UnlockState.HERO_ONLY
    evo = UnlockState.EVOLUTION_ONLY
    return {
        "tanks_with_unlocks": [
            make_owned(1, "Golem", level=16, elixir=8),
            make_owned(2, "Giant", level=15, elixir=5, unlock=hero),
            make_owned(3, "Mega Knight", level=15, elixir=7, unlock=hero),
            make_owned(4, "Knight", unlock=hero),
            make_owned(5, "Archers", level=15, unlock=evo),
            make_owned(6, "Bats", level=15, elixir=2, unlock=evo),
            make_owned(7, "Fireball", level=15, elixir=4),
            make_owned(8, "Zap", level=15, elixir=2),
            make_owned(9, "Musketeer", level=15, elixir=4),
        ],
        "tank_win_condition_with_hero": [
            make_owned(1, "Giant", level=15, elixir=5, unlock=hero),
            make_owned(2, "P.E.K.K.A", level=16, elixir=7, unlock=hero),
            make_owned(3, "Knight", unlock=evo),
            make_owned(4, "Fireball", level=15, elixir=4),
            make_owned(5, "Zap", level=15, elixir=2),
            make_owned(6, "Archers", level=15),
            make_owned(7, "Cannon", level=15),
            make_owned(8, "Skeletons", level=15, elixir=1),
        ],
        "evolution_tanks": [
            make_owned(1, "Golem", level=15, elixir=8),
            make_owned(2, "Giant", elixir=5, unlock=evo),
            make_owned(3, "Royal Giant", elixir=6, unlock=evo),
            make_owned(4, "Fireball", elixir=4),
            make_owned(5, "Zap", elixir=2),
            make_owned(6, "Musketeer", elixir=4),
            make_owned(7, "Night Witch", elixir=4),
            make_owned(8, "Witch", elixir=5),
        ],
        "champion_and_heroes": [
            make_owned(1, "Boss Bandit", level=6, elixir=6, rarity=Rarity.CHAMPION),
            make_owned(2, "Knight", unlock=hero),
            make_owned(3, "Archers", unlock=hero),
            make_owned(4, "Bats", elixir=2, unlock=evo),
            make_owned(5, "Fireball", elixir=4),
            make_owned(6, "Zap", elixir=2),
            make_owned(7, "Valkyrie", elixir=4),
            make_owned(8, "Cannon"),
            make_owned(9, "Skeletons", elixir=1),
        ],
        "only_tanks": [
            make_owned(1, "Golem", elixir=8),
            make_owned(2, "Giant", elixir=5, unlock=hero),
            make_owned(3, "Mega Knight", elixir=7, unlock=evo),
            make_owned(4, "Lava Hound", elixir=7),
            make_owned(5, "P.E.K.K.A", elixir=7),
        ],
        "small_inventory": [
            make_owned(1, "Knight", unlock=evo),
            make_owned(2, "Giant", elixir=5, unlock=hero),
            make_owned(3, "Zap", elixir=2),
        ],
        "both_unlocks_below_gate": [
            make_owned(1, "Hog Rider", elixir=4),
            make_owned(2, "Knight", level=10, unlock=UnlockState.BOTH),
            make_owned(3, "Archers", unlock=UnlockState.BOTH),
            make_owned(4, "Fireball", elixir=4),
            make_owned(5, "The Log", elixir=2),
            make_owned(6, "Bats", elixir=2, unlock=evo),
        ],
    }


class TestDeckInvariants:
    @pytest.mark.parametrize(
        "name",
        [
            "tanks_with_unlocks",
            "tank_win_condition_with_hero",
            "evolution_tanks",
            "champion_and_heroes",
            "only_tanks",
            "small_inventory",
            "both_unlocks_below_gate",
        ],
    )
    @pytest.mark.parametrize("target", [14.0, 15.0])
    def test_slot_invariant_and_special_coverage(
        self, make_owned: OwnedCardFactory, name: str, target: float
    ) -> None:
        """Every deck keeps unique cards and fills special slots when it can."""
        inventory = _inventory_sweep(make_owned)[name]
        floor = round_half_up(target) - 1
        gated = [card for card in inventory if card.normalized_level >= floor]

        deck = build_deck(inventory, target)

        _assert_valid(deck)
        evolution_slots = [card for card in deck.slots[0:2] if card is not None]
        hero_slots = [card for card in deck.slots[2:4] if card is not None]
        if any(card.has_evolution for card in gated):
            assert any(card.has_evolution for card in evolution_slots), _names(deck)
        if any(card.has_hero for card in gated):
            assert any(card.has_hero for card in hero_slots), _names(deck)
        for card in deck.win_conditions:
            assert card in deck.slots
