from dataclasses import dataclass, field
from enum import Enum

from cardethics.config import DECK_SIZE
from cardethics.models.owned_card import OwnedCard


class WinConditionCategory(str, Enum):
    """Play style a deck is built around."""

    OFFENSE = "offense"
    DEFENSE = "defense"
    BEATDOWN = "beatdown"
    SECONDARY = "secondary"  # bait: several dangerous cheap threats


class WarDeckStrategy(str, Enum):
    """How evolution/hero cards are distributed across war decks."""

    BALANCED = "balanced"  # spread across decks
    STACKED = "stacked"  # concentrated into as few decks as possible


@dataclass
class BuiltDeck:
    """
    An 8-slot deck built from a player's inventory.

    Attributes:
        slots: Exactly DECK_SIZE entries, None for unfilled slots
        average_elixir: Mean elixir of filled slots, one decimal
        win_condition_category: Style of the selected win condition
        win_conditions: Cards selected as win conditions
        notes: Human-readable construction notes
    """

    slots: list[OwnedCard | None] = field(default_factory=lambda: [None] * DECK_SIZE)
    average_elixir: float = 0.0
    win_condition_category: WinConditionCategory = WinConditionCategory.SECONDARY
    win_conditions: list[OwnedCard] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    def cards(self) -> list[OwnedCard]:
        """Filled slots in slot order."""
        return [card for card in self.slots if card is not None]

    def card_ids(self) -> list[int]:
        return [card.card_id for card in self.cards()]

    def filled_count(self) -> int:
        return len(self.cards())

    def is_complete(self) -> bool:
        return self.filled_count() == DECK_SIZE


@dataclass
class DeckOption:
    """A deck presented as one choice among several."""

    deck: BuiltDeck
    label: str
    preferred_win_condition: WinConditionCategory | None = None


@dataclass
class WinConditionDeckSet:
    """One deck per satisfiable win-condition preference."""

    decks: list[DeckOption] = field(default_factory=list)
    optimal_index: int = 0
