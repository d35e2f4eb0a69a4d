"""
Owned cards - a player's inventory as seen by deck construction.

Owned cards are rebuilt from the player profile on every read and are
never persisted by the engine.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from cardethics.config import COMMON_MAX_LEVEL
from cardethics.models.card import Rarity

# Shift applied to a raw level so every rarity shares one scale
RARITY_LEVEL_OFFSETS: dict[Rarity, int] = {
    Rarity.COMMON: 0,
    Rarity.RARE: 2,
    Rarity.EPIC: 5,
    Rarity.LEGENDARY: 8,
    Rarity.CHAMPION: 10,
}


class UnlockState(str, Enum):
    """Which special variants the player has unlocked for a card."""

    NONE = "none"
    EVOLUTION_ONLY = "evolution-only"
    HERO_ONLY = "hero-only"
    BOTH = "both"

    @classmethod
    def from_evolution_level(cls, evolution_level: int | None) -> "UnlockState":
        """
        Map the upstream evolutionLevel field.

        1 = evolution unlocked, 2 = hero unlocked, 3 = both.
        """
        if evolution_level == 1:
            return cls.EVOLUTION_ONLY
        if evolution_level == 2:
            return cls.HERO_ONLY
        if evolution_level == 3:
            return cls.BOTH
        return cls.NONE

    @property
    def has_evolution(self) -> bool:
        return self in (UnlockState.EVOLUTION_ONLY, UnlockState.BOTH)

    @property
    def has_hero(self) -> bool:
        return self in (UnlockState.HERO_ONLY, UnlockState.BOTH)


@dataclass(frozen=True, slots=True)
class OwnedCard:
    """
    A card in a player's inventory.

    Attributes:
        card_id: Catalog id of the card
        name: Display name (e.g., "Hog Rider")
        level: Collection-relative level (1..max_level)
        count: Owned copies not yet spent on upgrades
        unlock_state: Evolution/hero unlock state
        elixir_cost: Elixir needed to play the card
        rarity: Card rarity, if known
        max_level: Highest level for the rarity, if the profile reports it
    """

    card_id: int
    name: str
    level: int
    count: int = 0
    unlock_state: UnlockState = UnlockState.NONE
    elixir_cost: int = 0
    rarity: Rarity | None = None
    max_level: int | None = None

    @property
    def has_evolution(self) -> bool:
        return self.unlock_state.has_evolution

    @property
    def has_hero(self) -> bool:
        return self.unlock_state.has_hero

    @property
    def normalized_level(self) -> int:
        return normalize_level(self.level, self.rarity, self.max_level)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "OwnedCard":
        """Build an owned card from one entry of a player profile's card list."""
        return cls(
            card_id=int(payload["id"]),
            name=str(payload["name"]),
            level=int(payload.get("level") or 1),
            count=int(payload.get("count") or 0),
            unlock_state=UnlockState.from_evolution_level(payload.get("evolutionLevel")),
            elixir_cost=int(payload.get("elixirCost") or 0),
            rarity=Rarity.parse(payload.get("rarity")),
            max_level=payload.get("maxLevel"),
        )


def normalize_level(level: int, rarity: Rarity | None, max_level: int | None = None) -> int:
    """
    Place a raw card level on the rarity-agnostic scale.

    When the card's max level is known the offset is the distance from the
    common ceiling; otherwise the fixed per-rarity offset is used. Unknown
    rarities get no offset.
    """
    if isinstance(max_level, int) and max_level > 0:
        return level + max(0, COMMON_MAX_LEVEL - max_level)
    if rarity is None:
        return level
    return level + RARITY_LEVEL_OFFSETS.get(rarity, 0)
