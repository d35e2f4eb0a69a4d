from dataclasses import dataclass
from enum import Enum
from typing import Any


class CardVariant(str, Enum):
    """Rated identity of a card. Variants of one card are rated independently."""

    BASE = "base"
    EVO = "evo"
    HERO = "hero"


class Rarity(str, Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"
    CHAMPION = "champion"

    @classmethod
    def parse(cls, value: str | None) -> "Rarity | None":
        """Parse an upstream rarity string, returning None if unknown."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class Card:
    """
    A card catalog entry.

    Attributes:
        id: Stable card id, shared by every variant of the card
        name: Canonical display name (e.g., "Hog Rider")
        rarity: Card rarity, if known
        elixir_cost: Elixir needed to play the card
        max_level: Highest level for the card's rarity
        has_evolution: True if an evolution variant exists
        has_hero: True if a hero variant exists
    """

    id: int
    name: str
    rarity: Rarity | None = None
    elixir_cost: int = 0
    max_level: int | None = None
    has_evolution: bool = False
    has_hero: bool = False

    def variants(self) -> tuple[CardVariant, ...]:
        """Variants that exist for this card, base first."""
        available = [CardVariant.BASE]
        if self.has_evolution:
            available.append(CardVariant.EVO)
        if self.has_hero:
            available.append(CardVariant.HERO)
        return tuple(available)

    def has_variant(self, variant: CardVariant) -> bool:
        return variant in self.variants()

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Card":
        """
        Build a catalog entry from the upstream card listing shape.

        Variant availability is inferred from the presence of
        evolution/hero icons, matching how the listing advertises them.
        """
        icons = payload.get("iconUrls") or {}
        return cls(
            id=int(payload["id"]),
            name=str(payload["name"]),
            rarity=Rarity.parse(payload.get("rarity")),
            elixir_cost=int(payload.get("elixirCost") or 0),
            max_level=payload.get("maxLevel"),
            has_evolution=bool(icons.get("evolutionMedium")),
            has_hero=bool(icons.get("heroMedium")),
        )
