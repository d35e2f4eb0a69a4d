from collections.abc import Callable

import pytest

from cardethics.db.rating_store import InMemoryRatingStore
from cardethics.models.card import Card, Rarity
from cardethics.models.owned_card import OwnedCard, UnlockState

OwnedCardFactory = Callable[..., OwnedCard]


@pytest.fixture
def store() -> InMemoryRatingStore:
    """Empty rating store."""
    return InMemoryRatingStore()


@pytest.fixture
def catalog() -> list[Card]:
    """Small card catalog with evolution and hero variants."""
    return [
        Card(
            id=26000000,
            name="Knight",
            rarity=Rarity.COMMON,
            elixir_cost=3,
            has_evolution=True,
            has_hero=True,
        ),
        Card(id=26000021, name="Hog Rider", rarity=Rarity.RARE, elixir_cost=4),
        Card(id=28000000, name="Fireball", rarity=Rarity.RARE, elixir_cost=4),
        Card(
            id=26000001,
            name="Archers",
            rarity=Rarity.COMMON,
            elixir_cost=3,
            has_evolution=True,
        ),
        Card(id=26000072, name="Archer Queen", rarity=Rarity.CHAMPION, elixir_cost=5),
    ]


@pytest.fixture
def make_owned() -> OwnedCardFactory:
    """
    Factory for owned cards.

    Levels are given on the normalized scale (no rarity offset) unless a
    rarity is passed.
    """

    def _make(
        card_id: int,
        name: str,
        level: int = 14,
        elixir: int = 3,
        unlock: UnlockState = UnlockState.NONE,
        rarity: Rarity | None = None,
    ) -> OwnedCard:
        return OwnedCard(
            card_id=card_id,
            name=name,
            level=level,
            elixir_cost=elixir,
            unlock_state=unlock,
            rarity=rarity,
        )

    return _make
