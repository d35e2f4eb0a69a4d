"""
Arena statistics from battle logs.

Two tables are maintained:
- Arena levels: average normalized card level per arena, the deck
  builder's target level
- Card win rates: wins and losses per card, the deck builder's tie-break

Both tables are merged incrementally: existing entries are weighted by
their sample size, so repeated runs refine rather than replace them.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from cardethics.config import DEFAULT_ARENA_TARGET_LEVEL
from cardethics.models.card import Rarity
from cardethics.models.owned_card import normalize_level

logger = logging.getLogger(__name__)


class ArenaLevelEntry(BaseModel):
    """Average normalized card level observed in one arena."""

    model_config = ConfigDict(populate_by_name=True)

    arena_id: int = Field(..., alias="arenaId")
    average_card_level: float = Field(..., alias="averageCardLevel")
    sample_size: int = Field(default=0, ge=0, alias="sampleSize")
    battle_count: int = Field(default=0, ge=0, alias="battleCount")
    player_count: int = Field(default=0, ge=0, alias="playerCount")
    last_updated: str | None = Field(default=None, alias="lastUpdated")


class CardWinRate(BaseModel):
    """Win/loss record of one card across decided battles."""

    model_config = ConfigDict(populate_by_name=True)

    card_id: int | None = Field(default=None, alias="cardId")
    name: str = "Unknown"
    wins: int = Field(default=0, ge=0)
    losses: int = Field(default=0, ge=0)
    last_updated: str | None = Field(default=None, alias="lastUpdated")

    @computed_field(alias="totalGames")  # type: ignore[prop-decorator]
    @property
    def total_games(self) -> int:
        return self.wins + self.losses

    @computed_field(alias="winRate")  # type: ignore[prop-decorator]
    @property
    def win_rate(self) -> float:
        """Fraction of decided games won, 0.0 with no games."""
        if self.total_games == 0:
            return 0.0
        return round(self.wins / self.total_games, 4)


@dataclass
class ArenaAccumulator:
    total_level: float = 0.0
    card_count: int = 0
    battle_count: int = 0
    players: set[str] = field(default_factory=set)


@dataclass
class BattleAggregate:
    """Statistics gathered from one batch of battles."""

    arenas: dict[int, ArenaAccumulator] = field(default_factory=dict)
    cards: dict[str, CardWinRate] = field(default_factory=dict)
    battles_used: int = 0
    battles_skipped: int = 0


# =============================================================================
# BATTLE FIELD ACCESS
# =============================================================================


def battle_arena_id(battle: Mapping[str, Any]) -> int | None:
    arena = battle.get("arena") or {}
    raw = arena.get("id") if isinstance(arena, Mapping) else None
    if raw is None:
        raw = battle.get("arenaId")
    if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0:
        return None
    return raw


def _side(battle: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    players = battle.get(name) or []
    if isinstance(players, list) and players and isinstance(players[0], Mapping):
        return players[0]
    return {}


def _side_cards(battle: Mapping[str, Any], name: str) -> list[Mapping[str, Any]]:
    cards = _side(battle, name).get("cards") or []
    return [card for card in cards if isinstance(card, Mapping)]


def card_normalized_level(card: Mapping[str, Any]) -> int | None:
    """Normalized level of a battle-log card, None if it has no level."""
    level = card.get("level")
    if isinstance(level, bool) or not isinstance(level, int):
        return None
    max_level = card.get("maxLevel")
    return normalize_level(
        level,
        Rarity.parse(card.get("rarity")),
        max_level if isinstance(max_level, int) else None,
    )


def battle_outcome(battle: Mapping[str, Any]) -> str | None:
    """"team" or "opponent" for the winning side; None for draws or missing crowns."""
    team_crowns = _side(battle, "team").get("crowns")
    opponent_crowns = _side(battle, "opponent").get("crowns")
    if not isinstance(team_crowns, int) or not isinstance(opponent_crowns, int):
        return None
    if team_crowns == opponent_crowns:
        return None
    return "team" if team_crowns > opponent_crowns else "opponent"


def card_stats_key(card: Mapping[str, Any]) -> str | None:
    """Table key for a card: its id, or its lower-cased name when the id is missing."""
    card_id = card.get("id")
    if isinstance(card_id, int) and not isinstance(card_id, bool):
        return str(card_id)
    name = card.get("name")
    if isinstance(name, str) and name:
        return f"name:{name.lower()}"
    return None


# =============================================================================
# AGGREGATION
# =============================================================================


def _record_cards(
    stats: dict[str, CardWinRate], cards: list[Mapping[str, Any]], won: bool
) -> None:
    for card in cards:
        key = card_stats_key(card)
        if key is None:
            continue
        entry = stats.get(key)
        if entry is None:
            card_id = card.get("id")
            entry = CardWinRate(
                card_id=card_id if isinstance(card_id, int) else None,
                name=str(card.get("name") or "Unknown"),
            )
        if won:
            entry = entry.model_copy(update={"wins": entry.wins + 1})
        else:
            entry = entry.model_copy(update={"losses": entry.losses + 1})
        stats[key] = entry


def aggregate_battles(battles: Iterable[Mapping[str, Any]]) -> BattleAggregate:
    """
    Aggregate battle-log entries.

    A battle without an arena id or without any leveled card is skipped
    with a warning. Draws count towards levels but not win rates.
    """
    aggregate = BattleAggregate()

    for position, battle in enumerate(battles):
        arena_id = battle_arena_id(battle)
        if arena_id is None:
            logger.warning("Skipping battle %d: no arena id", position)
            aggregate.battles_skipped += 1
            continue

        team_cards = _side_cards(battle, "team")
        opponent_cards = _side_cards(battle, "opponent")
        levels = [
            level
            for card in (*team_cards, *opponent_cards)
            if (level := card_normalized_level(card)) is not None
        ]
        if not levels:
            logger.warning("Skipping battle %d in arena %d: no card levels", position, arena_id)
            aggregate.battles_skipped += 1
            continue

        arena = aggregate.arenas.setdefault(arena_id, ArenaAccumulator())
        arena.total_level += sum(levels)
        arena.card_count += len(levels)
        arena.battle_count += 1
        tag = _side(battle, "team").get("tag")
        if isinstance(tag, str) and tag:
            arena.players.add(tag)
        aggregate.battles_used += 1

        outcome = battle_outcome(battle)
        if outcome is not None:
            _record_cards(aggregate.cards, team_cards, won=outcome == "team")
            _record_cards(aggregate.cards, opponent_cards, won=outcome == "opponent")

    return aggregate


def merge_arena_stats(
    existing: Mapping[int, ArenaLevelEntry],
    latest: Mapping[int, ArenaAccumulator],
    last_updated: str | None = None,
) -> dict[int, ArenaLevelEntry]:
    """
    Merge new arena totals into an existing table.

    Existing averages are weighted by their sample size. Arenas absent
    from the new batch are kept as they are.
    """
    totals: dict[int, ArenaAccumulator] = {}
    player_counts: dict[int, int] = {}
    for arena_id, entry in existing.items():
        totals[arena_id] = ArenaAccumulator(
            total_level=entry.average_card_level * entry.sample_size,
            card_count=entry.sample_size,
            battle_count=entry.battle_count,
        )
        player_counts[arena_id] = entry.player_count

    untouched = set(existing)
    for arena_id, stats in latest.items():
        current = totals.setdefault(arena_id, ArenaAccumulator())
        current.total_level += stats.total_level
        current.card_count += stats.card_count
        current.battle_count += stats.battle_count
        player_counts[arena_id] = player_counts.get(arena_id, 0) + len(stats.players)
        untouched.discard(arena_id)

    merged = {}
    for arena_id in sorted(totals):
        if arena_id in untouched:
            merged[arena_id] = existing[arena_id]
            continue
        stats = totals[arena_id]
        average = round(stats.total_level / stats.card_count, 2) if stats.card_count else 0.0
        merged[arena_id] = ArenaLevelEntry(
            arena_id=arena_id,
            average_card_level=average,
            sample_size=stats.card_count,
            battle_count=stats.battle_count,
            player_count=player_counts[arena_id],
            last_updated=last_updated,
        )
    return merged


def merge_card_win_rates(
    existing: Mapping[str, CardWinRate],
    latest: Mapping[str, CardWinRate],
    last_updated: str | None = None,
) -> dict[str, CardWinRate]:
    """Add new wins and losses to an existing card table."""
    merged = dict(existing)
    for key, stats in latest.items():
        current = merged.get(key)
        if current is None:
            merged[key] = stats.model_copy(update={"last_updated": last_updated})
            continue
        merged[key] = current.model_copy(
            update={
                "wins": current.wins + stats.wins,
                "losses": current.losses + stats.losses,
                "last_updated": last_updated,
            }
        )
    return dict(sorted(merged.items()))


# =============================================================================
# LOOKUPS
# =============================================================================


def target_level_for_arena(
    table: Mapping[int, ArenaLevelEntry], arena_id: int | None
) -> float:
    """Deck build target for an arena; the level ceiling when the arena is unknown."""
    if arena_id is None:
        return DEFAULT_ARENA_TARGET_LEVEL
    entry = table.get(arena_id)
    if entry is None or entry.sample_size == 0:
        return DEFAULT_ARENA_TARGET_LEVEL
    return entry.average_card_level


def win_rates_by_card_id(table: Mapping[str, CardWinRate]) -> dict[int, float]:
    """Win rates keyed by card id, for deck building. Entries without games are left out."""
    return {
        entry.card_id: entry.win_rate
        for entry in table.values()
        if entry.card_id is not None and entry.total_games > 0
    }
