"""
Job to rebuild arena level and card win rate tables from battle logs.

Reads one or more JSON battle-log dumps, merges their statistics into the
existing tables and writes the tables back. Can be run as a standalone
script or called from a scheduler.

Usage:
    python -m cardethics.jobs.build_arena_stats battles.json [more.json ...]
"""

import argparse
import json
import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from cardethics.analysis.arena_stats import (
    ArenaLevelEntry,
    CardWinRate,
    aggregate_battles,
    merge_arena_stats,
    merge_card_win_rates,
)
from cardethics.config import settings

logger = logging.getLogger(__name__)


def load_battles(path: Path) -> list[dict[str, Any]]:
    """
    Load a battle-log dump.

    Accepts a JSON list of battles, or an object holding the list under
    "items" or "battles".

    Raises:
        FileNotFoundError: If the dump doesn't exist
        ValueError: If the file is not a recognized dump shape
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("items", data.get("battles"))
    if not isinstance(data, list):
        raise ValueError(f"{path} is not a battle-log dump")

    battles = [battle for battle in data if isinstance(battle, dict)]
    if len(battles) != len(data):
        logger.warning("Ignored %d non-object entries in %s", len(data) - len(battles), path)
    return battles


def load_arena_levels(path: Path) -> dict[int, ArenaLevelEntry]:
    """Load the arena level table; missing file means an empty table."""
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)

    table: dict[int, ArenaLevelEntry] = {}
    for key, entry in raw.items():
        try:
            table[int(key)] = ArenaLevelEntry.model_validate(entry)
        except ValueError as e:
            logger.warning("Dropping malformed arena entry %s: %s", key, e)
    return table


def load_card_win_rates(path: Path) -> dict[str, CardWinRate]:
    """Load the card win rate table; missing file means an empty table."""
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)

    table: dict[str, CardWinRate] = {}
    for key, entry in raw.items():
        try:
            table[str(key)] = CardWinRate.model_validate(entry)
        except ValueError as e:
            logger.warning("Dropping malformed card entry %s: %s", key, e)
    return table


def _write_table(path: Path, table: dict[Any, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {str(key): entry.model_dump(by_alias=True) for key, entry in table.items()}
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
        f.write("\n")


def run_arena_stats_update(
    battle_paths: Sequence[Path],
    arena_levels_path: Path | None = None,
    card_win_rates_path: Path | None = None,
    now: datetime | None = None,
) -> dict[str, int]:
    """
    Merge battle dumps into the arena level and card win rate tables.

    Args:
        battle_paths: Battle-log dumps to read
        arena_levels_path: Arena table location. Defaults to settings.arena_levels_path
        card_win_rates_path: Card table location. Defaults to settings.card_win_rates_path
        now: Timestamp recorded on updated entries

    Returns:
        Summary counts: battles used and skipped, arenas and cards in the tables
    """
    arena_levels_path = arena_levels_path or Path(settings.arena_levels_path)
    card_win_rates_path = card_win_rates_path or Path(settings.card_win_rates_path)
    stamp = (now or datetime.now(UTC)).isoformat()

    battles: list[dict[str, Any]] = []
    for path in battle_paths:
        loaded = load_battles(path)
        logger.info("Loaded %d battles from %s", len(loaded), path)
        battles.extend(loaded)

    aggregate = aggregate_battles(battles)

    arenas = merge_arena_stats(load_arena_levels(arena_levels_path), aggregate.arenas, stamp)
    cards = merge_card_win_rates(
        load_card_win_rates(card_win_rates_path), aggregate.cards, stamp
    )

    _write_table(arena_levels_path, arenas)
    _write_table(card_win_rates_path, cards)

    summary = {
        "battles_used": aggregate.battles_used,
        "battles_skipped": aggregate.battles_skipped,
        "arenas": len(arenas),
        "cards": len(cards),
    }
    logger.info(
        "Arena stats update complete. %d battles used, %d skipped, %d arenas, %d cards",
        summary["battles_used"],
        summary["battles_skipped"],
        summary["arenas"],
        summary["cards"],
    )
    return summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Merge battle logs into arena level and card win rate tables."
    )
    parser.add_argument("battles", nargs="+", type=Path, help="Battle-log JSON dumps")
    parser.add_argument(
        "--arena-levels",
        type=Path,
        default=None,
        help=f"Arena level table (default: {settings.arena_levels_path})",
    )
    parser.add_argument(
        "--card-win-rates",
        type=Path,
        default=None,
        help=f"Card win rate table (default: {settings.card_win_rates_path})",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point for rebuilding arena statistics."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        run_arena_stats_update(args.battles, args.arena_levels, args.card_win_rates)
    except (OSError, ValueError) as e:
        logger.error("Failed to update arena stats: %s", e)
        raise


if __name__ == "__main__":
    main()
