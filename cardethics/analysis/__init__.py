from cardethics.analysis.arena_stats import (
    aggregate_battles,
    merge_arena_stats,
    merge_card_win_rates,
    target_level_for_arena,
)
from cardethics.analysis.elo import expected_score, initial_rating, k_factor, update_rating
from cardethics.analysis.ethics import to_ethics_score

__all__ = [
    "aggregate_battles",
    "expected_score",
    "initial_rating",
    "k_factor",
    "merge_arena_stats",
    "merge_card_win_rates",
    "target_level_for_arena",
    "to_ethics_score",
    "update_rating",
]
