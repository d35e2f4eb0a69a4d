"""
Pairwise rating updates.

Each card variant carries an unbounded rating. After a decided comparison
the rating moves by K * multiplier * (actual - expected), where the
expected score is logistic in the rating gap and K shrinks as the variant
accumulates comparisons:

    expected = 1 / (1 + 10 ** ((opponent - current) / 400))
    K        = max(8, 32 / sqrt(n))   for n > 0, else 32

New variants move fast; heavily compared variants stabilize.

The update is applied to each side independently, so it is not
zero-sum when the two sides have different comparison counts.
"""

import math

from cardethics.config import (
    ELO_BASE_CHANGE,
    ELO_CHANGE_MULTIPLIER,
    ELO_MIN_CHANGE,
    ELO_NEUTRAL,
    ELO_SENSITIVITY,
)


def initial_rating() -> float:
    """Rating of a variant that has never been compared."""
    return ELO_NEUTRAL


def expected_score(current_rating: float, opponent_rating: float) -> float:
    """Probability that the current side is preferred over the opponent."""
    exponent = (opponent_rating - current_rating) / ELO_SENSITIVITY
    return 1.0 / (1.0 + 10**exponent)


def k_factor(comparison_count: int) -> float:
    """
    Volatility for a variant with the given comparison history.

    Non-increasing in comparison_count, never below ELO_MIN_CHANGE.

    Raises:
        ValueError: If comparison_count is negative
    """
    if comparison_count < 0:
        raise ValueError(f"comparison_count must be non-negative, got {comparison_count}")
    if comparison_count == 0:
        return ELO_BASE_CHANGE
    return max(ELO_MIN_CHANGE, ELO_BASE_CHANGE / math.sqrt(comparison_count))


def rating_change(
    current_rating: float,
    opponent_rating: float,
    won: bool,
    comparison_count: int,
) -> float:
    """Signed rating change for one side of a decided comparison."""
    actual = 1.0 if won else 0.0
    expected = expected_score(current_rating, opponent_rating)
    return k_factor(comparison_count) * ELO_CHANGE_MULTIPLIER * (actual - expected)


def update_rating(
    current_rating: float,
    opponent_rating: float,
    won: bool,
    comparison_count: int,
) -> float:
    """
    Compute a variant's new rating after a decided comparison.

    Args:
        current_rating: The variant's rating before the comparison
        opponent_rating: The opponent's rating before the comparison
        won: True if the variant was preferred
        comparison_count: Comparisons the variant had before this one

    Returns:
        The new rating
    """
    return current_rating + rating_change(current_rating, opponent_rating, won, comparison_count)
