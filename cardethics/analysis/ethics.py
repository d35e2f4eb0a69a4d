"""
Ethics score - the display form of a rating.

    ethics = 2 * tanh((rating - 1500) / 400)

Maps the unbounded rating onto the open interval (-2.0, +2.0):

    to_ethics_score(1500)  # 0.0 (neutral)
    to_ethics_score(1700)  # ~ +0.92
    to_ethics_score(1300)  # ~ -0.92
"""

import math

from cardethics.config import ELO_NEUTRAL, ELO_SENSITIVITY, ETHICS_SCALE


# Largest representable magnitude strictly inside the bound
_MAX_MAGNITUDE = math.nextafter(ETHICS_SCALE, 0.0)


def to_ethics_score(rating: float) -> float:
    """Convert a rating to its bounded ethics score."""
    score = ETHICS_SCALE * math.tanh((rating - ELO_NEUTRAL) / ELO_SENSITIVITY)
    # tanh saturates to exactly 1.0 in floating point for large gaps
    return max(-_MAX_MAGNITUDE, min(_MAX_MAGNITUDE, score))
