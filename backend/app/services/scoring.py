"""Shared percentage arithmetic for match scores."""

import math


def percent(numerator: float, denominator: float) -> int:
    """Return ``100 * numerator / denominator`` rounded half-up into [0, 100].

    2.5 rounds to 3 (not banker's rounding). A zero denominator scores 0.
    """
    if denominator <= 0:
        return 0
    raw = 100.0 * numerator / denominator
    return max(0, min(100, math.floor(raw + 0.5)))
