"""
Exponential time decay for interaction weights.

decay(age) = 2 ** (-age_days / half_life_days)

An interaction's contribution halves every half_life_days: decay(0) == 1.0,
decay(half_life) == 0.5, strictly decreasing in age.
"""

from __future__ import annotations

from datetime import datetime

DEFAULT_HALF_LIFE_DAYS = 30

_SECONDS_PER_DAY = 86_400.0


def age_days(timestamp: datetime, now: datetime) -> float:
    """
    Age of an interaction in fractional days.

    Timestamps in the future (client clock skew) are treated as age 0.
    """
    return max((now - timestamp).total_seconds() / _SECONDS_PER_DAY, 0.0)


def decay_factor(age: float, half_life_days: float = DEFAULT_HALF_LIFE_DAYS) -> float:
    """Decay multiplier in (0.0, 1.0] for an interaction `age` days old."""
    if half_life_days <= 0:
        raise ValueError(f"half_life_days must be positive, got {half_life_days}")
    return 2.0 ** (-max(age, 0.0) / half_life_days)
