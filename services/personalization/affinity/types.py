"""
AffinityProfile — the output of compute_affinity().

Scores are relative, not probabilities: within each dimension the strongest
key is exactly 1.0 and everything else is a fraction of it. Guardrails in
ranking/ reason in percentage-of-maximum terms because of this.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class AffinityProfile:
    """Normalized, decay-weighted interest per dimension."""

    categories: dict[str, float]
    """category id -> score in [0.0, 1.0]."""

    price_ranges: dict[str, float]
    """price bucket ('free', 'under25', 'under50', 'under100', 'over100') -> score."""

    venues: dict[str, float]
    """venue name -> score."""

    computed_at: datetime
    """The `now` the profile was computed against."""

    time_patterns: dict[str, float] = field(default_factory=dict)
    """'weekend' / 'weekday' -> score."""

    total_interactions: int = 0
    """Number of well-formed records that went into the profile."""

    def category_score(self, category_id: str) -> float:
        return self.categories.get(category_id, 0.0)

    def to_dict(self) -> dict:
        return {
            "categories": dict(self.categories),
            "priceRanges": dict(self.price_ranges),
            "venues": dict(self.venues),
            "timePatterns": dict(self.time_patterns),
            "totalInteractions": self.total_interactions,
            "computedAt": self.computed_at.isoformat(),
        }
