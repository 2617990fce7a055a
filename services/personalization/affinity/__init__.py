"""
services.personalization.affinity — decay-weighted interest scoring.

Usage:
    from services.personalization.affinity import compute_affinity

    profile = compute_affinity(log, now=datetime.now(timezone.utc))
    profile.categories["music-concerts"]  # 1.0 for the top category
"""

from __future__ import annotations

from services.personalization.affinity.decay import age_days, decay_factor
from services.personalization.affinity.engine import compute_affinity, price_bucket
from services.personalization.affinity.types import AffinityProfile

__all__ = [
    "AffinityProfile",
    "age_days",
    "compute_affinity",
    "decay_factor",
    "price_bucket",
]
