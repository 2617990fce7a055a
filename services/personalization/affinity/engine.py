"""
compute_affinity() — interaction log -> AffinityProfile.

For every record:
  contribution = decay(age_days) * weight(type)

accumulated per dimension key:
  categories    record.category
  price_ranges  bucket(record.price)
  venues        record.venue
  time_patterns weekend | weekday of record.timestamp (UTC)

Records missing a dimension's field are skipped for that dimension only.
Each dimension is then divided by its largest raw sum, so the top key is
exactly 1.0. Negative sums (more unsaves than saves) floor at 0. If nothing
is positive the whole dimension is 0.

Pure and stateless. Sums use math.fsum, which is exactly rounded, so the
output is bit-identical for any ordering of the same log.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from services.personalization.affinity.decay import (
    DEFAULT_HALF_LIFE_DAYS,
    age_days,
    decay_factor,
)
from services.personalization.affinity.types import AffinityProfile
from services.personalization.interactions.parsing import parse_interaction_log, parse_timestamp
from services.personalization.interactions.taxonomy import (
    get_affinity_weight,
    is_negative_interaction,
    is_positive_interaction,
)
from services.personalization.interactions.types import InteractionEvent

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PRICE_BUCKETS: tuple[str, ...] = ("free", "under25", "under50", "under100", "over100")

WEEKEND = "weekend"
WEEKDAY = "weekday"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def price_bucket(price: float) -> str:
    """Map a ticket price onto its fixed bucket id."""
    if price == 0:
        return "free"
    if price < 25:
        return "under25"
    if price < 50:
        return "under50"
    if price < 100:
        return "under100"
    return "over100"


def day_type(timestamp: datetime) -> str:
    """WEEKEND for Saturday and Sunday (UTC), otherwise WEEKDAY."""
    return WEEKEND if timestamp.weekday() >= 5 else WEEKDAY


def _normalize(raw: Mapping[str, list[float]]) -> dict[str, float]:
    """Divide every bucket by the dimension max. Keys come back sorted."""
    sums = {key: max(math.fsum(parts), 0.0) for key, parts in raw.items()}
    top = max(sums.values(), default=0.0)
    if top <= 0.0:
        return {key: 0.0 for key in sorted(sums)}
    return {key: sums[key] / top for key in sorted(sums)}


def weighted_contributions(
    log: Iterable[InteractionEvent],
    now: datetime,
    half_life_days: float = DEFAULT_HALF_LIFE_DAYS,
) -> dict[str, dict[str, list[float]]]:
    """
    Per-dimension, per-key lists of decay-weighted contributions.

    Kept as lists (not running sums) so callers can fsum them order-free.
    """
    raw: dict[str, dict[str, list[float]]] = {
        "categories": defaultdict(list),
        "price_ranges": defaultdict(list),
        "venues": defaultdict(list),
        "time_patterns": defaultdict(list),
    }

    now = parse_timestamp(now)
    for record in log:
        if not (is_positive_interaction(record.type) or is_negative_interaction(record.type)):
            continue

        weight = get_affinity_weight(record.type)
        contribution = decay_factor(age_days(record.timestamp, now), half_life_days) * weight

        if record.category:
            raw["categories"][record.category].append(contribution)
        if record.price is not None:
            raw["price_ranges"][price_bucket(record.price)].append(contribution)
        if record.venue:
            raw["venues"][record.venue].append(contribution)
        raw["time_patterns"][day_type(record.timestamp)].append(contribution)

    return raw


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def compute_affinity(
    log: Iterable[InteractionEvent | Mapping[str, Any]],
    now: datetime,
    half_life_days: float = DEFAULT_HALF_LIFE_DAYS,
) -> AffinityProfile:
    """
    Compute the normalized affinity profile for a log snapshot.

    Args:
        log:            InteractionEvents or raw records; malformed raw records
                        are skipped.
        now:            Reference instant for decay. Naive values are taken as UTC.
        half_life_days: Age at which a contribution is halved.

    Returns:
        AffinityProfile with every dimension's top key at exactly 1.0,
        or all zeros for a dimension with no positive signal.
    """
    now = parse_timestamp(now)
    records = parse_interaction_log(log)
    raw = weighted_contributions(records, now, half_life_days)

    profile = AffinityProfile(
        categories=_normalize(raw["categories"]),
        price_ranges=_normalize(raw["price_ranges"]),
        venues=_normalize(raw["venues"]),
        time_patterns=_normalize(raw["time_patterns"]),
        computed_at=now,
        total_interactions=len(records),
    )

    logger.debug(
        "Affinity computed: records=%d categories=%d venues=%d half_life=%s",
        len(records),
        len(profile.categories),
        len(profile.venues),
        half_life_days,
    )

    return profile
