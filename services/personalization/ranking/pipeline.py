"""
personalize_rails() — the single synchronous entry point for a render cycle.

  log snapshot -> parse -> veto filter
                        -> affinity -> dynamic categories -> assembler -> rails

Method tags on the result (like a generation method on a trip):
  "personalized"       guardrailed ranking ran (it may still promote nothing)
  "cold_start"         fewer well-formed interactions than min_interactions
  "tracking_disabled"  config.tracking_enabled is off
  "fallback"           something raised; static order, zero scores

Recompute triggers (new interaction, inventory change, refresh, cross-tab
poll) and their debouncing belong to the caller. Each call takes its own
tuple() snapshot of the log, so concurrent appends can only make a result
stale, never inconsistent.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from services.personalization.affinity.engine import compute_affinity
from services.personalization.affinity.types import AffinityProfile
from services.personalization.catalog.categories import DEFAULT_CATEGORIES, CategoryDescriptor
from services.personalization.generation.dynamic_categories import generate_dynamic_categories
from services.personalization.interactions.parsing import (
    InputError,
    parse_interaction_log,
    parse_timestamp,
)
from services.personalization.interactions.types import InteractionEvent
from services.personalization.ranking.assembler import (
    RankedCategory,
    rank_categories,
    static_fallback,
)
from services.personalization.ranking.inventory import Inventory
from services.personalization.ranking.rail_config import RailConfig
from services.personalization.ranking.rails import Rail, build_rails
from services.personalization.ranking.veto import compute_vetoed

logger = logging.getLogger(__name__)

METHOD_PERSONALIZED = "personalized"
METHOD_COLD_START = "cold_start"
METHOD_TRACKING_DISABLED = "tracking_disabled"
METHOD_FALLBACK = "fallback"


@dataclass
class PersonalizationResult:
    """Everything one render cycle produced. Discarded after rendering."""

    rails: list[Rail]
    method: str
    affinity: AffinityProfile | None = None
    generated: list[CategoryDescriptor] = field(default_factory=list)
    vetoed: frozenset[str] = frozenset()

    @property
    def personalized_count(self) -> int:
        return sum(1 for rail in self.rails if rail.is_personalized)


def _reference_time(now: Any) -> datetime:
    """Aware UTC decay reference; naive values are UTC, unusable ones mean now."""
    if now is None:
        return datetime.now(timezone.utc)
    try:
        return parse_timestamp(now)
    except InputError:
        logger.warning("Unusable reference time %r, using current time", now)
        return datetime.now(timezone.utc)


def _rails_or_empty(
    ranked: Sequence[RankedCategory],
    inventory: Inventory,
    vetoed: frozenset[str],
    seen: frozenset[str],
    config: RailConfig,
) -> list[Rail]:
    try:
        return build_rails(ranked, inventory, vetoed, seen, config.max_events_per_rail)
    except Exception:
        logger.warning("Rail materialization failed, rendering rails without events", exc_info=True)
        return build_rails(ranked, {}, vetoed, seen, config.max_events_per_rail)


def personalize_rails(
    log: Iterable[InteractionEvent | Mapping[str, Any]],
    inventory: Inventory,
    static_categories: Sequence[CategoryDescriptor] = DEFAULT_CATEGORIES,
    config: RailConfig | Mapping[str, Any] | None = None,
    now: datetime | None = None,
    seen: Iterable[str] = (),
) -> PersonalizationResult:
    """
    Compute the rails for one render cycle.

    Args:
        log:               Interaction log snapshot (any order, may be empty).
        inventory:         category id -> available events, or a bare count.
        static_categories: Curated catalog in display order.
        config:            Guardrails; clamped, never rejected.
        now:               Decay reference instant. Defaults to current UTC time;
                           naive values are taken as UTC.
        seen:              Event ids to leave off the rails.

    Returns:
        PersonalizationResult. Never raises.
    """
    config = RailConfig.coerce(config)
    now = _reference_time(now)
    static_categories = tuple(static_categories)
    seen_ids = frozenset(str(s) for s in seen)

    vetoed: frozenset[str] = frozenset()
    affinity: AffinityProfile | None = None
    generated: list[CategoryDescriptor] = []

    try:
        records = parse_interaction_log(tuple(log))
        vetoed = compute_vetoed(records, config.veto_threshold)

        if not config.tracking_enabled:
            method = METHOD_TRACKING_DISABLED
            ranked = static_fallback(static_categories)
        elif len(records) < config.min_interactions:
            method = METHOD_COLD_START
            ranked = static_fallback(static_categories)
        else:
            affinity = compute_affinity(records, now, config.half_life_days)
            if config.dynamic_categories:
                generated = generate_dynamic_categories(
                    records,
                    affinity,
                    static_categories,
                    now=now,
                    half_life_days=config.half_life_days,
                    max_generated=config.max_generated_categories,
                    min_signal=config.min_generated_signal,
                )
            ranked = rank_categories(
                static_categories,
                generated,
                affinity,
                vetoed,
                inventory,
                config,
                len(records),
            )
            method = METHOD_PERSONALIZED

    except Exception:
        logger.warning(
            "Personalization failed, serving static category order",
            exc_info=True,
        )
        method = METHOD_FALLBACK
        ranked = static_fallback(static_categories)
        affinity = None
        generated = []

    result = PersonalizationResult(
        rails=_rails_or_empty(ranked, inventory, vetoed, seen_ids, config),
        method=method,
        affinity=affinity,
        generated=generated,
        vetoed=vetoed,
    )

    logger.info(
        "Rails personalized: method=%s rails=%d personalized=%d generated=%d vetoed=%d",
        result.method,
        len(result.rails),
        result.personalized_count,
        len(result.generated),
        len(result.vetoed),
    )
    return result
