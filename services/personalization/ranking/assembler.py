"""
Rail assembler — static + generated categories -> ordered, guardrailed list.

Stage order:
  1. Merge        static categories scored from affinity (exact id, or the
                  best key the category represents), plus generated ones
  2. Sort         score desc; ties by catalog order, generated after static
  3. Gate         tracking off or interaction_count < min_interactions
                  -> plain static order, every score 0, nothing personalized
  4. Inventory    usable = available - vetoed; below min_events_per_rail
                  -> not eligible for promotion
  5. Floor        at least ceil(N * discovery_floor) of the N shown rails
                  stay non-personalized
  6. Cap          at most max_rails personalized
  7. Emit         promoted rails first (score order), then the rest of the
                  static catalog in catalog order, empty rails last

Generated categories that are not promoted are dropped: they have no
catalog position to fall back to.

Any exception in stages 1-6 degrades the whole call to the stage-3 static
fallback. Personalization failure is never surfaced to the caller.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from services.personalization.affinity.types import AffinityProfile
from services.personalization.catalog.categories import CategoryDescriptor, category_affinity
from services.personalization.ranking.inventory import (
    ComputationError,
    Inventory,
    usable_inventory,
)
from services.personalization.ranking.rail_config import RailConfig

logger = logging.getLogger(__name__)

__all__ = [
    "ComputationError",
    "RankedCategory",
    "assemble_rails",
    "rank_categories",
    "static_fallback",
]


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RankedCategory:
    """A category in its final rail position, ready to be filled with events."""

    descriptor: CategoryDescriptor
    is_personalized: bool = False
    usable_inventory: int = 0

    @property
    def is_generated(self) -> bool:
        return self.descriptor.is_generated

    @property
    def affinity_percent(self) -> int:
        """round(score * 100), half up, in [0, 100]."""
        percent = math.floor(self.descriptor.score * 100 + 0.5)
        return max(0, min(100, int(percent)))


@dataclass
class _Entry:
    descriptor: CategoryDescriptor
    catalog_index: int
    usable: int = 0
    eligible: bool = False


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


def static_fallback(static_categories: Sequence[CategoryDescriptor]) -> list[RankedCategory]:
    """Stage-3 output: catalog order, every score 0, nothing personalized."""
    return [
        RankedCategory(descriptor=category.with_score(0.0))
        for category in static_categories or ()
    ]


def _clamp_score(score: float) -> float:
    if score is None or math.isnan(score):
        raise ComputationError(f"invalid score {score!r}")
    return max(0.0, min(1.0, float(score)))


def _merge(
    static_categories: Sequence[CategoryDescriptor],
    generated: Sequence[CategoryDescriptor],
    affinity: AffinityProfile,
) -> list[_Entry]:
    entries = [
        _Entry(
            descriptor=category.with_score(_clamp_score(category_affinity(category, affinity.categories))),
            catalog_index=index,
        )
        for index, category in enumerate(static_categories)
    ]
    static_ids = {category.id for category in static_categories}
    offset = len(entries)
    for index, category in enumerate(generated):
        if not category.is_generated:
            raise ComputationError(f"generated category {category.id!r} is not flagged is_generated")
        if category.id in static_ids:
            logger.debug("Dropping generated category %s: id collides with catalog", category.id)
            continue
        entries.append(
            _Entry(
                descriptor=category.with_score(_clamp_score(category.score)),
                catalog_index=offset + index,
            )
        )
    return entries


def _sort(entries: list[_Entry]) -> list[_Entry]:
    return sorted(
        entries,
        key=lambda e: (-e.descriptor.score, e.descriptor.is_generated, e.catalog_index),
    )


def _apply_inventory_threshold(
    entries: list[_Entry],
    inventory: Inventory,
    vetoed: frozenset[str],
    config: RailConfig,
) -> list[_Entry]:
    for entry in entries:
        entry.usable = usable_inventory(entry.descriptor.id, inventory, vetoed)
        entry.eligible = entry.descriptor.score > 0.0 and entry.usable >= config.min_events_per_rail
        if entry.descriptor.score > 0.0 and not entry.eligible:
            logger.debug(
                "Rail %s below inventory threshold (%d < %d), not promoted",
                entry.descriptor.id,
                entry.usable,
                config.min_events_per_rail,
            )
    return entries


def _select_personalized(
    entries: list[_Entry],
    static_count: int,
    config: RailConfig,
) -> list[_Entry]:
    """
    Walk eligible entries best-first and promote while floor and cap hold.

    Promoting a static category removes one non-personalized rail; promoting
    a generated one adds a rail to N. An entry that would break the floor is
    skipped, so the lowest-scoring candidates are the ones displaced.
    """
    promoted: list[_Entry] = []
    shown = static_count
    non_personalized = static_count

    for entry in entries:
        if not entry.eligible:
            continue
        if len(promoted) >= config.max_rails:
            break

        if entry.descriptor.is_generated:
            next_shown, next_non_personalized = shown + 1, non_personalized
        else:
            next_shown, next_non_personalized = shown, non_personalized - 1

        floor = math.ceil(next_shown * config.discovery_floor)
        if next_non_personalized < floor:
            logger.debug(
                "Discovery floor keeps %s unpromoted (non-personalized %d < floor %d)",
                entry.descriptor.id,
                next_non_personalized,
                floor,
            )
            continue

        promoted.append(entry)
        shown, non_personalized = next_shown, next_non_personalized

    return promoted


def _emit(entries: list[_Entry], promoted: list[_Entry]) -> list[RankedCategory]:
    promoted_ids = {entry.descriptor.id for entry in promoted}
    rest = sorted(
        (e for e in entries if e.descriptor.id not in promoted_ids and not e.descriptor.is_generated),
        key=lambda e: (e.usable == 0, e.catalog_index),
    )
    return [
        RankedCategory(descriptor=e.descriptor, is_personalized=True, usable_inventory=e.usable)
        for e in promoted
    ] + [
        RankedCategory(descriptor=e.descriptor, is_personalized=False, usable_inventory=e.usable)
        for e in rest
    ]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def rank_categories(
    static_categories: Sequence[CategoryDescriptor],
    generated: Sequence[CategoryDescriptor],
    affinity: AffinityProfile,
    vetoed: frozenset[str],
    inventory: Inventory,
    config: RailConfig,
    interaction_count: int,
) -> list[RankedCategory]:
    """
    Run stages 1-7. Raises on unexpected data; see assemble_rails().
    """
    entries = _sort(_merge(static_categories, generated, affinity))

    if not config.tracking_enabled:
        logger.debug("Rail assembly: tracking disabled, static order")
        return static_fallback(static_categories)
    if interaction_count < config.min_interactions:
        logger.debug(
            "Rail assembly: %d interactions < min %d, static order",
            interaction_count,
            config.min_interactions,
        )
        return static_fallback(static_categories)

    entries = _apply_inventory_threshold(entries, inventory, frozenset(vetoed), config)
    promoted = _select_personalized(entries, len(static_categories), config)

    logger.info(
        "Rail assembly complete: %d rails, %d personalized %s",
        len(entries),
        len(promoted),
        [e.descriptor.id for e in promoted],
    )
    return _emit(entries, promoted)


def assemble_rails(
    static_categories: Sequence[CategoryDescriptor],
    generated: Sequence[CategoryDescriptor],
    affinity: AffinityProfile,
    vetoed: frozenset[str],
    inventory: Inventory,
    config: RailConfig | None = None,
    interaction_count: int | None = None,
) -> list[RankedCategory]:
    """
    Order and flag rail categories under the personalization guardrails.

    Args:
        static_categories: Curated catalog in its display order.
        generated:         Dynamic categories (is_generated=True) for this call.
        affinity:          Profile computed from the current log snapshot.
        vetoed:            Event ids suppressed by the veto filter.
        inventory:         category id -> available events (or a count).
        config:            Guardrails; defaults when None.
        interaction_count: Records in the log snapshot. Defaults to
                           affinity.total_interactions.

    Returns:
        RankedCategory list in render order. Never raises: any failure
        returns static_fallback(static_categories).
    """
    try:
        return rank_categories(
            static_categories,
            generated,
            affinity,
            vetoed,
            inventory,
            RailConfig.coerce(config),
            affinity.total_interactions if interaction_count is None else interaction_count,
        )
    except Exception:
        logger.warning(
            "Rail assembly failed, falling back to static category order",
            exc_info=True,
        )
        return static_fallback(static_categories)
