"""
Rail materialization — RankedCategory + inventory -> Rail with events.

Event lists are filtered here, after ranking:
  - vetoed events never appear on any rail
  - events the caller marks as already seen are dropped
  - each rail keeps at most max_events_per_rail events, inventory order
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from services.personalization.ranking.assembler import RankedCategory
from services.personalization.ranking.inventory import Inventory, usable_events

logger = logging.getLogger(__name__)

DEFAULT_MAX_EVENTS_PER_RAIL = 20


@dataclass
class Rail:
    """One horizontally-browsable shelf, as handed to the rendering layer."""

    category_id: str
    title: str
    emoji: str
    events: list[Any] = field(default_factory=list)
    is_personalized: bool = False
    is_generated: bool = False
    affinity_percent: int = 0
    reason: str | None = None

    def to_dict(self) -> dict:
        return {
            "categoryId": self.category_id,
            "title": self.title,
            "emoji": self.emoji,
            "events": list(self.events),
            "isPersonalized": self.is_personalized,
            "isGenerated": self.is_generated,
            "affinityPercent": self.affinity_percent,
            "reason": self.reason,
        }


def build_rails(
    ranked: Sequence[RankedCategory],
    inventory: Inventory,
    vetoed: frozenset[str] | set[str],
    seen: frozenset[str] | set[str] = frozenset(),
    max_events_per_rail: int = DEFAULT_MAX_EVENTS_PER_RAIL,
) -> list[Rail]:
    """
    Fill ranked categories with their events.

    Count-only inventory entries produce rails with an empty event list;
    the rendering layer fetches those events itself.
    """
    excluded = frozenset(vetoed) | frozenset(seen)
    rails: list[Rail] = []

    for item in ranked:
        available = inventory.get(item.descriptor.id)
        if isinstance(available, Sequence) and not isinstance(available, (str, bytes)):
            events = usable_events(available, excluded)[:max_events_per_rail]
        else:
            events = []

        rails.append(
            Rail(
                category_id=item.descriptor.id,
                title=item.descriptor.title,
                emoji=item.descriptor.emoji,
                events=events,
                is_personalized=item.is_personalized,
                is_generated=item.is_generated,
                affinity_percent=item.affinity_percent,
                reason=item.descriptor.reason,
            )
        )

    logger.debug(
        "Built %d rails (%d events total, %d ids excluded)",
        len(rails),
        sum(len(r.events) for r in rails),
        len(excluded),
    )
    return rails
