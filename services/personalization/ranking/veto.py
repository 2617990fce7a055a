"""
Veto filter — suppress individual events after repeated down-votes.

Counts vote=down records per eventId, with no time decay. An event is vetoed
once its count reaches the threshold. Up-votes do not decrement the counter;
veto is monotonic for the whole computation.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from typing import Any

from services.personalization.interactions.parsing import parse_interaction_log
from services.personalization.interactions.types import InteractionEvent

logger = logging.getLogger(__name__)

DEFAULT_VETO_THRESHOLD = 2


def compute_veto_registry(
    log: Iterable[InteractionEvent | Mapping[str, Any]],
) -> dict[str, int]:
    """Return eventId -> down-vote count for every down-voted event."""
    counts: Counter[str] = Counter(
        record.event_id
        for record in parse_interaction_log(log)
        if record.is_downvote and record.event_id
    )
    return dict(counts)


def compute_vetoed(
    log: Iterable[InteractionEvent | Mapping[str, Any]],
    veto_threshold: int = DEFAULT_VETO_THRESHOLD,
) -> frozenset[str]:
    """Return the ids of events whose down-vote count reached veto_threshold."""
    threshold = max(int(veto_threshold), 1)
    registry = compute_veto_registry(log)
    vetoed = frozenset(
        event_id for event_id, count in registry.items() if count >= threshold
    )

    if vetoed:
        logger.debug(
            "Veto filter: %d/%d down-voted events vetoed (threshold=%d)",
            len(vetoed),
            len(registry),
            threshold,
        )

    return vetoed
