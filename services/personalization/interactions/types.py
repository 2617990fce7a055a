"""
InteractionEvent — the canonical record read from the interaction log.

The log itself lives outside this service (client storage, another tab,
whatever the caller uses). Everything in affinity/, generation/ and ranking/
consumes InteractionEvent exclusively; raw payloads go through
interactions.parsing first.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class InteractionType(str, Enum):
    VIEW = "view"
    CLICK = "click"
    SAVE = "save"
    UNSAVE = "unsave"
    SEARCH = "search"
    VOTE = "vote"


class Vote(str, Enum):
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class InteractionEvent:
    """A single immutable user interaction."""

    type: InteractionType
    """Discriminator for the record."""

    timestamp: datetime
    """When the interaction happened (timezone-aware, UTC)."""

    event_id: str | None = None
    """Catalog event the interaction touched, if any."""

    category: str | None = None
    """Category id of the touched event, or the filtered category."""

    price: float | None = None
    """Ticket price of the touched event. 0 means free."""

    venue: str | None = None
    """Venue name of the touched event."""

    query: str | None = None
    """Free-text search query (search records only)."""

    vote: Vote | None = None
    """Vote direction (vote records only)."""

    @property
    def is_downvote(self) -> bool:
        return self.type is InteractionType.VOTE and self.vote is Vote.DOWN
