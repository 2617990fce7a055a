"""
services.personalization.interactions — interaction log record model.

Usage:
    from services.personalization.interactions import parse_interaction_log

    log = parse_interaction_log(raw_records)
"""

from __future__ import annotations

from services.personalization.interactions.parsing import (
    InputError,
    parse_interaction,
    parse_interaction_log,
)
from services.personalization.interactions.types import (
    InteractionEvent,
    InteractionType,
    Vote,
)

__all__ = [
    "InputError",
    "InteractionEvent",
    "InteractionType",
    "Vote",
    "parse_interaction",
    "parse_interaction_log",
]
