"""
Raw interaction record parsing.

The interaction log is written by client code we don't control, so records
arrive loosely typed: camelCase or snake_case keys, epoch milliseconds or
ISO strings, legacy "vote_up"/"vote_down" types. parse_interaction() turns
one raw mapping into an InteractionEvent or raises InputError;
parse_interaction_log() applies it to a whole log and skips bad records
instead of aborting the batch.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from services.personalization.interactions.types import (
    InteractionEvent,
    InteractionType,
    Vote,
)

logger = logging.getLogger(__name__)

# Epoch values above this are milliseconds (year 2286 in seconds)
_EPOCH_MS_CUTOFF = 10_000_000_000

# Older clients logged votes as their own interaction types
_LEGACY_VOTE_TYPES: dict[str, Vote] = {
    "vote_up": Vote.UP,
    "vote_down": Vote.DOWN,
}


class InputError(ValueError):
    """A raw interaction record that cannot be turned into an InteractionEvent."""


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------


def parse_timestamp(value: Any) -> datetime:
    """
    Coerce a raw timestamp into an aware UTC datetime.

    Accepts datetime objects (naive ones are taken as UTC), epoch seconds or
    milliseconds as numbers or digit strings, and ISO-8601 strings.

    Raises:
        InputError for anything else.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if isinstance(value, bool):
        raise InputError("boolean is not a timestamp")

    if isinstance(value, str):
        clean = value.strip()
        if not clean:
            raise InputError("empty timestamp")
        if clean.isdigit():
            value = int(clean)
        else:
            try:
                parsed = datetime.fromisoformat(clean.replace("Z", "+00:00"))
            except ValueError as exc:
                raise InputError(f"unparseable timestamp {clean!r}") from exc
            return parse_timestamp(parsed)

    if isinstance(value, (int, float)):
        numeric = float(value)
        if not math.isfinite(numeric) or numeric < 0:
            raise InputError(f"invalid epoch timestamp {value!r}")
        if numeric > _EPOCH_MS_CUTOFF:
            numeric = numeric / 1000
        try:
            return datetime.fromtimestamp(numeric, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise InputError(f"epoch timestamp out of range {value!r}") from exc

    raise InputError(f"unsupported timestamp type {type(value).__name__}")


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_price(value: Any) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise InputError("boolean is not a price")
    try:
        price = float(value)
    except (TypeError, ValueError) as exc:
        raise InputError(f"unparseable price {value!r}") from exc
    if not math.isfinite(price) or price < 0:
        raise InputError(f"invalid price {value!r}")
    return price


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_interaction(raw: InteractionEvent | Mapping[str, Any]) -> InteractionEvent:
    """
    Parse one raw log record.

    Already-parsed InteractionEvents pass through, with a naive timestamp
    taken as UTC.

    Raises:
        InputError on a missing/unknown type, a bad timestamp, a bad price,
        or a vote record without a valid direction.
    """
    if isinstance(raw, InteractionEvent):
        timestamp = raw.timestamp
        if not isinstance(timestamp, datetime) or timestamp.tzinfo is None or timestamp.utcoffset():
            return replace(raw, timestamp=parse_timestamp(timestamp))
        return raw
    if not isinstance(raw, Mapping):
        raise InputError(f"record must be a mapping, got {type(raw).__name__}")

    raw_type = str(raw.get("type") or "").strip().lower()
    vote: Vote | None = None

    if raw_type in _LEGACY_VOTE_TYPES:
        interaction_type = InteractionType.VOTE
        vote = _LEGACY_VOTE_TYPES[raw_type]
    else:
        try:
            interaction_type = InteractionType(raw_type)
        except ValueError as exc:
            raise InputError(f"unknown interaction type {raw_type!r}") from exc

    if interaction_type is InteractionType.VOTE and vote is None:
        raw_vote = str(raw.get("vote") or "").strip().lower()
        try:
            vote = Vote(raw_vote)
        except ValueError as exc:
            raise InputError(f"vote record with invalid direction {raw_vote!r}") from exc

    if "timestamp" not in raw:
        raise InputError("record has no timestamp")

    return InteractionEvent(
        type=interaction_type,
        timestamp=parse_timestamp(raw["timestamp"]),
        event_id=_optional_text(_first(raw, "eventId", "event_id")),
        category=_optional_text(raw.get("category")),
        price=_optional_price(raw.get("price")),
        venue=_optional_text(_first(raw, "venue", "venueName", "venue_name")),
        query=_optional_text(raw.get("query")),
        vote=vote,
    )


def parse_interaction_log(
    records: Iterable[InteractionEvent | Mapping[str, Any]],
) -> list[InteractionEvent]:
    """
    Parse a whole log snapshot, skipping malformed records.

    Returns the well-formed records in their original order.
    """
    parsed: list[InteractionEvent] = []
    skipped = 0

    for index, raw in enumerate(records):
        try:
            parsed.append(parse_interaction(raw))
        except InputError as exc:
            skipped += 1
            logger.debug("Skipping malformed interaction %d: %s", index, exc)

    if skipped:
        logger.info(
            "Interaction log parsed: %d kept, %d malformed records skipped",
            len(parsed),
            skipped,
        )

    return parsed
