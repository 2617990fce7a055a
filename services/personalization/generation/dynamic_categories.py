"""
Dynamic category generator — synthesize rails the catalog never curated.

Interest sources, scanned record by record:
  search      repeated free-text queries            -> "search-<term>"
  category    category ids outside the catalog      -> "category-<id>"
  venue       venues the user keeps coming back to  -> "venue-<name>"
  price       free events dominating price affinity -> "price-free"

Pattern sources, read off the affinity profile:
  time        weekend or weekday clearly dominant   -> "time-weekend" | "time-weekday"
  budget      under25 + under50 price affinity      -> "price-budget"
  hybrid      two strongest catalog categories      -> "hybrid-<a>-<b>"
  engagement  categories the user mostly saves      -> "engagement-<id>"

Each source is decay-weighted exactly like compute_affinity(). A candidate
is emitted only when:
  1. its weighted signal is strictly above min_signal
  2. at least MIN_OCCURRENCES positive records fed it
  3. its source gate passes (pattern sources, free events)
  4. no static category already represents it (interest sources only)

Interest scores are weighted signal / strongest raw signal in the log
(interest candidate or category), so they sit on the same 0-1 scale as
static category affinity. Pattern scores come from the profile itself.
Output is capped at max_generated; ties go to the larger interaction count,
then the most recent occurrence, then the id.

Pure function, no persistence. Generated categories live for one computation.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from services.personalization.affinity.decay import (
    DEFAULT_HALF_LIFE_DAYS,
    age_days,
    decay_factor,
)
from services.personalization.affinity.engine import WEEKDAY, WEEKEND, day_type, weighted_contributions
from services.personalization.affinity.types import AffinityProfile
from services.personalization.catalog.categories import (
    CategoryDescriptor,
    category_affinity,
    category_emoji,
    display_name,
    represents,
    slugify,
    tokenize,
)
from services.personalization.interactions.parsing import parse_interaction_log, parse_timestamp
from services.personalization.interactions.taxonomy import (
    get_affinity_weight,
    is_negative_interaction,
    is_positive_interaction,
)
from services.personalization.interactions.types import InteractionEvent, InteractionType, Vote

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_MAX_GENERATED = 3

# Two fresh searches (2 x 30) clear this; a single save (50) does not
DEFAULT_MIN_SIGNAL = 50.0

MIN_OCCURRENCES = 2

# Free-events rail: price affinity gate and minimum free-priced records
FREE_AFFINITY_GATE = 0.6
FREE_MIN_COUNT = 3

# One day type must beat the other by this factor
TIME_DOMINANCE_RATIO = 1.5

# under25 + under50 price affinity must exceed this
BUDGET_AFFINITY_GATE = 0.5
BUDGET_PRICE_LIMIT = 50.0

# Mean affinity of the two strongest catalog categories must exceed this
HYBRID_AFFINITY_GATE = 0.5

# (saves + up-votes) / records in the category, over at least this many records
ENGAGEMENT_SAVE_RATE = 0.7
ENGAGEMENT_MIN_COUNT = 3

INTEREST_SOURCES = frozenset({"search", "category", "venue", "price"})

_SEARCH_EMOJI = "🔍"
_VENUE_EMOJI = "📍"
_FREE_EMOJI = "🆓"
_ENGAGEMENT_EMOJI = "⭐"

_TIME_RAILS: dict[str, tuple[str, str, str, str]] = {
    WEEKEND: ("Weekend Adventures", "🎉", "weekend", "You prefer weekend events"),
    WEEKDAY: ("Weekday Events", "📅", "weekday", "You love weekday events"),
}


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


@dataclass
class _Candidate:
    id: str
    term: str
    source: str
    contributions: list[float] = field(default_factory=list)
    count: int = 0
    last_seen: datetime | None = None

    def add(self, contribution: float, timestamp: datetime) -> None:
        self.contributions.append(contribution)
        # Unsaves lower the signal but are not occurrences
        if contribution <= 0.0:
            return
        self.count += 1
        if self.last_seen is None or timestamp > self.last_seen:
            self.last_seen = timestamp

    @property
    def signal(self) -> float:
        return math.fsum(self.contributions)


@dataclass
class _Engagement:
    engaged: int = 0
    total: int = 0

    @property
    def rate(self) -> float:
        return self.engaged / self.total if self.total else 0.0


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _normalize_term(text: str) -> str:
    return " ".join(tokenize(text))


def _is_represented(term: str, static_categories: Sequence[CategoryDescriptor]) -> bool:
    """True when a static category already covers `term`. Blank terms count as covered."""
    if not tokenize(term):
        return True
    return any(represents(category, term) for category in static_categories)


def _hybrid_pair(
    affinity: AffinityProfile,
    static_categories: Sequence[CategoryDescriptor],
) -> tuple[CategoryDescriptor, CategoryDescriptor] | None:
    """The two strongest catalog categories, when their mean clears the gate."""
    scored = [
        (category_affinity(category, affinity.categories), index, category)
        for index, category in enumerate(static_categories)
    ]
    scored = sorted((item for item in scored if item[0] > 0.0), key=lambda item: (-item[0], item[1]))
    if len(scored) < 2:
        return None
    (first_score, _, first), (second_score, _, second) = scored[:2]
    if (first_score + second_score) / 2 <= HYBRID_AFFINITY_GATE:
        return None
    return first, second


def _feeds_hybrid(category_id: str, pair: tuple[CategoryDescriptor, CategoryDescriptor]) -> bool:
    return any(category_id == c.id or represents(c, category_id) for c in pair)


def _build_descriptor(
    candidate: _Candidate,
    score: float,
    static_by_id: Mapping[str, CategoryDescriptor],
    hybrid: tuple[CategoryDescriptor, CategoryDescriptor] | None,
) -> CategoryDescriptor:
    def _generated(title: str, emoji: str, query: str, reason: str) -> CategoryDescriptor:
        return CategoryDescriptor(
            id=candidate.id,
            title=title,
            emoji=emoji,
            query=query,
            score=score,
            is_generated=True,
            reason=reason,
        )

    if candidate.source == "search":
        emoji = category_emoji(candidate.term)
        return _generated(
            f"More {candidate.term.title()}",
            _SEARCH_EMOJI if emoji == "⭐" else emoji,
            candidate.term,
            f'You searched for "{candidate.term}" {candidate.count} times',
        )
    if candidate.source == "venue":
        return _generated(
            f"Events at {candidate.term}", _VENUE_EMOJI, candidate.term, f"You love {candidate.term}",
        )
    if candidate.source == "price":
        return _generated(
            "Free Events", _FREE_EMOJI, "free", f"{candidate.count} free events caught your eye",
        )
    if candidate.source == "time":
        return _generated(*_TIME_RAILS[candidate.term])
    if candidate.source == "budget":
        return _generated("Budget-Friendly Events", "💰", "affordable", "You prefer affordable events")
    if candidate.source == "hybrid" and hybrid is not None:
        first, second = hybrid
        first_word = (first.title.split() or [first.id])[0]
        second_word = (second.title.split() or [second.id])[0]
        return _generated(
            f"{first.title} & {second.title}",
            f"{first.emoji}{second.emoji}",
            f"{first_word} {second_word}",
            "Your unique combination",
        )
    if candidate.source == "engagement":
        static = static_by_id.get(candidate.term)
        title = static.title if static else display_name(candidate.term)
        query = static.query if static else " ".join(tokenize(candidate.term))
        return _generated(
            f"Can't Miss {title}",
            _ENGAGEMENT_EMOJI,
            query,
            f"{round(score * 100)}% save rate",
        )

    title = display_name(candidate.term)
    return _generated(
        title,
        category_emoji(candidate.term),
        " ".join(tokenize(candidate.term)),
        f"{candidate.count} interactions with {title}",
    )


def _collect_candidates(
    records: Iterable[InteractionEvent],
    now: datetime,
    half_life_days: float,
    static_categories: Sequence[CategoryDescriptor],
    hybrid: tuple[CategoryDescriptor, CategoryDescriptor] | None,
) -> tuple[dict[str, _Candidate], dict[str, _Engagement]]:
    static_ids = {c.id for c in static_categories}
    candidates: dict[str, _Candidate] = {}
    engagement: dict[str, _Engagement] = defaultdict(_Engagement)

    def _touch(candidate_id: str, term: str, source: str, contribution: float, ts: datetime) -> None:
        candidate = candidates.get(candidate_id)
        if candidate is None:
            candidate = candidates[candidate_id] = _Candidate(id=candidate_id, term=term, source=source)
        candidate.add(contribution, ts)

    for record in records:
        if record.category:
            tally = engagement[record.category]
            tally.total += 1
            if record.type is InteractionType.SAVE or (
                record.type is InteractionType.VOTE and record.vote is Vote.UP
            ):
                tally.engaged += 1

        if not (is_positive_interaction(record.type) or is_negative_interaction(record.type)):
            continue
        contribution = decay_factor(age_days(record.timestamp, now), half_life_days) * get_affinity_weight(record.type)

        if record.type is InteractionType.SEARCH and record.query:
            term = _normalize_term(record.query)
            if term and not _is_represented(term, static_categories):
                _touch(f"search-{slugify(term)}", term, "search", contribution, record.timestamp)

        if record.category and record.category not in static_ids:
            if not _is_represented(record.category, static_categories):
                _touch(f"category-{slugify(record.category)}", record.category, "category", contribution, record.timestamp)

        if record.venue and slugify(record.venue):
            if not _is_represented(record.venue, static_categories):
                _touch(f"venue-{slugify(record.venue)}", record.venue, "venue", contribution, record.timestamp)

        if record.price == 0:
            _touch("price-free", "free", "price", contribution, record.timestamp)
        elif record.price is not None and 0 < record.price < BUDGET_PRICE_LIMIT:
            _touch("price-budget", "budget", "budget", contribution, record.timestamp)

        day = day_type(record.timestamp)
        _touch(f"time-{day}", day, "time", contribution, record.timestamp)

        if hybrid is not None and record.category and _feeds_hybrid(record.category, hybrid):
            hybrid_id = f"hybrid-{hybrid[0].id}-{hybrid[1].id}"
            _touch(hybrid_id, hybrid_id, "hybrid", contribution, record.timestamp)

        if record.category and record.type is InteractionType.SAVE:
            _touch(f"engagement-{slugify(record.category)}", record.category, "engagement", contribution, record.timestamp)

    return candidates, engagement


def _pattern_score(
    candidate: _Candidate,
    affinity: AffinityProfile,
    hybrid: tuple[CategoryDescriptor, CategoryDescriptor] | None,
    engagement: Mapping[str, _Engagement],
) -> float | None:
    """Profile-derived score for a pattern candidate, or None when its gate fails."""
    if candidate.source == "time":
        mine = affinity.time_patterns.get(candidate.term, 0.0)
        other = affinity.time_patterns.get(WEEKDAY if candidate.term == WEEKEND else WEEKEND, 0.0)
        return mine if mine > other * TIME_DOMINANCE_RATIO else None
    if candidate.source == "budget":
        budget = affinity.price_ranges.get("under25", 0.0) + affinity.price_ranges.get("under50", 0.0)
        return budget / 2 if budget > BUDGET_AFFINITY_GATE else None
    if candidate.source == "hybrid":
        if hybrid is None:
            return None
        return (
            category_affinity(hybrid[0], affinity.categories)
            + category_affinity(hybrid[1], affinity.categories)
        ) / 2
    if candidate.source == "engagement":
        tally = engagement.get(candidate.term)
        if tally is None or tally.total < ENGAGEMENT_MIN_COUNT or tally.rate < ENGAGEMENT_SAVE_RATE:
            return None
        return tally.rate
    return None


def _qualifies(
    candidate: _Candidate,
    min_signal: float,
    affinity: AffinityProfile,
    static_categories: Sequence[CategoryDescriptor],
) -> bool:
    if candidate.signal <= min_signal or candidate.count < MIN_OCCURRENCES:
        return False
    if candidate.source == "price":
        return (
            affinity.price_ranges.get("free", 0.0) > FREE_AFFINITY_GATE
            and candidate.count >= FREE_MIN_COUNT
            and not _is_represented("free", static_categories)
        )
    return True


def _rank_key(item: tuple[CategoryDescriptor, _Candidate]) -> tuple:
    descriptor, candidate = item
    last_seen = candidate.last_seen.timestamp() if candidate.last_seen else 0.0
    return (-descriptor.score, -candidate.count, -last_seen, descriptor.id)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def generate_dynamic_categories(
    log: Iterable[InteractionEvent | Mapping[str, Any]],
    affinity: AffinityProfile,
    static_categories: Sequence[CategoryDescriptor],
    now: datetime | None = None,
    half_life_days: float = DEFAULT_HALF_LIFE_DAYS,
    max_generated: int = DEFAULT_MAX_GENERATED,
    min_signal: float = DEFAULT_MIN_SIGNAL,
) -> list[CategoryDescriptor]:
    """
    Synthesize up to max_generated categories from the log.

    Args:
        log:               InteractionEvents or raw records.
        affinity:          Profile computed from the same log snapshot.
        static_categories: The curated catalog; anything it represents is skipped.
        now:               Decay reference. Defaults to affinity.computed_at;
                           naive values are taken as UTC.
        half_life_days:    Decay half-life, same as the affinity engine's.
        max_generated:     Output cap.
        min_signal:        Weighted signal a candidate must strictly exceed.

    Returns:
        Generated CategoryDescriptors (is_generated=True), best first.
    """
    if max_generated <= 0:
        return []

    now = parse_timestamp(now or affinity.computed_at)
    records = parse_interaction_log(log)
    hybrid = _hybrid_pair(affinity, static_categories)
    candidates, engagement = _collect_candidates(records, now, half_life_days, static_categories, hybrid)
    if not candidates:
        return []

    category_sums = weighted_contributions(records, now, half_life_days)["categories"]
    reference = max(
        [math.fsum(parts) for parts in category_sums.values()]
        + [c.signal for c in candidates.values() if c.source in INTEREST_SOURCES],
        default=0.0,
    )
    static_by_id = {c.id: c for c in static_categories}

    qualified: dict[str, tuple[CategoryDescriptor, _Candidate]] = {}
    for candidate in candidates.values():
        if not _qualifies(candidate, min_signal, affinity, static_categories):
            continue
        if candidate.source in INTEREST_SOURCES:
            if reference <= 0.0:
                continue
            score = min(candidate.signal / reference, 1.0)
        else:
            pattern_score = _pattern_score(candidate, affinity, hybrid, engagement)
            if pattern_score is None:
                continue
            score = min(max(pattern_score, 0.0), 1.0)
        descriptor = _build_descriptor(candidate, score, static_by_id, hybrid)

        # The same term can surface from several sources; keep the strongest
        term_key = slugify(candidate.term)
        existing = qualified.get(term_key)
        if existing is None or _rank_key((descriptor, candidate)) < _rank_key(existing):
            qualified[term_key] = (descriptor, candidate)

    ranked = sorted(qualified.values(), key=_rank_key)
    generated = [descriptor for descriptor, _ in ranked[:max_generated]]

    logger.debug(
        "Dynamic categories: candidates=%d qualified=%d emitted=%s",
        len(candidates),
        len(qualified),
        [d.id for d in generated],
    )

    return generated
