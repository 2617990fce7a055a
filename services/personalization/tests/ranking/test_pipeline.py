"""
Tests for services/personalization/ranking/pipeline.py and rails.py

Covers:
- Cold start and tracking-disabled paths keep the curated order
- End-to-end: strong music signal puts Music & Concerts first at 100%
- Generated rails surface when they have inventory
- Vetoed and seen events never reach a rail, on every path
- Per-rail event cap
- Unexpected failures degrade to "fallback", never raise
- Category keys credit the static category that represents them
- Naive and string reference times read as UTC
"""

import pytest

from services.personalization.catalog import DEFAULT_CATEGORIES, CategoryDescriptor
from services.personalization.ranking import personalize_rails
from services.personalization.ranking.assembler import RankedCategory
from services.personalization.ranking.pipeline import (
    METHOD_COLD_START,
    METHOD_FALLBACK,
    METHOD_PERSONALIZED,
    METHOD_TRACKING_DISABLED,
)
from services.personalization.ranking.rails import build_rails
from services.personalization.tests.conftest import (
    NOW,
    make_downvotes,
    make_events,
    make_interaction,
    make_inventory,
)

CATALOG_IDS = [c.id for c in DEFAULT_CATEGORIES]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _music_log() -> list[dict]:
    log = [make_interaction("click", category="music-concerts", eventId=f"m{i}") for i in range(5)]
    log.append(make_interaction("save", category="music-concerts", eventId="m0"))
    return log


def _rail_ids(result) -> list[str]:
    return [rail.category_id for rail in result.rails]


def _all_event_ids(result) -> set[str]:
    return {event["id"] for rail in result.rails for event in rail.events}


# ---------------------------------------------------------------------------
# 1. Gate paths
# ---------------------------------------------------------------------------

class TestGatePaths:

    def test_cold_start(self):
        log = [make_interaction("save", category="comedy-improv") for _ in range(4)]
        result = personalize_rails(log, make_inventory(CATALOG_IDS), now=NOW)
        assert result.method == METHOD_COLD_START
        assert _rail_ids(result) == CATALOG_IDS
        assert result.personalized_count == 0
        assert result.affinity is None
        assert all(rail.affinity_percent == 0 for rail in result.rails)

    def test_empty_log(self):
        result = personalize_rails([], make_inventory(CATALOG_IDS), now=NOW)
        assert result.method == METHOD_COLD_START
        assert _rail_ids(result) == CATALOG_IDS

    def test_malformed_records_do_not_count(self):
        log = _music_log()[:4] + [{"type": "click"}, None, "garbage"]
        result = personalize_rails(log, make_inventory(CATALOG_IDS), now=NOW)
        assert result.method == METHOD_COLD_START

    def test_tracking_disabled(self):
        result = personalize_rails(
            _music_log(), make_inventory(CATALOG_IDS), config={"trackingEnabled": False}, now=NOW,
        )
        assert result.method == METHOD_TRACKING_DISABLED
        assert _rail_ids(result) == CATALOG_IDS
        assert result.personalized_count == 0


# ---------------------------------------------------------------------------
# 2. Personalized path
# ---------------------------------------------------------------------------

class TestPersonalized:

    def test_music_first_at_full_affinity(self):
        result = personalize_rails(_music_log(), make_inventory(CATALOG_IDS), now=NOW)
        assert result.method == METHOD_PERSONALIZED
        first = result.rails[0]
        assert first.category_id == "music-concerts"
        assert first.is_personalized
        assert first.affinity_percent == 100
        assert result.personalized_count == 1
        assert result.affinity.categories == {"music-concerts": 1.0}
        # The weekday pattern has no inventory, so it never reaches a rail
        assert [c.id for c in result.generated] == ["time-weekday"]
        assert _rail_ids(result)[1:] == [cid for cid in CATALOG_IDS if cid != "music-concerts"]

    def test_deterministic(self):
        inventory = make_inventory(CATALOG_IDS)
        first = personalize_rails(_music_log(), inventory, now=NOW)
        second = personalize_rails(list(reversed(_music_log())), inventory, now=NOW)
        assert [r.to_dict() for r in first.rails] == [r.to_dict() for r in second.rails]

    def test_generated_rail_with_inventory(self):
        log = [make_interaction("search", query="jazz") for _ in range(5)]
        inventory = make_inventory(CATALOG_IDS + ["search-jazz"])
        result = personalize_rails(log, inventory, now=NOW)
        assert [c.id for c in result.generated] == ["search-jazz", "time-weekday"]
        first = result.rails[0]
        assert first.category_id == "search-jazz"
        assert first.is_generated and first.is_personalized
        assert first.reason == 'You searched for "jazz" 5 times'
        assert len(result.rails) == len(CATALOG_IDS) + 1

    def test_generated_rail_without_inventory_dropped(self):
        log = [make_interaction("search", query="jazz") for _ in range(5)]
        result = personalize_rails(log, make_inventory(CATALOG_IDS), now=NOW)
        assert [c.id for c in result.generated] == ["search-jazz", "time-weekday"]
        assert "search-jazz" not in _rail_ids(result)

    def test_dynamic_categories_disabled(self):
        log = [make_interaction("search", query="jazz") for _ in range(5)]
        inventory = make_inventory(CATALOG_IDS + ["search-jazz"])
        result = personalize_rails(log, inventory, config={"dynamicCategories": False}, now=NOW)
        assert result.generated == []
        assert "search-jazz" not in _rail_ids(result)

    def test_floor_and_cap_over_full_catalog(self):
        log = [
            make_interaction("save", category=cid, days_ago=i)
            for i, cid in enumerate(CATALOG_IDS[:10])
        ]
        result = personalize_rails(log, make_inventory(CATALOG_IDS), config={"maxRails": 5}, now=NOW)
        assert result.personalized_count == 5
        assert _rail_ids(result)[:5] == CATALOG_IDS[:5]

    def test_category_key_credits_the_static_that_represents_it(self):
        log = [make_interaction("click", category="music") for _ in range(5)]
        log.append(make_interaction("save", category="music"))
        result = personalize_rails(log, make_inventory(CATALOG_IDS), now=NOW)
        assert result.method == METHOD_PERSONALIZED
        first = result.rails[0]
        assert first.category_id == "music-concerts"
        assert first.is_personalized
        assert first.affinity_percent == 100
        assert result.personalized_count == 1


# ---------------------------------------------------------------------------
# 3. Reference time
# ---------------------------------------------------------------------------

class TestReferenceTime:

    def test_naive_now_taken_as_utc(self):
        inventory = make_inventory(CATALOG_IDS)
        naive = personalize_rails(_music_log(), inventory, now=NOW.replace(tzinfo=None))
        aware = personalize_rails(_music_log(), inventory, now=NOW)
        assert naive.method == METHOD_PERSONALIZED
        assert [r.to_dict() for r in naive.rails] == [r.to_dict() for r in aware.rails]
        assert naive.affinity.computed_at == NOW

    def test_iso_string_now(self):
        result = personalize_rails(_music_log(), make_inventory(CATALOG_IDS), now="2026-03-10T12:00:00")
        assert result.method == METHOD_PERSONALIZED
        assert result.affinity.computed_at == NOW

    def test_unusable_now_uses_current_time(self):
        result = personalize_rails(_music_log(), make_inventory(CATALOG_IDS), now="not a time")
        assert result.method == METHOD_PERSONALIZED
        assert result.affinity.computed_at.tzinfo is not None


# ---------------------------------------------------------------------------
# 4. Event filtering
# ---------------------------------------------------------------------------

class TestEventFiltering:

    def test_vetoed_events_removed_on_cold_start(self):
        log = make_downvotes("music-concerts-0")
        result = personalize_rails(log, make_inventory(CATALOG_IDS), now=NOW)
        assert result.method == METHOD_COLD_START
        assert result.vetoed == frozenset({"music-concerts-0"})
        assert "music-concerts-0" not in _all_event_ids(result)

    def test_vetoed_events_removed_on_personalized_path(self):
        log = _music_log() + make_downvotes("music-concerts-3")
        result = personalize_rails(log, make_inventory(CATALOG_IDS), now=NOW)
        assert result.method == METHOD_PERSONALIZED
        assert "music-concerts-3" not in _all_event_ids(result)
        assert len(result.rails[0].events) == 9

    def test_single_downvote_keeps_event(self):
        log = _music_log() + make_downvotes("music-concerts-3", count=1)
        result = personalize_rails(log, make_inventory(CATALOG_IDS), now=NOW)
        assert "music-concerts-3" in _all_event_ids(result)

    def test_seen_events_removed(self):
        result = personalize_rails(
            _music_log(), make_inventory(CATALOG_IDS), now=NOW, seen=["comedy-improv-1"],
        )
        assert "comedy-improv-1" not in _all_event_ids(result)

    def test_event_cap(self):
        inventory = {cid: make_events(cid, 30) for cid in CATALOG_IDS}
        result = personalize_rails(_music_log(), inventory, config={"maxEventsPerRail": 5}, now=NOW)
        assert all(len(rail.events) == 5 for rail in result.rails)


# ---------------------------------------------------------------------------
# 5. Fallback
# ---------------------------------------------------------------------------

class TestFallback:

    def test_malformed_inventory_falls_back(self):
        inventory = make_inventory(CATALOG_IDS)
        inventory["music-concerts"] = "plenty"
        result = personalize_rails(_music_log(), inventory, now=NOW)
        assert result.method == METHOD_FALLBACK
        assert _rail_ids(result) == CATALOG_IDS
        assert result.personalized_count == 0
        assert result.rails[0].events == []

    def test_broken_affinity_falls_back(self, monkeypatch):
        def _boom(*args, **kwargs):
            raise RuntimeError("scoring exploded")

        monkeypatch.setattr("services.personalization.ranking.pipeline.compute_affinity", _boom)
        result = personalize_rails(_music_log(), make_inventory(CATALOG_IDS), now=NOW)
        assert result.method == METHOD_FALLBACK
        assert result.affinity is None
        assert _rail_ids(result) == CATALOG_IDS

    def test_custom_catalog(self):
        catalog = [CategoryDescriptor("a", "A", "⭐", "a"), CategoryDescriptor("b", "B", "⭐", "b")]
        result = personalize_rails([], {}, static_categories=catalog, now=NOW)
        assert _rail_ids(result) == ["a", "b"]


# ---------------------------------------------------------------------------
# 6. build_rails
# ---------------------------------------------------------------------------

class TestBuildRails:

    def test_count_inventory_gives_empty_event_list(self):
        ranked = [RankedCategory(descriptor=DEFAULT_CATEGORIES[0], usable_inventory=12)]
        rails = build_rails(ranked, {"music-concerts": 12}, frozenset())
        assert rails[0].events == []

    def test_to_dict_camel_case(self):
        ranked = [RankedCategory(descriptor=DEFAULT_CATEGORIES[0].with_score(0.42), is_personalized=True)]
        data = build_rails(ranked, {}, frozenset())[0].to_dict()
        assert data["categoryId"] == "music-concerts"
        assert data["isPersonalized"] is True
        assert data["affinityPercent"] == 42
        assert data["events"] == []

    @pytest.mark.parametrize("excluded", [{"music-concerts-0"}, set()])
    def test_excluded_ids(self, excluded):
        ranked = [RankedCategory(descriptor=DEFAULT_CATEGORIES[0])]
        rails = build_rails(ranked, {"music-concerts": make_events("music-concerts", 3)}, frozenset(excluded))
        assert len(rails[0].events) == 3 - len(excluded)
