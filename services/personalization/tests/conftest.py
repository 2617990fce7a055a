"""
Shared test fixtures for the personalization test suite.

Provides:
- async FastAPI test client (no external services involved)
- factory functions for interaction records and inventory events
- a fixed reference instant so decay math is reproducible
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

# Ensure test env vars before any app imports
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

# Tuesday; NOW - 3 days is a Saturday
NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# FastAPI test client
# ---------------------------------------------------------------------------

@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
async def app():
    """The service app with its settings attached, as the lifespan would."""
    from services.personalization.config import settings
    from services.personalization.main import app as _app

    _app.state.settings = settings
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP client bound to the test app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Factory functions
# ---------------------------------------------------------------------------

def make_interaction(type: str = "click", days_ago: float = 0.0, **overrides: Any) -> dict:
    """Raw interaction record as a client would write it to the log."""
    record: dict[str, Any] = {
        "type": type,
        "timestamp": (NOW - timedelta(days=days_ago)).isoformat(),
    }
    record.update(overrides)
    return record


def make_downvotes(event_id: str, count: int = 2, days_ago: float = 0.0) -> list[dict]:
    return [
        make_interaction("vote", days_ago=days_ago, eventId=event_id, vote="down")
        for _ in range(count)
    ]


def make_events(prefix: str, count: int) -> list[dict]:
    """Inventory events with ids '<prefix>-0' .. '<prefix>-<count-1>'."""
    return [
        {"id": f"{prefix}-{i}", "title": f"{prefix.title()} event {i}"}
        for i in range(count)
    ]


def make_inventory(category_ids, per_category: int = 10) -> dict[str, list[dict]]:
    """Uniform inventory: per_category events for every id."""
    return {cid: make_events(cid, per_category) for cid in category_ids}
