"""
Personalized rails endpoint.

POST /rails/personalize
- Accepts a snapshot of the visitor's interaction log plus current inventory
- Interaction records stay loosely typed: malformed ones are skipped, not 422'd
- Config overrides are clamped to valid ranges, never rejected
- Always 200 with rails; personalization failure degrades to static order
"""

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from services.personalization.catalog.categories import DEFAULT_CATEGORIES, CategoryDescriptor
from services.personalization.config import settings
from services.personalization.ranking.pipeline import personalize_rails
from services.personalization.ranking.rail_config import RailConfig

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rails", tags=["rails"])


class CategoryPayload(BaseModel):
    """Static catalog entry supplied by the caller."""

    id: str = Field(min_length=1)
    title: str
    emoji: str = "⭐"
    query: str = ""


class PersonalizeRequest(BaseModel):
    interactions: list[dict[str, Any]] = Field(
        default_factory=list, max_length=settings.interactions_max_records
    )
    inventory: dict[str, list[dict[str, Any]] | int] = Field(default_factory=dict)
    categories: list[CategoryPayload] | None = None
    seenEventIds: list[str] = Field(default_factory=list)
    config: dict[str, Any] = Field(default_factory=dict)
    now: datetime | None = None


@router.post("/personalize")
async def personalize(body: PersonalizeRequest, request: Request) -> dict:
    app_settings = getattr(request.app.state, "settings", settings)
    config = RailConfig.from_settings(app_settings, **body.config)
    logger.debug(
        "Personalize request %s: %d interactions, %d inventory categories, overrides=%s",
        request.state.request_id,
        len(body.interactions),
        len(body.inventory),
        sorted(body.config),
    )

    if body.categories is not None:
        static_categories = tuple(
            CategoryDescriptor(id=c.id, title=c.title, emoji=c.emoji, query=c.query)
            for c in body.categories
        )
    else:
        static_categories = DEFAULT_CATEGORIES

    result = personalize_rails(
        body.interactions,
        body.inventory,
        static_categories=static_categories,
        config=config,
        now=body.now,
        seen=body.seenEventIds,
    )

    return {
        "success": True,
        "data": {
            "method": result.method,
            "rails": [rail.to_dict() for rail in result.rails],
            "personalizedCount": result.personalized_count,
            "generated": [category.to_dict() for category in result.generated],
            "affinity": result.affinity.to_dict() if result.affinity else None,
            "vetoedCount": len(result.vetoed),
        },
        "requestId": request.state.request_id,
    }
