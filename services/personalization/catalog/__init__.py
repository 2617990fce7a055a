"""
services.personalization.catalog — curated rail categories.
"""

from __future__ import annotations

from services.personalization.catalog.categories import (
    DEFAULT_CATEGORIES,
    CategoryDescriptor,
    category_affinity,
    category_emoji,
    display_name,
    represents,
)

__all__ = [
    "DEFAULT_CATEGORIES",
    "CategoryDescriptor",
    "category_affinity",
    "category_emoji",
    "display_name",
    "represents",
]
