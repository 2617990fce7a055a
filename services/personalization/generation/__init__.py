"""
services.personalization.generation — synthesized (dynamic) rail categories.
"""

from __future__ import annotations

from services.personalization.generation.dynamic_categories import generate_dynamic_categories

__all__ = ["generate_dynamic_categories"]
