"""
services.personalization.ranking — guardrailed rail ordering.

All rail reads go through personalize_rails(). The assembler, veto filter
and rail builder are exposed for callers that already hold an affinity
profile.

Usage:
    from services.personalization.ranking import personalize_rails

    result = personalize_rails(log, inventory, config={"maxRails": 4})
    for rail in result.rails:
        ...
"""

from __future__ import annotations

from services.personalization.ranking.assembler import (
    ComputationError,
    RankedCategory,
    assemble_rails,
)
from services.personalization.ranking.pipeline import PersonalizationResult, personalize_rails
from services.personalization.ranking.rail_config import RailConfig
from services.personalization.ranking.rails import Rail, build_rails
from services.personalization.ranking.veto import compute_veto_registry, compute_vetoed

__all__ = [
    "ComputationError",
    "PersonalizationResult",
    "Rail",
    "RailConfig",
    "RankedCategory",
    "assemble_rails",
    "build_rails",
    "compute_veto_registry",
    "compute_vetoed",
    "personalize_rails",
]
