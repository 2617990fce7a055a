"""
RailConfig — guardrail configuration passed explicitly to every computation.

The core never reads ambient settings. Callers build a RailConfig (from
Settings via RailConfig.from_settings(), or from request overrides) and pass
it in.

Out-of-range values never fail: numbers are clamped to the nearest valid
bound and unparseable values fall back to the field default, with a warning.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

logger = logging.getLogger(__name__)

# field -> (min, max); None means unbounded on that side
_BOUNDS: dict[str, tuple[float | None, float | None]] = {
    "max_rails": (3, 5),
    "min_events_per_rail": (1, None),
    "min_interactions": (0, None),
    "discovery_floor": (0.0, 1.0),
    "veto_threshold": (1, None),
    "half_life_days": (1, None),
    "max_generated_categories": (0, 5),
    "min_generated_signal": (0.0, None),
    "max_events_per_rail": (1, None),
}

_INT_FIELDS = frozenset({
    "max_rails",
    "min_events_per_rail",
    "min_interactions",
    "veto_threshold",
    "half_life_days",
    "max_generated_categories",
    "max_events_per_rail",
})


class RailConfig(BaseModel):
    """Per-call personalization guardrails."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    tracking_enabled: bool = Field(default=True, alias="trackingEnabled")
    max_rails: int = Field(default=3, alias="maxRails")
    min_events_per_rail: int = Field(default=4, alias="minEventsPerRail")
    min_interactions: int = Field(default=5, alias="minInteractions")
    discovery_floor: float = Field(default=0.3, alias="discoveryFloor")
    veto_threshold: int = Field(default=2, alias="vetoThreshold")
    half_life_days: int = Field(default=30, alias="halfLifeDays")

    dynamic_categories: bool = Field(default=True, alias="dynamicCategories")
    max_generated_categories: int = Field(default=3, alias="maxGeneratedCategories")
    min_generated_signal: float = Field(default=50.0, alias="minGeneratedSignal")
    max_events_per_rail: int = Field(default=20, alias="maxEventsPerRail")

    @field_validator("tracking_enabled", "dynamic_categories", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any, info: ValidationInfo) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("1", "true", "yes", "on"):
            return True
        if isinstance(value, str) and value.strip().lower() in ("0", "false", "no", "off", ""):
            return False
        if isinstance(value, int):
            return value != 0
        default = cls.model_fields[info.field_name].default
        logger.warning("RailConfig: %s=%r is not a flag, using default %r", info.field_name, value, default)
        return default

    @field_validator(*_BOUNDS, mode="before")
    @classmethod
    def _clamp(cls, value: Any, info: ValidationInfo) -> float | int:
        name = info.field_name
        default = cls.model_fields[name].default
        try:
            if isinstance(value, bool):
                raise TypeError("boolean is not a number")
            number = float(value)
        except (TypeError, ValueError):
            logger.warning("RailConfig: %s=%r is not a number, using default %r", name, value, default)
            return default
        if math.isnan(number):
            logger.warning("RailConfig: %s is NaN, using default %r", name, default)
            return default

        low, high = _BOUNDS[name]
        clamped = number
        if low is not None and clamped < low:
            clamped = low
        if high is not None and clamped > high:
            clamped = high
        if math.isinf(clamped):
            clamped = default
        if clamped != number:
            logger.warning("RailConfig: %s=%r out of range, clamped to %r", name, value, clamped)

        return int(round(clamped)) if name in _INT_FIELDS else clamped

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    @classmethod
    def coerce(cls, raw: "RailConfig | Mapping[str, Any] | None") -> "RailConfig":
        """Build a RailConfig from anything a caller might pass; never raises."""
        if isinstance(raw, RailConfig):
            return raw
        if raw is None:
            return cls()
        try:
            return cls.model_validate(dict(raw))
        except (ValidationError, TypeError, ValueError):
            logger.warning("RailConfig: unusable config %r, using defaults", raw, exc_info=True)
            return cls()

    @classmethod
    def from_settings(cls, settings: Any, **overrides: Any) -> "RailConfig":
        """Defaults from service Settings, then per-request overrides on top."""
        values: dict[str, Any] = {
            "tracking_enabled": settings.personalized_rails_enabled,
            "max_rails": settings.personalized_rails_max,
            "min_events_per_rail": settings.personalized_rails_min_events,
            "min_interactions": settings.personalized_rails_min_interactions,
            "discovery_floor": settings.personalized_discovery_floor,
            "veto_threshold": settings.personalized_veto_threshold,
            "half_life_days": settings.affinity_half_life_days,
            "dynamic_categories": settings.dynamic_categories_enabled,
            "max_generated_categories": settings.dynamic_categories_limit,
            "max_events_per_rail": settings.rail_events_limit,
        }
        aliases = {f.alias: name for name, f in cls.model_fields.items() if f.alias}
        for key, value in overrides.items():
            values[aliases.get(key, key)] = value
        return cls.coerce(values)
