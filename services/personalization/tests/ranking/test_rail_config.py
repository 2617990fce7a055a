"""
Tests for services/personalization/ranking/rail_config.py

Covers:
- Defaults
- Out-of-range values clamp to the nearest bound instead of failing
- Garbage values fall back to the field default
- camelCase aliases and snake_case names both accepted
- coerce() never raises
- from_settings() layers request overrides over Settings defaults
"""

import pytest

from services.personalization.config import Settings
from services.personalization.ranking.rail_config import RailConfig


class TestDefaults:

    def test_defaults(self):
        config = RailConfig()
        assert config.tracking_enabled is True
        assert config.max_rails == 3
        assert config.min_events_per_rail == 4
        assert config.min_interactions == 5
        assert config.discovery_floor == 0.3
        assert config.veto_threshold == 2
        assert config.half_life_days == 30
        assert config.dynamic_categories is True
        assert config.max_generated_categories == 3
        assert config.max_events_per_rail == 20

    def test_frozen(self):
        with pytest.raises(Exception):
            RailConfig().max_rails = 4


class TestClamping:

    @pytest.mark.parametrize("raw,expected", [(1, 3), (3, 3), (4, 4), (5, 5), (9, 5), (4.6, 5)])
    def test_max_rails_clamped_to_3_5(self, raw, expected):
        assert RailConfig(max_rails=raw).max_rails == expected

    @pytest.mark.parametrize("raw,expected", [(-0.5, 0.0), (0.3, 0.3), (1.7, 1.0)])
    def test_discovery_floor_clamped(self, raw, expected):
        assert RailConfig(discovery_floor=raw).discovery_floor == expected

    def test_lower_bounds(self):
        config = RailConfig(min_events_per_rail=0, veto_threshold=-3, half_life_days=0, min_interactions=-1)
        assert config.min_events_per_rail == 1
        assert config.veto_threshold == 1
        assert config.half_life_days == 1
        assert config.min_interactions == 0

    @pytest.mark.parametrize("raw", ["lots", None, float("nan"), True, [3]])
    def test_garbage_number_uses_default(self, raw):
        assert RailConfig(max_rails=raw).max_rails == 3

    def test_infinity_on_unbounded_side_uses_default(self):
        assert RailConfig(min_interactions=float("inf")).min_interactions == 5

    def test_numeric_strings_accepted(self):
        assert RailConfig(max_rails="4").max_rails == 4

    @pytest.mark.parametrize("raw,expected", [("false", False), ("on", True), (0, False), ("maybe", True)])
    def test_flag_coercion(self, raw, expected):
        assert RailConfig(tracking_enabled=raw).tracking_enabled is expected


class TestBuilders:

    def test_coerce_accepts_aliases(self):
        config = RailConfig.coerce({"maxRails": 4, "discoveryFloor": 0.5, "trackingEnabled": False})
        assert config.max_rails == 4
        assert config.discovery_floor == 0.5
        assert config.tracking_enabled is False

    def test_coerce_passthrough_and_none(self):
        config = RailConfig(max_rails=5)
        assert RailConfig.coerce(config) is config
        assert RailConfig.coerce(None) == RailConfig()

    def test_coerce_unusable_input_gives_defaults(self):
        assert RailConfig.coerce(42) == RailConfig()

    def test_unknown_keys_ignored(self):
        assert RailConfig.coerce({"colour": "blue"}) == RailConfig()

    def test_from_settings_with_overrides(self):
        settings = Settings(personalized_rails_max=4, affinity_half_life_days=14)
        config = RailConfig.from_settings(settings, minEventsPerRail=2, discovery_floor=0.5)
        assert config.max_rails == 4
        assert config.half_life_days == 14
        assert config.min_events_per_rail == 2
        assert config.discovery_floor == 0.5

    def test_from_settings_clamps_overrides(self):
        config = RailConfig.from_settings(Settings(), maxRails=50)
        assert config.max_rails == 5
