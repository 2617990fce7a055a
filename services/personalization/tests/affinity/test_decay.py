"""
Tests for services/personalization/affinity/decay.py

Covers:
- decay(0) == 1.0 and decay(half_life) == 0.5 exactly
- Strictly decreasing in age
- Future timestamps clamp to age 0
- Non-positive half-life rejected
"""

from datetime import timedelta

import pytest

from services.personalization.affinity.decay import (
    DEFAULT_HALF_LIFE_DAYS,
    age_days,
    decay_factor,
)
from services.personalization.tests.conftest import NOW


class TestDecayFactor:

    def test_fresh_interaction_full_weight(self):
        assert decay_factor(0.0) == 1.0

    def test_half_life_halves(self):
        assert decay_factor(30.0, 30) == 0.5
        assert decay_factor(DEFAULT_HALF_LIFE_DAYS) == 0.5

    def test_two_half_lives_quarter(self):
        assert decay_factor(14.0, 7) == 0.25

    def test_strictly_decreasing(self):
        ages = [0.0, 0.5, 1.0, 7.0, 29.9, 30.0, 90.0, 365.0]
        values = [decay_factor(age) for age in ages]
        assert all(a > b for a, b in zip(values, values[1:]))
        assert all(v > 0.0 for v in values)

    def test_negative_age_treated_as_zero(self):
        assert decay_factor(-3.0) == 1.0

    @pytest.mark.parametrize("half_life", [0, -1])
    def test_non_positive_half_life_rejected(self, half_life):
        with pytest.raises(ValueError):
            decay_factor(1.0, half_life)


class TestAgeDays:

    def test_fractional_days(self):
        assert age_days(NOW - timedelta(hours=36), NOW) == 1.5

    def test_future_timestamp_is_age_zero(self):
        assert age_days(NOW + timedelta(days=2), NOW) == 0.0
