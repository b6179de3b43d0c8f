"""Unit tests for the shared normalisation helpers."""

import math

import pytest

from engine.stats import mean_sd, min_max, normalize_value, upper_median, z_score


class TestMeanSd:
    def test_population_sd(self):
        mu, sd = mean_sd([2, 4, 4, 4, 5, 5, 7, 9])
        assert mu == pytest.approx(5.0)
        assert sd == pytest.approx(2.0)

    def test_empty(self):
        assert mean_sd([]) == (0.0, 0.0)


class TestZScore:
    def test_constant_history_gives_zero(self):
        assert z_score([3, 3, 3, 3], 10) == 0.0

    def test_value(self):
        assert z_score([2, 4, 4, 4, 5, 5, 7, 9], 9) == pytest.approx(2.0)


class TestMinMax:
    def test_scales_current_into_unit_range(self):
        assert min_max([1, 2], 3) == pytest.approx(1.0)
        assert min_max([2, 3], 1) == pytest.approx(0.0)
        assert min_max([0, 4], 1) == pytest.approx(0.25)

    def test_flat_pool_gives_zero(self):
        assert min_max([5, 5], 5) == 0.0
        assert min_max([], 5) == 0.0


class TestNormalizeValue:
    def test_short_history_uses_min_max(self):
        assert normalize_value([0, 10], 5) == pytest.approx(0.5)

    def test_long_history_uses_z(self):
        hist = [10] * 7 + [100]
        assert normalize_value(hist, 100) == pytest.approx(math.sqrt(7))

    def test_min_points_is_configurable(self):
        assert normalize_value([2, 4, 4, 4, 5, 5, 7, 9], 9, min_points=20) == pytest.approx(1.0)


class TestUpperMedian:
    def test_odd(self):
        assert upper_median([3, 1, 2]) == 2

    def test_even_takes_upper_middle(self):
        assert upper_median([0.1, 0.4, 0.2, 0.3]) == pytest.approx(0.3)

    def test_empty(self):
        assert upper_median([]) == 0.0
