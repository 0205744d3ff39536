"""
Tests for the fixed-point math library.

Tests cover:
- Mean, population variance, standard deviation
- EWMA and weighted average
- Tick to price conversion
- Error cases
"""

import pytest

from core import fixed_math
from core.constants import BPS, PRECISION


# =============================================================
# TEST: Statistics
# =============================================================

class TestStatistics:
    """Integer statistics with floor division."""

    def test_mean_floors(self):
        assert fixed_math.mean([1, 2]) == 1
        assert fixed_math.mean([10, 20, 30]) == 20

    def test_population_variance_and_std_dev(self):
        values = [2, 4, 4, 4, 5, 5, 7, 9]
        assert fixed_math.variance(values) == 4
        assert fixed_math.std_dev(values) == 2

    def test_std_dev_in_fixed_point(self):
        values = [100 * PRECISION, 102 * PRECISION, 98 * PRECISION, 101 * PRECISION]
        # sqrt(2.1875) = 1.4790...
        deviation = fixed_math.std_dev(values)
        assert 1479 * PRECISION // 1000 <= deviation < 1480 * PRECISION // 1000

    def test_empty_sequences_rejected(self):
        with pytest.raises(ValueError):
            fixed_math.mean([])
        with pytest.raises(ValueError):
            fixed_math.variance([])

    def test_isqrt_rejects_negative(self):
        assert fixed_math.isqrt(17) == 4
        with pytest.raises(ValueError):
            fixed_math.isqrt(-1)


class TestAverages:
    """EWMA and weighted average."""

    def test_ewma_seeds_with_first_value(self):
        assert fixed_math.ewma([100], 2000) == 100
        assert fixed_math.ewma([100, 200], 5000) == 150

    def test_ewma_alpha_range(self):
        with pytest.raises(ValueError):
            fixed_math.ewma([1, 2], 0)
        with pytest.raises(ValueError):
            fixed_math.ewma([1, 2], BPS + 1)

    def test_weighted_average(self):
        assert fixed_math.weighted_average([2000, 8000], [10, 30]) == 6500

    def test_weighted_average_rejects_bad_input(self):
        with pytest.raises(ValueError):
            fixed_math.weighted_average([1, 2], [1])
        with pytest.raises(ValueError):
            fixed_math.weighted_average([1], [0])

    def test_mul_div(self):
        assert fixed_math.mul_div(7, 3, 2) == 10
        with pytest.raises(ZeroDivisionError):
            fixed_math.mul_div(1, 1, 0)

    def test_clamp_score(self):
        assert fixed_math.clamp_score(-5) == 0
        assert fixed_math.clamp_score(4200) == 4200
        assert fixed_math.clamp_score(20_000) == BPS


# =============================================================
# TEST: Ticks
# =============================================================

class TestTickToPrice:
    """1.0001 ** tick in PRECISION scale."""

    def test_tick_zero_is_one(self):
        assert fixed_math.tick_to_price(0) == PRECISION

    def test_tick_one_is_base(self):
        assert fixed_math.tick_to_price(1) == fixed_math.TICK_BASE

    def test_negative_tick_is_reciprocal(self):
        assert fixed_math.tick_to_price(-1) == PRECISION * PRECISION // fixed_math.TICK_BASE
        assert fixed_math.tick_to_price(-1) < PRECISION

    def test_large_tick(self):
        # 1.0001 ** 10000 = 2.71814...
        result = fixed_math.tick_to_price(10_000)
        assert 27181 * PRECISION // 10_000 <= result < 27182 * PRECISION // 10_000

    def test_monotonic(self):
        prices = [fixed_math.tick_to_price(t) for t in (-200, -100, 0, 100, 200)]
        assert prices == sorted(prices)
