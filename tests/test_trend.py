"""
Tests for the trend analyzer and the rounding helpers it relies on.
"""
import pytest

from vitalstudy.services.trend import (
    TREND_THRESHOLD,
    Trend,
    calculate_trend,
    mean,
    round_half_up,
)


class TestRoundHalfUp:
    def test_half_goes_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(0.5) == 1

    def test_negative_half_goes_toward_positive_infinity(self):
        assert round_half_up(-2.5) == -2
        assert round_half_up(-10.5) == -10
        assert round_half_up(-2.51) == -3
        assert round_half_up(-0.125, 2) == -0.12

    def test_precision(self):
        assert round_half_up(1.005, 2) == 1.01
        assert round_half_up(0.125, 2) == 0.13

    def test_int_when_precision_zero(self):
        assert isinstance(round_half_up(2.4), int)


class TestMean:
    def test_empty_is_zero(self):
        assert mean([]) == 0.0

    def test_mean(self):
        assert mean([1, 2, 3]) == 2


class TestCalculateTrend:
    @pytest.mark.parametrize("values", [[], [5], [0], [1234.5]])
    def test_insufficient_data(self, values):
        result = calculate_trend(values)
        assert result.trend == Trend.insufficient_data
        assert result.percentage == 0

    def test_increasing(self):
        result = calculate_trend([1, 2, 3, 4, 5, 6])
        assert result.trend == Trend.increasing
        assert result.percentage == 150

    def test_decreasing(self):
        result = calculate_trend([6, 5, 4, 3, 2, 1])
        assert result.trend == Trend.decreasing
        assert result.percentage < 0

    def test_odd_length_midpoint_in_second_half(self):
        # first half [10], second half [10, 13] -> +15%
        result = calculate_trend([10, 10, 13])
        assert result.percentage == 15
        assert result.trend == Trend.increasing

    def test_threshold_is_exclusive(self):
        # exactly +10% stays stable
        result = calculate_trend([100, 110])
        assert result.percentage == TREND_THRESHOLD
        assert result.trend == Trend.stable

    def test_zero_first_half_is_stable(self):
        result = calculate_trend([0, 0, 5, 5])
        assert result.percentage == 0
        assert result.trend == Trend.stable

    def test_negative_half_percentage_stays_at_threshold(self):
        # (179 - 200) / 200 = -10.5% rounds to -10, which is still stable
        result = calculate_trend([200, 179])
        assert result.percentage == -10
        assert result.trend == Trend.stable
