"""
Trend analyzer.

Compares the mean of the first half of a series with the mean of the
second half. For odd lengths the midpoint belongs to the second half.
A zero first-half mean reports 0% (stable) instead of dividing by zero.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR
from typing import Sequence

TREND_THRESHOLD = 10


class Trend(str, enum.Enum):
    increasing = "increasing"
    decreasing = "decreasing"
    stable = "stable"
    insufficient_data = "insufficient_data"


@dataclass(frozen=True)
class TrendResult:
    trend: Trend
    percentage: int


def round_half_up(value: float, precision: int = 0):
    """Round halves toward +infinity (-2.5 -> -2); int when precision is 0."""
    quant = Decimal(1).scaleb(-precision)
    rounded = (Decimal(str(value)) + quant / 2).quantize(quant, rounding=ROUND_FLOOR)
    return int(rounded) if precision == 0 else float(rounded)


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def calculate_trend(values: Sequence[float]) -> TrendResult:
    if len(values) < 2:
        return TrendResult(Trend.insufficient_data, 0)

    mid = len(values) // 2
    first_avg = mean(values[:mid])
    second_avg = mean(values[mid:])

    if first_avg == 0:
        percentage = 0
    else:
        percentage = round_half_up((second_avg - first_avg) / first_avg * 100)

    if percentage > TREND_THRESHOLD:
        trend = Trend.increasing
    elif percentage < -TREND_THRESHOLD:
        trend = Trend.decreasing
    else:
        trend = Trend.stable
    return TrendResult(trend, percentage)
