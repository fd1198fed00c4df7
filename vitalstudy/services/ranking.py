"""
Insight ranker.

Orders are explicit enum tuples so a caller can pass a different ranking
without touching the sort. Both sorts are stable, so sorting an already
sorted list returns it unchanged.

  insights         severity, then actionable first, then newest first
  recommendations  priority, then estimated impact, then actionable first
"""
from __future__ import annotations

import enum
from typing import Sequence, TypeVar


class Severity(str, enum.Enum):
    critical = "critical"
    warning = "warning"
    info = "info"
    positive = "positive"


class Priority(str, enum.Enum):
    high = "high"
    medium = "medium"
    low = "low"


class Impact(str, enum.Enum):
    high = "high"
    medium = "medium"
    low = "low"


SEVERITY_ORDER: tuple[Severity, ...] = (
    Severity.critical, Severity.warning, Severity.info, Severity.positive,
)
PRIORITY_ORDER: tuple[Priority, ...] = (Priority.high, Priority.medium, Priority.low)
IMPACT_ORDER: tuple[Impact, ...] = (Impact.high, Impact.medium, Impact.low)

T = TypeVar("T")


def _rank(order: Sequence[enum.Enum], value) -> int:
    # unknown values sort last
    try:
        return order.index(value)
    except ValueError:
        return len(order)


def sort_insights_by_severity(
    insights: Sequence[T],
    severity_order: Sequence[Severity] = SEVERITY_ORDER,
) -> list[T]:
    newest_first = sorted(insights, key=lambda i: i.timestamp, reverse=True)
    return sorted(
        newest_first,
        key=lambda i: (_rank(severity_order, i.severity), not i.actionable),
    )


def prioritize_recommendations(
    recommendations: Sequence[T],
    priority_order: Sequence[Priority] = PRIORITY_ORDER,
    impact_order: Sequence[Impact] = IMPACT_ORDER,
) -> list[T]:
    return sorted(
        recommendations,
        key=lambda r: (
            _rank(priority_order, r.priority),
            _rank(impact_order, r.estimated_impact),
            not r.actionable,
        ),
    )
