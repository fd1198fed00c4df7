"""
Metric registry: one descriptor per tracked metric.

Every table/column name the analytics layer touches is resolved here,
before any query is built. Services iterate descriptors instead of
branching on metric names.

Two lookups
-----------
HEALTH_METRICS   health analytics name ("water", "exercise", ...) -> MetricDescriptor
GOAL_METRICS     goal metric key ("water_intake", ...)           -> GoalMetric

Public API
----------
get_health_metric(name)  -> MetricDescriptor   (UnsupportedMetricError if unknown)
get_goal_metric(key)     -> GoalMetric | None
parse_health_metrics(s)  -> list[str]          ("all" or comma list)
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, Optional

from vitalstudy.core.errors import UnsupportedMetricError
from vitalstudy.models.health_logs import (
    WaterIntake,
    ExerciseLog,
    PeriodLog,
    ConstipationLog,
    KriyaSession,
    TypingPractice,
)
from vitalstudy.models.education import StudyLog, StudyTask


class Aggregation(str, enum.Enum):
    """How a goal's current value is derived from the trailing window."""
    average = "average"   # mean of the daily values
    count = "count"       # number of rows
    rate = "rate"         # mean of 0/1 values, as a percentage


@dataclass(frozen=True)
class MetricDescriptor:
    key: str
    model: type
    date_column: str
    value_column: Optional[str]
    extract_value: Callable[[Any], float]
    precision: int = 0
    recommended_target: Optional[float] = None
    # False when rows are not one-per-day (tasks are keyed by update time)
    daily: bool = True
    # True when date_column is a DateTime rather than a Date
    timestamp_column: bool = False

    @property
    def date_attr(self):
        return getattr(self.model, self.date_column)


@dataclass(frozen=True)
class GoalMetric:
    key: str
    source: MetricDescriptor
    aggregation: Aggregation

    @property
    def scale(self) -> int:
        return 100 if self.aggregation is Aggregation.rate else 1


def _bool_value(column: str) -> Callable[[Any], float]:
    return lambda row: 1.0 if getattr(row, column) else 0.0


def _numeric_value(column: str) -> Callable[[Any], float]:
    return lambda row: float(getattr(row, column) or 0)


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------

WATER = MetricDescriptor(
    key="water",
    model=WaterIntake,
    date_column="date",
    value_column="amount_ml",
    extract_value=_numeric_value("amount_ml"),
    recommended_target=2000,
)

EXERCISE = MetricDescriptor(
    key="exercise",
    model=ExerciseLog,
    date_column="date",
    value_column="footsteps",
    extract_value=_numeric_value("footsteps"),
    recommended_target=8000,
)

PERIOD = MetricDescriptor(
    key="period",
    model=PeriodLog,
    date_column="pain_start_date",
    value_column=None,
    extract_value=lambda row: 1.0,
    daily=False,
)

CONSTIPATION = MetricDescriptor(
    key="constipation",
    model=ConstipationLog,
    date_column="date",
    value_column="status",
    extract_value=_bool_value("status"),
    precision=2,
)

KRIYA = MetricDescriptor(
    key="kriya",
    model=KriyaSession,
    date_column="date",
    value_column=None,
    extract_value=lambda row: 1.0,
)

TYPING = MetricDescriptor(
    key="typing",
    model=TypingPractice,
    date_column="date",
    value_column="completed",
    extract_value=_bool_value("completed"),
    precision=2,
)

STUDY_HOURS = MetricDescriptor(
    key="study_hours",
    model=StudyLog,
    date_column="date",
    value_column="hours",
    extract_value=_numeric_value("hours"),
    precision=2,
    recommended_target=4,
)

TASKS = MetricDescriptor(
    key="tasks",
    model=StudyTask,
    date_column="updated_at",
    value_column="completed",
    extract_value=_bool_value("completed"),
    precision=2,
    daily=False,
    timestamp_column=True,
)


HEALTH_METRICS: dict[str, MetricDescriptor] = {
    d.key: d for d in (WATER, EXERCISE, PERIOD, CONSTIPATION, KRIYA, TYPING)
}

GOAL_METRICS: dict[str, GoalMetric] = {
    g.key: g for g in (
        GoalMetric("water_intake", WATER, Aggregation.average),
        GoalMetric("exercise_steps", EXERCISE, Aggregation.average),
        GoalMetric("study_hours", STUDY_HOURS, Aggregation.average),
        GoalMetric("daily_study_hours", STUDY_HOURS, Aggregation.average),
        GoalMetric("kriya_sessions", KRIYA, Aggregation.count),
        GoalMetric("typing_completion_rate", TYPING, Aggregation.rate),
        GoalMetric("constipation_positive_rate", CONSTIPATION, Aggregation.rate),
        GoalMetric("task_completion_rate", TASKS, Aggregation.rate),
    )
}

SUPPORTED_GOAL_METRICS: list[str] = list(GOAL_METRICS)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def get_health_metric(name: str) -> MetricDescriptor:
    try:
        return HEALTH_METRICS[name]
    except KeyError:
        raise UnsupportedMetricError(name, list(HEALTH_METRICS)) from None


def get_goal_metric(key: str) -> Optional[GoalMetric]:
    return GOAL_METRICS.get(key)


def require_goal_metric(key: str) -> GoalMetric:
    goal_metric = GOAL_METRICS.get(key)
    if goal_metric is None:
        raise UnsupportedMetricError(key, SUPPORTED_GOAL_METRICS)
    return goal_metric


def parse_health_metrics(metrics: str = "all") -> list[str]:
    """Turn the `metrics` query value into validated health metric names."""
    if not metrics or metrics.strip() == "all":
        return list(HEALTH_METRICS)
    names = [m.strip() for m in metrics.split(",") if m.strip()]
    for name in names:
        get_health_metric(name)
    return names
