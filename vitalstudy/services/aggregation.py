"""
Period aggregator: per-metric statistics over an analytics window.

One generic pipeline turns the rows of a metric table into a
PeriodAggregate:

  rows -> series -> total / average / trend -> weekly breakdown
       -> previous-period comparison -> goal snapshot -> post-processing

Each metric contributes only its post-processing hook, which fills
`details` and returns the value the metric's goal is compared with.

Public API
----------
analytics_window(time_range, today)               -> AnalyticsWindow
group_by_week(series, precision)                  -> list[WeekBucket]
previous_period_comparison(db, user, d, window)   -> PreviousPeriodStats
aggregate(db, user_id, pipeline, window)          -> PeriodAggregate
aggregate_health_metric(db, user_id, name, window)
health_summary(db, user_id, names, window)        -> HealthSummary
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Optional, Sequence, Union

from sqlalchemy.orm import Session

from vitalstudy.core.config import settings
from vitalstudy.core.errors import InvalidTimeRangeError
from vitalstudy.services import metric_registry as registry
from vitalstudy.services.consistency import consistency_rate
from vitalstudy.services.goal_tracker import GoalSnapshot, goal_snapshot
from vitalstudy.services.metric_registry import MetricDescriptor
from vitalstudy.services.metric_store import (
    MetricPoint,
    active_dates,
    count_rows,
    fetch_rows,
    fetch_series,
    to_series,
)
from vitalstudy.services.trend import Trend, calculate_trend, mean, round_half_up

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AnalyticsWindow:
    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days


@dataclass
class WeekBucket:
    week_start: date
    values: list[float]
    total: float
    count: int
    average: float


@dataclass
class PreviousPeriodStats:
    previous_average: float
    previous_count: int
    period_start: date
    period_end: date


@dataclass
class PeriodAggregate:
    metric: str
    daily: list[MetricPoint] = field(default_factory=list)
    average: float = 0
    total: float = 0
    trend: Trend = Trend.insufficient_data
    trend_percentage: int = 0
    days_tracked: int = 0
    weekly_breakdown: list[WeekBucket] = field(default_factory=list)
    comparison: Optional[PreviousPeriodStats] = None
    goal_progress: Optional[GoalSnapshot] = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class PeriodEntry:
    date: date
    notes: Optional[str]


@dataclass
class PeriodTrackingSummary:
    entries: list[PeriodEntry]
    total_entries: int


@dataclass
class HealthSummary:
    total_data_points: int
    metrics_tracked: int
    consistency_score: int
    active_days: int


HealthMetricResult = Union[PeriodAggregate, PeriodTrackingSummary]

# (aggregate, rows, window) -> value compared with the metric's goal
PostProcess = Callable[[PeriodAggregate, list[Any], AnalyticsWindow], float]


@dataclass(frozen=True)
class MetricPipeline:
    descriptor: MetricDescriptor
    goal_key: Optional[str]
    post_process: PostProcess


# ---------------------------------------------------------------------------
# Window
# ---------------------------------------------------------------------------

def analytics_window(time_range: int, today: Optional[date] = None) -> AnalyticsWindow:
    """[today - time_range, today]; time_range must be 1..MAX_TIME_RANGE_DAYS."""
    if time_range < 1 or time_range > settings.MAX_TIME_RANGE_DAYS:
        raise InvalidTimeRangeError(time_range, settings.MAX_TIME_RANGE_DAYS)
    today = today or datetime.now(tz=timezone.utc).date()
    return AnalyticsWindow(start=today - timedelta(days=time_range), end=today)


# ---------------------------------------------------------------------------
# Generic pipeline
# ---------------------------------------------------------------------------

def _week_start(day: date) -> date:
    # weekday(): Monday=0 .. Sunday=6
    return day - timedelta(days=(day.weekday() + 1) % 7)


def group_by_week(series: Sequence[MetricPoint], precision: int = 0) -> list[WeekBucket]:
    """Sunday-aligned buckets, ascending by week_start."""
    buckets: dict[date, WeekBucket] = {}
    for point in series:
        key = _week_start(point.date)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = WeekBucket(key, [], 0, 0, 0)
        bucket.values.append(point.value)
        bucket.total += point.value
        bucket.count += 1

    for bucket in buckets.values():
        bucket.average = round_half_up(bucket.total / bucket.count, precision)
    return [buckets[k] for k in sorted(buckets)]


def previous_period_comparison(
    db: Session,
    user_id: int,
    descriptor: MetricDescriptor,
    window: AnalyticsWindow,
) -> PreviousPeriodStats:
    """Same-length window immediately before the current one."""
    span = window.days
    period_start = window.start - timedelta(days=span)
    period_end = window.start - timedelta(days=1)
    series = fetch_series(db, user_id, descriptor, period_start, period_end)
    values = [p.value for p in series]
    return PreviousPeriodStats(
        previous_average=round_half_up(mean(values), descriptor.precision) if values else 0,
        previous_count=len(values),
        period_start=period_start,
        period_end=period_end,
    )


def summarize(metric: str, series: list[MetricPoint], precision: int = 0) -> PeriodAggregate:
    """The database-free part of the pipeline."""
    values = [p.value for p in series]
    trend = calculate_trend(values)
    return PeriodAggregate(
        metric=metric,
        daily=series,
        average=round_half_up(mean(values), precision) if values else 0,
        total=round_half_up(sum(values), precision),
        trend=trend.trend,
        trend_percentage=trend.percentage,
        days_tracked=len(values),
        weekly_breakdown=group_by_week(series, precision),
    )


def aggregate(
    db: Session,
    user_id: int,
    pipeline: MetricPipeline,
    window: AnalyticsWindow,
) -> PeriodAggregate:
    descriptor = pipeline.descriptor
    rows = fetch_rows(db, user_id, descriptor, window.start)
    result = summarize(descriptor.key, to_series(descriptor, rows), descriptor.precision)
    result.comparison = previous_period_comparison(db, user_id, descriptor, window)

    goal_value = pipeline.post_process(result, rows, window)
    if pipeline.goal_key is not None:
        result.goal_progress = goal_snapshot(db, user_id, pipeline.goal_key, goal_value)

    logger.debug(
        "Aggregated %s for user %s: %d days, trend %s",
        descriptor.key, user_id, result.days_tracked, result.trend.value,
    )
    return result


# ---------------------------------------------------------------------------
# Per-metric post-processing
# ---------------------------------------------------------------------------

def _average_only(agg: PeriodAggregate, rows: list[Any], window: AnalyticsWindow) -> float:
    return agg.average


def _exercise(agg: PeriodAggregate, rows: list[Any], window: AnalyticsWindow) -> float:
    agg.details = {
        "activity_types": dict(Counter(row.activity_type for row in rows)),
        "total_steps": int(agg.total),
        "average_steps": agg.average,
    }
    return agg.average


def _rate(count: int, total: int) -> int:
    return round_half_up(count / total * 100) if total > 0 else 0


def _constipation(agg: PeriodAggregate, rows: list[Any], window: AnalyticsWindow) -> float:
    positive = sum(1 for row in rows if row.status)
    positive_rate = _rate(positive, len(rows))
    agg.details = {
        "positive_count": positive,
        "negative_count": len(rows) - positive,
        "positive_rate": positive_rate,
    }
    return positive_rate


def _kriya(agg: PeriodAggregate, rows: list[Any], window: AnalyticsWindow) -> float:
    distinct_days = len({row.date for row in rows})
    agg.details = {
        "total_sessions": len(rows),
        "consistency_rate": consistency_rate(distinct_days, window.days),
    }
    return len(rows)


def _typing(agg: PeriodAggregate, rows: list[Any], window: AnalyticsWindow) -> float:
    completed = sum(1 for row in rows if row.completed)
    completion_rate = _rate(completed, len(rows))
    agg.details = {
        "completed_count": completed,
        "total_days": len(rows),
        "completion_rate": completion_rate,
    }
    return completion_rate


def _study_hours(agg: PeriodAggregate, rows: list[Any], window: AnalyticsWindow) -> float:
    agg.details = {
        "average_hours": agg.average,
        "total_hours": agg.total,
        "days_studied": agg.days_tracked,
        "consistency_rate": consistency_rate(agg.days_tracked, window.days),
    }
    return agg.average


PIPELINES: dict[str, MetricPipeline] = {
    "water": MetricPipeline(registry.WATER, "water_intake", _average_only),
    "exercise": MetricPipeline(registry.EXERCISE, "exercise_steps", _exercise),
    "constipation": MetricPipeline(
        registry.CONSTIPATION, "constipation_positive_rate", _constipation
    ),
    "kriya": MetricPipeline(registry.KRIYA, "kriya_sessions", _kriya),
    "typing": MetricPipeline(registry.TYPING, "typing_completion_rate", _typing),
    "study_hours": MetricPipeline(registry.STUDY_HOURS, "daily_study_hours", _study_hours),
}


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

def period_tracking(
    db: Session,
    user_id: int,
    window: AnalyticsWindow,
) -> PeriodTrackingSummary:
    rows = fetch_rows(db, user_id, registry.PERIOD, window.start)
    entries = [PeriodEntry(row.pain_start_date, row.notes) for row in rows]
    return PeriodTrackingSummary(entries=entries, total_entries=len(entries))


def aggregate_health_metric(
    db: Session,
    user_id: int,
    name: str,
    window: AnalyticsWindow,
) -> HealthMetricResult:
    registry.get_health_metric(name)
    if name == registry.PERIOD.key:
        return period_tracking(db, user_id, window)
    return aggregate(db, user_id, PIPELINES[name], window)


def health_summary(
    db: Session,
    user_id: int,
    requested: Sequence[str],
    window: AnalyticsWindow,
) -> HealthSummary:
    """
    Active days span every health table regardless of `requested`;
    data points only count the requested metrics.
    """
    days = active_dates(db, user_id, registry.HEALTH_METRICS.values(), window.start)
    data_points = sum(
        count_rows(db, user_id, registry.get_health_metric(name), window.start)
        for name in requested
    )
    return HealthSummary(
        total_data_points=data_points,
        metrics_tracked=len(requested),
        consistency_score=consistency_rate(len(days), window.days),
        active_days=len(days),
    )
