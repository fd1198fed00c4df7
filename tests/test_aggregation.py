"""
Tests for the period aggregator: window validation, weekly buckets,
previous-period comparison and the per-metric post-processing hooks.

All DB tests pin `today` to 2026-10-18 (a Sunday) so week buckets are
predictable.
"""
from datetime import date, timedelta
from decimal import Decimal

import pytest

from vitalstudy.core.config import settings
from vitalstudy.core.errors import InvalidTimeRangeError, UnsupportedMetricError
from vitalstudy.models.health_logs import (
    ConstipationLog,
    ExerciseLog,
    KriyaSession,
    PeriodLog,
    TypingPractice,
    WaterIntake,
)
from vitalstudy.services.aggregation import (
    PIPELINES,
    PeriodTrackingSummary,
    aggregate,
    aggregate_health_metric,
    analytics_window,
    group_by_week,
    health_summary,
    summarize,
)
from vitalstudy.services.goal_tracker import ProgressStatus, create_goal
from vitalstudy.services.metric_store import MetricPoint
from vitalstudy.services.trend import Trend

TODAY = date(2026, 10, 18)


def days_ago(n: int) -> date:
    return TODAY - timedelta(days=n)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

class TestAnalyticsWindow:
    def test_window_bounds(self):
        window = analytics_window(30, TODAY)
        assert window.end == TODAY
        assert window.start == date(2026, 9, 18)
        assert window.days == 30

    @pytest.mark.parametrize("bad", [0, -1, settings.MAX_TIME_RANGE_DAYS + 1])
    def test_out_of_range(self, bad):
        with pytest.raises(InvalidTimeRangeError) as exc:
            analytics_window(bad, TODAY)
        assert exc.value.code == "INVALID_TIME_RANGE"
        assert exc.value.details["time_range"] == bad

    def test_max_is_allowed(self):
        window = analytics_window(settings.MAX_TIME_RANGE_DAYS, TODAY)
        assert window.days == settings.MAX_TIME_RANGE_DAYS


class TestGroupByWeek:
    def test_sunday_starts_a_new_week(self):
        series = [
            MetricPoint(date(2026, 10, 17), 10),  # Saturday
            MetricPoint(date(2026, 10, 18), 20),  # Sunday
        ]
        buckets = group_by_week(series)
        assert [b.week_start for b in buckets] == [date(2026, 10, 11), date(2026, 10, 18)]
        assert [b.total for b in buckets] == [10, 20]

    def test_bucket_average(self):
        series = [
            MetricPoint(date(2026, 10, 12), 1),
            MetricPoint(date(2026, 10, 13), 2),
        ]
        (bucket,) = group_by_week(series, precision=2)
        assert bucket.count == 2
        assert bucket.values == [1, 2]
        assert bucket.average == 1.5

    def test_buckets_are_ascending(self):
        series = [
            MetricPoint(date(2026, 10, 20), 1),
            MetricPoint(date(2026, 10, 1), 1),
        ]
        buckets = group_by_week(series)
        assert buckets[0].week_start < buckets[1].week_start

    def test_empty(self):
        assert group_by_week([]) == []


class TestSummarize:
    def test_empty_series_is_zeroed(self):
        agg = summarize("water", [])
        assert agg.average == 0
        assert agg.total == 0
        assert agg.days_tracked == 0
        assert agg.trend == Trend.insufficient_data
        assert agg.weekly_breakdown == []

    def test_rounding_uses_precision(self):
        series = [MetricPoint(date(2026, 10, 1), 1.0), MetricPoint(date(2026, 10, 2), 2.25)]
        agg = summarize("study_hours", series, precision=2)
        assert agg.average == 1.63
        assert agg.total == 3.25


# ---------------------------------------------------------------------------
# Pipelines against the database
# ---------------------------------------------------------------------------

def _add(db, *rows):
    db.add_all(rows)
    db.commit()


class TestWaterPipeline:
    def test_aggregate_with_comparison_and_goal(self, db, user_id):
        _add(
            db,
            WaterIntake(user_id=user_id, date=days_ago(3), amount_ml=1500),
            WaterIntake(user_id=user_id, date=days_ago(2), amount_ml=2000),
            WaterIntake(user_id=user_id, date=days_ago(1), amount_ml=2500),
            # previous period
            WaterIntake(user_id=user_id, date=days_ago(45), amount_ml=1000),
        )
        create_goal(db, user_id, "health", "water_intake", Decimal("2500"))

        agg = aggregate(db, user_id, PIPELINES["water"], analytics_window(30, TODAY))

        assert agg.days_tracked == 3
        assert agg.average == 2000
        assert agg.total == 6000
        assert agg.trend == Trend.increasing
        assert agg.trend_percentage == 50
        assert [p.value for p in agg.daily] == [1500, 2000, 2500]

        assert len(agg.weekly_breakdown) == 1
        assert agg.weekly_breakdown[0].week_start == date(2026, 10, 11)

        assert agg.comparison.previous_count == 1
        assert agg.comparison.previous_average == 1000
        assert agg.comparison.period_end == date(2026, 9, 17)

        assert agg.goal_progress.target == 2500
        assert agg.goal_progress.progress == 80
        assert agg.goal_progress.status == ProgressStatus.on_track

    def test_no_rows(self, db, user_id):
        agg = aggregate(db, user_id, PIPELINES["water"], analytics_window(30, TODAY))
        assert agg.days_tracked == 0
        assert agg.goal_progress is None
        assert agg.comparison.previous_count == 0

    def test_other_users_rows_are_invisible(self, db, user_id):
        _add(db, WaterIntake(user_id=user_id + 500_000, date=days_ago(1), amount_ml=9999))
        agg = aggregate(db, user_id, PIPELINES["water"], analytics_window(30, TODAY))
        assert agg.days_tracked == 0


class TestMetricDetails:
    def test_exercise(self, db, user_id):
        _add(
            db,
            ExerciseLog(user_id=user_id, date=days_ago(3), activity_type="walking", footsteps=6000),
            ExerciseLog(user_id=user_id, date=days_ago(2), activity_type="running", footsteps=9000),
            ExerciseLog(user_id=user_id, date=days_ago(1), activity_type="walking", footsteps=9000),
        )
        agg = aggregate(db, user_id, PIPELINES["exercise"], analytics_window(30, TODAY))
        assert agg.details["activity_types"] == {"walking": 2, "running": 1}
        assert agg.details["total_steps"] == 24000
        assert agg.details["average_steps"] == 8000

    def test_constipation(self, db, user_id):
        _add(
            db,
            ConstipationLog(user_id=user_id, date=days_ago(3), status=True),
            ConstipationLog(user_id=user_id, date=days_ago(2), status=True),
            ConstipationLog(user_id=user_id, date=days_ago(1), status=False),
        )
        agg = aggregate(db, user_id, PIPELINES["constipation"], analytics_window(30, TODAY))
        assert agg.details == {"positive_count": 2, "negative_count": 1, "positive_rate": 67}

    def test_kriya(self, db, user_id):
        _add(db, *[KriyaSession(user_id=user_id, date=days_ago(n)) for n in range(1, 16)])
        agg = aggregate(db, user_id, PIPELINES["kriya"], analytics_window(30, TODAY))
        assert agg.details["total_sessions"] == 15
        assert agg.details["consistency_rate"] == 50

    def test_kriya_goal_uses_session_count(self, db, user_id):
        _add(db, *[KriyaSession(user_id=user_id, date=days_ago(n)) for n in range(1, 6)])
        create_goal(db, user_id, "health", "kriya_sessions", Decimal("10"))
        agg = aggregate(db, user_id, PIPELINES["kriya"], analytics_window(30, TODAY))
        assert agg.goal_progress.current == 5
        assert agg.goal_progress.progress == 50
        assert agg.goal_progress.status == ProgressStatus.behind

    def test_typing(self, db, user_id):
        _add(
            db,
            TypingPractice(user_id=user_id, date=days_ago(2), completed=True),
            TypingPractice(user_id=user_id, date=days_ago(1), completed=False),
        )
        agg = aggregate(db, user_id, PIPELINES["typing"], analytics_window(30, TODAY))
        assert agg.details == {"completed_count": 1, "total_days": 2, "completion_rate": 50}


class TestHealthMetric:
    def test_period_tracking(self, db, user_id):
        _add(
            db,
            PeriodLog(user_id=user_id, pain_start_date=days_ago(20), notes="mild"),
            PeriodLog(user_id=user_id, pain_start_date=days_ago(100)),
        )
        result = aggregate_health_metric(db, user_id, "period", analytics_window(30, TODAY))
        assert isinstance(result, PeriodTrackingSummary)
        assert result.total_entries == 1
        assert result.entries[0].notes == "mild"

    def test_unknown_metric(self, db, user_id):
        with pytest.raises(UnsupportedMetricError):
            aggregate_health_metric(db, user_id, "sleep", analytics_window(30, TODAY))

    def test_summary_counts_active_days_across_tables(self, db, user_id):
        _add(
            db,
            WaterIntake(user_id=user_id, date=days_ago(1), amount_ml=2000),
            KriyaSession(user_id=user_id, date=days_ago(1)),
            KriyaSession(user_id=user_id, date=days_ago(2)),
        )
        summary = health_summary(db, user_id, ["water"], analytics_window(10, TODAY))
        assert summary.active_days == 2
        assert summary.total_data_points == 1
        assert summary.metrics_tracked == 1
        assert summary.consistency_score == 20
