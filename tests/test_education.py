"""
Tests for education aggregates: subject, unit and task progress plus
study patterns, computed from one course snapshot.

`today` is pinned to Sunday 2026-10-18; study logs fall on
Sat 10-10, Fri 10-16 and Sat 10-17.
"""
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

import pytest

from vitalstudy.models.education import (
    NptelTask,
    ResearchProject,
    StudyLog,
    StudyTask,
    Subject,
    Unit,
)
from vitalstudy.services.analytics import calculate_education_progress
from vitalstudy.services.education import (
    DayPattern,
    daily_patterns,
    parse_subject_codes,
    performance_level,
    productivity_analysis,
    unit_status,
)
from vitalstudy.services.metric_store import MetricPoint

TODAY = date(2026, 10, 18)


def at(days_ago: int) -> datetime:
    return datetime.combine(TODAY - timedelta(days=days_ago), time(12, 0), tzinfo=timezone.utc)


@pytest.fixture()
def course(db, user_id):
    code = f"S{user_id}"
    subj = Subject(code=code, name="Signals")
    db.add(subj)
    db.flush()
    u1 = Unit(subject_id=subj.id, unit_number=1, title="Basics")
    u2 = Unit(subject_id=subj.id, unit_number=2, title="Transforms")
    db.add_all([u1, u2])
    db.flush()
    db.add_all([
        StudyTask(user_id=user_id, unit_id=u1.id, title="read", completed=True,
                  created_at=at(5), updated_at=at(3)),
        StudyTask(user_id=user_id, unit_id=u1.id, title="solve", completed=False,
                  created_at=at(5), updated_at=at(5)),
        NptelTask(user_id=user_id, subject_id=subj.id, title="week 1", completed=True,
                  created_at=at(6), updated_at=at(2)),
        NptelTask(user_id=user_id, subject_id=subj.id, title="week 2", completed=False,
                  created_at=at(6), updated_at=at(6)),
        ResearchProject(user_id=user_id, subject_id=subj.id, title="filters"),
        StudyLog(user_id=user_id, date=date(2026, 10, 10), hours=Decimal("5")),
        StudyLog(user_id=user_id, date=date(2026, 10, 16), hours=Decimal("2")),
        StudyLog(user_id=user_id, date=date(2026, 10, 17), hours=Decimal("3")),
    ])
    db.commit()
    return code


class TestHelpers:
    def test_parse_subject_codes(self):
        assert parse_subject_codes("all") is None
        assert parse_subject_codes("") is None
        assert parse_subject_codes("CS101, MA101") == ["CS101", "MA101"]

    @pytest.mark.parametrize(
        "rate,level",
        [(80, "excellent"), (60, "good"), (40, "average"), (39, "needs_improvement")],
    )
    def test_performance_level(self, rate, level):
        assert performance_level(rate) == level

    def test_unit_status(self):
        assert unit_status(0, 0) == "no_tasks"
        assert unit_status(3, 3) == "completed"
        assert unit_status(3, 1) == "in_progress"
        assert unit_status(3, 0) == "not_started"

    def test_daily_patterns_sunday_is_zero(self):
        patterns = daily_patterns([MetricPoint(date(2026, 10, 18), 2)])
        assert patterns[0].day_of_week == 0
        assert patterns[0].day_name == "Sunday"

    def test_productivity_without_weekend(self):
        analysis = productivity_analysis([DayPattern(1, "Monday", 2, 1, 2)])
        assert analysis.weekday_vs_weekend_ratio == 0
        assert analysis.consistency_score == 100

    def test_productivity_empty(self):
        assert productivity_analysis([]).most_productive_day is None


class TestEducationProgress:
    def test_subject_progress(self, db, user_id, course):
        result = calculate_education_progress(db, user_id, 30, course, TODAY)
        (progress,) = result.subject_progress
        assert progress.total_units == 2
        assert progress.total_tasks == 2
        assert progress.completed_tasks == 1
        assert progress.task_completion_rate == 50
        assert progress.nptel_completion_rate == 50
        assert progress.total_research_projects == 1
        assert progress.avg_daily_study_hours == 3.33
        assert progress.total_study_hours == 10.0

    def test_task_completion(self, db, user_id, course):
        tc = calculate_education_progress(db, user_id, 30, course, TODAY).task_completion
        assert tc.total_tasks == 4
        assert tc.completed_tasks == 2
        assert tc.overall_completion_rate == 50
        assert [(c.date, c.completed) for c in tc.daily_task_completions] == [(date(2026, 10, 15), 1)]
        assert [c.date for c in tc.daily_nptel_completions] == [date(2026, 10, 16)]

    def test_unit_progress(self, db, user_id, course):
        units = calculate_education_progress(db, user_id, 30, course, TODAY).unit_progress
        assert [(u.unit_number, u.status, u.completion_rate) for u in units] == [
            (1, "in_progress", 50),
            (2, "no_tasks", 0),
        ]

    def test_study_patterns(self, db, user_id, course):
        patterns = calculate_education_progress(db, user_id, 30, course, TODAY).study_patterns
        assert [(p.day_name, p.average_hours, p.study_days) for p in patterns.daily_patterns] == [
            ("Friday", 2.0, 1),
            ("Saturday", 4.0, 2),
        ]
        analysis = patterns.productivity_analysis
        assert analysis.most_productive_day.day == "Saturday"
        assert analysis.least_productive_day.day == "Friday"
        assert analysis.weekday_vs_weekend_ratio == 0.5

        (perf,) = patterns.subject_performance
        assert perf.completion_rate == 50
        assert perf.performance_level == "average"
        assert perf.average_task_completion_days == 2.0
        assert perf.recent_completions == 1

        consistency = patterns.consistency_patterns
        assert consistency.current_streak == 2
        assert consistency.longest_streak == 2
        assert consistency.average_gap_between_sessions == 5

    def test_summary(self, db, user_id, course):
        summary = calculate_education_progress(db, user_id, 30, course, TODAY).summary
        assert summary.total_subjects == 1
        assert summary.total_tasks == 4
        assert summary.completed_tasks == 2
        assert summary.total_study_hours == 10.0
        assert summary.days_studied == 3
        assert summary.study_consistency == 10
        assert summary.average_daily_study_hours == 3.33

    def test_no_data(self, db, user_id):
        result = calculate_education_progress(db, user_id, 30, "all", TODAY)
        assert not result.has_data
        assert result.summary.total_tasks == 0
        assert result.study_patterns.daily_patterns == []
