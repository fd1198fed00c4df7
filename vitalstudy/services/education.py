"""
Education aggregates: subject, unit and task progress plus study patterns.

The subject/unit catalogue and the user's tasks are loaded once into a
CourseSnapshot; every breakdown below is computed from that snapshot so a
request issues a fixed number of queries regardless of catalogue size.
Study hours go through the generic pipeline in `aggregation`.
"""
from __future__ import annotations

import math
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from vitalstudy.models.education import NptelTask, ResearchProject, StudyTask, Subject, Unit
from vitalstudy.services.aggregation import AnalyticsWindow, PeriodAggregate
from vitalstudy.services.consistency import ConsistencyReport, calculate_streaks, consistency_rate
from vitalstudy.services.metric_store import MetricPoint
from vitalstudy.services.trend import mean, round_half_up

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

_SECONDS_PER_DAY = 24 * 60 * 60


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class SubjectProgress:
    subject_id: int
    subject_code: str
    subject_name: str
    total_units: int
    total_tasks: int
    completed_tasks: int
    task_completion_rate: int
    total_nptel_tasks: int
    completed_nptel_tasks: int
    nptel_completion_rate: int
    total_research_projects: int
    avg_daily_study_hours: float
    total_study_hours: float


@dataclass
class DailyCompletion:
    date: date
    subject_code: str
    subject_name: str
    completed: int


@dataclass
class TaskCompletion:
    daily_task_completions: list[DailyCompletion]
    daily_nptel_completions: list[DailyCompletion]
    total_tasks: int
    completed_tasks: int
    overall_completion_rate: int
    regular_tasks_completion_rate: int
    nptel_tasks_completion_rate: int


@dataclass
class UnitProgress:
    subject_code: str
    subject_name: str
    unit_id: int
    unit_number: int
    unit_title: str
    total_tasks: int
    completed_tasks: int
    completion_rate: int
    status: str  # no_tasks | completed | in_progress | not_started


@dataclass
class DayPattern:
    day_of_week: int  # 0 = Sunday
    day_name: str
    average_hours: float
    study_days: int
    total_hours: float


@dataclass
class DayHighlight:
    day: str
    average_hours: float


@dataclass
class ProductivityAnalysis:
    most_productive_day: Optional[DayHighlight] = None
    least_productive_day: Optional[DayHighlight] = None
    weekday_vs_weekend_ratio: float = 0
    weekday_average: float = 0
    weekend_average: float = 0
    consistency_score: int = 0


@dataclass
class SubjectPerformance:
    subject_code: str
    subject_name: str
    total_tasks: int
    completed_tasks: int
    completion_rate: int
    average_task_completion_days: Optional[float]
    recent_completions: int
    performance_level: str


@dataclass
class StudyPatterns:
    daily_patterns: list[DayPattern]
    productivity_analysis: ProductivityAnalysis
    subject_performance: list[SubjectPerformance]
    consistency_patterns: ConsistencyReport


@dataclass
class EducationSummary:
    total_subjects: int
    total_units: int
    total_tasks: int
    completed_tasks: int
    overall_completion_rate: int
    total_nptel_tasks: int
    completed_nptel_tasks: int
    total_research_projects: int
    total_study_hours: float
    days_studied: int
    study_consistency: int
    average_daily_study_hours: float


@dataclass
class CourseSnapshot:
    subjects: list[Subject]
    units: list[Unit]
    # (task, subject_id)
    tasks: list[tuple[StudyTask, int]]
    nptel_tasks: list[NptelTask]
    research_projects: list[ResearchProject]
    units_by_subject: dict[int, list[Unit]] = field(default_factory=dict)

    def __post_init__(self):
        grouped: dict[int, list[Unit]] = defaultdict(list)
        for unit in self.units:
            grouped[unit.subject_id].append(unit)
        self.units_by_subject = dict(grouped)

    def tasks_for(self, subject_id: int) -> list[StudyTask]:
        return [t for t, sid in self.tasks if sid == subject_id]

    def nptel_for(self, subject_id: int) -> list[NptelTask]:
        return [t for t in self.nptel_tasks if t.subject_id == subject_id]


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def parse_subject_codes(subjects: str = "all") -> Optional[list[str]]:
    """None means every subject."""
    if not subjects or subjects.strip() == "all":
        return None
    return [s.strip() for s in subjects.split(",") if s.strip()]


def load_course_snapshot(
    db: Session,
    user_id: int,
    codes: Optional[Sequence[str]] = None,
) -> CourseSnapshot:
    q = db.query(Subject)
    if codes is not None:
        q = q.filter(Subject.code.in_(list(codes)))
    subjects = q.order_by(Subject.code.asc()).all()
    subject_ids = [s.id for s in subjects]
    if not subject_ids:
        return CourseSnapshot([], [], [], [], [])

    units = (
        db.query(Unit)
        .filter(Unit.subject_id.in_(subject_ids))
        .order_by(Unit.subject_id.asc(), Unit.unit_number.asc())
        .all()
    )
    tasks = (
        db.query(StudyTask, Unit.subject_id)
        .join(Unit, StudyTask.unit_id == Unit.id)
        .filter(StudyTask.user_id == user_id, Unit.subject_id.in_(subject_ids))
        .all()
    )
    nptel = (
        db.query(NptelTask)
        .filter(NptelTask.user_id == user_id, NptelTask.subject_id.in_(subject_ids))
        .all()
    )
    research = (
        db.query(ResearchProject)
        .filter(ResearchProject.user_id == user_id, ResearchProject.subject_id.in_(subject_ids))
        .all()
    )
    return CourseSnapshot(subjects, units, [tuple(r) for r in tasks], nptel, research)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _rate(count: int, total: int) -> int:
    return round_half_up(count / total * 100) if total > 0 else 0


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _window_start(window: AnalyticsWindow) -> datetime:
    return datetime.combine(window.start, time.min, tzinfo=timezone.utc)


def _day_of_week(day: date) -> int:
    return (day.weekday() + 1) % 7


def performance_level(completion_rate: int) -> str:
    if completion_rate >= 80:
        return "excellent"
    if completion_rate >= 60:
        return "good"
    if completion_rate >= 40:
        return "average"
    return "needs_improvement"


def unit_status(total: int, completed: int) -> str:
    if total == 0:
        return "no_tasks"
    if completed == total:
        return "completed"
    if completed > 0:
        return "in_progress"
    return "not_started"


# ---------------------------------------------------------------------------
# Breakdowns
# ---------------------------------------------------------------------------

def subject_progress(snapshot: CourseSnapshot, study: PeriodAggregate) -> list[SubjectProgress]:
    """Per subject; study hours are the user's window figures."""
    result = []
    for subject in snapshot.subjects:
        tasks = snapshot.tasks_for(subject.id)
        nptel = snapshot.nptel_for(subject.id)
        done = sum(1 for t in tasks if t.completed)
        nptel_done = sum(1 for t in nptel if t.completed)
        result.append(SubjectProgress(
            subject_id=subject.id,
            subject_code=subject.code,
            subject_name=subject.name,
            total_units=len(snapshot.units_by_subject.get(subject.id, [])),
            total_tasks=len(tasks),
            completed_tasks=done,
            task_completion_rate=_rate(done, len(tasks)),
            total_nptel_tasks=len(nptel),
            completed_nptel_tasks=nptel_done,
            nptel_completion_rate=_rate(nptel_done, len(nptel)),
            total_research_projects=sum(
                1 for p in snapshot.research_projects if p.subject_id == subject.id
            ),
            avg_daily_study_hours=study.average,
            total_study_hours=study.total,
        ))
    return result


def _daily_completions(items, subjects: dict[int, Subject], since: datetime) -> list[DailyCompletion]:
    counts: Counter = Counter()
    for updated_at, subject_id in items:
        if _as_utc(updated_at) >= since:
            counts[(_as_utc(updated_at).date(), subject_id)] += 1
    return [
        DailyCompletion(day, subjects[sid].code, subjects[sid].name, n)
        for (day, sid), n in sorted(counts.items(), key=lambda kv: (kv[0][0], subjects[kv[0][1]].code))
    ]


def task_completion(
    snapshot: CourseSnapshot,
    window: AnalyticsWindow,
) -> TaskCompletion:
    subjects = {s.id: s for s in snapshot.subjects}
    since = _window_start(window)

    done_regular = [(t.updated_at, sid) for t, sid in snapshot.tasks if t.completed]
    done_nptel = [(t.updated_at, t.subject_id) for t in snapshot.nptel_tasks if t.completed]

    regular_total = len(snapshot.tasks)
    nptel_total = len(snapshot.nptel_tasks)
    total = regular_total + nptel_total
    completed = len(done_regular) + len(done_nptel)

    return TaskCompletion(
        daily_task_completions=_daily_completions(done_regular, subjects, since),
        daily_nptel_completions=_daily_completions(done_nptel, subjects, since),
        total_tasks=total,
        completed_tasks=completed,
        overall_completion_rate=_rate(completed, total),
        regular_tasks_completion_rate=_rate(len(done_regular), regular_total),
        nptel_tasks_completion_rate=_rate(len(done_nptel), nptel_total),
    )


def unit_progress(snapshot: CourseSnapshot) -> list[UnitProgress]:
    subjects = {s.id: s for s in snapshot.subjects}
    per_unit: dict[int, list[StudyTask]] = defaultdict(list)
    for task, _ in snapshot.tasks:
        per_unit[task.unit_id].append(task)

    result = []
    for subject in snapshot.subjects:
        for unit in snapshot.units_by_subject.get(subject.id, []):
            tasks = per_unit.get(unit.id, [])
            done = sum(1 for t in tasks if t.completed)
            result.append(UnitProgress(
                subject_code=subjects[unit.subject_id].code,
                subject_name=subjects[unit.subject_id].name,
                unit_id=unit.id,
                unit_number=unit.unit_number,
                unit_title=unit.title,
                total_tasks=len(tasks),
                completed_tasks=done,
                completion_rate=_rate(done, len(tasks)),
                status=unit_status(len(tasks), done),
            ))
    return result


def daily_patterns(series: Sequence[MetricPoint]) -> list[DayPattern]:
    by_day: dict[int, list[float]] = defaultdict(list)
    for point in series:
        by_day[_day_of_week(point.date)].append(point.value)
    return [
        DayPattern(
            day_of_week=dow,
            day_name=DAY_NAMES[dow],
            average_hours=round_half_up(mean(hours), 2),
            study_days=len(hours),
            total_hours=round_half_up(sum(hours), 2),
        )
        for dow, hours in sorted(by_day.items())
    ]


def productivity_analysis(patterns: Sequence[DayPattern]) -> ProductivityAnalysis:
    if not patterns:
        return ProductivityAnalysis()

    ranked = sorted(patterns, key=lambda p: p.average_hours, reverse=True)
    weekdays = [p.average_hours for p in patterns if 1 <= p.day_of_week <= 5]
    weekends = [p.average_hours for p in patterns if p.day_of_week in (0, 6)]
    weekday_avg = mean(weekdays)
    weekend_avg = mean(weekends)

    hours = [p.average_hours for p in patterns]
    avg = mean(hours)
    std = math.sqrt(mean([(h - avg) ** 2 for h in hours]))
    score = max(0, round_half_up((1 - std / avg) * 100)) if avg > 0 else 0

    return ProductivityAnalysis(
        most_productive_day=DayHighlight(ranked[0].day_name, ranked[0].average_hours),
        least_productive_day=DayHighlight(ranked[-1].day_name, ranked[-1].average_hours),
        weekday_vs_weekend_ratio=round_half_up(weekday_avg / weekend_avg, 2) if weekend_avg > 0 else 0,
        weekday_average=round_half_up(weekday_avg, 2),
        weekend_average=round_half_up(weekend_avg, 2),
        consistency_score=score,
    )


def subject_performance(snapshot: CourseSnapshot, window: AnalyticsWindow) -> list[SubjectPerformance]:
    since = _window_start(window)
    result = []
    for subject in snapshot.subjects:
        tasks = snapshot.tasks_for(subject.id)
        nptel = snapshot.nptel_for(subject.id)
        if not tasks and not nptel:
            continue

        done_regular = [t for t in tasks if t.completed]
        total = len(tasks) + len(nptel)
        completed = len(done_regular) + sum(1 for t in nptel if t.completed)
        rate = _rate(completed, total)

        durations = [
            (_as_utc(t.updated_at) - _as_utc(t.created_at)).total_seconds() / _SECONDS_PER_DAY
            for t in done_regular
        ]
        result.append(SubjectPerformance(
            subject_code=subject.code,
            subject_name=subject.name,
            total_tasks=total,
            completed_tasks=completed,
            completion_rate=rate,
            average_task_completion_days=round_half_up(mean(durations), 1) if durations else None,
            recent_completions=sum(1 for t in done_regular if _as_utc(t.updated_at) >= since),
            performance_level=performance_level(rate),
        ))
    return result


def study_patterns(
    snapshot: CourseSnapshot,
    study: PeriodAggregate,
    window: AnalyticsWindow,
) -> StudyPatterns:
    patterns = daily_patterns(study.daily)
    return StudyPatterns(
        daily_patterns=patterns,
        productivity_analysis=productivity_analysis(patterns),
        subject_performance=subject_performance(snapshot, window),
        consistency_patterns=calculate_streaks(
            sorted({p.date for p in study.daily}), window.days, window.end
        ),
    )


def education_summary(
    progress: Sequence[SubjectProgress],
    study: PeriodAggregate,
    window: AnalyticsWindow,
) -> EducationSummary:
    regular_total = sum(s.total_tasks for s in progress)
    regular_done = sum(s.completed_tasks for s in progress)
    nptel_total = sum(s.total_nptel_tasks for s in progress)
    nptel_done = sum(s.completed_nptel_tasks for s in progress)
    days_studied = study.days_tracked
    return EducationSummary(
        total_subjects=len(progress),
        total_units=sum(s.total_units for s in progress),
        total_tasks=regular_total + nptel_total,
        completed_tasks=regular_done + nptel_done,
        overall_completion_rate=_rate(regular_done + nptel_done, regular_total + nptel_total),
        total_nptel_tasks=nptel_total,
        completed_nptel_tasks=nptel_done,
        total_research_projects=sum(s.total_research_projects for s in progress),
        total_study_hours=study.total,
        days_studied=days_studied,
        study_consistency=consistency_rate(days_studied, window.days),
        average_daily_study_hours=round_half_up(study.total / days_studied, 2) if days_studied else 0,
    )


