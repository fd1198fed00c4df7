"""
Goal tracker: live progress, achievements and goal streaks.

State machine (Goal.status)
---------------------------
  active -> completed   check_achievements, when current value >= target
  active <-> paused     update_goal (user action)
  completed -> active   update_goal (manual reset; the goal can be achieved again)

Progress
--------
progress = round(current / target * 100). The status is classified on the
uncapped value (>=100 achieved, >=80 on_track, >=50 behind, else
needs_attention); the value returned for display is capped at 100.
Achievement compares the raw current value with the target, never the
capped percentage.

Public API
----------
compute_current_value(db, user_id, metric)          -> float
goal_trend(db, user_id, metric)                     -> TrendResult
evaluate_progress(db, goal)                         -> GoalProgress
goal_snapshot(db, user_id, metric, current)         -> GoalSnapshot | None
check_achievements(db, user_id)                     -> list[AchievedGoal]
calculate_goal_streak(db, user_id, metric, type)    -> GoalStreak
historical_completion_rate(db, user_id)             -> CompletionStats
process_goal_progress(db, user_id)                  -> GoalOverview
create_goal / update_goal                           -> Goal
generate_achievement_notifications(user_id, goals)  -> list[AchievementNotification]

Store failures propagate to the caller. Missing data yields 0, never None.
"""
from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from vitalstudy.core.config import settings
from vitalstudy.core.errors import GoalNotFoundError
from vitalstudy.models.goal import Goal, GoalAchievement, GoalStatus, GoalType
from vitalstudy.services.metric_registry import (
    Aggregation,
    GoalMetric,
    get_goal_metric,
    require_goal_metric,
)
from vitalstudy.services.metric_store import MetricPoint, fetch_series
from vitalstudy.services.trend import Trend, TrendResult, calculate_trend, mean, round_half_up

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

class ProgressStatus(str, enum.Enum):
    needs_attention = "needs_attention"
    behind = "behind"
    on_track = "on_track"
    achieved = "achieved"


@dataclass
class GoalProgress:
    current_value: float
    progress: int                 # 0-100, display value
    progress_status: ProgressStatus
    trend: Trend
    trend_percentage: int
    days_since_creation: int


@dataclass
class GoalSnapshot:
    """Goal linkage attached to a PeriodAggregate."""
    goal_id: int
    target: float
    current: float
    progress: int
    status: ProgressStatus


@dataclass
class AchievedGoal:
    goal_id: int
    type: str
    metric: str
    target: float
    description: Optional[str]
    achieved_value: float
    achieved_at: datetime


@dataclass
class GoalStreak:
    current_streak: int = 0
    longest_streak: int = 0
    last_achieved_date: Optional[date] = None


@dataclass
class CompletionBucket:
    total: int
    completed: int
    completion_rate: int


@dataclass
class RecentAchievement:
    goal_id: int
    metric: str
    type: str
    achieved_value: float
    achieved_at: datetime


@dataclass
class CompletionStats:
    overall: CompletionBucket
    by_type: dict[str, CompletionBucket]
    recent_achievements: list[RecentAchievement]
    average_time_to_completion: int


@dataclass
class TrackedGoal:
    id: int
    type: str
    metric: str
    target: float
    description: Optional[str]
    status: str
    created_at: datetime
    progress: GoalProgress


@dataclass
class GoalSummary:
    total: int
    active: int
    completed: int
    on_track: int
    average_progress: int


@dataclass
class GoalOverview:
    goals: list[TrackedGoal]
    summary: GoalSummary


@dataclass
class AchievementNotification:
    type: str
    user_id: int
    title: str
    message: str
    priority: str
    created_at: datetime
    goal_id: Optional[int] = None
    data: Optional[dict[str, Any]] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_SECONDS_PER_DAY = 24 * 60 * 60


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _whole_days_between(start: datetime, end: datetime) -> int:
    seconds = (_as_utc(end) - _as_utc(start)).total_seconds()
    return math.ceil(seconds / _SECONDS_PER_DAY)


def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def progress_percentage(current: float, target: float) -> int:
    """Uncapped progress; a non-positive target reports 0."""
    if target <= 0:
        return 0
    return round_half_up(current / target * 100)


def classify_progress(raw_progress: int) -> ProgressStatus:
    if raw_progress >= 100:
        return ProgressStatus.achieved
    if raw_progress >= 80:
        return ProgressStatus.on_track
    if raw_progress >= 50:
        return ProgressStatus.behind
    return ProgressStatus.needs_attention


def _rate_percent(count: int, total: int) -> int:
    return round_half_up(count / total * 100) if total > 0 else 0


# ---------------------------------------------------------------------------
# Current value & trend
# ---------------------------------------------------------------------------

def aggregate_goal_value(goal_metric: GoalMetric, series: list[MetricPoint]) -> float:
    """Collapse a trailing window into the single value compared with a target."""
    if goal_metric.aggregation is Aggregation.count:
        return len(series)
    if not series:
        return 0
    avg = mean([p.value for p in series])
    if goal_metric.aggregation is Aggregation.rate:
        return round_half_up(avg * 100)
    return round_half_up(avg, goal_metric.source.precision)


def compute_current_value(
    db: Session,
    user_id: int,
    metric: str,
    today: Optional[date] = None,
) -> float:
    """Trailing GOAL_LOOKBACK_DAYS value for a goal metric; 0 when unknown or empty."""
    goal_metric = get_goal_metric(metric)
    if goal_metric is None:
        return 0
    start = (today or _now().date()) - timedelta(days=settings.GOAL_LOOKBACK_DAYS)
    series = fetch_series(db, user_id, goal_metric.source, start)
    return aggregate_goal_value(goal_metric, series)


def daily_metric_values(
    db: Session,
    user_id: int,
    metric: str,
    days: int,
    today: Optional[date] = None,
) -> list[MetricPoint]:
    """Per-day goal values, ascending; empty for metrics without a daily series."""
    goal_metric = get_goal_metric(metric)
    if goal_metric is None or not goal_metric.source.daily:
        return []
    start = (today or _now().date()) - timedelta(days=days)
    series = fetch_series(db, user_id, goal_metric.source, start)
    scale = goal_metric.scale
    return [MetricPoint(p.date, p.value * scale) for p in series]


def goal_trend(
    db: Session,
    user_id: int,
    metric: str,
    today: Optional[date] = None,
) -> TrendResult:
    points = daily_metric_values(db, user_id, metric, settings.GOAL_TREND_DAYS, today)
    return calculate_trend([p.value for p in points])


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

def evaluate_progress(
    db: Session,
    goal: Goal,
    now: Optional[datetime] = None,
) -> GoalProgress:
    now = now or _now()
    current = compute_current_value(db, goal.user_id, goal.metric, now.date())
    raw = progress_percentage(current, float(goal.target))
    trend = goal_trend(db, goal.user_id, goal.metric, now.date())
    return GoalProgress(
        current_value=current,
        progress=min(raw, 100),
        progress_status=classify_progress(raw),
        trend=trend.trend,
        trend_percentage=trend.percentage,
        days_since_creation=_whole_days_between(goal.created_at, now),
    )


def latest_active_goal(db: Session, user_id: int, metric: str) -> Optional[Goal]:
    return (
        db.query(Goal)
        .filter(
            Goal.user_id == user_id,
            Goal.metric == metric,
            Goal.status == GoalStatus.active,
        )
        .order_by(Goal.created_at.desc(), Goal.id.desc())
        .first()
    )


def goal_snapshot(
    db: Session,
    user_id: int,
    metric: str,
    current_value: float,
) -> Optional[GoalSnapshot]:
    """Progress of the newest active goal for `metric` against an aggregate value."""
    goal = latest_active_goal(db, user_id, metric)
    if goal is None:
        return None
    target = float(goal.target)
    raw = progress_percentage(current_value, target)
    return GoalSnapshot(
        goal_id=goal.id,
        target=target,
        current=current_value,
        progress=min(raw, 100),
        status=classify_progress(raw),
    )


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------

def check_achievements(
    db: Session,
    user_id: int,
    now: Optional[datetime] = None,
) -> list[AchievedGoal]:
    """
    Complete every active goal whose current value reached its target.

    Active goals are row-locked for the read-modify-write; a completed goal
    drops out of the active scan, so a second call is a no-op.
    Commits once at the end if anything was achieved.
    """
    now = now or _now()
    active_goals = (
        db.query(Goal)
        .filter(Goal.user_id == user_id, Goal.status == GoalStatus.active)
        .order_by(Goal.id.asc())
        .with_for_update()
        .all()
    )

    achieved: list[AchievedGoal] = []
    for goal in active_goals:
        current = compute_current_value(db, user_id, goal.metric, now.date())
        target = float(goal.target)
        if current < target:
            continue

        goal.status = GoalStatus.completed
        goal.updated_at = now
        db.add(GoalAchievement(
            user_id=user_id,
            goal_id=goal.id,
            achieved_value=Decimal(str(current)),
            achieved_at=now,
        ))
        achieved.append(AchievedGoal(
            goal_id=goal.id,
            type=_ev(goal.type),
            metric=goal.metric,
            target=target,
            description=goal.description,
            achieved_value=current,
            achieved_at=now,
        ))
        logger.info("Goal %s (%s) completed for user %s", goal.id, goal.metric, user_id)

    if achieved:
        db.commit()
    else:
        # release the row locks
        db.rollback()
    return achieved


def generate_achievement_notifications(
    user_id: int,
    achieved_goals: list[AchievedGoal],
) -> list[AchievementNotification]:
    notifications: list[AchievementNotification] = []
    now = _now()
    for goal in achieved_goals:
        notifications.append(AchievementNotification(
            type="goal_achievement",
            user_id=user_id,
            goal_id=goal.goal_id,
            title="Goal Achieved! 🎉",
            message=(
                f"Congratulations! You've achieved your {goal.type} goal: "
                f"{goal.description or goal.metric}"
            ),
            data={
                "goal_type": goal.type,
                "metric": goal.metric,
                "target": goal.target,
                "achieved_value": goal.achieved_value,
                "achieved_at": goal.achieved_at.isoformat(),
            },
            priority="high",
            created_at=now,
        ))

        if goal.type == GoalType.health.value and goal.metric == "water_intake" \
                and goal.achieved_value >= 2000:
            notifications.append(AchievementNotification(
                type="milestone",
                user_id=user_id,
                title="Hydration Hero! 💧",
                message="You're maintaining excellent hydration habits!",
                priority="medium",
                created_at=now,
            ))

        if goal.type == GoalType.education.value and goal.metric == "study_hours" \
                and goal.achieved_value >= 4:
            notifications.append(AchievementNotification(
                type="milestone",
                user_id=user_id,
                title="Study Champion! 📚",
                message="Your dedication to learning is paying off!",
                priority="medium",
                created_at=now,
            ))
    return notifications


# ---------------------------------------------------------------------------
# Goal streak
# ---------------------------------------------------------------------------

def streak_from_values(points: list[MetricPoint], target: float) -> GoalStreak:
    """
    Walk newest -> oldest counting days that meet `target`.

    current_streak is the run that ends on the newest day, so it is 0 when
    the newest day misses, even if an older run was longer.
    """
    current = 0
    longest = 0
    run = 0
    in_current_run = True
    last_achieved: Optional[date] = None

    for point in reversed(points):
        if point.value >= target:
            run += 1
            if in_current_run:
                current = run
            if last_achieved is None:
                last_achieved = point.date
        else:
            longest = max(longest, run)
            run = 0
            in_current_run = False

    longest = max(longest, run)
    return GoalStreak(current, longest, last_achieved)


def calculate_goal_streak(
    db: Session,
    user_id: int,
    metric: str,
    goal_type: str,
    today: Optional[date] = None,
) -> GoalStreak:
    goal = (
        db.query(Goal)
        .filter(Goal.user_id == user_id, Goal.metric == metric, Goal.type == goal_type)
        .order_by(Goal.created_at.desc(), Goal.id.desc())
        .first()
    )
    if goal is None:
        return GoalStreak()

    points = daily_metric_values(db, user_id, metric, settings.GOAL_STREAK_DAYS, today)
    return streak_from_values(points, float(goal.target))


# ---------------------------------------------------------------------------
# Historical completion
# ---------------------------------------------------------------------------

def average_time_to_completion(db: Session, user_id: int) -> int:
    """
    Mean whole days from creation to achievement over completed goals.

    A goal achieved more than once counts once, at its latest achievement.
    """
    rows = (
        db.query(Goal.created_at, func.max(GoalAchievement.achieved_at))
        .join(GoalAchievement, GoalAchievement.goal_id == Goal.id)
        .filter(Goal.user_id == user_id, Goal.status == GoalStatus.completed)
        .group_by(Goal.id, Goal.created_at)
        .all()
    )
    if not rows:
        return 0
    return round_half_up(mean([_whole_days_between(c, a) for c, a in rows]))


def historical_completion_rate(
    db: Session,
    user_id: int,
    now: Optional[datetime] = None,
) -> CompletionStats:
    now = now or _now()
    goals = db.query(Goal).filter(Goal.user_id == user_id).all()

    def bucket(items: list[Goal]) -> CompletionBucket:
        completed = sum(1 for g in items if g.status == GoalStatus.completed)
        return CompletionBucket(len(items), completed, _rate_percent(completed, len(items)))

    by_type = {
        t.value: bucket([g for g in goals if g.type == t])
        for t in GoalType
    }

    since = now - timedelta(days=settings.RECENT_ACHIEVEMENT_DAYS)
    recent_rows = (
        db.query(GoalAchievement, Goal.metric, Goal.type)
        .join(Goal, GoalAchievement.goal_id == Goal.id)
        .filter(GoalAchievement.user_id == user_id, GoalAchievement.achieved_at >= since)
        .order_by(GoalAchievement.achieved_at.desc(), GoalAchievement.id.desc())
        .all()
    )
    recent = [
        RecentAchievement(
            goal_id=a.goal_id,
            metric=metric,
            type=_ev(goal_type),
            achieved_value=float(a.achieved_value),
            achieved_at=_as_utc(a.achieved_at),
        )
        for a, metric, goal_type in recent_rows
    ]

    return CompletionStats(
        overall=bucket(goals),
        by_type=by_type,
        recent_achievements=recent,
        average_time_to_completion=average_time_to_completion(db, user_id),
    )


# ---------------------------------------------------------------------------
# Goal listing & mutation
# ---------------------------------------------------------------------------

def process_goal_progress(db: Session, user_id: int) -> GoalOverview:
    goals = (
        db.query(Goal)
        .filter(Goal.user_id == user_id)
        .order_by(Goal.created_at.desc(), Goal.id.desc())
        .all()
    )
    now = _now()
    tracked = [
        TrackedGoal(
            id=g.id,
            type=_ev(g.type),
            metric=g.metric,
            target=float(g.target),
            description=g.description,
            status=_ev(g.status),
            created_at=_as_utc(g.created_at),
            progress=evaluate_progress(db, g, now),
        )
        for g in goals
    ]

    on_track = sum(
        1 for g in tracked
        if g.progress.progress_status in (ProgressStatus.on_track, ProgressStatus.achieved)
    )
    summary = GoalSummary(
        total=len(tracked),
        active=sum(1 for g in tracked if g.status == GoalStatus.active.value),
        completed=sum(1 for g in tracked if g.status == GoalStatus.completed.value),
        on_track=on_track,
        average_progress=round_half_up(mean([g.progress.progress for g in tracked])),
    )
    return GoalOverview(goals=tracked, summary=summary)


def create_goal(
    db: Session,
    user_id: int,
    goal_type: str,
    metric: str,
    target: Decimal,
    description: Optional[str] = None,
) -> Goal:
    require_goal_metric(metric)
    now = _now()
    goal = Goal(
        user_id=user_id,
        type=GoalType(goal_type),
        metric=metric,
        target=target,
        description=description,
        status=GoalStatus.active,
        created_at=now,
        updated_at=now,
    )
    db.add(goal)
    db.commit()
    db.refresh(goal)
    logger.info("Goal %s created for user %s (%s >= %s)", goal.id, user_id, metric, target)
    return goal


def update_goal(
    db: Session,
    user_id: int,
    goal_id: int,
    target: Optional[Decimal] = None,
    description: Optional[str] = None,
    status: Optional[str] = None,
) -> Goal:
    """Partial update; only the given fields change."""
    goal = (
        db.query(Goal)
        .filter(Goal.id == goal_id, Goal.user_id == user_id)
        .with_for_update()
        .first()
    )
    if goal is None:
        raise GoalNotFoundError(goal_id)

    if target is not None:
        goal.target = target
    if description is not None:
        goal.description = description
    if status is not None:
        new_status = GoalStatus(status)
        if new_status != goal.status:
            logger.info("Goal %s status %s -> %s", goal.id, _ev(goal.status), new_status.value)
        goal.status = new_status
    goal.updated_at = _now()
    db.commit()
    db.refresh(goal)
    return goal
