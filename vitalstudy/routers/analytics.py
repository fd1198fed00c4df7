"""
Analytics router.

GET   /analytics/health
GET   /analytics/education
GET   /analytics/insights
GET   /analytics/goals
POST  /analytics/goals
PATCH /analytics/goals/{goal_id}
POST  /analytics/goals/check-achievements
GET   /analytics/goals/streaks
GET   /analytics/goals/completion-stats
"""
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from vitalstudy.core.config import settings
from vitalstudy.db.base import get_db
from vitalstudy.models.goal import Goal
from vitalstudy.routers.deps import get_user_id
from vitalstudy.schemas.common import ErrorResponse
from vitalstudy.schemas.goal import GoalCreate, GoalResponse, GoalUpdate
from vitalstudy.services import analytics as analytics_service
from vitalstudy.services import goal_tracker

router = APIRouter(prefix="/analytics", tags=["analytics"])

_TIME_RANGE = Query(
    default=settings.DEFAULT_TIME_RANGE_DAYS,
    ge=1,
    le=settings.MAX_TIME_RANGE_DAYS,
    description="Window length in days, ending today.",
)


def _goal_response(goal: Goal) -> GoalResponse:
    return GoalResponse(
        id=goal.id,
        type=goal.type.value,
        metric=goal.metric,
        target=float(goal.target),
        description=goal.description,
        status=goal.status.value,
        created_at=goal.created_at,
        updated_at=goal.updated_at,
    )


# ---------------------------------------------------------------------------
# Aggregates & insights
# ---------------------------------------------------------------------------

@router.get(
    "/health",
    summary="Health metric aggregates",
    responses={422: {"model": ErrorResponse, "description": "Unknown metric or bad time range."}},
)
def health_analytics(
    time_range: int = _TIME_RANGE,
    metrics: str = Query(
        default="all",
        description='"all" or a comma list of water, exercise, period, constipation, kriya, typing.',
    ),
    user_id: int = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    return analytics_service.aggregate_health_data(db, user_id, time_range, metrics).to_dict()


@router.get("/education", summary="Education progress and study patterns")
def education_analytics(
    time_range: int = _TIME_RANGE,
    subjects: str = Query(default="all", description='"all" or a comma list of subject codes.'),
    user_id: int = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    return analytics_service.calculate_education_progress(
        db, user_id, time_range, subjects
    ).to_dict()


@router.get("/insights", summary="Ranked insights, recommendations and milestones")
def insights(
    category: Optional[str] = Query(
        default=None,
        description="Comma list matched against insight type (health, education, correlation) or category.",
    ),
    severity: Optional[str] = Query(
        default=None, description="Comma list of critical, warning, info, positive."
    ),
    actionable: Optional[bool] = Query(default=None),
    user_id: int = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    report = analytics_service.generate_insights(db, user_id)
    return analytics_service.build_insight_response(report, category, severity, actionable)


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------

@router.get("/goals", summary="All goals with live progress")
def list_goals(user_id: int = Depends(get_user_id), db: Session = Depends(get_db)):
    return goal_tracker.process_goal_progress(db, user_id)


@router.post(
    "/goals",
    response_model=GoalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a goal",
    responses={422: {"model": ErrorResponse, "description": "Unsupported metric."}},
)
def create_goal(
    payload: GoalCreate,
    user_id: int = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    goal = goal_tracker.create_goal(
        db, user_id, payload.type, payload.metric, payload.target, payload.description
    )
    return _goal_response(goal)


@router.post(
    "/goals/check-achievements",
    summary="Complete every active goal that has reached its target",
)
def check_achievements(user_id: int = Depends(get_user_id), db: Session = Depends(get_db)):
    """
    Idempotent: a goal completes once, so a second call returns an empty list.
    Notifications are built for the caller to deliver; nothing is sent here.
    """
    achieved = goal_tracker.check_achievements(db, user_id)
    return {
        "achieved_goals": achieved,
        "notifications": goal_tracker.generate_achievement_notifications(user_id, achieved),
        "total_achieved": len(achieved),
    }


@router.get("/goals/streaks", summary="Goal streak for one metric")
def goal_streak(
    metric: str = Query(..., examples=["water_intake"]),
    goal_type: Literal["health", "education"] = Query(..., alias="type"),
    user_id: int = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    return goal_tracker.calculate_goal_streak(db, user_id, metric, goal_type)


@router.get("/goals/completion-stats", summary="Historical goal completion")
def completion_stats(user_id: int = Depends(get_user_id), db: Session = Depends(get_db)):
    return goal_tracker.historical_completion_rate(db, user_id)


@router.patch(
    "/goals/{goal_id}",
    response_model=GoalResponse,
    summary="Update a goal",
    responses={404: {"model": ErrorResponse, "description": "Goal not found."}},
)
def update_goal(
    goal_id: int,
    payload: GoalUpdate,
    user_id: int = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    goal = goal_tracker.update_goal(
        db,
        user_id,
        goal_id,
        target=payload.target,
        description=payload.description,
        status=payload.status,
    )
    return _goal_response(goal)
