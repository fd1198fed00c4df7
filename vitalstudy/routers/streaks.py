"""
Activity streak router.

GET  /streaks
GET  /streaks/{activity_type}
POST /streaks/{activity_type}
POST /streaks/{activity_type}/reset
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from vitalstudy.db.base import get_db
from vitalstudy.routers.deps import get_user_id
from vitalstudy.schemas.common import ErrorResponse
from vitalstudy.schemas.streak import StreakResponse, StreakUpdateRequest
from vitalstudy.services import streaks as streak_service

router = APIRouter(prefix="/streaks", tags=["streaks"])

_UNSUPPORTED = {422: {"model": ErrorResponse, "description": "Unsupported activity type."}}


@router.get("", response_model=dict[str, StreakResponse], summary="Every activity streak")
def all_streaks(user_id: int = Depends(get_user_id), db: Session = Depends(get_db)):
    states = streak_service.get_user_streaks(db, user_id)
    return {k: StreakResponse.model_validate(v) for k, v in states.items()}


@router.get(
    "/{activity_type}",
    response_model=StreakResponse,
    summary="One activity streak",
    responses=_UNSUPPORTED,
)
def one_streak(
    activity_type: str,
    user_id: int = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    return StreakResponse.model_validate(
        streak_service.get_user_streak(db, user_id, activity_type)
    )


@router.post(
    "/{activity_type}",
    response_model=StreakResponse,
    summary="Record a day of activity",
    responses=_UNSUPPORTED,
)
def record_activity(
    activity_type: str,
    payload: StreakUpdateRequest,
    user_id: int = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """A missed day (`completed: false`) only breaks the streak after a gap."""
    day = payload.day or datetime.now(tz=timezone.utc).date()
    state = streak_service.update_user_streak(db, user_id, activity_type, day, payload.completed)
    return StreakResponse.model_validate(state)


@router.post(
    "/{activity_type}/reset",
    response_model=StreakResponse,
    summary="Zero the current streak",
    responses=_UNSUPPORTED,
)
def reset_streak(
    activity_type: str,
    user_id: int = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    return StreakResponse.model_validate(
        streak_service.reset_user_streak(db, user_id, activity_type)
    )
