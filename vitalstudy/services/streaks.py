"""
Streak store: persisted activity streaks per (user, activity_type).

Transition rules for a logged day (delta = day - last_activity_date):

  completed     first activity or delta > 1  -> current = 1
                delta == 1                   -> current + 1
                delta == 0                   -> unchanged
  not completed delta > 1                    -> current = 0
  any           delta < 0                    -> ignored (dates never move backwards)

longest_streak = max(longest_streak, current_streak) and never decreases.

Writes are read-modify-write under SELECT ... FOR UPDATE. Two concurrent
first writes both see no row; the unique (user_id, activity_type)
constraint rejects the second insert, which is then replayed once as an
update against the row that won.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vitalstudy.core.errors import UnsupportedActivityError
from vitalstudy.models.streak import UserStreak

logger = logging.getLogger(__name__)

ACTIVITY_TYPES = ("water", "exercise", "kriya", "typing", "study")


@dataclass
class StreakState:
    activity_type: str
    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: Optional[date] = None


def _require_activity(activity_type: str) -> None:
    if activity_type not in ACTIVITY_TYPES:
        raise UnsupportedActivityError(activity_type, list(ACTIVITY_TYPES))


def _state(row: Optional[UserStreak], activity_type: str) -> StreakState:
    if row is None:
        return StreakState(activity_type)
    return StreakState(
        activity_type=activity_type,
        current_streak=row.current_streak,
        longest_streak=row.longest_streak,
        last_activity_date=row.last_activity_date,
    )


def next_streak(state: StreakState, day: date, completed: bool) -> StreakState:
    """Apply one logged day to a streak state. Pure."""
    last = state.last_activity_date
    delta = (day - last).days if last is not None else None

    if delta is not None and delta < 0:
        return state

    if completed:
        if delta is None or delta > 1:
            current = 1
        elif delta == 1:
            current = state.current_streak + 1
        else:
            current = state.current_streak
        return StreakState(
            activity_type=state.activity_type,
            current_streak=current,
            longest_streak=max(state.longest_streak, current),
            last_activity_date=day,
        )

    if delta is not None and delta > 1:
        return StreakState(
            activity_type=state.activity_type,
            current_streak=0,
            longest_streak=state.longest_streak,
            last_activity_date=last,
        )
    return state


def _locked_row(db: Session, user_id: int, activity_type: str) -> Optional[UserStreak]:
    return (
        db.query(UserStreak)
        .filter(UserStreak.user_id == user_id, UserStreak.activity_type == activity_type)
        .with_for_update()
        .first()
    )


def _write(db: Session, user_id: int, activity_type: str, day: date, completed: bool) -> StreakState:
    row = _locked_row(db, user_id, activity_type)
    before = _state(row, activity_type)
    after = next_streak(before, day, completed)

    if after == before:
        db.rollback()
        return before

    if row is None:
        row = UserStreak(user_id=user_id, activity_type=activity_type)
        db.add(row)
    row.current_streak = after.current_streak
    row.longest_streak = after.longest_streak
    row.last_activity_date = after.last_activity_date
    db.commit()
    return after


def update_user_streak(
    db: Session,
    user_id: int,
    activity_type: str,
    day: date,
    completed: bool,
) -> StreakState:
    _require_activity(activity_type)
    try:
        state = _write(db, user_id, activity_type, day, completed)
    except IntegrityError:
        # lost the race to create the row
        db.rollback()
        state = _write(db, user_id, activity_type, day, completed)

    logger.info(
        "Streak %s for user %s: current=%d longest=%d",
        activity_type, user_id, state.current_streak, state.longest_streak,
    )
    return state


def get_user_streak(db: Session, user_id: int, activity_type: str) -> StreakState:
    _require_activity(activity_type)
    row = (
        db.query(UserStreak)
        .filter(UserStreak.user_id == user_id, UserStreak.activity_type == activity_type)
        .first()
    )
    return _state(row, activity_type)


def get_user_streaks(db: Session, user_id: int) -> dict[str, StreakState]:
    """Every activity type, zero-filled where nothing has been logged."""
    rows = db.query(UserStreak).filter(UserStreak.user_id == user_id).all()
    by_type = {r.activity_type: r for r in rows}
    return {a: _state(by_type.get(a), a) for a in ACTIVITY_TYPES}


def reset_user_streak(db: Session, user_id: int, activity_type: str) -> StreakState:
    """Zero the current streak; longest and last activity date are kept."""
    _require_activity(activity_type)
    row = _locked_row(db, user_id, activity_type)
    if row is None:
        db.rollback()
        return StreakState(activity_type)
    row.current_streak = 0
    db.commit()
    logger.info("Streak %s reset for user %s", activity_type, user_id)
    return _state(row, activity_type)
