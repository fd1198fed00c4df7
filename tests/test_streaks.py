"""
Tests for the activity streak store.

Pure transition rules first, then the persisted read-modify-write.
"""
from datetime import date

import pytest
from sqlalchemy.orm import Session

from vitalstudy.core.errors import UnsupportedActivityError
from vitalstudy.models.streak import UserStreak
from vitalstudy.services import streaks as streak_store
from vitalstudy.services.streaks import (
    ACTIVITY_TYPES,
    StreakState,
    get_user_streak,
    get_user_streaks,
    next_streak,
    reset_user_streak,
    update_user_streak,
)

D1 = date(2026, 10, 1)


def _state(current=0, longest=0, last=None):
    return StreakState("water", current, longest, last)


class TestNextStreak:
    def test_first_completion(self):
        s = next_streak(_state(), D1, True)
        assert (s.current_streak, s.longest_streak, s.last_activity_date) == (1, 1, D1)

    def test_consecutive_day_extends(self):
        s = next_streak(_state(3, 3, D1), date(2026, 10, 2), True)
        assert s.current_streak == 4
        assert s.longest_streak == 4

    def test_same_day_is_unchanged(self):
        before = _state(3, 5, D1)
        assert next_streak(before, D1, True) == before

    def test_gap_restarts_at_one(self):
        s = next_streak(_state(4, 4, D1), date(2026, 10, 4), True)
        assert s.current_streak == 1
        assert s.longest_streak == 4

    def test_missed_after_gap_zeroes_current(self):
        s = next_streak(_state(4, 6, D1), date(2026, 10, 5), False)
        assert s.current_streak == 0
        assert s.longest_streak == 6
        assert s.last_activity_date == D1

    def test_missed_next_day_keeps_streak(self):
        before = _state(2, 2, D1)
        assert next_streak(before, date(2026, 10, 2), False) == before

    def test_older_date_ignored(self):
        before = _state(2, 2, D1)
        assert next_streak(before, date(2026, 9, 1), True) == before

    def test_longest_never_decreases(self):
        s = _state(0, 10, D1)
        for offset in range(1, 4):
            s = next_streak(s, date(2026, 10, 1 + offset), True)
        assert s.current_streak == 3
        assert s.longest_streak == 10


class TestStreakStore:
    def test_zero_filled(self, db, user_id):
        streaks = get_user_streaks(db, user_id)
        assert list(streaks) == list(ACTIVITY_TYPES)
        assert all(s.current_streak == 0 for s in streaks.values())

    def test_consecutive_updates(self, db, user_id):
        update_user_streak(db, user_id, "kriya", date(2026, 10, 1), True)
        update_user_streak(db, user_id, "kriya", date(2026, 10, 2), True)
        state = update_user_streak(db, user_id, "kriya", date(2026, 10, 3), True)
        assert state.current_streak == 3
        assert state.longest_streak == 3

        stored = get_user_streak(db, user_id, "kriya")
        assert stored.current_streak == 3
        assert stored.last_activity_date == date(2026, 10, 3)

    def test_one_row_per_activity(self, db, user_id):
        for day in (1, 2, 2, 3):
            update_user_streak(db, user_id, "water", date(2026, 10, day), True)
        rows = db.query(UserStreak).filter(
            UserStreak.user_id == user_id, UserStreak.activity_type == "water"
        ).count()
        assert rows == 1

    def test_reset_keeps_longest(self, db, user_id):
        update_user_streak(db, user_id, "typing", date(2026, 10, 1), True)
        update_user_streak(db, user_id, "typing", date(2026, 10, 2), True)
        state = reset_user_streak(db, user_id, "typing")
        assert state.current_streak == 0
        assert state.longest_streak == 2

    def test_reset_without_row(self, db, user_id):
        state = reset_user_streak(db, user_id, "study")
        assert state.current_streak == 0
        assert state.last_activity_date is None

    def test_unknown_activity(self, db, user_id):
        with pytest.raises(UnsupportedActivityError) as exc:
            update_user_streak(db, user_id, "sleep", date(2026, 10, 1), True)
        assert exc.value.code == "UNSUPPORTED_ACTIVITY"

    def test_concurrent_first_write_replays_on_winner_row(self, db, user_id, monkeypatch):
        real_locked_row = streak_store._locked_row
        calls = []

        def racing_locked_row(session, uid, activity_type):
            calls.append(activity_type)
            if len(calls) == 1:
                # another writer creates the row after our read saw nothing
                other = Session(bind=session.get_bind())
                other.add(UserStreak(
                    user_id=uid, activity_type=activity_type,
                    current_streak=3, longest_streak=3,
                    last_activity_date=date(2026, 10, 1),
                ))
                other.commit()
                other.close()
                return None
            return real_locked_row(session, uid, activity_type)

        monkeypatch.setattr(streak_store, "_locked_row", racing_locked_row)

        state = update_user_streak(db, user_id, "exercise", date(2026, 10, 2), True)
        assert len(calls) == 2
        assert state.current_streak == 4
        assert state.longest_streak == 4

        rows = db.query(UserStreak).filter(
            UserStreak.user_id == user_id, UserStreak.activity_type == "exercise"
        ).all()
        assert len(rows) == 1
        assert rows[0].current_streak == 4
