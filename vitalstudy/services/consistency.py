"""
Consistency analyzer: streaks and gaps over a sparse calendar.

A streak is a maximal run of consecutive calendar days; a gap is the number
of missing days between two runs. The trailing run only counts as the
current streak while the last active day is today or yesterday.

The goal streak in goal_tracker.calculate_goal_streak has no one-day
grace window.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Sequence

from vitalstudy.services.trend import mean, round_half_up

CURRENT_STREAK_GRACE_DAYS = 1


@dataclass
class StreakPatterns:
    total_streaks: int = 0
    average_streak_length: int = 0
    total_gaps: int = 0
    longest_gap: int = 0


@dataclass
class ConsistencyReport:
    total_days: int
    study_days: int = 0
    consistency_rate: int = 0
    longest_streak: int = 0
    current_streak: int = 0
    average_gap_between_sessions: int = 0
    patterns: StreakPatterns = field(default_factory=StreakPatterns)


def consistency_rate(active_days: int, window_days: int) -> int:
    if window_days <= 0:
        return 0
    return round_half_up(active_days / window_days * 100)


def _runs_and_gaps(dates: Sequence[date]) -> tuple[list[int], list[int]]:
    runs: list[int] = []
    gaps: list[int] = []
    run = 1
    for prev, curr in zip(dates, dates[1:]):
        delta = (curr - prev).days
        if delta == 1:
            run += 1
        else:
            runs.append(run)
            gaps.append(delta - 1)
            run = 1
    runs.append(run)
    return runs, gaps


def calculate_streaks(
    dates: Sequence[date],
    total_window_days: int,
    today: date,
) -> ConsistencyReport:
    """
    Streak/gap statistics for distinct, ascending activity dates.

    An empty series yields an all-zero report.
    """
    if not dates:
        return ConsistencyReport(total_days=total_window_days)

    runs, gaps = _runs_and_gaps(dates)
    days_since_last = (today - dates[-1]).days
    current = runs[-1] if days_since_last <= CURRENT_STREAK_GRACE_DAYS else 0

    return ConsistencyReport(
        total_days=total_window_days,
        study_days=len(dates),
        consistency_rate=consistency_rate(len(dates), total_window_days),
        longest_streak=max(runs),
        current_streak=current,
        average_gap_between_sessions=round_half_up(mean(gaps)) if gaps else 0,
        patterns=StreakPatterns(
            total_streaks=len(runs),
            average_streak_length=round_half_up(mean(runs)),
            total_gaps=len(gaps),
            longest_gap=max(gaps) if gaps else 0,
        ),
    )
