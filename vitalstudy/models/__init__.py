from .health_logs import (
    WaterIntake,
    ExerciseLog,
    PeriodLog,
    ConstipationLog,
    KriyaSession,
    TypingPractice,
)
from .education import Subject, Unit, StudyTask, NptelTask, ResearchProject, StudyLog
from .goal import Goal, GoalAchievement, GoalStatus, GoalType
from .streak import UserStreak

__all__ = [
    "WaterIntake",
    "ExerciseLog",
    "PeriodLog",
    "ConstipationLog",
    "KriyaSession",
    "TypingPractice",
    "Subject",
    "Unit",
    "StudyTask",
    "NptelTask",
    "ResearchProject",
    "StudyLog",
    "Goal",
    "GoalAchievement",
    "GoalStatus",
    "GoalType",
    "UserStreak",
]
