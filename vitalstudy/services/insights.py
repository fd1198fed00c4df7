"""
Insight engine: rule-based insights, recommendations and milestones.

Every analyzer is a pure function of one aggregate and returns an
AnalysisResult. Thresholds are fixed; changing one changes what users
are told, so they live next to the rule that uses them.

Analyzers
---------
analyze_water / analyze_exercise / analyze_constipation / analyze_kriya /
analyze_typing                       (PeriodAggregate)
analyze_study_hours                  (PeriodAggregate)
analyze_subject_progress             (list[SubjectProgress])
analyze_task_completion              (TaskCompletion)
analyze_study_patterns               (StudyPatterns)
analyze_health_study_correlation     (health aggregate, study aggregate)
analyze_overall_wellness             (health score inputs, education inputs)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping, Optional, Sequence

from vitalstudy.services.aggregation import PeriodAggregate
from vitalstudy.services.education import StudyPatterns, SubjectProgress, TaskCompletion
from vitalstudy.services.goal_tracker import ProgressStatus
from vitalstudy.services.ranking import Impact, Priority, Severity
from vitalstudy.services.trend import Trend, mean, round_half_up

RECOMMENDED_WATER_ML = 2000
RECOMMENDED_STEPS = 8000
RECOMMENDED_STUDY_HOURS = 4


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass
class Insight:
    type: str        # health | education | correlation
    category: str
    message: str
    severity: Severity
    actionable: bool
    icon: str
    timestamp: datetime = field(default_factory=_now)


@dataclass
class Recommendation:
    type: str
    category: str
    message: str
    actionable: bool
    priority: Priority
    estimated_impact: Impact
    icon: str


@dataclass
class Milestone:
    type: str        # achievement | milestone | goal_achievement
    category: str
    message: str
    icon: str
    timestamp: datetime = field(default_factory=_now)


@dataclass
class AnalysisResult:
    insights: list[Insight] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    milestones: list[Milestone] = field(default_factory=list)

    def extend(self, other: "AnalysisResult") -> None:
        self.insights.extend(other.insights)
        self.recommendations.extend(other.recommendations)
        self.milestones.extend(other.milestones)


@dataclass
class Correlation:
    insight: Insight
    recommendation: Optional[Recommendation] = None


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

def analyze_water(water: PeriodAggregate) -> AnalysisResult:
    out = AnalysisResult()
    average = water.average

    if water.trend == Trend.increasing and water.trend_percentage > 15:
        out.insights.append(Insight(
            "health", "water_intake",
            f"Your water intake has improved by {water.trend_percentage}% this month - excellent progress!",
            Severity.positive, False, "💧",
        ))
    elif water.trend == Trend.decreasing and water.trend_percentage < -15:
        out.insights.append(Insight(
            "health", "water_intake",
            f"Your water intake has decreased by {abs(water.trend_percentage)}% this month",
            Severity.warning, True, "⚠️",
        ))
        out.recommendations.append(Recommendation(
            "health", "water_intake",
            "Set hourly reminders to drink water throughout the day",
            True, Priority.high, Impact.high, "⏰",
        ))

    if average < RECOMMENDED_WATER_ML * 0.7:
        out.insights.append(Insight(
            "health", "water_intake",
            f"Your daily water intake ({average}ml) is significantly below the recommended 2L",
            Severity.critical, True, "🚨",
        ))
        out.recommendations.append(Recommendation(
            "health", "water_intake",
            "Gradually increase water intake by 200ml every few days until reaching 2L daily",
            True, Priority.high, Impact.high, "📈",
        ))
    elif average >= RECOMMENDED_WATER_ML:
        out.milestones.append(Milestone(
            "achievement", "water_intake",
            "Congratulations! You're meeting your daily hydration goals", "🎉",
        ))

    if water.days_tracked < 20:
        out.recommendations.append(Recommendation(
            "health", "water_intake",
            "Track your water intake more consistently for better insights",
            True, Priority.medium, Impact.medium, "📊",
        ))

    goal = water.goal_progress
    if goal is not None and goal.status == ProgressStatus.achieved:
        out.milestones.append(Milestone(
            "goal_achievement", "water_intake",
            f"Goal achieved! You've reached {goal.progress}% of your water intake target", "🏆",
        ))
    return out


def analyze_exercise(exercise: PeriodAggregate) -> AnalysisResult:
    out = AnalysisResult()
    average_steps = exercise.details.get("average_steps", exercise.average)

    if average_steps >= RECOMMENDED_STEPS:
        out.insights.append(Insight(
            "health", "exercise",
            f"Great job! Your average {average_steps} daily steps exceeds the recommended {RECOMMENDED_STEPS}",
            Severity.positive, False, "👟",
        ))
        out.milestones.append(Milestone(
            "achievement", "exercise",
            "You're maintaining an active lifestyle with consistent daily movement", "🎯",
        ))
    elif average_steps < RECOMMENDED_STEPS * 0.6:
        out.insights.append(Insight(
            "health", "exercise",
            f"Your average {average_steps} daily steps is below recommended levels",
            Severity.warning, True, "⚠️",
        ))
        out.recommendations.append(Recommendation(
            "health", "exercise",
            "Try taking short walks during breaks or using stairs instead of elevators",
            True, Priority.high, Impact.high, "🚶",
        ))

    if exercise.trend == Trend.increasing and exercise.trend_percentage > 20:
        out.insights.append(Insight(
            "health", "exercise",
            f"Your activity level has increased by {exercise.trend_percentage}% - keep up the momentum!",
            Severity.positive, False, "📈",
        ))

    activity_count = len(exercise.details.get("activity_types", {}))
    if activity_count == 1:
        out.recommendations.append(Recommendation(
            "health", "exercise",
            "Consider adding variety to your exercise routine with different activities",
            True, Priority.medium, Impact.medium, "🔄",
        ))
    elif activity_count >= 3:
        out.insights.append(Insight(
            "health", "exercise",
            "Excellent variety in your exercise routine with multiple activity types",
            Severity.positive, False, "🌟",
        ))
    return out


def analyze_constipation(constipation: PeriodAggregate) -> AnalysisResult:
    out = AnalysisResult()
    positive_rate = constipation.details.get("positive_rate", 0)

    if positive_rate > 80:
        out.insights.append(Insight(
            "health", "constipation",
            f"Your digestive health is excellent with {positive_rate}% positive days",
            Severity.positive, False, "✅",
        ))
    elif positive_rate < 50:
        out.insights.append(Insight(
            "health", "constipation",
            f"Your constipation rate is concerning at {100 - positive_rate}% of tracked days",
            Severity.warning, True, "⚠️",
        ))
        out.recommendations.append(Recommendation(
            "health", "constipation",
            "Increase fiber intake, water consumption, and consider regular exercise",
            True, Priority.high, Impact.high, "🥗",
        ))

    if constipation.trend == Trend.increasing and constipation.trend_percentage > 15:
        out.insights.append(Insight(
            "health", "constipation",
            f"Your digestive health has improved by {constipation.trend_percentage}% this month",
            Severity.positive, False, "📈",
        ))
    elif constipation.trend == Trend.decreasing and constipation.trend_percentage < -15:
        out.insights.append(Insight(
            "health", "constipation",
            f"Your digestive health has declined by {abs(constipation.trend_percentage)}% this month",
            Severity.warning, True, "📉",
        ))
        out.recommendations.append(Recommendation(
            "health", "constipation",
            "Consider consulting a healthcare provider if digestive issues persist",
            True, Priority.high, Impact.high, "👩‍⚕️",
        ))
    return out


def analyze_kriya(kriya: PeriodAggregate) -> AnalysisResult:
    out = AnalysisResult()
    rate = kriya.details.get("consistency_rate", 0)
    total_sessions = kriya.details.get("total_sessions", kriya.days_tracked)

    if rate >= 80:
        out.insights.append(Insight(
            "health", "kriya",
            f"Excellent Shambhavi Kriya consistency at {rate}%",
            Severity.positive, False, "🧘",
        ))
        out.milestones.append(Milestone(
            "achievement", "kriya", "You're maintaining a strong meditation practice", "🏆",
        ))
    elif rate < 50:
        out.insights.append(Insight(
            "health", "kriya",
            f"Your Kriya practice consistency is at {rate}% - room for improvement",
            Severity.warning, True, "⚠️",
        ))
        out.recommendations.append(Recommendation(
            "health", "kriya",
            "Set a daily reminder for Kriya practice at the same time each day",
            True, Priority.medium, Impact.high, "⏰",
        ))

    if total_sessions >= 30:
        out.milestones.append(Milestone(
            "milestone", "kriya",
            f"Congratulations on completing {total_sessions} Kriya sessions this month!", "🎉",
        ))
    return out


def analyze_typing(typing: PeriodAggregate) -> AnalysisResult:
    out = AnalysisResult()
    rate = typing.details.get("completion_rate", 0)
    completed = typing.details.get("completed_count", 0)

    if rate >= 80:
        out.insights.append(Insight(
            "health", "typing",
            f"Excellent typing practice consistency at {rate}% completion rate",
            Severity.positive, False, "⌨️",
        ))
        out.milestones.append(Milestone(
            "achievement", "typing",
            "You're building strong typing skills through consistent practice", "🎯",
        ))
    elif rate < 50:
        out.insights.append(Insight(
            "health", "typing",
            f"Your typing practice completion rate is {rate}% - consider more regular practice",
            Severity.warning, True, "⚠️",
        ))
        out.recommendations.append(Recommendation(
            "health", "typing",
            "Schedule short 10-15 minute typing sessions daily for better skill development",
            True, Priority.medium, Impact.medium, "📅",
        ))

    if typing.trend == Trend.increasing and typing.trend_percentage > 20:
        out.insights.append(Insight(
            "health", "typing",
            f"Your typing practice consistency has improved by {typing.trend_percentage}%",
            Severity.positive, False, "📈",
        ))

    if completed >= 20:
        out.milestones.append(Milestone(
            "milestone", "typing",
            f"Great progress! You've completed {completed} typing sessions this month", "🏆",
        ))
    return out


# ---------------------------------------------------------------------------
# Education
# ---------------------------------------------------------------------------

def analyze_study_hours(study: PeriodAggregate) -> AnalysisResult:
    out = AnalysisResult()
    average = study.details.get("average_hours", study.average)
    total = study.details.get("total_hours", study.total)
    consistency = study.details.get("consistency_rate", 0)

    if average >= RECOMMENDED_STUDY_HOURS:
        out.insights.append(Insight(
            "education", "study_hours",
            f"Excellent! Your average {average} daily study hours meets recommended levels",
            Severity.positive, False, "📚",
        ))
        out.milestones.append(Milestone(
            "achievement", "study_hours", "You're maintaining consistent study habits", "🎯",
        ))
    elif average < RECOMMENDED_STUDY_HOURS * 0.7:
        out.insights.append(Insight(
            "education", "study_hours",
            f"Your average {average} daily study hours is below recommended "
            f"{RECOMMENDED_STUDY_HOURS} hours",
            Severity.warning, True, "⚠️",
        ))
        out.recommendations.append(Recommendation(
            "education", "study_hours",
            "Gradually increase study time by 30 minutes each week until reaching 4 hours daily",
            True, Priority.high, Impact.high, "📈",
        ))

    if study.trend == Trend.increasing and study.trend_percentage > 15:
        out.insights.append(Insight(
            "education", "study_hours",
            f"Your study time has increased by {study.trend_percentage}% - great momentum!",
            Severity.positive, False, "📈",
        ))
    elif study.trend == Trend.decreasing and study.trend_percentage < -15:
        out.insights.append(Insight(
            "education", "study_hours",
            f"Your study time has decreased by {abs(study.trend_percentage)}% this month",
            Severity.warning, True, "📉",
        ))
        out.recommendations.append(Recommendation(
            "education", "study_hours",
            "Review your schedule and identify time blocks for consistent study sessions",
            True, Priority.high, Impact.high, "📅",
        ))

    if consistency < 60:
        out.recommendations.append(Recommendation(
            "education", "study_hours",
            "Improve study consistency by setting fixed daily study times",
            True, Priority.medium, Impact.high, "⏰",
        ))

    if total >= 100:
        out.milestones.append(Milestone(
            "milestone", "study_hours",
            f"Impressive! You've studied {total} hours this month", "🏆",
        ))
    return out


def analyze_subject_progress(subjects: Sequence[SubjectProgress]) -> AnalysisResult:
    out = AnalysisResult()
    if not subjects:
        return out

    ranked = sorted(
        (s for s in subjects if s.total_tasks > 0),
        key=lambda s: s.task_completion_rate,
        reverse=True,
    )
    if ranked:
        best, worst = ranked[0], ranked[-1]
        if best.task_completion_rate >= 80:
            out.insights.append(Insight(
                "education", "subject_progress",
                f"Excellent progress in {best.subject_code} with {best.task_completion_rate}% completion",
                Severity.positive, False, "🌟",
            ))
            out.milestones.append(Milestone(
                "achievement", "subject_progress",
                f"{best.subject_code} is your top performing subject", "🏆",
            ))
        if worst.task_completion_rate < 40 and len(ranked) > 1:
            out.insights.append(Insight(
                "education", "subject_progress",
                f"{worst.subject_code} needs attention with only {worst.task_completion_rate}% completion",
                Severity.warning, True, "⚠️",
            ))
            out.recommendations.append(Recommendation(
                "education", "subject_progress",
                f"Allocate more study time to {worst.subject_code} to catch up on pending tasks",
                True, Priority.high, Impact.high, "📚",
            ))

    overall = mean([s.task_completion_rate for s in subjects])
    if overall >= 70:
        out.insights.append(Insight(
            "education", "subject_progress",
            f"Strong overall academic progress with {round_half_up(overall)}% average completion",
            Severity.positive, False, "📈",
        ))
    elif overall < 50:
        out.insights.append(Insight(
            "education", "subject_progress",
            f"Overall completion rate of {round_half_up(overall)}% suggests need for better time management",
            Severity.warning, True, "⚠️",
        ))
        out.recommendations.append(Recommendation(
            "education", "subject_progress",
            "Create a weekly study schedule prioritizing subjects with lowest completion rates",
            True, Priority.high, Impact.high, "📅",
        ))
    return out


def analyze_task_completion(tasks: TaskCompletion) -> AnalysisResult:
    out = AnalysisResult()
    overall = tasks.overall_completion_rate

    if overall >= 75:
        out.insights.append(Insight(
            "education", "task_completion",
            f"Excellent task completion rate of {overall}%",
            Severity.positive, False, "✅",
        ))
    elif overall < 50:
        out.insights.append(Insight(
            "education", "task_completion",
            f"Task completion rate of {overall}% indicates need for better task management",
            Severity.warning, True, "⚠️",
        ))
        out.recommendations.append(Recommendation(
            "education", "task_completion",
            "Break large tasks into smaller, manageable chunks and set daily completion goals",
            True, Priority.high, Impact.high, "🎯",
        ))

    if tasks.regular_tasks_completion_rate > tasks.nptel_tasks_completion_rate + 20:
        out.insights.append(Insight(
            "education", "task_completion",
            "You perform better on regular tasks than NPTEL tasks - consider adjusting study approach",
            Severity.info, True, "💡",
        ))
        out.recommendations.append(Recommendation(
            "education", "task_completion",
            "Allocate dedicated time slots for NPTEL content and take notes while watching",
            True, Priority.medium, Impact.medium, "📝",
        ))
    return out


def analyze_study_patterns(patterns: StudyPatterns) -> AnalysisResult:
    out = AnalysisResult()
    peak = patterns.productivity_analysis.most_productive_day
    if not patterns.daily_patterns or peak is None:
        return out
    out.recommendations.append(Recommendation(
        "education", "study_patterns",
        f"You study most on {peak.day}s ({peak.average_hours}h on average) - "
        f"schedule difficult subjects during your peak days",
        True, Priority.medium, Impact.medium, "⏰",
    ))
    return out


# ---------------------------------------------------------------------------
# Cross-domain
# ---------------------------------------------------------------------------

def analyze_health_study_correlation(
    health: PeriodAggregate,
    study: PeriodAggregate,
    health_type: str,
    study_type: str,
) -> Optional[Correlation]:
    """Both trends rising or both falling; any other combination is None."""
    if health.trend == Trend.increasing and study.trend == Trend.increasing:
        return Correlation(
            Insight(
                "correlation", "health_study",
                f"Your improving {health_type} appears to correlate with better {study_type}",
                Severity.positive, False, "🔗",
            ),
            Recommendation(
                "correlation", "health_study",
                f"Continue maintaining good {health_type} habits to support your academic performance",
                True, Priority.medium, Impact.medium, "💪",
            ),
        )
    if health.trend == Trend.decreasing and study.trend == Trend.decreasing:
        return Correlation(
            Insight(
                "correlation", "health_study",
                f"Declining {health_type} may be impacting your {study_type}",
                Severity.warning, True, "⚠️",
            ),
            Recommendation(
                "correlation", "health_study",
                f"Focus on improving {health_type} habits to potentially boost academic performance",
                True, Priority.high, Impact.high, "🎯",
            ),
        )
    return None


def calculate_health_score(health: Mapping[str, object]) -> int:
    """Mean over the health aggregates present; absent metrics are not zeros."""
    parts: list[float] = []
    water = health.get("water")
    if isinstance(water, PeriodAggregate):
        parts.append(min(water.average / RECOMMENDED_WATER_ML * 100, 100))
    exercise = health.get("exercise")
    if isinstance(exercise, PeriodAggregate):
        steps = exercise.details.get("average_steps", exercise.average)
        parts.append(min(steps / RECOMMENDED_STEPS * 100, 100))
    constipation = health.get("constipation")
    if isinstance(constipation, PeriodAggregate):
        parts.append(constipation.details.get("positive_rate", 0))
    kriya = health.get("kriya")
    if isinstance(kriya, PeriodAggregate):
        parts.append(kriya.details.get("consistency_rate", 0))
    typing = health.get("typing")
    if isinstance(typing, PeriodAggregate):
        parts.append(typing.details.get("completion_rate", 0))
    return round_half_up(mean(parts)) if parts else 0


def calculate_productivity_score(
    study: Optional[PeriodAggregate],
    tasks: Optional[TaskCompletion],
    subjects: Sequence[SubjectProgress] = (),
) -> int:
    parts: list[float] = []
    if study is not None:
        hours = study.details.get("average_hours", study.average)
        parts.append(min(hours / RECOMMENDED_STUDY_HOURS * 100, 100))
    if tasks is not None:
        parts.append(tasks.overall_completion_rate)
    if subjects:
        parts.append(mean([s.task_completion_rate for s in subjects]))
    return round_half_up(mean(parts)) if parts else 0


def analyze_overall_wellness(health_score: int, productivity_score: int) -> Optional[Correlation]:
    if health_score >= 70 and productivity_score >= 70:
        return Correlation(Insight(
            "correlation", "overall_wellness",
            "Your strong health habits are supporting excellent academic performance",
            Severity.positive, False, "🌟",
        ))
    if health_score < 50 and productivity_score < 50:
        return Correlation(
            Insight(
                "correlation", "overall_wellness",
                "Both health and academic metrics need attention - they often influence each other",
                Severity.warning, True, "⚠️",
            ),
            Recommendation(
                "correlation", "overall_wellness",
                "Focus on improving one area at a time - start with health habits to build momentum",
                True, Priority.high, Impact.high, "🎯",
            ),
        )
    return None


HEALTH_ANALYZERS = {
    "water": analyze_water,
    "exercise": analyze_exercise,
    "constipation": analyze_constipation,
    "kriya": analyze_kriya,
    "typing": analyze_typing,
}
