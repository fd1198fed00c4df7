"""
Analytics orchestration.

Pulls the per-domain aggregates together and runs the insight pipeline:

  aggregate_health_data ─┐
                         ├─> per-domain analyzers ─> cross-domain ─> ranker
  calculate_education ───┘

Everything is recomputed on each call; nothing here is cached or stored.
Store errors propagate to the caller.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from vitalstudy.core.config import settings
from vitalstudy.services import insights as engine
from vitalstudy.services.aggregation import (
    PIPELINES,
    HealthMetricResult,
    HealthSummary,
    PeriodAggregate,
    PeriodTrackingSummary,
    aggregate,
    aggregate_health_metric,
    analytics_window,
    health_summary,
)
from vitalstudy.services.education import (
    EducationSummary,
    StudyPatterns,
    SubjectProgress,
    TaskCompletion,
    UnitProgress,
    education_summary,
    load_course_snapshot,
    parse_subject_codes,
    study_patterns,
    subject_progress,
    task_completion,
    unit_progress,
)
from vitalstudy.services.insights import AnalysisResult, Insight, Milestone, Recommendation
from vitalstudy.services.metric_registry import parse_health_metrics
from vitalstudy.services.ranking import (
    Priority,
    Severity,
    prioritize_recommendations,
    sort_insights_by_severity,
)

logger = logging.getLogger(__name__)

# response key per health metric name
HEALTH_OUTPUT_KEYS = {
    "water": "water_intake",
    "exercise": "exercise",
    "period": "period_tracking",
    "constipation": "constipation",
    "kriya": "kriya",
    "typing": "typing",
}

INSIGHT_CATEGORIES = ["health", "education", "correlation"]


# ---------------------------------------------------------------------------
# Health / education aggregates
# ---------------------------------------------------------------------------

def _has_data(result: HealthMetricResult) -> bool:
    if isinstance(result, PeriodTrackingSummary):
        return result.total_entries > 0
    return result.days_tracked > 0


@dataclass
class HealthAnalytics:
    time_range: int
    start_date: date
    end_date: date
    metrics: dict[str, HealthMetricResult]
    summary: HealthSummary

    @property
    def has_data(self) -> bool:
        return any(_has_data(m) for m in self.metrics.values())

    def tracked(self, name: str) -> Optional[PeriodAggregate]:
        """The aggregate for `name` if it was requested and has rows."""
        result = self.metrics.get(name)
        if isinstance(result, PeriodAggregate) and result.days_tracked > 0:
            return result
        return None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "time_range": self.time_range,
            "start_date": self.start_date,
            "end_date": self.end_date,
        }
        for name, result in self.metrics.items():
            out[HEALTH_OUTPUT_KEYS[name]] = asdict(result)
        out["summary"] = asdict(self.summary)
        return out


@dataclass
class EducationAnalytics:
    time_range: int
    start_date: date
    end_date: date
    subject_progress: list[SubjectProgress]
    study_hours: PeriodAggregate
    task_completion: TaskCompletion
    unit_progress: list[UnitProgress]
    study_patterns: StudyPatterns
    summary: EducationSummary

    @property
    def has_study_data(self) -> bool:
        return self.study_hours.days_tracked > 0

    @property
    def has_task_data(self) -> bool:
        return self.task_completion.total_tasks > 0

    @property
    def has_data(self) -> bool:
        return self.has_study_data or self.has_task_data

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def aggregate_health_data(
    db: Session,
    user_id: int,
    time_range: Optional[int] = None,
    metrics: str = "all",
    today: Optional[date] = None,
) -> HealthAnalytics:
    window = analytics_window(
        settings.DEFAULT_TIME_RANGE_DAYS if time_range is None else time_range, today
    )
    requested = parse_health_metrics(metrics)
    results = {
        name: aggregate_health_metric(db, user_id, name, window)
        for name in requested
    }
    return HealthAnalytics(
        time_range=window.days,
        start_date=window.start,
        end_date=window.end,
        metrics=results,
        summary=health_summary(db, user_id, requested, window),
    )


def calculate_education_progress(
    db: Session,
    user_id: int,
    time_range: Optional[int] = None,
    subjects: str = "all",
    today: Optional[date] = None,
) -> EducationAnalytics:
    window = analytics_window(
        settings.DEFAULT_TIME_RANGE_DAYS if time_range is None else time_range, today
    )
    snapshot = load_course_snapshot(db, user_id, parse_subject_codes(subjects))
    study = aggregate(db, user_id, PIPELINES["study_hours"], window)
    progress = subject_progress(snapshot, study)
    return EducationAnalytics(
        time_range=window.days,
        start_date=window.start,
        end_date=window.end,
        subject_progress=progress,
        study_hours=study,
        task_completion=task_completion(snapshot, window),
        unit_progress=unit_progress(snapshot),
        study_patterns=study_patterns(snapshot, study, window),
        summary=education_summary(progress, study, window),
    )


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------

@dataclass
class InsightReport:
    insights: list[Insight]
    recommendations: list[Recommendation]
    milestones: list[Milestone]
    generated_at: datetime
    total_insights: int
    actionable_recommendations: int


def health_insights(health: HealthAnalytics) -> AnalysisResult:
    out = AnalysisResult()
    for name, analyzer in engine.HEALTH_ANALYZERS.items():
        agg = health.tracked(name)
        if agg is not None:
            out.extend(analyzer(agg))
    return out


def education_insights(education: EducationAnalytics) -> AnalysisResult:
    out = AnalysisResult()
    if education.has_study_data:
        out.extend(engine.analyze_study_hours(education.study_hours))
    if education.has_task_data:
        out.extend(engine.analyze_subject_progress(education.subject_progress))
        out.extend(engine.analyze_task_completion(education.task_completion))
    if education.has_study_data:
        out.extend(engine.analyze_study_patterns(education.study_patterns))
    return out


def cross_domain_insights(health: HealthAnalytics, education: EducationAnalytics) -> AnalysisResult:
    out = AnalysisResult()
    if not health.has_data or not education.has_data:
        return out

    correlations = []
    if education.has_study_data:
        study = education.study_hours
        for name, health_type, study_type in (
            ("water", "water_intake", "study_performance"),
            ("exercise", "exercise", "study_consistency"),
        ):
            agg = health.tracked(name)
            if agg is not None:
                correlations.append(
                    engine.analyze_health_study_correlation(agg, study, health_type, study_type)
                )

    scored = {}
    for name in engine.HEALTH_ANALYZERS:
        agg = health.tracked(name)
        if agg is not None:
            scored[name] = agg
    # period entries alone carry no score
    if scored:
        health_score = engine.calculate_health_score(scored)
        productivity_score = engine.calculate_productivity_score(
            education.study_hours if education.has_study_data else None,
            education.task_completion if education.has_task_data else None,
            education.subject_progress if education.has_task_data else (),
        )
        correlations.append(engine.analyze_overall_wellness(health_score, productivity_score))

    for correlation in correlations:
        if correlation is None:
            continue
        out.insights.append(correlation.insight)
        if correlation.recommendation is not None:
            out.recommendations.append(correlation.recommendation)
    return out


def generate_insights(
    db: Session,
    user_id: int,
    today: Optional[date] = None,
) -> InsightReport:
    days = settings.DEFAULT_TIME_RANGE_DAYS
    health = aggregate_health_data(db, user_id, days, "all", today)
    education = calculate_education_progress(db, user_id, days, "all", today)

    combined = AnalysisResult()
    combined.extend(health_insights(health))
    combined.extend(education_insights(education))
    combined.extend(cross_domain_insights(health, education))

    insights = sort_insights_by_severity(combined.insights)
    recommendations = prioritize_recommendations(combined.recommendations)
    logger.debug(
        "Generated %d insights, %d recommendations for user %s",
        len(insights), len(recommendations), user_id,
    )
    return InsightReport(
        insights=insights,
        recommendations=recommendations,
        milestones=combined.milestones,
        generated_at=datetime.now(tz=timezone.utc),
        total_insights=len(insights),
        actionable_recommendations=sum(1 for r in recommendations if r.actionable),
    )


# ---------------------------------------------------------------------------
# Response shaping
# ---------------------------------------------------------------------------

def _split(value: Optional[str]) -> Optional[list[str]]:
    if not value:
        return None
    return [v.strip() for v in value.split(",") if v.strip()]


def _group(items, attr: str) -> dict[str, list]:
    groups: dict[str, list] = defaultdict(list)
    for item in items:
        key = getattr(item, attr)
        groups[key.value if hasattr(key, "value") else key].append(item)
    return dict(groups)


def build_insight_response(
    report: InsightReport,
    category: Optional[str] = None,
    severity: Optional[str] = None,
    actionable: Optional[bool] = None,
) -> dict[str, Any]:
    """
    Post-hoc filter + grouping of a ranked report.

    `category` matches an insight's type ("health") or its category
    ("water_intake"); filtering never reorders.
    """
    insights = list(report.insights)
    recommendations = list(report.recommendations)

    categories = _split(category)
    if categories:
        insights = [i for i in insights if i.type in categories or i.category in categories]
        recommendations = [
            r for r in recommendations if r.type in categories or r.category in categories
        ]

    severities = _split(severity)
    if severities:
        insights = [i for i in insights if i.severity.value in severities]

    if actionable is not None:
        insights = [i for i in insights if i.actionable == actionable]
        recommendations = [r for r in recommendations if r.actionable == actionable]

    return {
        "insights": {
            "total": len(insights),
            "by_category": _group(insights, "category"),
            "by_severity": _group(insights, "severity"),
            "items": insights,
        },
        "recommendations": {
            "total": len(recommendations),
            "actionable": sum(1 for r in recommendations if r.actionable),
            "by_priority": _group(recommendations, "priority"),
            "items": recommendations,
        },
        "milestones": report.milestones,
        "summary": {
            "total_insights": report.total_insights,
            "actionable_recommendations": report.actionable_recommendations,
            "critical_issues": sum(1 for i in insights if i.severity == Severity.critical),
            "positive_insights": sum(1 for i in insights if i.severity == Severity.positive),
            "generated_at": report.generated_at,
        },
        "filters": {
            "applied": {
                "category": category,
                "severity": severity,
                "actionable": actionable,
            },
            "available": {
                "categories": INSIGHT_CATEGORIES,
                "severities": [s.value for s in Severity],
                "priorities": [p.value for p in Priority],
                "actionable": [True, False],
            },
        },
    }
