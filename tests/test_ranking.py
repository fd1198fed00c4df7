"""
Tests for the insight ranker: order contract and sort stability.
"""
from datetime import datetime, timedelta, timezone

from vitalstudy.services.insights import Insight, Recommendation
from vitalstudy.services.ranking import (
    PRIORITY_ORDER,
    SEVERITY_ORDER,
    Impact,
    Priority,
    Severity,
    prioritize_recommendations,
    sort_insights_by_severity,
)

T0 = datetime(2026, 10, 1, tzinfo=timezone.utc)


def insight(severity, actionable=False, minutes=0, message="m"):
    return Insight(
        "health", "water_intake", message, severity, actionable, "i",
        timestamp=T0 + timedelta(minutes=minutes),
    )


def rec(priority, impact, actionable=True, message="r"):
    return Recommendation("health", "water_intake", message, actionable, priority, impact, "i")


class TestOrderContract:
    def test_severity_order(self):
        assert SEVERITY_ORDER == (
            Severity.critical, Severity.warning, Severity.info, Severity.positive,
        )

    def test_priority_order(self):
        assert PRIORITY_ORDER == (Priority.high, Priority.medium, Priority.low)


class TestSortInsights:
    def test_by_severity(self):
        items = [insight(Severity.positive), insight(Severity.critical), insight(Severity.info)]
        ranked = sort_insights_by_severity(items)
        assert [i.severity for i in ranked] == [
            Severity.critical, Severity.info, Severity.positive,
        ]

    def test_actionable_first_within_severity(self):
        items = [insight(Severity.warning, False, message="a"), insight(Severity.warning, True, message="b")]
        ranked = sort_insights_by_severity(items)
        assert [i.message for i in ranked] == ["b", "a"]

    def test_newest_first_on_tie(self):
        items = [
            insight(Severity.warning, True, minutes=0, message="old"),
            insight(Severity.warning, True, minutes=5, message="new"),
        ]
        ranked = sort_insights_by_severity(items)
        assert [i.message for i in ranked] == ["new", "old"]

    def test_custom_order(self):
        items = [insight(Severity.critical), insight(Severity.positive)]
        ranked = sort_insights_by_severity(items, tuple(reversed(SEVERITY_ORDER)))
        assert ranked[0].severity == Severity.positive

    def test_does_not_mutate_input(self):
        items = [insight(Severity.positive), insight(Severity.critical)]
        sort_insights_by_severity(items)
        assert items[0].severity == Severity.positive


class TestPrioritizeRecommendations:
    def test_priority_then_impact(self):
        items = [
            rec(Priority.low, Impact.high, message="low"),
            rec(Priority.high, Impact.medium, message="high-medium"),
            rec(Priority.high, Impact.high, message="high-high"),
        ]
        ranked = prioritize_recommendations(items)
        assert [r.message for r in ranked] == ["high-high", "high-medium", "low"]

    def test_actionable_breaks_tie(self):
        items = [
            rec(Priority.medium, Impact.medium, actionable=False, message="passive"),
            rec(Priority.medium, Impact.medium, actionable=True, message="action"),
        ]
        assert [r.message for r in prioritize_recommendations(items)] == ["action", "passive"]

    def test_idempotent(self):
        items = [
            rec(Priority.medium, Impact.high, message="1"),
            rec(Priority.high, Impact.low, message="2"),
            rec(Priority.medium, Impact.high, message="3"),
            rec(Priority.low, Impact.low, message="4"),
        ]
        once = prioritize_recommendations(items)
        twice = prioritize_recommendations(once)
        assert [r.message for r in once] == [r.message for r in twice]
        # equal keys keep their input order
        assert [r.message for r in once] == ["2", "1", "3", "4"]
