"""
Tests for the analytics orchestration and the HTTP surface.

Service-level tests pin `today`; endpoint tests seed rows relative to the
real current date since the routes always use "now".
"""
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from vitalstudy.models.education import StudyLog
from vitalstudy.models.health_logs import PeriodLog, WaterIntake
from vitalstudy.services.analytics import (
    aggregate_health_data,
    build_insight_response,
    generate_insights,
)
from vitalstudy.services.ranking import Severity

TODAY = date(2026, 10, 18)


def _seed_declining(db, user_id, today):
    water = {4: 2500, 3: 2500, 2: 1000, 1: 1000}
    study = {4: 5, 3: 5, 2: 1, 1: 1}
    db.add_all(
        WaterIntake(user_id=user_id, date=today - timedelta(days=n), amount_ml=ml)
        for n, ml in water.items()
    )
    db.add_all(
        StudyLog(user_id=user_id, date=today - timedelta(days=n), hours=Decimal(h))
        for n, h in study.items()
    )
    db.commit()


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class TestHealthData:
    def test_selected_metrics_only(self, db, user_id):
        result = aggregate_health_data(db, user_id, 30, "water,period", TODAY).to_dict()
        assert "water_intake" in result
        assert "period_tracking" in result
        assert "exercise" not in result
        assert result["summary"]["metrics_tracked"] == 2

    def test_default_time_range(self, db, user_id):
        result = aggregate_health_data(db, user_id, today=TODAY)
        assert result.time_range == 30
        assert result.start_date == date(2026, 9, 18)


class TestGenerateInsights:
    def test_empty_data_produces_nothing(self, db, user_id):
        report = generate_insights(db, user_id, TODAY)
        assert report.insights == []
        assert report.recommendations == []
        assert report.milestones == []
        assert report.total_insights == 0

    def test_period_only_does_not_fabricate_scores(self, db, user_id):
        db.add(PeriodLog(user_id=user_id, pain_start_date=TODAY - timedelta(days=3)))
        db.commit()
        report = generate_insights(db, user_id, TODAY)
        assert report.insights == []

    def test_declining_health_and_study(self, db, user_id):
        _seed_declining(db, user_id, TODAY)
        report = generate_insights(db, user_id, TODAY)

        categories = {(i.type, i.category) for i in report.insights}
        assert ("health", "water_intake") in categories
        assert ("education", "study_hours") in categories
        assert ("correlation", "health_study") in categories
        assert ("correlation", "overall_wellness") in categories

        assert report.insights[0].severity == Severity.warning
        assert report.insights[-1].severity == Severity.positive
        assert report.total_insights == len(report.insights)
        assert report.actionable_recommendations == len(report.recommendations)

    def test_filters(self, db, user_id):
        _seed_declining(db, user_id, TODAY)
        report = generate_insights(db, user_id, TODAY)

        response = build_insight_response(report, category="correlation")
        assert {i.type for i in response["insights"]["items"]} == {"correlation"}

        response = build_insight_response(report, category="water_intake", severity="positive")
        assert response["insights"]["items"] == []

        response = build_insight_response(report, severity="warning,positive")
        assert set(response["insights"]["by_severity"]) <= {"warning", "positive"}
        assert response["filters"]["applied"]["severity"] == "warning,positive"


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

def _today():
    return datetime.now(tz=timezone.utc).date()


class TestHealthEndpoint:
    def test_service_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"


class TestAnalyticsEndpoints:
    def test_health_analytics(self, client, db, user_id, auth):
        db.add(WaterIntake(user_id=user_id, date=_today() - timedelta(days=1), amount_ml=1800))
        db.commit()
        r = client.get("/analytics/health", params={"time_range": 7}, headers=auth)
        assert r.status_code == 200
        body = r.json()
        assert body["time_range"] == 7
        assert body["water_intake"]["average"] == 1800
        assert body["water_intake"]["trend"] == "insufficient_data"
        assert body["period_tracking"]["total_entries"] == 0
        assert body["summary"]["active_days"] == 1

    def test_education_analytics(self, client, auth):
        r = client.get("/analytics/education", headers=auth)
        assert r.status_code == 200
        assert r.json()["summary"]["days_studied"] == 0

    def test_insights_empty(self, client, auth):
        r = client.get("/analytics/insights", headers=auth)
        assert r.status_code == 200
        body = r.json()
        assert body["insights"]["total"] == 0
        assert body["summary"]["total_insights"] == 0
        assert "correlation" in body["filters"]["available"]["categories"]

    def test_insights_populated(self, client, db, user_id, auth):
        _seed_declining(db, user_id, _today())
        r = client.get("/analytics/insights", params={"actionable": "true"}, headers=auth)
        assert r.status_code == 200
        body = r.json()
        assert body["insights"]["total"] > 0
        assert all(i["actionable"] for i in body["insights"]["items"])
        assert body["insights"]["items"][0]["severity"] == "warning"


class TestGoalEndpoints:
    def test_goal_lifecycle(self, client, db, user_id, auth):
        db.add(WaterIntake(user_id=user_id, date=_today() - timedelta(days=1), amount_ml=2200))
        db.commit()

        r = client.post(
            "/analytics/goals",
            json={"type": "health", "metric": "water_intake", "target": 2000, "description": "2L"},
            headers=auth,
        )
        assert r.status_code == 201
        goal = r.json()
        assert goal["status"] == "active"
        assert goal["target"] == 2000

        r = client.get("/analytics/goals", headers=auth)
        assert r.status_code == 200
        listed = r.json()
        assert listed["summary"]["total"] == 1
        assert listed["goals"][0]["progress"]["progress"] == 100
        assert listed["goals"][0]["progress"]["progress_status"] == "achieved"

        r = client.post("/analytics/goals/check-achievements", headers=auth)
        assert r.status_code == 200
        body = r.json()
        assert body["total_achieved"] == 1
        assert [n["type"] for n in body["notifications"]] == ["goal_achievement", "milestone"]

        r = client.post("/analytics/goals/check-achievements", headers=auth)
        assert r.json()["total_achieved"] == 0

        r = client.get("/analytics/goals/completion-stats", headers=auth)
        assert r.status_code == 200
        stats = r.json()
        assert stats["overall"]["completion_rate"] == 100
        assert len(stats["recent_achievements"]) == 1

        r = client.get(
            "/analytics/goals/streaks",
            params={"metric": "water_intake", "type": "health"},
            headers=auth,
        )
        assert r.status_code == 200
        assert r.json()["current_streak"] == 1

        r = client.patch(f"/analytics/goals/{goal['id']}", json={"status": "active"}, headers=auth)
        assert r.status_code == 200
        assert r.json()["status"] == "active"


class TestStreakEndpoints:
    def test_record_and_read(self, client, auth):
        for day in ("2026-10-01", "2026-10-02"):
            r = client.post("/streaks/water", json={"day": day}, headers=auth)
            assert r.status_code == 200
        assert r.json()["current_streak"] == 2

        r = client.get("/streaks", headers=auth)
        assert r.status_code == 200
        body = r.json()
        assert body["water"]["longest_streak"] == 2
        assert body["study"]["current_streak"] == 0

        r = client.post("/streaks/water/reset", headers=auth)
        assert r.json()["current_streak"] == 0
        assert r.json()["longest_streak"] == 2

    def test_default_day_is_today(self, client, auth):
        r = client.post("/streaks/kriya", json={}, headers=auth)
        assert r.status_code == 200
        assert r.json()["last_activity_date"] == _today().isoformat()
