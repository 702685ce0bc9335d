"""
Tests for the cognitive metrics API endpoints.
"""
from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from core.security import create_access_token
from main import app
from services.metric_cache import metric_cache

client = TestClient(app)


def _auth(user):
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(db_session, test_user):
    return _auth(test_user)


class TestAuth:

    def test_missing_token(self, db_session):
        response = client.get("/v1/cognitive/metrics/today")
        assert response.status_code == 401

    def test_invalid_token(self, db_session):
        response = client.get(
            "/v1/cognitive/metrics/today",
            headers={"Authorization": "Bearer not-a-token"},
        )
        assert response.status_code == 401

    def test_expired_token(self, db_session, test_user):
        token = create_access_token({"sub": str(test_user.id)}, expires_delta=timedelta(minutes=-1))
        response = client.get("/v1/cognitive/metrics/today", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestMetricsEndpoints:

    def test_today_computes_when_cache_missing(self, auth_headers, test_user):
        response = client.get("/v1/cognitive/metrics/today", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == str(test_user.id)
        assert data["plan"] == "expert"
        assert data["cache_state"] == "fresh"
        assert data["recovery"] is None
        assert set(data["skills"]) == {"AE", "RA", "CT", "IN"}
        assert 0 <= data["readiness"] <= 100
        assert 0 <= data["reasoning_quality"] <= 100
        assert data["snapshot"]["outcome"] == "skipped_no_value"

    def test_today_served_from_cache(self, auth_headers, test_user, fake_redis):
        first = client.get("/v1/cognitive/metrics/today", headers=auth_headers).json()
        second = client.get("/v1/cognitive/metrics/today", headers=auth_headers).json()

        assert second["cache_state"] == "fresh"
        assert second["computed_at"] == first["computed_at"]

    def test_stale_cache_served_and_refresh_enqueued(self, auth_headers, test_user, fake_redis, monkeypatch):
        enqueued = []
        monkeypatch.setattr(
            "tasks.metric_tasks.refresh_cognitive_metrics_task.delay",
            lambda user_id: enqueued.append(user_id),
        )
        first = client.get("/v1/cognitive/metrics/today", headers=auth_headers).json()
        stale_at = datetime.now(timezone.utc) - timedelta(minutes=10)
        metric_cache.write(test_user.id, {k: v for k, v in first.items() if k != "cache_state"}, now=stale_at)

        response = client.get("/v1/cognitive/metrics/today", headers=auth_headers)

        assert response.json()["cache_state"] == "stale"
        assert enqueued == [str(test_user.id)]

    def test_cache_from_previous_local_day_not_served(self, auth_headers, test_user, fake_redis):
        first = client.get("/v1/cognitive/metrics/today", headers=auth_headers).json()
        yesterday = (date.fromisoformat(first["local_date"]) - timedelta(days=1)).isoformat()
        payload = {k: v for k, v in first.items() if k != "cache_state"}
        metric_cache.write(test_user.id, {**payload, "local_date": yesterday})

        response = client.get("/v1/cognitive/metrics/today", headers=auth_headers).json()

        assert response["local_date"] == first["local_date"]
        assert response["cache_state"] == "fresh"

    def test_force_refresh(self, auth_headers):
        response = client.post("/v1/cognitive/metrics/refresh", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["cache_state"] == "fresh"

    def test_unknown_plan_is_422(self, db_session, make_user):
        user = make_user(training_plan="platinum")

        response = client.get("/v1/cognitive/metrics/today", headers=_auth(user))

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR_TRAINING_PLAN"

    def test_sci_breakdown(self, auth_headers):
        response = client.get("/v1/cognitive/metrics/sci", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["bottleneck"] in {"performance", "engagement", "recovery"}
        assert data["level"] in {"elite", "high", "moderate", "developing", "early"}

    def test_unknown_timezone_header_falls_back(self, auth_headers):
        response = client.get(
            "/v1/cognitive/metrics/today",
            headers={**auth_headers, "X-Timezone": "Mars/Olympus_Mons"},
        )
        assert response.status_code == 200

    def test_history(self, auth_headers):
        today = client.get("/v1/cognitive/metrics/today", headers=auth_headers).json()["local_date"]

        response = client.get(
            "/v1/cognitive/metrics/history",
            params={"start": today, "end": today},
            headers=auth_headers,
        )

        assert response.status_code == 200
        rows = response.json()
        assert len(rows) == 1
        assert rows[0]["snapshot_date"] == today

    def test_history_inverted_range(self, auth_headers):
        response = client.get(
            "/v1/cognitive/metrics/history",
            params={"start": "2026-05-10", "end": "2026-05-01"},
            headers=auth_headers,
        )
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR_START"

    def test_history_range_too_long(self, auth_headers):
        response = client.get(
            "/v1/cognitive/metrics/history",
            params={"start": "2024-01-01", "end": "2026-01-01"},
            headers=auth_headers,
        )
        assert response.status_code == 422


class TestActionEndpoints:

    def test_app_open_logs_event(self, auth_headers):
        metrics = client.post("/v1/cognitive/app-open", headers=auth_headers).json()

        response = client.get(
            "/v1/cognitive/intraday", params={"date": metrics["local_date"]}, headers=auth_headers,
        )

        assert response.status_code == 200
        events = response.json()["events"]
        assert [e["event_type"] for e in events] == ["app_open"]
        assert events[0]["readiness"] == metrics["readiness"]

    def test_training(self, auth_headers):
        response = client.post(
            "/v1/cognitive/training",
            json={"xp": 20, "system": "S2", "focus": "reasoning", "score": 85},
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["skill"] == "CT"
        assert data["xp_awarded"] == 20
        assert data["metrics"]["skills"]["CT"] == 60.0

    def test_training_requires_skill_or_system(self, auth_headers):
        response = client.post("/v1/cognitive/training", json={"xp": 20}, headers=auth_headers)
        assert response.status_code == 422

    def test_training_unknown_skill(self, auth_headers):
        response = client.post(
            "/v1/cognitive/training", json={"xp": 20, "skill": "memory"}, headers=auth_headers,
        )
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_calibration(self, auth_headers):
        response = client.post(
            "/v1/cognitive/calibration", json={"skills": {"AE": 72, "CT": 64}}, headers=auth_headers,
        )

        assert response.status_code == 200
        skills = response.json()["skills"]
        assert skills["AE"] == 72.0
        assert skills["CT"] == 64.0
        assert skills["RA"] == 50.0

    def test_calibration_out_of_range(self, auth_headers):
        response = client.post(
            "/v1/cognitive/calibration", json={"skills": {"AE": 140}}, headers=auth_headers,
        )
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_training_reports_dual_process_decay(self, auth_headers):
        response = client.post("/v1/cognitive/training", json={"xp": 40, "system": "S1"}, headers=auth_headers)
        assert response.json()["metrics"]["dual_process_decay"] == 5.0

    def test_recovery_session(self, auth_headers):
        response = client.post(
            "/v1/cognitive/recovery-sessions", json={"detox_minutes": 30}, headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["recovery"] == pytest.approx(48.6)
        assert data["metrics"]["snapshot"]["outcome"] == "committed"

    def test_recovery_session_without_minutes(self, auth_headers):
        response = client.post("/v1/cognitive/recovery-sessions", json={}, headers=auth_headers)
        assert response.status_code == 422

    def test_content(self, auth_headers):
        response = client.post(
            "/v1/cognitive/content", json={"content_type": "podcast", "title": "Deep Work"}, headers=auth_headers,
        )

        assert response.status_code == 201
        assert response.json()["metrics"]["reasoning_quality_detail"]["task_component"] == 12.0

    def test_content_unknown_type(self, auth_headers):
        response = client.post("/v1/cognitive/content", json={"content_type": "video"}, headers=auth_headers)
        assert response.status_code == 422

    def test_recovery_baseline_idempotent(self, auth_headers):
        body = {"sleep_hours": "7-8", "detox_hours": "1-2", "mental_state": "okay"}

        first = client.post("/v1/cognitive/recovery-baseline", json=body, headers=auth_headers).json()
        second = client.post("/v1/cognitive/recovery-baseline", json=body, headers=auth_headers).json()

        assert first == {"recovery": 55.0, "has_baseline": True, "created": True}
        assert second["created"] is False
        assert second["recovery"] == 55.0

    def test_wearable_reading(self, auth_headers):
        body = {
            "reading_date": date.today().isoformat(),
            "hrv_ms": 72.0,
            "resting_hr": 54.0,
            "sleep_duration_min": 450,
            "sleep_efficiency": 0.9,
            "source": "oura",
        }

        response = client.post("/v1/cognitive/wearables", json=body, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["hrv_ms"] == 72.0


class TestHealth:

    def test_health(self, db_session):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ping(self):
        assert client.get("/ping").json() == {"pong": True}
