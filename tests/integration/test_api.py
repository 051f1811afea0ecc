"""Tests for the REST API, driven through the FastAPI test client."""

from datetime import datetime, timezone
import inspect
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from subscription_service.api import control
from subscription_service.config import Config
from subscription_service.container import build_container
from subscription_service.main import create_app
from subscription_service.services.clock import Clock

CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "service.yaml"
NOW = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


class RecordingPublisher:
    """In-memory publisher standing in for Pub/Sub."""

    def __init__(self):
        self.events = []

    def send_push(self, event):
        self.events.append(event)
        return True

    def is_enabled(self):
        return True


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def container(publisher):
    return build_container(
        Config(str(CONFIG_PATH)),
        clock=Clock(time_source=lambda: NOW),
        publisher=publisher,
    )


@pytest.fixture
def client(container):
    """Create test client (lifespan not entered, so the scheduler stays stopped)."""
    return TestClient(create_app(container=container))


def create(client, user_id="user-1", plan_id="basic-monthly", activate=False):
    return client.post(
        "/api/v1/subscriptions",
        json={"user_id": user_id, "plan_id": plan_id, "activate": activate},
    )


class TestServiceEndpoints:
    """Test root and health endpoints."""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "subscription-service"

    def test_health(self, client):
        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["pubsub"] == "connected"
        assert body["scheduler"] == "stopped"
        assert body["config"] == "loaded (4 plans)"

    def test_request_id_header(self, client):
        response = client.get("/", headers={"X-Request-ID": "req-abc"})

        assert response.headers["X-Request-ID"] == "req-abc"

    def test_request_id_generated(self, client):
        assert client.get("/").headers["X-Request-ID"]


class TestPlanEndpoints:
    """Test plan listing."""

    def test_list_plans_excludes_retired(self, client):
        plan_ids = [plan["id"] for plan in client.get("/api/v1/plans").json()]

        assert plan_ids == ["basic-monthly", "pro-monthly", "pro-yearly"]

    def test_get_plan(self, client):
        response = client.get("/api/v1/plans/pro-yearly")

        assert response.status_code == 200
        assert response.json()["billing_cycle"] == "YEARLY"

    def test_get_missing_plan(self, client):
        response = client.get("/api/v1/plans/missing")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "Not found"


class TestSubscriptionEndpoints:
    """Test subscription lifecycle endpoints."""

    def test_create_subscription(self, client):
        response = create(client)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "PENDING"
        assert body["user_id"] == "user-1"
        assert body["end_date"].startswith("2024-02-01T10:00:00")

    def test_create_unknown_plan(self, client):
        assert create(client, plan_id="missing").status_code == 404

    def test_create_retired_plan(self, client):
        assert create(client, plan_id="legacy-monthly").status_code == 409

    def test_create_second_subscription_conflicts(self, client):
        create(client)

        response = create(client, plan_id="pro-monthly")

        assert response.status_code == 409
        assert "already has" in response.json()["detail"]["message"]

    def test_get_subscription(self, client):
        subscription_id = create(client).json()["id"]

        response = client.get(f"/api/v1/subscriptions/{subscription_id}")

        assert response.status_code == 200
        assert response.json()["id"] == subscription_id

    def test_get_missing_subscription(self, client):
        assert client.get("/api/v1/subscriptions/missing").status_code == 404

    def test_activate_then_cancel(self, client):
        subscription_id = create(client).json()["id"]

        activated = client.post(f"/api/v1/subscriptions/{subscription_id}/activate")
        cancelled = client.post(f"/api/v1/subscriptions/{subscription_id}/cancel")

        assert activated.status_code == 200
        assert activated.json()["subscription"]["status"] == "ACTIVE"
        assert cancelled.status_code == 200
        assert cancelled.json()["subscription"]["status"] == "CANCELLED"
        assert cancelled.json()["subscription"]["auto_renew"] is False

    def test_activate_cancelled_conflicts(self, client):
        subscription_id = create(client).json()["id"]
        client.post(f"/api/v1/subscriptions/{subscription_id}/cancel")

        response = client.post(f"/api/v1/subscriptions/{subscription_id}/activate")

        assert response.status_code == 409

    def test_cancel_missing(self, client):
        assert client.post("/api/v1/subscriptions/missing/cancel").status_code == 404

    def test_renew(self, client):
        subscription_id = create(client, activate=True).json()["id"]

        response = client.post(f"/api/v1/subscriptions/{subscription_id}/renew")

        assert response.status_code == 200
        assert response.json()["subscription"]["renewal_count"] == 1
        assert response.json()["subscription"]["end_date"].startswith("2024-03-01T10:00:00")

    def test_renew_pending_conflicts(self, client):
        subscription_id = create(client).json()["id"]

        assert client.post(f"/api/v1/subscriptions/{subscription_id}/renew").status_code == 409

    def test_user_subscriptions(self, client):
        first = create(client).json()["id"]
        client.post(f"/api/v1/subscriptions/{first}/cancel")
        second = create(client, activate=True).json()["id"]

        listed = client.get("/api/v1/subscriptions/user/user-1").json()
        active = client.get("/api/v1/subscriptions/user/user-1/active")

        assert {s["id"] for s in listed} == {first, second}
        assert active.json()["id"] == second

    def test_no_active_subscription(self, client):
        assert client.get("/api/v1/subscriptions/user/nobody/active").status_code == 404


class TestOperationsEndpoints:
    """Test time control and manual sweeps."""

    def test_get_time(self, client):
        body = client.get("/ops/time").json()

        assert body["current_time"].startswith("2024-01-01T10:00:00")
        assert body["offset_seconds"] == 0

    def test_advance_time_and_expire(self, client):
        subscription_id = create(client, activate=True).json()["id"]

        advanced = client.post("/ops/time/advance", json={"days": 31})
        swept = client.post("/ops/sweeps/expire")

        assert advanced.status_code == 200
        assert advanced.json()["current_time"].startswith("2024-02-01T10:00:00")
        assert swept.status_code == 200
        assert swept.json()["affected_ids"] == [subscription_id]
        assert client.get(f"/api/v1/subscriptions/{subscription_id}").json()["status"] == "EXPIRED"

    def test_advance_negative_rejected(self, client):
        assert client.post("/ops/time/advance", json={"days": -1}).status_code == 422

    def test_set_time_backwards_rejected(self, client):
        response = client.post("/ops/time/set", json={"timestamp": "2023-12-31T00:00:00Z"})

        assert response.status_code == 400

    def test_set_time_and_reset(self, client):
        set_response = client.post("/ops/time/set", json={"timestamp": "2024-01-05T00:00:00Z"})
        reset_response = client.post("/ops/time/reset")

        assert set_response.status_code == 200
        assert set_response.json()["offset_seconds"] == 3 * 86400 + 14 * 3600
        assert reset_response.json()["current_time"].startswith("2024-01-01T10:00:00")

    def test_maintenance_sweep(self, client):
        subscription_id = create(client).json()["id"]
        client.post("/ops/time/advance", json={"hours": 25})

        response = client.post("/ops/sweeps/maintenance")

        assert response.status_code == 200
        assert response.json()["sweep"] == "daily_maintenance_tasks"
        assert response.json()["affected_ids"] == [subscription_id]

    def test_reminder_sweep(self, client, publisher):
        subscription_id = create(client, activate=True).json()["id"]
        client.post("/ops/time/advance", json={"days": 29})

        response = client.post("/ops/sweeps/reminders")

        assert response.json()["affected_ids"] == [subscription_id]
        assert [e.subscription_id for e in publisher.events] == [subscription_id]

    def test_sweep_crash_returns_500(self, client, container, monkeypatch):
        def crash():
            raise RuntimeError("boom")

        monkeypatch.setattr(container.engine, "expire_subscriptions", crash)

        response = client.post("/ops/sweeps/expire")

        assert response.status_code == 500
        assert response.json()["detail"]["error"] == "Sweep failed"

    def test_stats(self, client):
        create(client, user_id="user-1")
        create(client, user_id="user-2", activate=True)

        body = client.get("/ops/stats").json()

        assert body["total"] == 2
        assert body["by_status"]["PENDING"] == 1
        assert body["by_status"]["ACTIVE"] == 1
        assert body["by_status"]["EXPIRED"] == 0

    @pytest.mark.parametrize(
        "handler",
        [control.run_expiry_sweep, control.run_maintenance_sweep, control.run_reminder_sweep],
    )
    def test_sweep_handlers_run_in_threadpool(self, handler):
        assert not inspect.iscoroutinefunction(handler)


class TestPointsEndpoints:
    """Test the points wallet API."""

    def test_activation_credits_wallet(self, client):
        subscription_id = create(client, plan_id="pro-monthly").json()["id"]
        client.post(f"/api/v1/subscriptions/{subscription_id}/activate")

        balance = client.get("/api/v1/points/user-1/balance").json()
        history = client.get("/api/v1/points/user-1/transactions").json()

        assert balance == {"user_id": "user-1", "balance": 200}
        assert history[0]["reference_id"] == subscription_id
        assert history[0]["transaction_type"] == "EARN"

    def test_wallet_opened_on_first_read(self, client):
        body = client.get("/api/v1/points/user-9/wallet").json()

        assert body["user_id"] == "user-9"
        assert body["total_points"] == 0

    def test_balance_without_wallet(self, client):
        assert client.get("/api/v1/points/nobody/balance").json()["balance"] == 0

    def test_validate(self, client):
        create(client, activate=True)

        enough = client.get("/api/v1/points/user-1/validate", params={"required_points": 100}).json()
        short = client.get("/api/v1/points/user-1/validate", params={"required_points": 150}).json()

        assert enough["has_enough_points"] is True
        assert short["has_enough_points"] is False
        assert short["message"] == "Insufficient points. You need 50 more points."

    def test_redeem(self, client):
        create(client, activate=True)

        response = client.post(
            "/api/v1/points/user-1/redeem",
            json={"points": 40, "description": "Unlock quiz", "reference_type": "QUIZ", "reference_id": "quiz-1"},
        )

        assert response.status_code == 200
        assert response.json()["total_points"] == 60
        assert response.json()["lifetime_spent"] == 40

    def test_redeem_insufficient(self, client):
        create(client, activate=True)

        response = client.post("/api/v1/points/user-1/redeem", json={"points": 101, "description": "Too much"})

        assert response.status_code == 400
        assert response.json()["detail"]["available"] == 100

    def test_redeem_without_wallet(self, client):
        response = client.post("/api/v1/points/nobody/redeem", json={"points": 1, "description": "Anything"})

        assert response.status_code == 404

    def test_redeem_requires_positive_points(self, client):
        response = client.post("/api/v1/points/user-1/redeem", json={"points": 0, "description": "Nothing"})

        assert response.status_code == 422

    def test_award(self, client):
        response = client.post(
            "/api/v1/points/user-2/award",
            json={"points": 25, "description": "Course completion bonus"},
        )

        assert response.status_code == 200
        assert client.get("/api/v1/points/user-2/balance").json()["balance"] == 25
