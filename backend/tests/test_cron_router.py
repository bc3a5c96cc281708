from __future__ import annotations

from datetime import timedelta

from conftest import make_order, make_user
from fastapi.testclient import TestClient

from orderflow.config import settings
from orderflow.main import app
from orderflow.models import Milestone
from orderflow.services.status_rules import now_utc


def test_cron_without_configured_secret_is_server_error(db, monkeypatch) -> None:
    monkeypatch.setattr(settings, "CRON_SECRET", None)

    response = TestClient(app).get("/api/cron/deadlines", headers={"Authorization": "Bearer anything"})

    assert response.status_code == 500
    assert response.json()["error"]


def test_cron_with_wrong_secret_is_unauthorized(db, monkeypatch) -> None:
    monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")

    client = TestClient(app)
    wrong = client.get("/api/cron/deadlines", headers={"Authorization": "Bearer nope"})
    missing = client.get("/api/cron/deadlines")

    assert wrong.status_code == 401
    assert missing.status_code == 401
    assert wrong.json()["error"] == "Unauthorized"


def test_cron_with_secret_runs_sweep(db, workspace, monkeypatch) -> None:
    monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
    make_user(db, role="ADMIN")
    make_user(db, role="MANAGER")
    order = make_order(db, workspace)
    db.add(Milestone(order_id=order.id, title="Релиз", status="PENDING", due_date=now_utc() + timedelta(hours=3)))
    db.commit()

    response = TestClient(app).get("/api/cron/deadlines", headers={"Authorization": "Bearer s3cret"})

    assert response.status_code == 200
    assert response.json() == {"milestones": 1, "tasks": 0, "notificationsCreated": 2}
