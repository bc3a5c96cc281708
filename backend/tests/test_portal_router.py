from __future__ import annotations

from conftest import make_client, make_order
from fastapi.testclient import TestClient

from orderflow.config import settings
from orderflow.main import app
from orderflow.models import TicketMessage
from orderflow.schemas import PortalTicketCreate
from orderflow.use_cases.ticket_workflow import create_portal_ticket_use_case

TOKEN = "a" * 64


def _portal_client(db):
    return make_client(db, name="ООО Портал", portal_token=TOKEN)


def test_portal_auth_sets_session_cookie(db) -> None:
    _portal_client(db)
    client = TestClient(app)

    response = client.post("/api/v1/portal/auth", json={"token": TOKEN})

    assert response.status_code == 200
    assert response.json()["client"]["name"] == "ООО Портал"
    assert "portal_token" not in response.json()["client"]
    assert settings.PORTAL_COOKIE_NAME in response.cookies

    me = client.get("/api/v1/portal/me")
    assert me.status_code == 200


def test_portal_auth_with_unknown_token_is_rejected(db) -> None:
    response = TestClient(app).post("/api/v1/portal/auth", json={"token": "b" * 64})

    assert response.status_code == 401
    assert response.json()["error"] == "Неверный токен"


def test_archived_client_loses_portal_access(db) -> None:
    make_client(db, portal_token=TOKEN, is_archived=True)

    response = TestClient(app).get("/api/v1/portal/me", headers={"X-Portal-Token": TOKEN})

    assert response.status_code == 401


def test_portal_auth_is_rate_limited_per_ip(db) -> None:
    client = TestClient(app)

    for _ in range(settings.PORTAL_AUTH_RATE_LIMIT):
        assert client.post("/api/v1/portal/auth", json={"token": "wrong"}).status_code == 401
    limited = client.post("/api/v1/portal/auth", json={"token": "wrong"})

    assert limited.status_code == 429
    assert int(limited.headers["retry-after"]) > 0


def test_portal_lists_only_own_orders(db, workspace) -> None:
    own = _portal_client(db)
    make_order(db, workspace, title="Чужой заказ")
    workspace.client = own
    mine = make_order(db, workspace, title="Мой заказ")

    response = TestClient(app).get("/api/v1/portal/orders", headers={"X-Portal-Token": TOKEN})

    assert response.status_code == 200
    assert [row["id"] for row in response.json()] == [str(mine.id)]


def test_portal_ticket_thread_hides_internal_notes(db, workspace) -> None:
    own = _portal_client(db)
    ticket = create_portal_ticket_use_case(
        db=db,
        client=own,
        data=PortalTicketCreate(subject="Вопрос", description="Как оплатить?"),
    )
    db.add(TicketMessage(ticket_id=ticket.id, content="Внутренняя заметка", is_internal=True))
    db.add(TicketMessage(ticket_id=ticket.id, content="Ответ клиенту", is_internal=False))
    db.commit()

    response = TestClient(app).get(f"/api/v1/portal/tickets/{ticket.id}", headers={"X-Portal-Token": TOKEN})

    assert response.status_code == 200
    contents = [message["content"] for message in response.json()["messages"]]
    assert contents == ["Ответ клиенту"]


def test_portal_validation_error_is_problem_json(db) -> None:
    _portal_client(db)

    response = TestClient(app).post(
        "/api/v1/portal/tickets",
        json={"subject": "Без описания"},
        headers={"X-Portal-Token": TOKEN},
    )

    assert response.status_code == 422
    payload = response.json()
    assert payload["code"] == "VALIDATION_ERROR"
    assert "description" in payload["error"]
