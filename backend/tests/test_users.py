from __future__ import annotations

import pytest
from conftest import make_user
from fastapi.testclient import TestClient

from orderflow.auth import create_access_token, verify_password
from orderflow.domain_errors import DomainError
from orderflow.main import app
from orderflow.models import User
from orderflow.schemas import UserCreate, UserUpdate
from orderflow.use_cases.users import (
    create_user_use_case,
    reset_user_password_use_case,
    toggle_user_active_use_case,
    update_user_use_case,
)


def _auth(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


def test_created_user_gets_hashed_password_and_normalized_email(db) -> None:
    user = create_user_use_case(
        db=db,
        data=UserCreate(name=" Алиса ", email="Alice@ITL.tj", password="secret1", role="DEVELOPER"),
    )

    assert user.email == "alice@itl.tj"
    assert user.name == "Алиса"
    assert user.is_active is True
    assert user.password_hash != "secret1"
    assert verify_password("secret1", user.password_hash)


def test_duplicate_email_is_conflict(db) -> None:
    make_user(db, email="dev@itl.tj")

    with pytest.raises(DomainError) as exc_info:
        create_user_use_case(
            db=db,
            data=UserCreate(name="Dev", email="DEV@itl.tj", password="secret1", role="VIEWER"),
        )

    assert exc_info.value.code == "USER_EMAIL_TAKEN"
    assert exc_info.value.http_status == 409


def test_update_changes_role_and_checks_email_of_others(db) -> None:
    first = make_user(db, role="DEVELOPER", email="first@itl.tj")
    make_user(db, email="second@itl.tj")

    promoted = update_user_use_case(db=db, user_id=first.id, data=UserUpdate(role="MANAGER"))
    assert promoted.role == "MANAGER"

    same_email = update_user_use_case(db=db, user_id=first.id, data=UserUpdate(email="first@itl.tj"))
    assert same_email.email == "first@itl.tj"

    with pytest.raises(DomainError) as exc_info:
        update_user_use_case(db=db, user_id=first.id, data=UserUpdate(email="second@itl.tj"))
    assert exc_info.value.code == "USER_EMAIL_TAKEN"


def test_toggle_active_flips_flag(db) -> None:
    user = make_user(db)

    assert toggle_user_active_use_case(db=db, user_id=user.id).is_active is False
    assert toggle_user_active_use_case(db=db, user_id=user.id).is_active is True


def test_password_reset_replaces_hash(db) -> None:
    user = make_user(db)

    reset_user_password_use_case(db=db, user_id=user.id, password="new-secret")

    db.refresh(user)
    assert verify_password("new-secret", user.password_hash)


def test_user_management_is_admin_only(db) -> None:
    manager = make_user(db, role="MANAGER")
    body = {"name": "Новый", "email": "new@itl.tj", "password": "secret1", "role": "VIEWER"}

    response = TestClient(app).post("/api/v1/users", json=body, headers=_auth(manager))

    assert response.status_code == 403
    assert db.query(User).filter(User.email == "new@itl.tj").count() == 0


def test_admin_manages_users_through_api(db) -> None:
    admin = make_user(db, role="ADMIN")
    client = TestClient(app)

    created = client.post(
        "/api/v1/users",
        json={"name": "Новый", "email": "new@itl.tj", "password": "secret1", "role": "DEVELOPER"},
        headers=_auth(admin),
    )
    assert created.status_code == 201
    user_id = created.json()["id"]
    assert "password_hash" not in created.json()

    short = client.post(f"/api/v1/users/{user_id}/password", json={"password": "123"}, headers=_auth(admin))
    assert short.status_code == 422

    reset = client.post(f"/api/v1/users/{user_id}/password", json={"password": "fresh-pass"}, headers=_auth(admin))
    assert reset.status_code == 204
    login = client.post("/api/v1/auth/login", json={"email": "new@itl.tj", "password": "fresh-pass"})
    assert login.status_code == 200

    toggled = client.post(f"/api/v1/users/{user_id}/toggle-active", headers=_auth(admin))
    assert toggled.json()["is_active"] is False
    blocked = client.post("/api/v1/auth/login", json={"email": "new@itl.tj", "password": "fresh-pass"})
    assert blocked.status_code == 401

    developers = client.get("/api/v1/users?role=developer", headers=_auth(admin)).json()
    assert [row["id"] for row in developers] == [user_id]


def test_invalid_email_is_rejected(db) -> None:
    admin = make_user(db, role="ADMIN")

    response = TestClient(app).post(
        "/api/v1/users",
        json={"name": "X", "email": "not-an-email", "password": "secret1", "role": "VIEWER"},
        headers=_auth(admin),
    )

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"
