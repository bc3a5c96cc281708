from __future__ import annotations

import os
import tempfile
from types import SimpleNamespace

# Settings are read once at import time; point them at a throwaway SQLite file.
_DB_DIR = tempfile.mkdtemp(prefix="orderflow-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'orderflow.db')}"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["APP_URL"] = "http://testserver"
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("CRON_SECRET", None)

import pytest

from orderflow.database import Base, SessionLocal, engine
from orderflow import models
from orderflow.services.numbering import ensure_settings
from orderflow.services.rate_limit import get_rate_limiter


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    get_rate_limiter().reset()
    yield
    get_rate_limiter().reset()


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def make_user(db, *, role="MANAGER", email=None, name=None, is_active=True, password_hash="not-a-real-hash"):
    index = db.query(models.User).count() + 1
    user = models.User(
        email=email or f"user{index}@itl.tj",
        name=name or f"User {index}",
        role=role,
        is_active=is_active,
        password_hash=password_hash,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_status(db, *, code="new", name="Новая заявка", is_initial=True, notify_client=False, position=1):
    status = models.OrderStatus(
        code=code,
        name=name,
        is_initial=is_initial,
        notify_client=notify_client,
        position=position,
    )
    db.add(status)
    db.commit()
    db.refresh(status)
    return status


def make_client(db, *, name="ООО Ромашка", email="client@example.com", portal_token=None, is_archived=False):
    client = models.Client(name=name, email=email, portal_token=portal_token, is_archived=is_archived)
    db.add(client)
    db.commit()
    db.refresh(client)
    return client


@pytest.fixture
def workspace(db):
    """Settings row, initial status and a client: the minimum for creating orders."""
    ensure_settings(db)
    db.commit()
    return SimpleNamespace(
        initial_status=make_status(db),
        client=make_client(db),
    )


def make_order(db, workspace, *, manager_id=None, title="Сайт"):
    from orderflow.schemas import OrderCreate
    from orderflow.use_cases.order_workflow import create_order_use_case

    return create_order_use_case(
        db=db,
        data=OrderCreate(client_id=workspace.client.id, title=title, manager_id=manager_id),
    )
