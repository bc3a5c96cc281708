from __future__ import annotations

import re

import pytest
from conftest import make_client, make_order, make_status, make_user

from orderflow.domain_errors import DomainError
from orderflow.models import Comment, Milestone, Notification, Order, OrderStatusHistory
from orderflow.schemas import MilestoneCreate, OrderCreate
from orderflow.services.notifications import get_order_notification_recipients
from orderflow.use_cases.milestone_workflow import create_milestone_use_case
from orderflow.use_cases.order_workflow import (
    add_order_comment_use_case,
    add_portal_comment_use_case,
    create_order_use_case,
    delete_order_use_case,
    set_order_status_use_case,
)


def test_create_order_uses_initial_status_and_next_number(db, workspace) -> None:
    first = make_order(db, workspace)
    second = make_order(db, workspace, title="Мобильное приложение")

    assert first.status_id == workspace.initial_status.id
    assert re.fullmatch(r"ORD-\d{4}-001", first.number)
    assert re.fullmatch(r"ORD-\d{4}-002", second.number)
    assert first.currency == "TJS"


def test_create_order_without_initial_status_fails(db) -> None:
    client = make_client(db)
    make_status(db, is_initial=False)

    with pytest.raises(DomainError) as exc_info:
        create_order_use_case(db=db, data=OrderCreate(client_id=client.id, title="Сайт"))

    assert exc_info.value.code == "ORDER_INITIAL_STATUS_MISSING"
    assert exc_info.value.http_status == 400


def test_status_change_notifies_every_admin_without_manager(db, workspace) -> None:
    admins = [make_user(db, role="ADMIN"), make_user(db, role="ADMIN")]
    make_user(db, role="DEVELOPER")
    order = make_order(db, workspace)
    in_progress = make_status(db, code="in_progress", name="В работе", is_initial=False, position=2)

    set_order_status_use_case(db=db, order_id=order.id, status_id=in_progress.id, actor_user_id=admins[0].id)

    notified = {row.user_id for row in db.query(Notification).filter(Notification.type == "STATUS").all()}
    assert notified == {admin.id for admin in admins}


def test_status_change_notifies_manager_and_admin(db, workspace) -> None:
    manager = make_user(db, role="MANAGER")
    admin = make_user(db, role="ADMIN")
    order = make_order(db, workspace, manager_id=manager.id)
    in_progress = make_status(db, code="in_progress", name="В работе", is_initial=False, position=2)

    set_order_status_use_case(db=db, order_id=order.id, status_id=in_progress.id)

    rows = db.query(Notification).all()
    assert len(rows) == 2
    assert {row.user_id for row in rows} == {manager.id, admin.id}
    assert all(row.link_url == f"/orders/{order.id}" for row in rows)


def test_manager_who_is_also_staff_is_notified_once(db, workspace) -> None:
    admin = make_user(db, role="ADMIN")
    order = make_order(db, workspace, manager_id=admin.id)

    assert get_order_notification_recipients(db, order.id) == [admin.id]


def test_every_admin_and_manager_is_a_recipient(db, workspace) -> None:
    active = make_user(db, role="ADMIN")
    deactivated = make_user(db, role="ADMIN", is_active=False)
    manager = make_user(db, role="MANAGER")
    make_user(db, role="DEVELOPER")
    order = make_order(db, workspace)

    assert set(get_order_notification_recipients(db, order.id)) == {active.id, deactivated.id, manager.id}


def test_status_change_records_history(db, workspace) -> None:
    admin = make_user(db, role="ADMIN")
    order = make_order(db, workspace)
    done = make_status(db, code="completed", name="Завершён", is_initial=False, position=2)

    updated = set_order_status_use_case(
        db=db,
        order_id=order.id,
        status_id=done.id,
        actor_user_id=admin.id,
        comment="Сдано",
    )

    assert updated.status_id == done.id
    history = db.query(OrderStatusHistory).filter(OrderStatusHistory.order_id == order.id).all()
    assert len(history) == 1
    assert history[0].from_status_id == workspace.initial_status.id
    assert history[0].to_status_id == done.id
    assert history[0].changed_by_id == admin.id
    assert history[0].comment == "Сдано"


def test_status_change_to_unknown_status_fails(db, workspace) -> None:
    order = make_order(db, workspace)

    with pytest.raises(DomainError) as exc_info:
        set_order_status_use_case(db=db, order_id=order.id, status_id=workspace.client.id)

    assert exc_info.value.code == "ORDER_STATUS_NOT_FOUND"
    assert db.query(OrderStatusHistory).count() == 0


def test_any_status_may_follow_any_other(db, workspace) -> None:
    order = make_order(db, workspace)
    done = make_status(db, code="completed", name="Завершён", is_initial=False, position=2)

    set_order_status_use_case(db=db, order_id=order.id, status_id=done.id)
    reverted = set_order_status_use_case(db=db, order_id=order.id, status_id=workspace.initial_status.id)

    assert reverted.status_id == workspace.initial_status.id
    assert db.query(OrderStatusHistory).count() == 2


def test_staff_comment_notifies_team_with_preview(db, workspace) -> None:
    admin = make_user(db, role="ADMIN", name="Анна")
    order = make_order(db, workspace)

    comment = add_order_comment_use_case(
        db=db,
        order_id=order.id,
        content="x" * 100,
        current_user=admin,
    )

    assert comment.is_portal_visible is False
    notification = db.query(Notification).filter(Notification.type == "COMMENT").one()
    assert notification.description == 'Анна: "' + "x" * 80 + '..."'
    assert notification.entity_id == comment.id


def test_portal_comment_is_visible_to_client(db, workspace) -> None:
    make_user(db, role="MANAGER")
    order = make_order(db, workspace)

    comment = add_portal_comment_use_case(db=db, client=workspace.client, order_id=order.id, content="Когда релиз?")

    assert comment.is_portal_visible is True
    assert comment.client_name == workspace.client.name
    assert db.query(Notification).filter(Notification.type == "COMMENT").count() == 1


def test_portal_comment_on_foreign_order_is_not_found(db, workspace) -> None:
    order = make_order(db, workspace)
    stranger = make_client(db, name="Чужой клиент", email=None)

    with pytest.raises(DomainError) as exc_info:
        add_portal_comment_use_case(db=db, client=stranger, order_id=order.id, content="Привет")

    assert exc_info.value.code == "ORDER_NOT_FOUND"


def test_delete_order_removes_dependent_rows(db, workspace) -> None:
    admin = make_user(db, role="ADMIN")
    order = make_order(db, workspace)
    create_milestone_use_case(db=db, order_id=order.id, data=MilestoneCreate(title="Дизайн"))
    add_order_comment_use_case(db=db, order_id=order.id, content="Старт", current_user=admin)

    delete_order_use_case(db=db, order_id=order.id)

    assert db.query(Order).count() == 0
    assert db.query(Milestone).count() == 0
    assert db.query(Comment).count() == 0


def test_notify_client_status_emails_client(db, workspace, monkeypatch) -> None:
    from types import SimpleNamespace

    from orderflow.services import client_notifications

    sent = []

    def _send(to, subject, html):
        sent.append((to, subject))
        return SimpleNamespace(success=True)

    monkeypatch.setattr(client_notifications, "send_email", _send)
    order = make_order(db, workspace)
    quiet = make_status(db, code="in_progress", name="В работе", is_initial=False, position=2)
    loud = make_status(db, code="client_review", name="На проверке", is_initial=False, notify_client=True, position=3)

    set_order_status_use_case(db=db, order_id=order.id, status_id=quiet.id)
    assert sent == []

    set_order_status_use_case(db=db, order_id=order.id, status_id=loud.id)
    assert sent == [("client@example.com", f"Обновление статуса проекта {order.number}")]


def test_failed_client_email_keeps_committed_status_change(db, workspace, monkeypatch) -> None:
    from orderflow.services import client_notifications

    def _broken(to, subject, html):
        raise RuntimeError("provider down")

    monkeypatch.setattr(client_notifications, "send_email", _broken)
    admin = make_user(db, role="ADMIN")
    order = make_order(db, workspace)
    loud = make_status(db, code="completed", name="Завершён", is_initial=False, notify_client=True, position=2)

    updated = set_order_status_use_case(db=db, order_id=order.id, status_id=loud.id, actor_user_id=admin.id)

    assert updated.status_id == loud.id
    db.expire_all()
    assert db.get(Order, order.id).status_id == loud.id
    assert db.query(OrderStatusHistory).filter(OrderStatusHistory.order_id == order.id).count() == 1
    assert db.query(Notification).filter(Notification.user_id == admin.id).count() == 1
