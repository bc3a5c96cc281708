from __future__ import annotations

from datetime import timedelta

from conftest import make_order, make_user

from orderflow.models import Milestone, Notification, Task
from orderflow.services.status_rules import now_utc
from orderflow.use_cases.deadlines import DeadlineSweepResult, check_deadlines_use_case


def _add(db, obj):
    db.add(obj)
    db.commit()
    return obj


def test_sweep_notifies_about_work_due_within_window(db, workspace) -> None:
    admin = make_user(db, role="ADMIN")
    developer = make_user(db, role="DEVELOPER")
    order = make_order(db, workspace)
    now = now_utc()

    _add(db, Milestone(order_id=order.id, title="Релиз", status="IN_PROGRESS", due_date=now + timedelta(hours=5)))
    _add(db, Milestone(order_id=order.id, title="Потом", status="PENDING", due_date=now + timedelta(days=3)))
    _add(db, Milestone(order_id=order.id, title="Готово", status="COMPLETED", due_date=now + timedelta(hours=2)))
    _add(
        db,
        Task(
            order_id=order.id,
            title="Миграция",
            status="IN_PROGRESS",
            assignee_id=developer.id,
            due_date=now + timedelta(hours=10),
        ),
    )
    _add(db, Task(order_id=order.id, title="Сделано", status="DONE", due_date=now + timedelta(hours=1)))

    result = check_deadlines_use_case(db=db, now=now)

    assert result == DeadlineSweepResult(milestones=1, tasks=1, notifications_created=3)
    rows = db.query(Notification).filter(Notification.type == "DEADLINE").all()
    by_entity = {(row.entity_type, row.user_id) for row in rows}
    assert by_entity == {("milestone", admin.id), ("task", developer.id), ("task", admin.id)}


def test_sweep_payload_uses_camel_case_counter() -> None:
    result = DeadlineSweepResult(milestones=2, tasks=1, notifications_created=6)

    assert result.as_dict() == {"milestones": 2, "tasks": 1, "notificationsCreated": 6}


def test_sweep_with_nothing_due_creates_nothing(db, workspace) -> None:
    make_user(db, role="ADMIN")

    result = check_deadlines_use_case(db=db)

    assert result.as_dict() == {"milestones": 0, "tasks": 0, "notificationsCreated": 0}
    assert db.query(Notification).count() == 0


def test_celery_task_runs_sweep_in_own_session(db, workspace) -> None:
    from orderflow.celery_app import celery_app, check_deadlines

    make_user(db, role="ADMIN")
    order = make_order(db, workspace)
    _add(db, Milestone(order_id=order.id, title="Демо", status="PENDING", due_date=now_utc() + timedelta(hours=1)))

    assert check_deadlines() == {"milestones": 1, "tasks": 0, "notificationsCreated": 1}
    assert celery_app.conf.beat_schedule["check-deadlines-daily"]["task"] == "check_deadlines"
