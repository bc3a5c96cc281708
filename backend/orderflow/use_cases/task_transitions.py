"""Task lifecycle use-cases used by task router endpoints."""
from __future__ import annotations

from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..domain_errors import DomainError, invalid, not_found
from ..models import Milestone, Task
from ..schemas import TaskCreate
from ..services.client_notifications import send_milestone_ready_notification
from ..services.notifications import create_notification_for_users, get_order_notification_recipients
from ..services.status_rules import TASK_STATUSES, apply_task_status_timestamps, milestone_progress_percent
from .milestone_workflow import apply_milestone_status, get_milestone_or_404, recalculate_order_progress
from .order_workflow import get_order_or_404


def _get_task_or_404(*, db: Session, task_id: UUID) -> Task:
    task = db.get(Task, task_id)
    if not task:
        raise not_found("TASK_NOT_FOUND", "Задача не найдена")
    return task


def create_task_use_case(*, db: Session, data: TaskCreate) -> Task:
    order = get_order_or_404(db=db, order_id=data.order_id)
    if data.milestone_id is not None:
        milestone = get_milestone_or_404(db=db, milestone_id=data.milestone_id)
        if milestone.order_id != order.id:
            raise invalid("TASK_MILESTONE_MISMATCH", "Этап не относится к этому заказу")

    last_position = (
        db.query(func.max(Task.position))
        .filter(Task.order_id == order.id, Task.milestone_id == data.milestone_id)
        .scalar()
    )

    task = Task(
        order_id=order.id,
        milestone_id=data.milestone_id,
        title=data.title.strip(),
        description=data.description,
        priority=data.priority,
        assignee_id=data.assignee_id,
        due_date=data.due_date,
        status="TODO",
        position=(last_position or 0) + 1,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


def _sync_milestone_with_tasks(*, db: Session, milestone: Milestone) -> bool:
    """Recompute milestone progress and auto-complete / reopen it.

    Returns True when the milestone was auto-completed.
    """
    statuses = [row.status for row in db.query(Task.status).filter(Task.milestone_id == milestone.id).all()]
    percent = milestone_progress_percent(statuses)
    milestone.progress_percent = percent

    if percent == 100 and milestone.status == "IN_PROGRESS":
        apply_milestone_status(milestone, "COMPLETED")
        create_notification_for_users(
            db,
            get_order_notification_recipients(db, milestone.order_id),
            type="STATUS",
            title="Этап автоматически завершён",
            description=f"Все задачи этапа «{milestone.title}» выполнены",
            link_url=f"/orders/{milestone.order_id}",
            entity_type="milestone",
            entity_id=milestone.id,
        )
        return True

    if percent < 100 and milestone.status == "COMPLETED":
        # A task was reopened under a completed milestone.
        apply_milestone_status(milestone, "IN_PROGRESS")
    return False


def set_task_status_use_case(*, db: Session, task_id: UUID, status: str) -> Task:
    """Change task status and cascade progress to its milestone and order."""
    task = _get_task_or_404(db=db, task_id=task_id)
    next_status = (status or "").strip().upper()
    if next_status not in TASK_STATUSES:
        raise DomainError(
            code="TASK_STATUS_INVALID",
            http_status=400,
            message=f"Недопустимый статус задачи: {status}",
        )

    task.status = next_status
    task.completed_at = apply_task_status_timestamps(next_status=next_status)["completed_at"]
    db.flush()

    auto_completed: Milestone | None = None
    if task.milestone_id:
        milestone = task.milestone
        if _sync_milestone_with_tasks(db=db, milestone=milestone):
            auto_completed = milestone
        db.flush()

    recalculate_order_progress(db=db, order=task.order)
    db.commit()

    if auto_completed is not None and auto_completed.requires_approval:
        send_milestone_ready_notification(db, auto_completed.id)

    return task
