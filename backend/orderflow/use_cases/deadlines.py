"""Periodic sweep that warns about milestones and tasks due soon."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from ..config import settings
from ..models import Milestone, Task
from ..services.notifications import create_notification_for_users, get_order_notification_recipients
from ..services.status_rules import MILESTONE_TERMINAL_STATUSES, TASK_TERMINAL_STATUSES, now_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeadlineSweepResult:
    milestones: int
    tasks: int
    notifications_created: int

    def as_dict(self) -> dict[str, int]:
        return {
            "milestones": self.milestones,
            "tasks": self.tasks,
            "notificationsCreated": self.notifications_created,
        }


def check_deadlines_use_case(*, db: Session, now: datetime | None = None) -> DeadlineSweepResult:
    """Create DEADLINE notifications for open work due within the window.

    Not idempotent: running it twice inside one window notifies twice.
    """
    start = now or now_utc()
    end = start + timedelta(hours=settings.DEADLINE_WINDOW_HOURS)

    milestones = (
        db.query(Milestone)
        .filter(
            Milestone.due_date >= start,
            Milestone.due_date <= end,
            Milestone.status.notin_(MILESTONE_TERMINAL_STATUSES),
        )
        .order_by(Milestone.due_date)
        .all()
    )
    tasks = (
        db.query(Task)
        .filter(
            Task.due_date >= start,
            Task.due_date <= end,
            Task.status.notin_(TASK_TERMINAL_STATUSES),
        )
        .order_by(Task.due_date)
        .all()
    )

    created = 0
    for milestone in milestones:
        created += create_notification_for_users(
            db,
            get_order_notification_recipients(db, milestone.order_id),
            type="DEADLINE",
            title="Приближается дедлайн этапа",
            description=(
                f"«{milestone.title}» (заказ {milestone.order.number}): "
                f"срок до {milestone.due_date.strftime('%d.%m.%Y')}"
            ),
            link_url=f"/orders/{milestone.order_id}",
            entity_type="milestone",
            entity_id=milestone.id,
        )

    for task in tasks:
        # Assignee first, then the order team.
        recipients = [task.assignee_id, *get_order_notification_recipients(db, task.order_id)]
        created += create_notification_for_users(
            db,
            recipients,
            type="DEADLINE",
            title="Приближается дедлайн задачи",
            description=(
                f"«{task.title}» (заказ {task.order.number}): "
                f"срок до {task.due_date.strftime('%d.%m.%Y')}"
            ),
            link_url=f"/orders/{task.order_id}",
            entity_type="task",
            entity_id=task.id,
        )

    db.commit()

    result = DeadlineSweepResult(
        milestones=len(milestones),
        tasks=len(tasks),
        notifications_created=created,
    )
    logger.info(
        "Deadline sweep: %s milestone(s), %s task(s), %s notification(s)",
        result.milestones,
        result.tasks,
        result.notifications_created,
    )
    return result
