"""Milestone lifecycle use-cases: staff status changes and client approval."""
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..domain_errors import DomainError, invalid, not_found
from ..models import Client, Comment, Milestone, Order, User
from ..schemas import MilestoneCreate
from ..services.client_notifications import send_milestone_ready_notification
from ..services.notifications import create_notification_for_users, get_order_notification_recipients
from ..services.status_rules import (
    MILESTONE_STATUS_LABELS,
    MILESTONE_STATUSES,
    apply_milestone_status_timestamps,
    order_progress_percent,
)
from .order_workflow import get_order_or_404

logger = logging.getLogger(__name__)


def get_milestone_or_404(*, db: Session, milestone_id: UUID) -> Milestone:
    milestone = db.get(Milestone, milestone_id)
    if not milestone:
        raise not_found("MILESTONE_NOT_FOUND", "Этап не найден")
    return milestone


def _validated_status(status: str) -> str:
    value = (status or "").strip().upper()
    if value not in MILESTONE_STATUSES:
        raise DomainError(
            code="MILESTONE_STATUS_INVALID",
            http_status=400,
            message=f"Недопустимый статус этапа: {status}",
        )
    return value


def apply_milestone_status(milestone: Milestone, status: str) -> None:
    """Assign status and keep completed_at / client_approved_at consistent with it."""
    stamps = apply_milestone_status_timestamps(
        current_status=milestone.status,
        next_status=status,
        completed_at=milestone.completed_at,
        client_approved_at=milestone.client_approved_at,
    )
    milestone.status = status
    milestone.completed_at = stamps["completed_at"]
    milestone.client_approved_at = stamps["client_approved_at"]


def recalculate_order_progress(*, db: Session, order: Order) -> int:
    statuses = [row.status for row in db.query(Milestone.status).filter(Milestone.order_id == order.id).all()]
    order.progress_percent = order_progress_percent(statuses)
    return order.progress_percent


def notify_milestone_status(*, db: Session, milestone: Milestone, status: str) -> int:
    label = MILESTONE_STATUS_LABELS.get(status, status)
    return create_notification_for_users(
        db,
        get_order_notification_recipients(db, milestone.order_id),
        type="STATUS",
        title="Статус этапа изменён",
        description=f"«{milestone.title}»: {label} (заказ {milestone.order.number})",
        link_url=f"/orders/{milestone.order_id}",
        entity_type="milestone",
        entity_id=milestone.id,
    )


def create_milestone_use_case(*, db: Session, order_id: UUID, data: MilestoneCreate) -> Milestone:
    order = get_order_or_404(db=db, order_id=order_id)
    last_position = db.query(func.max(Milestone.position)).filter(Milestone.order_id == order.id).scalar()

    milestone = Milestone(
        order_id=order.id,
        title=data.title.strip(),
        description=data.description,
        requires_approval=data.requires_approval,
        due_date=data.due_date,
        position=(last_position if last_position is not None else -1) + 1,
    )
    db.add(milestone)
    db.flush()
    recalculate_order_progress(db=db, order=order)
    db.commit()
    db.refresh(milestone)
    return milestone


def delete_milestone_use_case(*, db: Session, milestone_id: UUID) -> None:
    milestone = get_milestone_or_404(db=db, milestone_id=milestone_id)
    order = milestone.order
    db.delete(milestone)
    db.flush()
    recalculate_order_progress(db=db, order=order)
    db.commit()


def set_milestone_status_use_case(*, db: Session, milestone_id: UUID, status: str) -> Milestone:
    """Set any milestone status, stamp timestamps, notify the order team.

    COMPLETED on a milestone that requires approval also emails the client.
    """
    milestone = get_milestone_or_404(db=db, milestone_id=milestone_id)
    next_status = _validated_status(status)

    apply_milestone_status(milestone, next_status)
    db.flush()
    recalculate_order_progress(db=db, order=milestone.order)
    notify_milestone_status(db=db, milestone=milestone, status=next_status)
    db.commit()

    if next_status == "COMPLETED" and milestone.requires_approval:
        send_milestone_ready_notification(db, milestone.id)

    return milestone


def request_milestone_changes_use_case(
    *,
    db: Session,
    milestone_id: UUID,
    comment: str | None,
    current_user: User,
) -> Milestone:
    """Staff reopening of a completed milestone ("request changes")."""
    milestone = get_milestone_or_404(db=db, milestone_id=milestone_id)
    if milestone.status != "COMPLETED":
        raise invalid(
            "MILESTONE_INVALID_STATUS_FOR_CHANGES",
            "Доработку можно запросить только для завершённого этапа",
        )

    apply_milestone_status(milestone, "IN_PROGRESS")

    if comment and comment.strip():
        db.add(
            Comment(
                order_id=milestone.order_id,
                user_id=current_user.id,
                content=f"[Доработка этапа «{milestone.title}»] {comment.strip()}",
                is_internal=False,
                is_portal_visible=True,
            )
        )

    db.flush()
    recalculate_order_progress(db=db, order=milestone.order)
    notify_milestone_status(db=db, milestone=milestone, status="IN_PROGRESS")
    db.commit()
    return milestone


def _get_client_milestone_or_404(*, db: Session, client_id: UUID, milestone_id: UUID) -> Milestone:
    milestone = (
        db.query(Milestone)
        .join(Order, Milestone.order_id == Order.id)
        .filter(Milestone.id == milestone_id, Order.client_id == client_id)
        .first()
    )
    if not milestone:
        raise not_found("MILESTONE_NOT_FOUND", "Этап не найден")
    return milestone


def approve_milestone_by_client_use_case(*, db: Session, client_id: UUID, milestone_id: UUID) -> Milestone:
    milestone = _get_client_milestone_or_404(db=db, client_id=client_id, milestone_id=milestone_id)

    apply_milestone_status(milestone, "APPROVED")
    db.flush()
    recalculate_order_progress(db=db, order=milestone.order)
    create_notification_for_users(
        db,
        get_order_notification_recipients(db, milestone.order_id),
        type="STATUS",
        title="Этап согласован клиентом",
        description=f"«{milestone.title}»: заказ {milestone.order.number}",
        link_url=f"/orders/{milestone.order_id}",
        entity_type="milestone",
        entity_id=milestone.id,
    )
    db.commit()
    logger.info("Milestone %s approved by client %s", milestone.id, client_id)
    return milestone


def reject_milestone_by_client_use_case(
    *,
    db: Session,
    client_id: UUID,
    milestone_id: UUID,
    comment: str,
) -> Milestone:
    """Client sends a completed milestone back for revisions."""
    milestone = _get_client_milestone_or_404(db=db, client_id=client_id, milestone_id=milestone_id)
    if milestone.status != "COMPLETED":
        raise invalid(
            "MILESTONE_NOT_REJECTABLE",
            "Этап не найден или не может быть отклонён",
        )

    apply_milestone_status(milestone, "IN_PROGRESS")

    reason = (comment or "").strip()
    if reason:
        client = db.get(Client, client_id)
        db.add(
            Comment(
                order_id=milestone.order_id,
                client_name=client.name if client else "Клиент",
                content=f"[Отклонение этапа «{milestone.title}»] {reason}",
                is_internal=False,
                is_portal_visible=True,
            )
        )

    db.flush()
    recalculate_order_progress(db=db, order=milestone.order)
    create_notification_for_users(
        db,
        get_order_notification_recipients(db, milestone.order_id),
        type="STATUS",
        title="Клиент отклонил этап",
        description=f"«{milestone.title}»: заказ {milestone.order.number}. Причина: {reason[:100]}",
        link_url=f"/orders/{milestone.order_id}",
        entity_type="milestone",
        entity_id=milestone.id,
    )
    db.commit()
    return milestone
