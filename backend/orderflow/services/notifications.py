"""In-app notification fan-out and read-side helpers."""
from __future__ import annotations

import logging
from typing import Iterable
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..domain_errors import not_found
from ..models import Notification, Order, User
from .status_rules import NOTIFICATION_TYPES, STAFF_ROLES, now_utc

logger = logging.getLogger(__name__)


def get_staff_recipient_ids(db: Session) -> list[UUID]:
    """All users with role ADMIN or MANAGER."""
    rows = (
        db.query(User.id)
        .filter(User.role.in_(STAFF_ROLES))
        .order_by(User.created_at, User.id)
        .all()
    )
    return [row.id for row in rows]


def _dedupe(ids: Iterable[UUID | None]) -> list[UUID]:
    seen: set[UUID] = set()
    result: list[UUID] = []
    for user_id in ids:
        if user_id is None or user_id in seen:
            continue
        seen.add(user_id)
        result.append(user_id)
    return result


def get_order_notification_recipients(db: Session, order_id: UUID) -> list[UUID]:
    """Order manager (if any) plus all staff, deduplicated, manager first."""
    manager_id = db.query(Order.manager_id).filter(Order.id == order_id).scalar()
    return _dedupe([manager_id, *get_staff_recipient_ids(db)])


def create_notification_for_users(
    db: Session,
    user_ids: Iterable[UUID | None],
    *,
    type: str,
    title: str,
    description: str,
    link_url: str | None = None,
    entity_type: str | None = None,
    entity_id: UUID | None = None,
) -> int:
    """Add one notification row per distinct recipient to the session.

    The caller owns the transaction and commits. Returns the number of rows.
    """
    if type not in NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification type: {type}")

    recipients = _dedupe(user_ids)
    for user_id in recipients:
        db.add(
            Notification(
                user_id=user_id,
                type=type,
                title=title,
                description=description,
                link_url=link_url,
                entity_type=entity_type,
                entity_id=entity_id,
            )
        )
    if recipients:
        logger.debug("Queued %s %s notification(s): %s", len(recipients), type, title)
    return len(recipients)


def list_notifications(
    db: Session,
    user_id: UUID,
    *,
    unread_only: bool = False,
    limit: int = 50,
) -> list[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read == False)
    return query.order_by(Notification.created_at.desc()).limit(limit).all()


def count_unread(db: Session, user_id: UUID) -> int:
    return (
        db.query(func.count(Notification.id))
        .filter(Notification.user_id == user_id, Notification.is_read == False)
        .scalar()
        or 0
    )


def mark_notification_read(db: Session, user_id: UUID, notification_id: UUID) -> Notification:
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id,
    ).first()
    if not notification:
        raise not_found("NOTIFICATION_NOT_FOUND", "Уведомление не найдено")
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = now_utc()
        db.commit()
    return notification


def mark_all_read(db: Session, user_id: UUID) -> int:
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read == False)
        .update({"is_read": True, "read_at": now_utc()}, synchronize_session=False)
    )
    db.commit()
    return updated
