"""Order lifecycle use-cases used by order router endpoints."""
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import invalid, not_found
from ..models import Client, Comment, Order, OrderStatus, OrderStatusHistory, User
from ..schemas import OrderCreate
from ..services.client_notifications import send_order_status_notification
from ..services.notifications import create_notification_for_users, get_order_notification_recipients
from ..services.numbering import allocate_number

logger = logging.getLogger(__name__)

COMMENT_PREVIEW_LENGTH = 80


def _preview(content: str) -> str:
    if len(content) > COMMENT_PREVIEW_LENGTH:
        return content[:COMMENT_PREVIEW_LENGTH] + "..."
    return content


def get_order_or_404(*, db: Session, order_id: UUID) -> Order:
    order = db.get(Order, order_id)
    if not order:
        raise not_found("ORDER_NOT_FOUND", "Заказ не найден")
    return order


def get_initial_status(*, db: Session) -> OrderStatus:
    status = db.query(OrderStatus).filter(OrderStatus.is_initial == True).first()
    if not status:
        raise invalid("ORDER_INITIAL_STATUS_MISSING", "Не найден начальный статус")
    return status


def create_order_use_case(*, db: Session, data: OrderCreate, current_user: User | None = None) -> Order:
    """Create order in the initial status with a freshly allocated number."""
    initial_status = get_initial_status(db=db)

    if not db.get(Client, data.client_id):
        raise not_found("CLIENT_NOT_FOUND", "Клиент не найден")

    order = Order(
        number=allocate_number(db, "order"),
        title=data.title.strip(),
        description=data.description,
        status_id=initial_status.id,
        client_id=data.client_id,
        manager_id=data.manager_id,
        priority=data.priority,
        deadline=data.deadline,
        currency=data.currency or settings.DEFAULT_CURRENCY,
        estimated_budget=data.estimated_budget,
    )
    db.add(order)
    db.commit()
    db.refresh(order)

    logger.info(
        "Order %s created by %s",
        order.number,
        current_user.email if current_user else "system",
    )
    return order


def set_order_status_use_case(
    *,
    db: Session,
    order_id: UUID,
    status_id: UUID,
    actor_user_id: UUID | None = None,
    comment: str | None = None,
) -> Order:
    """Move order to any status, record history and fan out notifications.

    No transition validation: any status may follow any other.
    """
    order = get_order_or_404(db=db, order_id=order_id)
    new_status = db.get(OrderStatus, status_id)
    if not new_status:
        raise not_found("ORDER_STATUS_NOT_FOUND", "Статус не найден")

    old_status = order.status
    order.status_id = new_status.id
    order.status = new_status

    db.add(
        OrderStatusHistory(
            order_id=order.id,
            from_status_id=old_status.id if old_status else None,
            to_status_id=new_status.id,
            changed_by_id=actor_user_id,
            comment=comment,
        )
    )

    if old_status and old_status.id != new_status.id:
        description = f"{order.number}: «{old_status.name}» → «{new_status.name}»"
    else:
        description = f"{order.number} переведён в «{new_status.name}»"

    create_notification_for_users(
        db,
        get_order_notification_recipients(db, order.id),
        type="STATUS",
        title="Статус заказа изменён",
        description=description,
        link_url=f"/orders/{order.id}",
        entity_type="order",
        entity_id=order.id,
    )
    db.commit()

    if new_status.notify_client:
        send_order_status_notification(db, order.id, new_status.name)

    return order


def add_order_comment_use_case(
    *,
    db: Session,
    order_id: UUID,
    content: str,
    current_user: User,
    is_internal: bool = False,
) -> Comment:
    order = get_order_or_404(db=db, order_id=order_id)

    comment = Comment(
        order_id=order.id,
        user_id=current_user.id,
        content=content,
        is_internal=is_internal,
        is_portal_visible=False,
    )
    db.add(comment)
    db.flush()

    create_notification_for_users(
        db,
        get_order_notification_recipients(db, order.id),
        type="COMMENT",
        title="Новый комментарий к заказу",
        description=f'{current_user.name}: "{_preview(content)}"',
        link_url=f"/orders/{order.id}",
        entity_type="comment",
        entity_id=comment.id,
    )
    db.commit()
    db.refresh(comment)
    return comment


def delete_order_use_case(*, db: Session, order_id: UUID) -> None:
    """Delete order with its milestones, tasks, invoices, time entries and comments."""
    order = get_order_or_404(db=db, order_id=order_id)
    number = order.number
    db.delete(order)
    db.commit()
    logger.info("Order %s deleted", number)


def add_portal_comment_use_case(*, db: Session, client: Client, order_id: UUID, content: str) -> Comment:
    """Client comment from the portal, visible to both sides."""
    order = db.query(Order).filter(Order.id == order_id, Order.client_id == client.id).first()
    if not order:
        raise not_found("ORDER_NOT_FOUND", "Заказ не найден")

    comment = Comment(
        order_id=order.id,
        client_name=client.name,
        content=content,
        is_internal=False,
        is_portal_visible=True,
    )
    db.add(comment)
    db.flush()

    create_notification_for_users(
        db,
        get_order_notification_recipients(db, order.id),
        type="COMMENT",
        title="Комментарий от клиента",
        description=f'{client.name}: "{_preview(content)}"',
        link_url=f"/orders/{order.id}",
        entity_type="comment",
        entity_id=comment.id,
    )
    db.commit()
    db.refresh(comment)
    return comment
