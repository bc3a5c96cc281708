"""Configurable order status reference data."""
from __future__ import annotations

from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..domain_errors import DomainError, not_found
from ..models import Order, OrderStatus, OrderStatusHistory
from ..schemas import OrderStatusCreate, OrderStatusUpdate


def _get_status_or_404(*, db: Session, status_id: UUID) -> OrderStatus:
    status = db.get(OrderStatus, status_id)
    if not status:
        raise not_found("ORDER_STATUS_NOT_FOUND", "Статус не найден")
    return status


def _clear_initial_flag(*, db: Session, keep_id: UUID | None = None) -> None:
    # Only one status may be initial at a time.
    query = db.query(OrderStatus).filter(OrderStatus.is_initial == True)
    if keep_id is not None:
        query = query.filter(OrderStatus.id != keep_id)
    query.update({"is_initial": False}, synchronize_session="fetch")


def list_order_statuses(*, db: Session, include_inactive: bool = False) -> list[OrderStatus]:
    query = db.query(OrderStatus)
    if not include_inactive:
        query = query.filter(OrderStatus.is_active == True)
    return query.order_by(OrderStatus.position, OrderStatus.code).all()


def create_order_status_use_case(*, db: Session, data: OrderStatusCreate) -> OrderStatus:
    code = data.code.strip()
    if db.query(OrderStatus).filter(OrderStatus.code == code).first():
        raise DomainError(
            code="ORDER_STATUS_CODE_TAKEN",
            http_status=409,
            message="Статус с таким кодом уже существует",
        )

    last_position = db.query(func.max(OrderStatus.position)).scalar() or 0

    if data.is_initial:
        _clear_initial_flag(db=db)

    status = OrderStatus(
        code=code,
        name=data.name.strip(),
        color=data.color,
        position=last_position + 1,
        is_initial=data.is_initial,
        is_final=data.is_final,
        notify_client=data.notify_client,
    )
    db.add(status)
    db.commit()
    db.refresh(status)
    return status


def update_order_status_use_case(*, db: Session, status_id: UUID, data: OrderStatusUpdate) -> OrderStatus:
    status = _get_status_or_404(db=db, status_id=status_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    if changes.get("is_initial"):
        _clear_initial_flag(db=db, keep_id=status.id)

    for field, value in changes.items():
        setattr(status, field, value)

    db.commit()
    db.refresh(status)
    return status


def delete_order_status_use_case(*, db: Session, status_id: UUID) -> None:
    """Delete status unless any order (or order history) still references it."""
    status = _get_status_or_404(db=db, status_id=status_id)

    orders_count = db.query(func.count(Order.id)).filter(Order.status_id == status.id).scalar() or 0
    if orders_count > 0:
        raise DomainError(
            code="ORDER_STATUS_IN_USE",
            http_status=409,
            message=f"Невозможно удалить: {orders_count} заказов используют этот статус",
            details={"orders": orders_count},
        )

    history_count = (
        db.query(func.count(OrderStatusHistory.id))
        .filter(
            (OrderStatusHistory.to_status_id == status.id)
            | (OrderStatusHistory.from_status_id == status.id)
        )
        .scalar()
        or 0
    )
    if history_count > 0:
        raise DomainError(
            code="ORDER_STATUS_IN_USE",
            http_status=409,
            message="Невозможно удалить: статус присутствует в истории заказов",
            details={"history": history_count},
        )

    db.delete(status)
    db.commit()


def reorder_order_statuses_use_case(*, db: Session, status_ids: list[UUID]) -> list[OrderStatus]:
    """Assign positions 1..n in the given order, all in one transaction."""
    statuses = db.query(OrderStatus).filter(OrderStatus.id.in_(status_ids)).all()
    by_id = {status.id: status for status in statuses}
    missing = [str(status_id) for status_id in status_ids if status_id not in by_id]
    if missing:
        raise DomainError(
            code="ORDER_STATUS_NOT_FOUND",
            http_status=404,
            message="Статус не найден",
            details={"ids": missing},
        )

    for index, status_id in enumerate(status_ids, start=1):
        by_id[status_id].position = index
    db.commit()
    return [by_id[status_id] for status_id in status_ids]
