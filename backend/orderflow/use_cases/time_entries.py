"""Time tracking: logged hours per order and task, plus weekly rollups."""
from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..domain_errors import invalid, not_found
from ..models import Task, TimeEntry, User
from ..schemas import TimeEntryCreate, TimeEntryUpdate
from .order_workflow import get_order_or_404

logger = logging.getLogger(__name__)

DAYS_IN_WEEK = 7
ZERO = Decimal("0")


def get_time_entry_or_404(*, db: Session, entry_id: UUID) -> TimeEntry:
    entry = db.get(TimeEntry, entry_id)
    if not entry:
        raise not_found("TIME_ENTRY_NOT_FOUND", "Запись времени не найдена")
    return entry


def week_bounds(week_start: date) -> tuple[date, date]:
    """Monday of the week containing ``week_start`` and the following Monday."""
    monday = week_start - timedelta(days=week_start.weekday())
    return monday, monday + timedelta(days=DAYS_IN_WEEK)


def list_time_entries_use_case(
    *,
    db: Session,
    user_id: UUID | None = None,
    order_id: UUID | None = None,
    task_id: UUID | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = 50,
    offset: int = 0,
) -> dict:
    """Page of entries (newest day first) with the count and hour sum of the whole filter."""
    query = db.query(TimeEntry)
    if user_id:
        query = query.filter(TimeEntry.user_id == user_id)
    if order_id:
        query = query.filter(TimeEntry.order_id == order_id)
    if task_id:
        query = query.filter(TimeEntry.task_id == task_id)
    if start_date:
        query = query.filter(TimeEntry.date >= start_date)
    if end_date:
        query = query.filter(TimeEntry.date <= end_date)

    total = query.count()
    total_hours = query.with_entities(func.sum(TimeEntry.hours)).scalar()
    items = (
        query.order_by(TimeEntry.date.desc(), TimeEntry.created_at.desc(), TimeEntry.id)
        .offset(offset)
        .limit(limit)
        .all()
    )
    return {
        "items": items,
        "total": total,
        "total_hours": Decimal(total_hours or 0),
    }


def create_time_entry_use_case(*, db: Session, data: TimeEntryCreate, current_user: User) -> TimeEntry:
    order = get_order_or_404(db=db, order_id=data.order_id)
    if data.task_id is not None:
        task = db.get(Task, data.task_id)
        if not task:
            raise not_found("TASK_NOT_FOUND", "Задача не найдена")
        if task.order_id != order.id:
            raise invalid("TIME_ENTRY_TASK_MISMATCH", "Задача не относится к этому заказу")

    user_id = data.user_id or current_user.id
    if not db.get(User, user_id):
        raise not_found("USER_NOT_FOUND", "Пользователь не найден")

    entry = TimeEntry(
        order_id=order.id,
        task_id=data.task_id,
        user_id=user_id,
        date=data.date,
        hours=data.hours,
        description=data.description,
        is_billable=data.is_billable,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    logger.info("Logged %s h on %s for user %s", entry.hours, order.number, user_id)
    return entry


def update_time_entry_use_case(*, db: Session, entry_id: UUID, data: TimeEntryUpdate) -> TimeEntry:
    """Partial update; only fields present in the request are touched."""
    entry = get_time_entry_or_404(db=db, entry_id=entry_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field != "description":
            continue
        setattr(entry, field, value)
    db.commit()
    db.refresh(entry)
    return entry


def delete_time_entry_use_case(*, db: Session, entry_id: UUID) -> None:
    entry = get_time_entry_or_404(db=db, entry_id=entry_id)
    db.delete(entry)
    db.commit()


def _week_entries(db: Session, monday: date, next_monday: date, user_id: UUID | None = None) -> list[TimeEntry]:
    query = (
        db.query(TimeEntry)
        .options(joinedload(TimeEntry.order))
        .filter(TimeEntry.date >= monday, TimeEntry.date < next_monday)
    )
    if user_id:
        query = query.filter(TimeEntry.user_id == user_id)
    return query.order_by(TimeEntry.date, TimeEntry.created_at, TimeEntry.id).all()


def weekly_time_grid_use_case(*, db: Session, week_start: date) -> dict:
    """Hours per order per weekday (Mon..Sun) across all users.

    Rows are sorted by their weekly total, largest first.
    """
    monday, next_monday = week_bounds(week_start)
    rows: dict[UUID, dict] = {}
    for entry in _week_entries(db, monday, next_monday):
        row = rows.setdefault(
            entry.order_id,
            {"order": entry.order, "days": [ZERO] * DAYS_IN_WEEK, "total": ZERO},
        )
        day_index = (entry.date - monday).days
        row["days"][day_index] += entry.hours
        row["total"] += entry.hours

    ordered = sorted(rows.values(), key=lambda row: row["total"], reverse=True)
    day_totals = [sum((row["days"][i] for row in ordered), ZERO) for i in range(DAYS_IN_WEEK)]
    return {
        "week_start": monday,
        "rows": ordered,
        "day_totals": day_totals,
        "grand_total": sum((row["total"] for row in ordered), ZERO),
    }


def weekly_summary_use_case(*, db: Session, user_id: UUID, week_start: date) -> dict:
    """One user's week: entries, hours grouped by order, total and billable hours."""
    monday, next_monday = week_bounds(week_start)
    entries = _week_entries(db, monday, next_monday, user_id=user_id)

    by_order: dict[UUID, dict] = {}
    for entry in entries:
        group = by_order.setdefault(
            entry.order_id,
            {"order": entry.order, "entries": [], "total_hours": ZERO},
        )
        group["entries"].append(entry)
        group["total_hours"] += entry.hours

    return {
        "week_start": monday,
        "entries": entries,
        "by_order": list(by_order.values()),
        "total_hours": sum((entry.hours for entry in entries), ZERO),
        "billable_hours": sum((entry.hours for entry in entries if entry.is_billable), ZERO),
    }
