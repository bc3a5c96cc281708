"""Invoice use-cases: creation, payments and status changes."""
from __future__ import annotations

import logging
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import DomainError, invalid, not_found
from ..models import Invoice, InvoiceItem, Payment
from ..schemas import InvoiceCreate, LineItemIn, PaymentCreate
from ..services.client_notifications import format_amount, send_invoice_notification
from ..services.notifications import create_notification_for_users, get_staff_recipient_ids
from ..services.numbering import allocate_number
from ..services.status_rules import INVOICE_STATUS_LABELS, INVOICE_STATUSES, now_utc, payment_outcome
from .order_workflow import get_order_or_404

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def money(value: Decimal | int | float) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(item: LineItemIn) -> Decimal:
    return money(Decimal(item.quantity) * Decimal(item.unit_price))


def build_invoice_items(items: Iterable) -> tuple[list[InvoiceItem], Decimal]:
    """Invoice lines from request items or proposal items, plus their sum."""
    rows: list[InvoiceItem] = []
    subtotal = Decimal("0")
    for position, item in enumerate(items):
        total = getattr(item, "total", None)
        total = money(total) if total is not None else line_total(item)
        rows.append(
            InvoiceItem(
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=total,
                position=position,
            )
        )
        subtotal += total
    return rows, money(subtotal)


def get_invoice_or_404(*, db: Session, invoice_id: UUID) -> Invoice:
    invoice = db.get(Invoice, invoice_id)
    if not invoice:
        raise not_found("INVOICE_NOT_FOUND", "Счёт не найден")
    return invoice


def create_invoice_use_case(*, db: Session, data: InvoiceCreate) -> Invoice:
    """Create a DRAFT invoice for an order. Number and rows commit together."""
    if not data.items:
        raise invalid("INVOICE_ITEMS_REQUIRED", "Добавьте хотя бы одну позицию")
    order = get_order_or_404(db=db, order_id=data.order_id)

    items, subtotal = build_invoice_items(data.items)
    issue_date = data.issue_date or now_utc()
    invoice = Invoice(
        number=allocate_number(db, "invoice"),
        order_id=order.id,
        client_id=order.client_id,
        status="DRAFT",
        currency=data.currency or order.currency,
        issue_date=issue_date,
        due_date=data.due_date or issue_date + timedelta(days=settings.INVOICE_PAYMENT_TERM_DAYS),
        subtotal=subtotal,
        total=subtotal,
        paid_amount=Decimal("0"),
        notes=data.notes,
        items=items,
    )
    db.add(invoice)
    db.commit()
    db.refresh(invoice)
    return invoice


def _notify_staff_best_effort(db: Session, **notification) -> None:
    try:
        create_notification_for_users(db, get_staff_recipient_ids(db), **notification)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Failed to create staff notification: %s", notification.get("title"))


def record_payment_use_case(*, db: Session, invoice_id: UUID, data: PaymentCreate) -> Invoice:
    """Insert payment and update the invoice's paid amount/status atomically.

    Overpayment is accepted: the invoice stays PAID with paid_amount > total.
    """
    invoice = get_invoice_or_404(db=db, invoice_id=invoice_id)

    amount = money(data.amount)
    new_paid, new_status = payment_outcome(total=invoice.total, paid_amount=invoice.paid_amount, amount=amount)

    db.add(
        Payment(
            invoice_id=invoice.id,
            amount=amount,
            payment_method=data.payment_method,
            reference=data.reference,
            payment_date=data.payment_date or now_utc(),
        )
    )
    invoice.paid_amount = new_paid
    invoice.status = new_status
    if new_status == "PAID":
        invoice.paid_at = now_utc()
    db.commit()
    db.refresh(invoice)

    if new_paid > Decimal(invoice.total):
        logger.warning(
            "Invoice %s overpaid: paid %s of %s %s",
            invoice.number,
            new_paid,
            invoice.total,
            invoice.currency,
        )

    outcome = "оплачен полностью" if new_status == "PAID" else "частичная оплата"
    _notify_staff_best_effort(
        db,
        type="STATUS",
        title="Платёж зарегистрирован",
        description=f"{invoice.number}: {format_amount(amount, invoice.currency)} ({outcome})",
        link_url=f"/finance/{invoice.id}",
        entity_type="invoice",
        entity_id=invoice.id,
    )
    return invoice


def set_invoice_status_use_case(*, db: Session, invoice_id: UUID, status: str) -> Invoice:
    """Any status may follow any other. SENT also emails the invoice to the client."""
    invoice = get_invoice_or_404(db=db, invoice_id=invoice_id)
    next_status = (status or "").strip().upper()
    if next_status not in INVOICE_STATUSES:
        raise DomainError(
            code="INVOICE_STATUS_INVALID",
            http_status=400,
            message=f"Недопустимый статус счёта: {status}",
        )

    invoice.status = next_status
    create_notification_for_users(
        db,
        get_staff_recipient_ids(db),
        type="STATUS",
        title="Статус счёта изменён",
        description=f"{invoice.number}: {INVOICE_STATUS_LABELS.get(next_status, next_status)}",
        link_url=f"/finance/{invoice.id}",
        entity_type="invoice",
        entity_id=invoice.id,
    )
    db.commit()

    if next_status == "SENT":
        send_invoice_notification(db, invoice.id)

    db.refresh(invoice)
    return invoice


def delete_invoice_use_case(*, db: Session, invoice_id: UUID) -> None:
    invoice = get_invoice_or_404(db=db, invoice_id=invoice_id)
    db.delete(invoice)
    db.commit()
