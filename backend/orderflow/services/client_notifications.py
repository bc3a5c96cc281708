"""Best-effort client emails triggered by workflow events.

Every dispatcher catches and logs its own failures and returns a bool, so the
workflow that called it is never failed by email delivery.
"""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from ..config import settings
from ..models import Client, Invoice, Milestone, Order
from .email import (
    invoice_sent_email,
    milestone_ready_email,
    order_status_email,
    portal_token_email,
    send_email,
)

logger = logging.getLogger(__name__)


def _base_url() -> str:
    if not settings.APP_URL:
        raise RuntimeError("APP_URL is not configured")
    return settings.APP_URL.rstrip("/")


def portal_login_url(token: str) -> str:
    return f"{_base_url()}/portal/login?token={token}"


def format_amount(value: Decimal | int | float | None, currency: str) -> str:
    amount = Decimal(value or 0).normalize()
    return f"{amount:f} {currency}"


def format_date(value: datetime | None) -> str:
    if value is None:
        return "Не указан"
    return value.strftime("%d.%m.%Y")


def send_invoice_notification(db: Session, invoice_id: UUID) -> bool:
    """Email the invoice to its client and mark it SENT on success."""
    try:
        invoice = db.get(Invoice, invoice_id)
        if not invoice or not invoice.client or not invoice.client.email:
            logger.info("Invoice %s has no client email, not sending", invoice_id)
            return False

        client = invoice.client
        rendered = invoice_sent_email(
            client_name=client.name,
            invoice_number=invoice.number,
            amount=format_amount(invoice.total, invoice.currency),
            due_date=format_date(invoice.due_date),
            portal_url=portal_login_url(client.portal_token) if client.portal_token else None,
        )
        result = send_email(client.email, rendered.subject, rendered.html)
        if not result.success:
            return False

        if invoice.status != "SENT":
            invoice.status = "SENT"
            db.commit()
        return True
    except Exception:
        db.rollback()
        logger.exception("Error sending invoice notification for %s", invoice_id)
        return False


def send_order_status_notification(db: Session, order_id: UUID, status_name: str) -> bool:
    """Tell the client about a status change when the status asks for it."""
    try:
        order = db.get(Order, order_id)
        if not order or not order.client or not order.client.email:
            return False
        if not order.status or not order.status.notify_client:
            return False

        client = order.client
        rendered = order_status_email(
            client_name=client.name,
            order_number=order.number,
            order_title=order.title,
            new_status=status_name,
            portal_url=portal_login_url(client.portal_token) if client.portal_token else None,
        )
        return send_email(client.email, rendered.subject, rendered.html).success
    except Exception:
        logger.exception("Error sending order status notification for %s", order_id)
        return False


def send_milestone_ready_notification(db: Session, milestone_id: UUID) -> bool:
    try:
        milestone = db.get(Milestone, milestone_id)
        if not milestone or not milestone.order or not milestone.order.client:
            return False
        client = milestone.order.client
        if not client.email:
            return False

        rendered = milestone_ready_email(
            client_name=client.name,
            order_number=milestone.order.number,
            milestone_title=milestone.title,
            portal_url=f"{_base_url()}/portal/orders/{milestone.order_id}" if client.portal_token else None,
        )
        return send_email(client.email, rendered.subject, rendered.html).success
    except Exception:
        logger.exception("Error sending milestone notification for %s", milestone_id)
        return False


def send_portal_access_email(db: Session, client_id: UUID) -> bool:
    try:
        client = db.get(Client, client_id)
        if not client or not client.email or not client.portal_token:
            logger.info("Client %s has no email or portal token, not sending", client_id)
            return False

        rendered = portal_token_email(
            client_name=client.name,
            portal_url=portal_login_url(client.portal_token),
        )
        return send_email(client.email, rendered.subject, rendered.html).success
    except Exception:
        logger.exception("Error sending portal access email for %s", client_id)
        return False
