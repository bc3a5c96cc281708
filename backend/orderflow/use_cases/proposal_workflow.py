"""Commercial proposal (KP) use-cases."""
from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import DomainError, not_found
from ..models import Client, Invoice, Order, Proposal, ProposalItem
from ..schemas import ProposalCreate
from ..services.notifications import create_notification_for_users, get_staff_recipient_ids
from ..services.numbering import allocate_number
from ..services.status_rules import (
    PROPOSAL_CLIENT_RESPONSES,
    PROPOSAL_RESPONDABLE_STATUSES,
    PROPOSAL_STATUSES,
    apply_proposal_status_timestamps,
    now_utc,
)
from .invoice_workflow import build_invoice_items, line_total, money
from .order_workflow import get_initial_status

logger = logging.getLogger(__name__)


def get_proposal_or_404(*, db: Session, proposal_id: UUID) -> Proposal:
    proposal = db.get(Proposal, proposal_id)
    if not proposal:
        raise not_found("PROPOSAL_NOT_FOUND", "КП не найдено")
    return proposal


def create_proposal_use_case(*, db: Session, data: ProposalCreate) -> Proposal:
    if not db.get(Client, data.client_id):
        raise not_found("CLIENT_NOT_FOUND", "Клиент не найден")
    if data.order_id is not None and not db.get(Order, data.order_id):
        raise not_found("ORDER_NOT_FOUND", "Заказ не найден")

    items = []
    total_amount = Decimal("0")
    for position, item in enumerate(data.items):
        total = line_total(item)
        items.append(
            ProposalItem(
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=total,
                position=position,
            )
        )
        total_amount += total

    proposal = Proposal(
        number=allocate_number(db, "proposal"),
        title=data.title.strip(),
        client_id=data.client_id,
        order_id=data.order_id,
        status="DRAFT",
        currency=data.currency or settings.DEFAULT_CURRENCY,
        total_amount=money(total_amount),
        valid_until=data.valid_until,
        items=items,
    )
    db.add(proposal)
    db.commit()
    db.refresh(proposal)
    return proposal


def _apply_status(proposal: Proposal, status: str) -> None:
    proposal.status = status
    for field, value in apply_proposal_status_timestamps(next_status=status).items():
        setattr(proposal, field, value)


def set_proposal_status_use_case(*, db: Session, proposal_id: UUID, status: str) -> Proposal:
    """Stamp sent/viewed/responded timestamps. No notification fan-out on this path."""
    proposal = get_proposal_or_404(db=db, proposal_id=proposal_id)
    next_status = (status or "").strip().upper()
    if next_status not in PROPOSAL_STATUSES:
        raise DomainError(
            code="PROPOSAL_STATUS_INVALID",
            http_status=400,
            message=f"Недопустимый статус КП: {status}",
        )

    _apply_status(proposal, next_status)
    db.commit()
    db.refresh(proposal)
    return proposal


def delete_proposal_use_case(*, db: Session, proposal_id: UUID) -> None:
    proposal = get_proposal_or_404(db=db, proposal_id=proposal_id)
    db.delete(proposal)
    db.commit()


def view_portal_proposal_use_case(*, db: Session, client_id: UUID, proposal_id: UUID) -> Proposal:
    """Client opens a proposal; first view of a SENT proposal marks it VIEWED."""
    proposal = (
        db.query(Proposal)
        .filter(
            Proposal.id == proposal_id,
            Proposal.client_id == client_id,
            Proposal.status != "DRAFT",
        )
        .first()
    )
    if not proposal:
        raise not_found("PROPOSAL_NOT_FOUND", "КП не найдено")
    if proposal.status == "SENT":
        _apply_status(proposal, "VIEWED")
        db.commit()
        db.refresh(proposal)
    return proposal


def respond_to_proposal_use_case(
    *,
    db: Session,
    client_id: UUID,
    proposal_id: UUID,
    response: str,
) -> Proposal:
    """Client accepts or rejects a SENT/VIEWED proposal.

    Acceptance also opens an order in the initial status and a SENT invoice
    from the proposal lines. Everything commits in one transaction.
    """
    if response not in PROPOSAL_CLIENT_RESPONSES:
        raise DomainError(
            code="PROPOSAL_RESPONSE_INVALID",
            http_status=400,
            message=f"Недопустимый ответ на КП: {response}",
        )

    proposal = (
        db.query(Proposal)
        .filter(
            Proposal.id == proposal_id,
            Proposal.client_id == client_id,
            Proposal.status.in_(PROPOSAL_RESPONDABLE_STATUSES),
        )
        .first()
    )
    if not proposal:
        raise not_found("PROPOSAL_NOT_FOUND", "КП не найдено")

    _apply_status(proposal, response)

    if response == "ACCEPTED":
        initial_status = get_initial_status(db=db)
        order = Order(
            number=allocate_number(db, "order"),
            title=proposal.title,
            client_id=proposal.client_id,
            status_id=initial_status.id,
            currency=proposal.currency,
            estimated_budget=proposal.total_amount,
            priority="MEDIUM",
        )
        db.add(order)
        db.flush()
        proposal.order_id = order.id

        items, subtotal = build_invoice_items(proposal.items)
        issue_date = now_utc()
        db.add(
            Invoice(
                number=allocate_number(db, "invoice"),
                order_id=order.id,
                client_id=proposal.client_id,
                status="SENT",
                currency=proposal.currency,
                issue_date=issue_date,
                due_date=issue_date + timedelta(days=settings.INVOICE_PAYMENT_TERM_DAYS),
                subtotal=subtotal,
                total=subtotal,
                paid_amount=Decimal("0"),
                items=items,
            )
        )

    client = proposal.client
    create_notification_for_users(
        db,
        get_staff_recipient_ids(db),
        type="STATUS",
        title="КП принято клиентом" if response == "ACCEPTED" else "КП отклонено клиентом",
        description=f"{client.name}: {proposal.title}",
        link_url=f"/proposals/{proposal.id}",
        entity_type="proposal",
        entity_id=proposal.id,
    )
    db.commit()
    db.refresh(proposal)

    logger.info("Proposal %s %s by client %s", proposal.number, response.lower(), client_id)
    return proposal
