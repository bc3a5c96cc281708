"""Support desk use-cases for staff and the client portal."""
from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from ..domain_errors import DomainError, invalid, not_found
from ..models import Client, Order, Ticket, TicketMessage, User
from ..schemas import PortalTicketCreate
from ..services.notifications import create_notification_for_users, get_staff_recipient_ids
from ..services.numbering import allocate_number
from ..services.status_rules import TICKET_STATUSES, apply_ticket_status_timestamps

MESSAGE_PREVIEW_LENGTH = 80


def _preview(content: str) -> str:
    if len(content) > MESSAGE_PREVIEW_LENGTH:
        return content[:MESSAGE_PREVIEW_LENGTH] + "..."
    return content


def _ticket_not_found() -> DomainError:
    return not_found("TICKET_NOT_FOUND", "Обращение не найдено")


def get_ticket_or_404(*, db: Session, ticket_id: UUID) -> Ticket:
    ticket = db.get(Ticket, ticket_id)
    if not ticket:
        raise _ticket_not_found()
    return ticket


def get_client_ticket_or_404(*, db: Session, client_id: UUID, ticket_id: UUID) -> Ticket:
    ticket = db.query(Ticket).filter(Ticket.id == ticket_id, Ticket.client_id == client_id).first()
    if not ticket:
        raise _ticket_not_found()
    return ticket


def _require_content(content: str) -> str:
    value = (content or "").strip()
    if not value:
        raise invalid("TICKET_MESSAGE_EMPTY", "Введите сообщение")
    return value


def set_ticket_status_use_case(*, db: Session, ticket_id: UUID, status: str) -> Ticket:
    """RESOLVED stamps resolved_at, CLOSED stamps closed_at, anything else clears both."""
    ticket = get_ticket_or_404(db=db, ticket_id=ticket_id)
    next_status = (status or "").strip().upper()
    if next_status not in TICKET_STATUSES:
        raise DomainError(
            code="TICKET_STATUS_INVALID",
            http_status=400,
            message=f"Недопустимый статус обращения: {status}",
        )

    ticket.status = next_status
    for field, value in apply_ticket_status_timestamps(next_status=next_status).items():
        setattr(ticket, field, value)
    db.commit()
    db.refresh(ticket)
    return ticket


def create_portal_ticket_use_case(*, db: Session, client: Client, data: PortalTicketCreate) -> Ticket:
    subject = data.subject.strip()
    description = data.description.strip()
    if not subject or not description:
        raise invalid("TICKET_FIELDS_REQUIRED", "Заполните тему и описание")

    if data.order_id is not None:
        order = db.query(Order).filter(Order.id == data.order_id, Order.client_id == client.id).first()
        if not order:
            raise not_found("ORDER_NOT_FOUND", "Заказ не найден")

    ticket = Ticket(
        number=allocate_number(db, "ticket"),
        subject=subject,
        description=description,
        priority=data.priority,
        client_id=client.id,
        order_id=data.order_id,
        status="OPEN",
    )
    db.add(ticket)
    db.flush()

    create_notification_for_users(
        db,
        get_staff_recipient_ids(db),
        type="TICKET",
        title="Новое обращение от клиента",
        description=f"{client.name}: «{subject}»",
        link_url=f"/tickets/{ticket.id}",
        entity_type="ticket",
        entity_id=ticket.id,
    )
    db.commit()
    db.refresh(ticket)
    return ticket


def add_portal_ticket_message_use_case(
    *,
    db: Session,
    client: Client,
    ticket_id: UUID,
    content: str,
) -> TicketMessage:
    """Client reply. Reopens a RESOLVED ticket; CLOSED stays closed."""
    text = _require_content(content)
    ticket = get_client_ticket_or_404(db=db, client_id=client.id, ticket_id=ticket_id)

    message = TicketMessage(
        ticket_id=ticket.id,
        content=text,
        is_from_client=True,
        client_name=client.name,
    )
    db.add(message)

    if ticket.status == "RESOLVED":
        ticket.status = "OPEN"
        ticket.resolved_at = None

    create_notification_for_users(
        db,
        [ticket.assignee_id, *get_staff_recipient_ids(db)],
        type="TICKET",
        title="Сообщение от клиента в обращении",
        description=f"{client.name}: «{_preview(text)}»",
        link_url=f"/tickets/{ticket.id}",
        entity_type="ticket",
        entity_id=ticket.id,
    )
    db.commit()
    db.refresh(message)
    return message


def add_ticket_message_use_case(
    *,
    db: Session,
    ticket_id: UUID,
    content: str,
    is_internal: bool,
    current_user: User,
) -> TicketMessage:
    """Staff reply. A public reply to an OPEN ticket moves it to IN_PROGRESS."""
    text = _require_content(content)
    ticket = get_ticket_or_404(db=db, ticket_id=ticket_id)

    message = TicketMessage(
        ticket_id=ticket.id,
        content=text,
        user_id=current_user.id,
        is_from_client=False,
        is_internal=is_internal,
    )
    db.add(message)

    if not is_internal and ticket.status == "OPEN":
        ticket.status = "IN_PROGRESS"

    db.commit()
    db.refresh(message)
    return message


def assign_ticket_use_case(*, db: Session, ticket_id: UUID, assignee_id: UUID | None) -> Ticket:
    ticket = get_ticket_or_404(db=db, ticket_id=ticket_id)

    if assignee_id is not None:
        assignee = db.query(User).filter(User.id == assignee_id, User.is_active == True).first()
        if not assignee:
            raise not_found("USER_NOT_FOUND", "Пользователь не найден")

    ticket.assignee_id = assignee_id
    if assignee_id is not None:
        create_notification_for_users(
            db,
            [assignee_id],
            type="ASSIGNMENT",
            title="Вам назначено обращение",
            description=f"«{ticket.subject}» от {ticket.client.name}",
            link_url=f"/tickets/{ticket.id}",
            entity_type="ticket",
            entity_id=ticket.id,
        )
    db.commit()
    db.refresh(ticket)
    return ticket
