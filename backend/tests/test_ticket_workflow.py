from __future__ import annotations

import re

import pytest
from conftest import make_client, make_user

from orderflow.domain_errors import DomainError
from orderflow.models import Notification, TicketMessage
from orderflow.schemas import PortalTicketCreate
from orderflow.use_cases.ticket_workflow import (
    add_portal_ticket_message_use_case,
    add_ticket_message_use_case,
    assign_ticket_use_case,
    create_portal_ticket_use_case,
    set_ticket_status_use_case,
)


def _ticket(db, workspace, subject="Не работает вход"):
    return create_portal_ticket_use_case(
        db=db,
        client=workspace.client,
        data=PortalTicketCreate(subject=subject, description="После обновления не пускает в кабинет"),
    )


def test_portal_ticket_is_numbered_and_notifies_staff(db, workspace) -> None:
    admin = make_user(db, role="ADMIN")
    manager = make_user(db, role="MANAGER")
    make_user(db, role="DEVELOPER")

    ticket = _ticket(db, workspace)

    assert re.fullmatch(r"TKT-\d{4}-001", ticket.number)
    assert ticket.status == "OPEN"
    notified = {row.user_id for row in db.query(Notification).filter(Notification.type == "TICKET")}
    assert notified == {admin.id, manager.id}


def test_blank_subject_is_rejected(db, workspace) -> None:
    with pytest.raises(DomainError) as exc_info:
        create_portal_ticket_use_case(
            db=db,
            client=workspace.client,
            data=PortalTicketCreate(subject="   ", description="Описание"),
        )

    assert exc_info.value.code == "TICKET_FIELDS_REQUIRED"


def test_public_staff_reply_moves_open_ticket_in_progress(db, workspace) -> None:
    agent = make_user(db, role="DEVELOPER")
    ticket = _ticket(db, workspace)

    add_ticket_message_use_case(db=db, ticket_id=ticket.id, content="Смотрим", is_internal=False, current_user=agent)

    db.refresh(ticket)
    assert ticket.status == "IN_PROGRESS"


def test_internal_note_keeps_ticket_open(db, workspace) -> None:
    agent = make_user(db, role="DEVELOPER")
    ticket = _ticket(db, workspace)

    message = add_ticket_message_use_case(
        db=db,
        ticket_id=ticket.id,
        content="Похоже на кэш",
        is_internal=True,
        current_user=agent,
    )

    db.refresh(ticket)
    assert ticket.status == "OPEN"
    assert message.is_internal is True


def test_client_reply_reopens_resolved_ticket(db, workspace) -> None:
    ticket = _ticket(db, workspace)
    resolved = set_ticket_status_use_case(db=db, ticket_id=ticket.id, status="RESOLVED")
    assert resolved.resolved_at is not None

    message = add_portal_ticket_message_use_case(
        db=db,
        client=workspace.client,
        ticket_id=ticket.id,
        content="Проблема вернулась",
    )

    db.refresh(ticket)
    assert ticket.status == "OPEN"
    assert ticket.resolved_at is None
    assert message.is_from_client is True
    assert message.client_name == workspace.client.name


def test_client_reply_does_not_reopen_closed_ticket(db, workspace) -> None:
    ticket = _ticket(db, workspace)
    set_ticket_status_use_case(db=db, ticket_id=ticket.id, status="CLOSED")

    add_portal_ticket_message_use_case(db=db, client=workspace.client, ticket_id=ticket.id, content="Ещё вопрос")

    db.refresh(ticket)
    assert ticket.status == "CLOSED"


def test_client_cannot_post_into_foreign_ticket(db, workspace) -> None:
    ticket = _ticket(db, workspace)
    stranger = make_client(db, name="Чужой", email=None)

    with pytest.raises(DomainError) as exc_info:
        add_portal_ticket_message_use_case(db=db, client=stranger, ticket_id=ticket.id, content="Привет")

    assert exc_info.value.code == "TICKET_NOT_FOUND"
    assert db.query(TicketMessage).count() == 0


def test_assignment_notifies_assignee(db, workspace) -> None:
    agent = make_user(db, role="DEVELOPER")
    ticket = _ticket(db, workspace)

    assigned = assign_ticket_use_case(db=db, ticket_id=ticket.id, assignee_id=agent.id)

    assert assigned.assignee_id == agent.id
    notification = db.query(Notification).filter(Notification.type == "ASSIGNMENT").one()
    assert notification.user_id == agent.id


def test_assignment_to_inactive_user_fails(db, workspace) -> None:
    inactive = make_user(db, role="DEVELOPER", is_active=False)
    ticket = _ticket(db, workspace)

    with pytest.raises(DomainError) as exc_info:
        assign_ticket_use_case(db=db, ticket_id=ticket.id, assignee_id=inactive.id)

    assert exc_info.value.code == "USER_NOT_FOUND"


def test_unknown_ticket_status_is_rejected(db, workspace) -> None:
    ticket = _ticket(db, workspace)

    with pytest.raises(DomainError) as exc_info:
        set_ticket_status_use_case(db=db, ticket_id=ticket.id, status="ESCALATED")

    assert exc_info.value.code == "TICKET_STATUS_INVALID"
