"""Support desk endpoints (staff side)."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth import get_current_user, require_member, require_staff
from ..database import get_db
from ..models import Ticket, User
from ..schemas import (
    TicketAssign,
    TicketDetailResponse,
    TicketMessageCreate,
    TicketMessageResponse,
    TicketResponse,
    TicketStatusChange,
)
from ..use_cases.ticket_workflow import (
    add_ticket_message_use_case,
    assign_ticket_use_case,
    get_ticket_or_404,
    set_ticket_status_use_case,
)

router = APIRouter(prefix="/tickets", tags=["tickets"])


@router.get("", response_model=list[TicketResponse])
def list_tickets(
    status_filter: Optional[str] = None,
    assignee_id: Optional[UUID] = None,
    client_id: Optional[UUID] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Ticket)
    if status_filter:
        query = query.filter(Ticket.status == status_filter.upper())
    if assignee_id:
        query = query.filter(Ticket.assignee_id == assignee_id)
    if client_id:
        query = query.filter(Ticket.client_id == client_id)
    return query.order_by(Ticket.created_at.desc(), Ticket.id).all()


@router.get("/{ticket_id}", response_model=TicketDetailResponse)
def get_ticket(
    ticket_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_ticket_or_404(db=db, ticket_id=ticket_id)


@router.post("/{ticket_id}/status", response_model=TicketResponse)
def change_ticket_status(
    ticket_id: UUID,
    data: TicketStatusChange,
    current_user: User = Depends(require_member),
    db: Session = Depends(get_db),
):
    return set_ticket_status_use_case(db=db, ticket_id=ticket_id, status=data.status)


@router.post("/{ticket_id}/assign", response_model=TicketResponse)
def assign_ticket(
    ticket_id: UUID,
    data: TicketAssign,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return assign_ticket_use_case(db=db, ticket_id=ticket_id, assignee_id=data.assignee_id)


@router.post("/{ticket_id}/messages", response_model=TicketMessageResponse, status_code=status.HTTP_201_CREATED)
def add_ticket_message(
    ticket_id: UUID,
    data: TicketMessageCreate,
    current_user: User = Depends(require_member),
    db: Session = Depends(get_db),
):
    """Staff reply; internal notes are never shown in the portal."""
    return add_ticket_message_use_case(
        db=db,
        ticket_id=ticket_id,
        content=data.content,
        is_internal=data.is_internal,
        current_user=current_user,
    )
