"""Client portal endpoints, authenticated by the client's portal token."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from ..auth import get_current_portal_client
from ..config import settings
from ..database import get_db
from ..models import Client, Comment, Invoice, Milestone, Order, Proposal, Ticket
from ..schemas import (
    ClientResponse,
    CommentCreate,
    CommentResponse,
    InvoiceResponse,
    MilestoneResponse,
    OrderResponse,
    PortalAuthRequest,
    PortalMilestoneReject,
    PortalSessionResponse,
    PortalTicketCreate,
    PortalTicketMessageCreate,
    ProposalClientResponse,
    ProposalResponse,
    TicketDetailResponse,
    TicketMessageResponse,
    TicketResponse,
)
from ..use_cases.clients import get_portal_client
from ..use_cases.milestone_workflow import (
    approve_milestone_by_client_use_case,
    reject_milestone_by_client_use_case,
)
from ..use_cases.order_workflow import add_portal_comment_use_case
from ..use_cases.proposal_workflow import respond_to_proposal_use_case, view_portal_proposal_use_case
from ..use_cases.ticket_workflow import (
    add_portal_ticket_message_use_case,
    create_portal_ticket_use_case,
    get_client_ticket_or_404,
)
from .auth import enforce_rate_limit, get_client_ip

router = APIRouter(prefix="/portal", tags=["portal"])
logger = logging.getLogger(__name__)


def _client_order_or_404(db: Session, client: Client, order_id: UUID) -> Order:
    order = db.query(Order).filter(Order.id == order_id, Order.client_id == client.id).first()
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Заказ не найден")
    return order


@router.post("/auth", response_model=PortalSessionResponse)
def portal_login(
    payload: PortalAuthRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """Exchange a portal token for a session cookie."""
    enforce_rate_limit(
        key=f"portal-auth:{get_client_ip(request)}",
        limit=settings.PORTAL_AUTH_RATE_LIMIT,
        window_seconds=settings.PORTAL_AUTH_RATE_WINDOW_SECONDS,
    )

    client = get_portal_client(db, payload.token.strip())
    if client is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Неверный токен")

    response.set_cookie(
        key=settings.PORTAL_COOKIE_NAME,
        value=client.portal_token,
        max_age=settings.PORTAL_COOKIE_MAX_AGE_SECONDS,
        httponly=True,
        secure=settings.PORTAL_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
    logger.info("Portal session opened for client %s", client.id)
    return PortalSessionResponse(client=ClientResponse.model_validate(client))


@router.delete("/auth", status_code=status.HTTP_204_NO_CONTENT)
def portal_logout(response: Response):
    response.delete_cookie(key=settings.PORTAL_COOKIE_NAME, path="/")


@router.get("/me", response_model=PortalSessionResponse)
def portal_me(client: Client = Depends(get_current_portal_client)):
    return PortalSessionResponse(client=ClientResponse.model_validate(client))


@router.get("/orders", response_model=list[OrderResponse])
def portal_orders(
    client: Client = Depends(get_current_portal_client),
    db: Session = Depends(get_db),
):
    return (
        db.query(Order)
        .filter(Order.client_id == client.id)
        .order_by(Order.created_at.desc(), Order.id)
        .all()
    )


@router.get("/orders/{order_id}", response_model=OrderResponse)
def portal_order(
    order_id: UUID,
    client: Client = Depends(get_current_portal_client),
    db: Session = Depends(get_db),
):
    return _client_order_or_404(db, client, order_id)


@router.get("/orders/{order_id}/milestones", response_model=list[MilestoneResponse])
def portal_order_milestones(
    order_id: UUID,
    client: Client = Depends(get_current_portal_client),
    db: Session = Depends(get_db),
):
    _client_order_or_404(db, client, order_id)
    return (
        db.query(Milestone)
        .filter(Milestone.order_id == order_id)
        .order_by(Milestone.position, Milestone.id)
        .all()
    )


@router.get("/orders/{order_id}/comments", response_model=list[CommentResponse])
def portal_order_comments(
    order_id: UUID,
    client: Client = Depends(get_current_portal_client),
    db: Session = Depends(get_db),
):
    _client_order_or_404(db, client, order_id)
    return (
        db.query(Comment)
        .filter(Comment.order_id == order_id, Comment.is_portal_visible == True)
        .order_by(Comment.created_at, Comment.id)
        .all()
    )


@router.post("/orders/{order_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
def portal_add_comment(
    order_id: UUID,
    data: CommentCreate,
    client: Client = Depends(get_current_portal_client),
    db: Session = Depends(get_db),
):
    return add_portal_comment_use_case(db=db, client=client, order_id=order_id, content=data.content)


@router.post("/milestones/{milestone_id}/approve", response_model=MilestoneResponse)
def portal_approve_milestone(
    milestone_id: UUID,
    client: Client = Depends(get_current_portal_client),
    db: Session = Depends(get_db),
):
    return approve_milestone_by_client_use_case(db=db, client_id=client.id, milestone_id=milestone_id)


@router.post("/milestones/{milestone_id}/reject", response_model=MilestoneResponse)
def portal_reject_milestone(
    milestone_id: UUID,
    data: PortalMilestoneReject,
    client: Client = Depends(get_current_portal_client),
    db: Session = Depends(get_db),
):
    return reject_milestone_by_client_use_case(
        db=db,
        client_id=client.id,
        milestone_id=milestone_id,
        comment=data.comment,
    )


@router.get("/invoices", response_model=list[InvoiceResponse])
def portal_invoices(
    client: Client = Depends(get_current_portal_client),
    db: Session = Depends(get_db),
):
    return (
        db.query(Invoice)
        .filter(Invoice.client_id == client.id, Invoice.status != "DRAFT")
        .order_by(Invoice.created_at.desc(), Invoice.id)
        .all()
    )


@router.get("/proposals", response_model=list[ProposalResponse])
def portal_proposals(
    client: Client = Depends(get_current_portal_client),
    db: Session = Depends(get_db),
):
    return (
        db.query(Proposal)
        .filter(Proposal.client_id == client.id, Proposal.status != "DRAFT")
        .order_by(Proposal.created_at.desc(), Proposal.id)
        .all()
    )


@router.get("/proposals/{proposal_id}", response_model=ProposalResponse)
def portal_view_proposal(
    proposal_id: UUID,
    client: Client = Depends(get_current_portal_client),
    db: Session = Depends(get_db),
):
    return view_portal_proposal_use_case(db=db, client_id=client.id, proposal_id=proposal_id)


@router.post("/proposals/{proposal_id}/respond", response_model=ProposalResponse)
def portal_respond_to_proposal(
    proposal_id: UUID,
    data: ProposalClientResponse,
    client: Client = Depends(get_current_portal_client),
    db: Session = Depends(get_db),
):
    """Accepting creates an order and a sent invoice from the proposal lines."""
    return respond_to_proposal_use_case(
        db=db,
        client_id=client.id,
        proposal_id=proposal_id,
        response=data.response,
    )


@router.get("/tickets", response_model=list[TicketResponse])
def portal_tickets(
    client: Client = Depends(get_current_portal_client),
    db: Session = Depends(get_db),
):
    return (
        db.query(Ticket)
        .filter(Ticket.client_id == client.id)
        .order_by(Ticket.created_at.desc(), Ticket.id)
        .all()
    )


@router.post("/tickets", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
def portal_create_ticket(
    data: PortalTicketCreate,
    client: Client = Depends(get_current_portal_client),
    db: Session = Depends(get_db),
):
    return create_portal_ticket_use_case(db=db, client=client, data=data)


@router.get("/tickets/{ticket_id}", response_model=TicketDetailResponse)
def portal_ticket(
    ticket_id: UUID,
    client: Client = Depends(get_current_portal_client),
    db: Session = Depends(get_db),
):
    ticket = get_client_ticket_or_404(db=db, client_id=client.id, ticket_id=ticket_id)
    detail = TicketDetailResponse.model_validate(ticket)
    # Internal staff notes never leave the back office.
    detail.messages = [message for message in detail.messages if not message.is_internal]
    return detail


@router.post(
    "/tickets/{ticket_id}/messages",
    response_model=TicketMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def portal_add_ticket_message(
    ticket_id: UUID,
    data: PortalTicketMessageCreate,
    client: Client = Depends(get_current_portal_client),
    db: Session = Depends(get_db),
):
    return add_portal_ticket_message_use_case(
        db=db,
        client=client,
        ticket_id=ticket_id,
        content=data.content,
    )
