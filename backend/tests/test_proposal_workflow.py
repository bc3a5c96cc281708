from __future__ import annotations

import re
from decimal import Decimal

import pytest
from conftest import make_client, make_user

from orderflow.domain_errors import DomainError
from orderflow.models import Invoice, Notification, Order
from orderflow.schemas import LineItemIn, ProposalCreate
from orderflow.use_cases.proposal_workflow import (
    create_proposal_use_case,
    respond_to_proposal_use_case,
    set_proposal_status_use_case,
    view_portal_proposal_use_case,
)


def _proposal(db, workspace):
    return create_proposal_use_case(
        db=db,
        data=ProposalCreate(
            client_id=workspace.client.id,
            title="Интернет-магазин",
            items=[
                LineItemIn(description="Дизайн", quantity=Decimal("1"), unit_price=Decimal("2000")),
                LineItemIn(description="Разработка", quantity=Decimal("10"), unit_price=Decimal("300")),
            ],
        ),
    )


def test_proposal_gets_number_and_total(db, workspace) -> None:
    proposal = _proposal(db, workspace)

    assert re.fullmatch(r"KP-\d{4}-001", proposal.number)
    assert proposal.status == "DRAFT"
    assert proposal.total_amount == Decimal("5000")
    assert [item.total for item in proposal.items] == [Decimal("2000"), Decimal("3000")]


def test_status_changes_stamp_timestamps(db, workspace) -> None:
    proposal = _proposal(db, workspace)

    sent = set_proposal_status_use_case(db=db, proposal_id=proposal.id, status="SENT")

    assert sent.sent_at is not None
    assert sent.viewed_at is None
    assert db.query(Notification).count() == 0


def test_first_portal_view_marks_sent_proposal_viewed(db, workspace) -> None:
    proposal = _proposal(db, workspace)
    set_proposal_status_use_case(db=db, proposal_id=proposal.id, status="SENT")

    viewed = view_portal_proposal_use_case(db=db, client_id=workspace.client.id, proposal_id=proposal.id)

    assert viewed.status == "VIEWED"
    assert viewed.viewed_at is not None


def test_draft_proposal_is_hidden_from_portal(db, workspace) -> None:
    proposal = _proposal(db, workspace)

    with pytest.raises(DomainError) as exc_info:
        view_portal_proposal_use_case(db=db, client_id=workspace.client.id, proposal_id=proposal.id)

    assert exc_info.value.code == "PROPOSAL_NOT_FOUND"


def test_accepting_proposal_opens_order_and_sent_invoice(db, workspace) -> None:
    admin = make_user(db, role="ADMIN")
    proposal = _proposal(db, workspace)
    set_proposal_status_use_case(db=db, proposal_id=proposal.id, status="SENT")

    accepted = respond_to_proposal_use_case(
        db=db,
        client_id=workspace.client.id,
        proposal_id=proposal.id,
        response="ACCEPTED",
    )

    assert accepted.status == "ACCEPTED"
    assert accepted.responded_at is not None
    order = db.get(Order, accepted.order_id)
    assert order.status_id == workspace.initial_status.id
    assert order.estimated_budget == Decimal("5000")
    invoice = db.query(Invoice).filter(Invoice.order_id == order.id).one()
    assert invoice.status == "SENT"
    assert invoice.total == Decimal("5000")
    assert len(invoice.items) == 2
    notification = db.query(Notification).one()
    assert notification.user_id == admin.id
    assert notification.title == "КП принято клиентом"


def test_rejecting_proposal_creates_nothing(db, workspace) -> None:
    proposal = _proposal(db, workspace)
    set_proposal_status_use_case(db=db, proposal_id=proposal.id, status="SENT")

    rejected = respond_to_proposal_use_case(
        db=db,
        client_id=workspace.client.id,
        proposal_id=proposal.id,
        response="REJECTED",
    )

    assert rejected.status == "REJECTED"
    assert db.query(Order).count() == 0
    assert db.query(Invoice).count() == 0


def test_proposal_cannot_be_answered_twice(db, workspace) -> None:
    proposal = _proposal(db, workspace)
    set_proposal_status_use_case(db=db, proposal_id=proposal.id, status="SENT")
    respond_to_proposal_use_case(db=db, client_id=workspace.client.id, proposal_id=proposal.id, response="REJECTED")

    with pytest.raises(DomainError) as exc_info:
        respond_to_proposal_use_case(
            db=db,
            client_id=workspace.client.id,
            proposal_id=proposal.id,
            response="ACCEPTED",
        )

    assert exc_info.value.code == "PROPOSAL_NOT_FOUND"


def test_foreign_client_cannot_respond(db, workspace) -> None:
    proposal = _proposal(db, workspace)
    set_proposal_status_use_case(db=db, proposal_id=proposal.id, status="SENT")
    stranger = make_client(db, name="Чужой", email=None)

    with pytest.raises(DomainError):
        respond_to_proposal_use_case(db=db, client_id=stranger.id, proposal_id=proposal.id, response="ACCEPTED")


def test_unknown_response_is_rejected(db, workspace) -> None:
    proposal = _proposal(db, workspace)

    with pytest.raises(DomainError) as exc_info:
        respond_to_proposal_use_case(db=db, client_id=workspace.client.id, proposal_id=proposal.id, response="MAYBE")

    assert exc_info.value.code == "PROPOSAL_RESPONSE_INVALID"
