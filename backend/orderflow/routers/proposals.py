"""Commercial proposal endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth import require_admin, require_staff
from ..database import get_db
from ..models import Proposal, User
from ..schemas import ProposalCreate, ProposalResponse, ProposalStatusChange
from ..use_cases.proposal_workflow import (
    create_proposal_use_case,
    delete_proposal_use_case,
    get_proposal_or_404,
    set_proposal_status_use_case,
)

router = APIRouter(prefix="/proposals", tags=["proposals"])


@router.get("", response_model=list[ProposalResponse])
def list_proposals(
    client_id: Optional[UUID] = None,
    status_filter: Optional[str] = None,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    query = db.query(Proposal)
    if client_id:
        query = query.filter(Proposal.client_id == client_id)
    if status_filter:
        query = query.filter(Proposal.status == status_filter.upper())
    return query.order_by(Proposal.created_at.desc(), Proposal.id).all()


@router.get("/{proposal_id}", response_model=ProposalResponse)
def get_proposal(
    proposal_id: UUID,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return get_proposal_or_404(db=db, proposal_id=proposal_id)


@router.post("", response_model=ProposalResponse, status_code=status.HTTP_201_CREATED)
def create_proposal(
    data: ProposalCreate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return create_proposal_use_case(db=db, data=data)


@router.post("/{proposal_id}/status", response_model=ProposalResponse)
def change_proposal_status(
    proposal_id: UUID,
    data: ProposalStatusChange,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return set_proposal_status_use_case(db=db, proposal_id=proposal_id, status=data.status)


@router.delete("/{proposal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_proposal(
    proposal_id: UUID,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    delete_proposal_use_case(db=db, proposal_id=proposal_id)
