"""Milestone endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth import get_current_user, require_staff
from ..database import get_db
from ..models import Task, User
from ..schemas import MilestoneChangesRequest, MilestoneResponse, MilestoneStatusChange, TaskResponse
from ..use_cases.milestone_workflow import (
    delete_milestone_use_case,
    get_milestone_or_404,
    request_milestone_changes_use_case,
    set_milestone_status_use_case,
)

router = APIRouter(prefix="/milestones", tags=["milestones"])


@router.get("/{milestone_id}", response_model=MilestoneResponse)
def get_milestone(
    milestone_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_milestone_or_404(db=db, milestone_id=milestone_id)


@router.get("/{milestone_id}/tasks", response_model=list[TaskResponse])
def list_milestone_tasks(
    milestone_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_milestone_or_404(db=db, milestone_id=milestone_id)
    return (
        db.query(Task)
        .filter(Task.milestone_id == milestone_id)
        .order_by(Task.position, Task.id)
        .all()
    )


@router.post("/{milestone_id}/status", response_model=MilestoneResponse)
def change_milestone_status(
    milestone_id: UUID,
    data: MilestoneStatusChange,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return set_milestone_status_use_case(db=db, milestone_id=milestone_id, status=data.status)


@router.post("/{milestone_id}/request-changes", response_model=MilestoneResponse)
def request_changes(
    milestone_id: UUID,
    data: MilestoneChangesRequest,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Reopen a completed milestone for rework."""
    return request_milestone_changes_use_case(
        db=db,
        milestone_id=milestone_id,
        comment=data.comment,
        current_user=current_user,
    )


@router.delete("/{milestone_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_milestone(
    milestone_id: UUID,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    delete_milestone_use_case(db=db, milestone_id=milestone_id)
