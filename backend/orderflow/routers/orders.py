"""Order endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session, joinedload

from ..auth import get_current_user, require_admin, require_member, require_staff
from ..database import get_db
from ..models import Comment, Milestone, Order, OrderStatusHistory, User
from ..schemas import (
    CommentCreate,
    CommentResponse,
    MilestoneCreate,
    MilestoneResponse,
    OrderCreate,
    OrderResponse,
    OrderStatusChange,
    OrderStatusHistoryResponse,
)
from ..use_cases.milestone_workflow import create_milestone_use_case
from ..use_cases.order_workflow import (
    add_order_comment_use_case,
    create_order_use_case,
    delete_order_use_case,
    get_order_or_404,
    set_order_status_use_case,
)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", response_model=list[OrderResponse])
def list_orders(
    status_id: Optional[UUID] = None,
    client_id: Optional[UUID] = None,
    manager_id: Optional[UUID] = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Order).options(joinedload(Order.status))
    if status_id:
        query = query.filter(Order.status_id == status_id)
    if client_id:
        query = query.filter(Order.client_id == client_id)
    if manager_id:
        query = query.filter(Order.manager_id == manager_id)
    return query.order_by(Order.created_at.desc(), Order.id).offset(offset).limit(limit).all()


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_order_or_404(db=db, order_id=order_id)


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    data: OrderCreate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return create_order_use_case(db=db, data=data, current_user=current_user)


@router.post("/{order_id}/status", response_model=OrderResponse)
def change_order_status(
    order_id: UUID,
    data: OrderStatusChange,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Move order to another status (history + notifications + optional client email)."""
    return set_order_status_use_case(
        db=db,
        order_id=order_id,
        status_id=data.status_id,
        actor_user_id=current_user.id,
        comment=data.comment,
    )


@router.get("/{order_id}/history", response_model=list[OrderStatusHistoryResponse])
def get_order_history(
    order_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_order_or_404(db=db, order_id=order_id)
    return (
        db.query(OrderStatusHistory)
        .filter(OrderStatusHistory.order_id == order_id)
        .order_by(OrderStatusHistory.created_at, OrderStatusHistory.id)
        .all()
    )


@router.get("/{order_id}/comments", response_model=list[CommentResponse])
def list_order_comments(
    order_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_order_or_404(db=db, order_id=order_id)
    return (
        db.query(Comment)
        .filter(Comment.order_id == order_id)
        .order_by(Comment.created_at, Comment.id)
        .all()
    )


@router.post("/{order_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
def add_order_comment(
    order_id: UUID,
    data: CommentCreate,
    is_internal: bool = False,
    current_user: User = Depends(require_member),
    db: Session = Depends(get_db),
):
    return add_order_comment_use_case(
        db=db,
        order_id=order_id,
        content=data.content,
        current_user=current_user,
        is_internal=is_internal,
    )


@router.get("/{order_id}/milestones", response_model=list[MilestoneResponse])
def list_order_milestones(
    order_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_order_or_404(db=db, order_id=order_id)
    return (
        db.query(Milestone)
        .filter(Milestone.order_id == order_id)
        .order_by(Milestone.position, Milestone.id)
        .all()
    )


@router.post("/{order_id}/milestones", response_model=MilestoneResponse, status_code=status.HTTP_201_CREATED)
def create_milestone(
    order_id: UUID,
    data: MilestoneCreate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return create_milestone_use_case(db=db, order_id=order_id, data=data)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(
    order_id: UUID,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    delete_order_use_case(db=db, order_id=order_id)
