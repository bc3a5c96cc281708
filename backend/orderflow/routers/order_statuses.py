"""Order status reference data (admin)."""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth import get_current_user, require_admin
from ..database import get_db
from ..models import User
from ..schemas import OrderStatusCreate, OrderStatusReorder, OrderStatusResponse, OrderStatusUpdate
from ..use_cases.order_statuses import (
    create_order_status_use_case,
    delete_order_status_use_case,
    list_order_statuses,
    reorder_order_statuses_use_case,
    update_order_status_use_case,
)

router = APIRouter(prefix="/order-statuses", tags=["order-statuses"])


@router.get("", response_model=list[OrderStatusResponse])
def get_order_statuses(
    include_inactive: bool = False,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return list_order_statuses(db=db, include_inactive=include_inactive)


@router.post("", response_model=OrderStatusResponse, status_code=status.HTTP_201_CREATED)
def create_order_status(
    data: OrderStatusCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return create_order_status_use_case(db=db, data=data)


@router.put("/reorder", response_model=list[OrderStatusResponse])
def reorder_order_statuses(
    data: OrderStatusReorder,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return reorder_order_statuses_use_case(db=db, status_ids=data.status_ids)


@router.patch("/{status_id}", response_model=OrderStatusResponse)
def update_order_status(
    status_id: UUID,
    data: OrderStatusUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return update_order_status_use_case(db=db, status_id=status_id, data=data)


@router.delete("/{status_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order_status(
    status_id: UUID,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    delete_order_status_use_case(db=db, status_id=status_id)
