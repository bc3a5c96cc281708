"""Time tracking endpoints."""
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import get_current_user, require_member
from ..database import get_db
from ..models import User
from ..schemas import (
    TimeEntryCreate,
    TimeEntryListResponse,
    TimeEntryResponse,
    TimeEntryUpdate,
    WeeklyGridResponse,
    WeeklySummaryResponse,
)
from ..use_cases.time_entries import (
    create_time_entry_use_case,
    delete_time_entry_use_case,
    list_time_entries_use_case,
    update_time_entry_use_case,
    weekly_summary_use_case,
    weekly_time_grid_use_case,
)

router = APIRouter(prefix="/time-entries", tags=["time"])


@router.get("", response_model=TimeEntryListResponse)
def list_time_entries(
    user_id: Optional[UUID] = None,
    order_id: Optional[UUID] = None,
    task_id: Optional[UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return list_time_entries_use_case(
        db=db,
        user_id=user_id,
        order_id=order_id,
        task_id=task_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )


@router.get("/weekly-grid", response_model=WeeklyGridResponse)
def weekly_grid(
    week_start: date,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Orders x weekdays hour grid for the week containing ``week_start``."""
    return weekly_time_grid_use_case(db=db, week_start=week_start)


@router.get("/weekly-summary", response_model=WeeklySummaryResponse)
def weekly_summary(
    week_start: date,
    user_id: Optional[UUID] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return weekly_summary_use_case(db=db, user_id=user_id or current_user.id, week_start=week_start)


@router.post("", response_model=TimeEntryResponse, status_code=status.HTTP_201_CREATED)
def create_time_entry(
    data: TimeEntryCreate,
    current_user: User = Depends(require_member),
    db: Session = Depends(get_db),
):
    return create_time_entry_use_case(db=db, data=data, current_user=current_user)


@router.patch("/{entry_id}", response_model=TimeEntryResponse)
def update_time_entry(
    entry_id: UUID,
    data: TimeEntryUpdate,
    current_user: User = Depends(require_member),
    db: Session = Depends(get_db),
):
    return update_time_entry_use_case(db=db, entry_id=entry_id, data=data)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_time_entry(
    entry_id: UUID,
    current_user: User = Depends(require_member),
    db: Session = Depends(get_db),
):
    delete_time_entry_use_case(db=db, entry_id=entry_id)
