"""Task endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth import get_current_user, require_member
from ..database import get_db
from ..models import Task, User
from ..schemas import TaskCreate, TaskResponse, TaskStatusChange
from ..use_cases.task_transitions import create_task_use_case, set_task_status_use_case

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("", response_model=list[TaskResponse])
def get_tasks(
    order_id: Optional[UUID] = None,
    assignee_id: Optional[UUID] = None,
    status_filter: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Task)
    if order_id:
        query = query.filter(Task.order_id == order_id)
    if assignee_id:
        query = query.filter(Task.assignee_id == assignee_id)
    if status_filter:
        query = query.filter(Task.status == status_filter.upper())
    return query.order_by(Task.position, Task.id).all()


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    data: TaskCreate,
    current_user: User = Depends(require_member),
    db: Session = Depends(get_db),
):
    return create_task_use_case(db=db, data=data)


@router.post("/{task_id}/status", response_model=TaskResponse)
def change_task_status(
    task_id: UUID,
    data: TaskStatusChange,
    current_user: User = Depends(require_member),
    db: Session = Depends(get_db),
):
    """Change task status; the parent milestone follows its tasks."""
    return set_task_status_use_case(db=db, task_id=task_id, status=data.status)
