"""Client endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import require_admin, require_staff
from ..database import get_db
from ..models import Client, User
from ..schemas import ClientCreate, ClientResponse, PortalTokenResponse
from ..use_cases.clients import (
    create_client_use_case,
    delete_client_use_case,
    generate_portal_token_use_case,
    get_client_or_404,
    toggle_client_archive_use_case,
)

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("", response_model=list[ClientResponse])
def list_clients(
    include_archived: bool = False,
    search: Optional[str] = Query(default=None, max_length=100),
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    query = db.query(Client)
    if not include_archived:
        query = query.filter(Client.is_archived == False)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(Client.name.ilike(pattern) | Client.company.ilike(pattern))
    return query.order_by(Client.name).all()


@router.get("/{client_id}", response_model=ClientResponse)
def get_client(
    client_id: UUID,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return get_client_or_404(db=db, client_id=client_id)


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
def create_client(
    data: ClientCreate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return create_client_use_case(db=db, data=data)


@router.post("/{client_id}/archive", response_model=ClientResponse)
def toggle_archive(
    client_id: UUID,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Archive or restore client; archived clients lose portal access."""
    return toggle_client_archive_use_case(db=db, client_id=client_id)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_client(
    client_id: UUID,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    delete_client_use_case(db=db, client_id=client_id)


@router.post("/{client_id}/portal-token", response_model=PortalTokenResponse)
def generate_portal_token(
    client_id: UUID,
    send_email: bool = True,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Issue a new portal token and optionally email the access link."""
    token, email_sent = generate_portal_token_use_case(db=db, client_id=client_id, send_email=send_email)
    return PortalTokenResponse(portal_token=token, email_sent=email_sent)
