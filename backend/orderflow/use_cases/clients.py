"""Client records and portal access."""
from __future__ import annotations

import logging
import secrets
from uuid import UUID

from sqlalchemy.orm import Session

from ..domain_errors import not_found
from ..models import Client
from ..schemas import ClientCreate
from ..services.client_notifications import send_portal_access_email

logger = logging.getLogger(__name__)

PORTAL_TOKEN_BYTES = 32


def get_client_or_404(*, db: Session, client_id: UUID) -> Client:
    client = db.get(Client, client_id)
    if not client:
        raise not_found("CLIENT_NOT_FOUND", "Клиент не найден")
    return client


def create_client_use_case(*, db: Session, data: ClientCreate) -> Client:
    client = Client(
        name=data.name.strip(),
        email=(data.email or "").strip() or None,
        phone=data.phone,
        company=data.company,
    )
    db.add(client)
    db.commit()
    db.refresh(client)
    return client


def toggle_client_archive_use_case(*, db: Session, client_id: UUID) -> Client:
    client = get_client_or_404(db=db, client_id=client_id)
    client.is_archived = not client.is_archived
    db.commit()
    db.refresh(client)
    return client


def delete_client_use_case(*, db: Session, client_id: UUID) -> None:
    """Delete client together with its orders, invoices, proposals and tickets."""
    client = get_client_or_404(db=db, client_id=client_id)
    name = client.name
    db.delete(client)
    db.commit()
    logger.info("Client %s deleted with all dependent records", name)


def generate_portal_token_use_case(*, db: Session, client_id: UUID, send_email: bool = True) -> tuple[str, bool]:
    """Issue a new portal token (old one stops working). Returns (token, email_sent)."""
    client = get_client_or_404(db=db, client_id=client_id)
    token = secrets.token_hex(PORTAL_TOKEN_BYTES)
    client.portal_token = token
    db.commit()

    email_sent = send_portal_access_email(db, client.id) if send_email else False
    return token, email_sent


def get_portal_client(db: Session, token: str | None) -> Client | None:
    """Resolve a portal token to its client. Archived clients have no access."""
    if not token:
        return None
    return (
        db.query(Client)
        .filter(Client.portal_token == token, Client.is_archived == False)
        .first()
    )
