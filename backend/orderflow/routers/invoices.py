"""Invoice endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth import require_admin, require_staff
from ..database import get_db
from ..models import Invoice, User
from ..schemas import InvoiceCreate, InvoiceResponse, InvoiceStatusChange, PaymentCreate
from ..use_cases.invoice_workflow import (
    create_invoice_use_case,
    delete_invoice_use_case,
    get_invoice_or_404,
    record_payment_use_case,
    set_invoice_status_use_case,
)

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("", response_model=list[InvoiceResponse])
def list_invoices(
    order_id: Optional[UUID] = None,
    client_id: Optional[UUID] = None,
    status_filter: Optional[str] = None,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    query = db.query(Invoice)
    if order_id:
        query = query.filter(Invoice.order_id == order_id)
    if client_id:
        query = query.filter(Invoice.client_id == client_id)
    if status_filter:
        query = query.filter(Invoice.status == status_filter.upper())
    return query.order_by(Invoice.created_at.desc(), Invoice.id).all()


@router.get("/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(
    invoice_id: UUID,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return get_invoice_or_404(db=db, invoice_id=invoice_id)


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
def create_invoice(
    data: InvoiceCreate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return create_invoice_use_case(db=db, data=data)


@router.post("/{invoice_id}/payments", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
def record_payment(
    invoice_id: UUID,
    data: PaymentCreate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Register a payment and recompute the paid amount and status."""
    return record_payment_use_case(db=db, invoice_id=invoice_id, data=data)


@router.post("/{invoice_id}/status", response_model=InvoiceResponse)
def change_invoice_status(
    invoice_id: UUID,
    data: InvoiceStatusChange,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return set_invoice_status_use_case(db=db, invoice_id=invoice_id, status=data.status)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice(
    invoice_id: UUID,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    delete_invoice_use_case(db=db, invoice_id=invoice_id)
