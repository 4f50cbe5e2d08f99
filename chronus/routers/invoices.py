"""Invoices router - invoices and quotes."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from chronus.core.deps import get_current_session, get_db
from chronus.schemas.auth import UserSession
from chronus.schemas.invoice import InvoiceCreate, InvoiceListResponse, InvoiceRead, InvoiceUpdate
from chronus.services import invoice_service
from chronus.utils.pagination import PaginationParams, get_pagination, page_envelope, paginate_query

router = APIRouter()


@router.get("", response_model=InvoiceListResponse)
def list_invoices(
    status: str | None = None,
    customer_id: UUID | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    query = invoice_service.list_invoices(db, session.org_id, status=status, customer_id=customer_id)
    invoices, total = paginate_query(query, pagination)
    return page_envelope(invoices, total, pagination)


@router.post("", response_model=InvoiceRead, status_code=201)
def create_invoice(
    data: InvoiceCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Create an invoice (or quote); totals are computed from the items."""
    try:
        return invoice_service.create_invoice(db, session.org_id, session.user_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{invoice_id}", response_model=InvoiceRead)
def get_invoice(
    invoice_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    invoice = invoice_service.get_invoice(db, invoice_id, session.org_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice


@router.put("/{invoice_id}", response_model=InvoiceRead)
def update_invoice(
    invoice_id: UUID,
    data: InvoiceUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    invoice = invoice_service.get_invoice(db, invoice_id, session.org_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    try:
        return invoice_service.update_invoice(db, invoice, session.user_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{invoice_id}", status_code=204)
def delete_invoice(
    invoice_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    invoice = invoice_service.get_invoice(db, invoice_id, session.org_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    invoice_service.delete_invoice(db, invoice)
