"""Transactions router - income/expense ledger."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from chronus.core.deps import get_current_session, get_db
from chronus.schemas.auth import UserSession
from chronus.schemas.transaction import TransactionCreate, TransactionListResponse, TransactionRead
from chronus.services import transaction_service

router = APIRouter()


@router.get("", response_model=TransactionListResponse)
def list_transactions(
    start_date: date | None = None,
    end_date: date | None = None,
    type: str | None = None,
    category: str | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Filtered ledger with totals. Pass ALL (or nothing) to skip a filter."""
    return transaction_service.list_transactions(
        db, session.org_id, start_date=start_date, end_date=end_date, type=type, category=category,
    )


@router.get("/categories", response_model=list[str])
def list_categories(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return transaction_service.list_categories(db, session.org_id)


@router.post("", response_model=TransactionRead, status_code=201)
def create_transaction(
    data: TransactionCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return transaction_service.create_transaction(db, session.org_id, session.user_id, data)


@router.delete("/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    transaction = transaction_service.get_transaction(db, transaction_id, session.org_id)
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    transaction_service.delete_transaction(db, transaction)
