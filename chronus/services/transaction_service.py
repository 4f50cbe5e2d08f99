"""Transaction service - income/expense ledger with totals."""

from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from chronus.db.enums import TransactionType
from chronus.db.models import Transaction
from chronus.schemas.transaction import TransactionCreate
from chronus.utils.datetime_utils import day_bounds, ensure_utc, utcnow

DEFAULT_CATEGORIES = [
    "Consulting",
    "Development",
    "Hosting",
    "Marketing",
    "Office",
    "Payroll",
    "Software",
    "Taxes",
    "Other",
]
ALL = "ALL"


def list_transactions(
    db: Session,
    org_id: UUID,
    start_date: date | None = None,
    end_date: date | None = None,
    type: str | None = None,
    category: str | None = None,
) -> dict:
    """Filtered ledger plus income/expense/net totals. "ALL" means no filter."""
    query = db.query(Transaction).filter(Transaction.organization_id == org_id)
    if start_date:
        query = query.filter(Transaction.date >= day_bounds(start_date)[0])
    if end_date:
        query = query.filter(Transaction.date < day_bounds(end_date)[1])
    if type and type.upper() != ALL:
        query = query.filter(Transaction.type == type.upper())
    if category and category != ALL:
        query = query.filter(Transaction.category == category)
    items = query.order_by(Transaction.date.desc()).all()

    total_income = sum(t.amount for t in items if t.type == TransactionType.INCOME.value)
    total_expense = sum(t.amount for t in items if t.type == TransactionType.EXPENSE.value)
    return {
        "items": items,
        "total_income": round(total_income, 2),
        "total_expense": round(total_expense, 2),
        "net": round(total_income - total_expense, 2),
    }


def get_transaction(db: Session, transaction_id: UUID, org_id: UUID) -> Transaction | None:
    return db.query(Transaction).filter(
        Transaction.id == transaction_id,
        Transaction.organization_id == org_id,
    ).first()


def create_transaction(db: Session, org_id: UUID, user_id: UUID, data: TransactionCreate) -> Transaction:
    transaction = Transaction(
        organization_id=org_id,
        project_id=data.project_id,
        type=data.type.value,
        category=data.category.strip(),
        amount=round(data.amount, 2),
        description=data.description,
        date=ensure_utc(data.date) if data.date else utcnow(),
        created_by_user_id=user_id,
    )
    db.add(transaction)
    db.commit()
    db.refresh(transaction)
    return transaction


def delete_transaction(db: Session, transaction: Transaction) -> None:
    db.delete(transaction)
    db.commit()


def list_categories(db: Session, org_id: UUID) -> list[str]:
    """Categories in use merged with the defaults, sorted."""
    used = {
        row[0] for row in db.query(Transaction.category).filter(
            Transaction.organization_id == org_id
        ).distinct().all()
    }
    return sorted(used | set(DEFAULT_CATEGORIES))
