"""Invoice service - invoices/quotes with numbering, totals and payment handling."""

from datetime import timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from chronus.db.enums import ActivityType, InvoiceStatus, InvoiceType, LeadStatus
from chronus.db.models import Invoice, Lead
from chronus.schemas.invoice import InvoiceCreate, InvoiceUpdate
from chronus.services import activity_service
from chronus.utils.datetime_utils import utcnow
from chronus.utils.normalization import normalize_enum_value

DEFAULT_DUE_DAYS = 30
NUMBER_PREFIX = {InvoiceType.INVOICE: "INV", InvoiceType.QUOTE: "QT"}


def _number_suffix(number: str) -> int:
    _, _, digits = number.rpartition("-")
    return int(digits) if digits.isdigit() else 0


def next_number(db: Session, org_id: UUID, invoice_type: InvoiceType) -> str:
    """
    INV-000001 style number, one past the highest suffix in the org.

    Invoices and quotes share the sequence.
    """
    numbers = db.query(Invoice.number).filter(Invoice.organization_id == org_id).all()
    highest = max((_number_suffix(number) for (number,) in numbers), default=0)
    return f"{NUMBER_PREFIX[invoice_type]}-{highest + 1:06d}"


def compute_totals(items: list[dict], amount: float | None, tax: float, discount: float) -> dict:
    """
    subtotal from items (quantity * price), falling back to amount.

    tax and discount are percentages of the subtotal.

    Raises:
        ValueError: neither items nor amount given
    """
    if items:
        subtotal = sum(float(i.get("quantity", 0)) * float(i.get("price", 0)) for i in items)
    elif amount is not None:
        subtotal = float(amount)
    else:
        raise ValueError("Either items or amount is required")

    tax_amount = subtotal * (tax / 100)
    discount_amount = subtotal * (discount / 100)
    total = round(subtotal + tax_amount - discount_amount, 2)
    return {"subtotal": round(subtotal, 2), "total": total, "balance": total}


def list_invoices(db: Session, org_id: UUID, status: str | None = None, customer_id: UUID | None = None):
    query = db.query(Invoice).filter(Invoice.organization_id == org_id)
    if status:
        query = query.filter(Invoice.status == normalize_enum_value(status))
    if customer_id:
        query = query.filter(Invoice.customer_id == customer_id)
    return query.order_by(Invoice.created_at.desc())


def get_invoice(db: Session, invoice_id: UUID, org_id: UUID) -> Invoice | None:
    return db.query(Invoice).filter(
        Invoice.id == invoice_id,
        Invoice.organization_id == org_id,
    ).first()


def create_invoice(db: Session, org_id: UUID, user_id: UUID | None, data: InvoiceCreate) -> Invoice:
    items = [item.model_dump() for item in data.items]
    totals = compute_totals(items, data.amount, data.tax, data.discount)

    if data.customer_id:
        from chronus.services.customer_service import get_customer
        if not get_customer(db, data.customer_id, org_id):
            raise ValueError("Customer not found")
    if data.lead_id:
        from chronus.services.lead_service import get_lead
        if not get_lead(db, data.lead_id, org_id):
            raise ValueError("Lead not found")

    invoice = Invoice(
        organization_id=org_id,
        number=next_number(db, org_id, data.type),
        type=data.type.value,
        customer_id=data.customer_id,
        lead_id=data.lead_id,
        items=items,
        tax=data.tax,
        discount=data.discount,
        currency=data.currency.upper(),
        status=InvoiceStatus.DRAFT.value,
        due_date=data.due_date or utcnow() + timedelta(days=DEFAULT_DUE_DAYS),
        notes=data.notes,
        **totals,
    )
    db.add(invoice)
    db.flush()
    if invoice.customer_id:
        activity_service.log_activity(
            db,
            organization_id=org_id,
            activity_type=ActivityType.CREATED,
            description=f"{invoice.number} created for {invoice.total:.2f} {invoice.currency}",
            actor_user_id=user_id,
            entity_type="customer",
            entity_id=invoice.customer_id,
            details={"invoice_id": str(invoice.id)},
        )
    db.commit()
    db.refresh(invoice)
    return invoice


def update_invoice(db: Session, invoice: Invoice, user_id: UUID | None, data: InvoiceUpdate) -> Invoice:
    """
    Update an invoice.

    Moving to PAID sets paid_at, zeroes the balance and converts a linked
    lead into a customer.
    """
    updates = data.model_dump(exclude_unset=True)
    if updates.get("customer_id"):
        from chronus.services.customer_service import get_customer
        if not get_customer(db, updates["customer_id"], invoice.organization_id):
            raise ValueError("Customer not found")
    if "status" in updates:
        status = normalize_enum_value(updates["status"])
        if not InvoiceStatus.has_value(status):
            raise ValueError(f"Invalid status: {status}")
        updates["status"] = status

    was_paid = invoice.status == InvoiceStatus.PAID.value
    for field, value in updates.items():
        if value is None and field == "status":
            continue
        setattr(invoice, field, value)

    if invoice.status == InvoiceStatus.PAID.value and not was_paid:
        invoice.paid_at = utcnow()
        invoice.balance = 0.0
        _convert_linked_lead(db, invoice, user_id)

    db.commit()
    db.refresh(invoice)
    return invoice


def _convert_linked_lead(db: Session, invoice: Invoice, user_id: UUID | None) -> None:
    if not invoice.lead_id:
        return
    lead = db.query(Lead).filter(
        Lead.id == invoice.lead_id,
        Lead.organization_id == invoice.organization_id,
    ).first()
    if not lead or (lead.status == LeadStatus.WON.value and lead.customer_id):
        return

    from chronus.services.lead_service import convert_to_customer
    customer = convert_to_customer(db, lead, user_id, commit=False)
    if not invoice.customer_id:
        invoice.customer_id = customer.id


def delete_invoice(db: Session, invoice: Invoice) -> None:
    db.delete(invoice)
    db.commit()
