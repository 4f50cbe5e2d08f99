"""Customer service - CRM customer CRUD, 360 view and ChronusDev sync."""

import logging
from uuid import UUID

from sqlalchemy import String, cast, func, or_
from sqlalchemy.orm import Session

from chronus.db.enums import ActivityType, CustomerStatus, InvoiceStatus, Plan, TicketStatus
from chronus.db.models import Activity, Conversation, Customer, Invoice, Ticket
from chronus.schemas.customer import CustomerCreate, CustomerUpdate
from chronus.services import activity_service, relay_service
from chronus.utils.normalization import normalize_email, normalize_enum_value, normalize_phone

logger = logging.getLogger(__name__)


def _validate_enums(plan: str | None, status: str | None) -> None:
    if plan is not None and not Plan.has_value(plan):
        raise ValueError(f"Invalid plan: {plan}")
    if status is not None and not CustomerStatus.has_value(status):
        raise ValueError(f"Invalid status: {status}")


def tag_filter(column, tags: list[str]):
    """OR-match any tag inside a JSON list column (portable across SQLite/PostgreSQL)."""
    return or_(*[cast(column, String).like(f'%"{tag}"%') for tag in tags])


def list_customers(
    db: Session,
    org_id: UUID,
    status: str | None = None,
    plan: str | None = None,
    search: str | None = None,
    tags: list[str] | None = None,
):
    """Build the org-scoped customer query (caller paginates)."""
    query = db.query(Customer).filter(Customer.organization_id == org_id)
    if status:
        query = query.filter(Customer.status == normalize_enum_value(status))
    if plan:
        query = query.filter(Customer.plan == normalize_enum_value(plan))
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(or_(
            Customer.name.ilike(term),
            Customer.email.ilike(term),
            Customer.company.ilike(term),
        ))
    if tags:
        query = query.filter(tag_filter(Customer.tags, tags))
    return query.order_by(Customer.created_at.desc())


def get_list_counts(db: Session, customer_ids: list[UUID]) -> tuple[dict, dict]:
    """Open ticket and pending invoice counts per customer, in two grouped queries."""
    if not customer_ids:
        return {}, {}
    open_tickets = dict(
        db.query(Ticket.customer_id, func.count(Ticket.id))
        .filter(Ticket.customer_id.in_(customer_ids), Ticket.status == TicketStatus.OPEN.value)
        .group_by(Ticket.customer_id)
        .all()
    )
    pending_invoices = dict(
        db.query(Invoice.customer_id, func.count(Invoice.id))
        .filter(
            Invoice.customer_id.in_(customer_ids),
            Invoice.status.in_([InvoiceStatus.SENT.value, InvoiceStatus.OVERDUE.value]),
        )
        .group_by(Invoice.customer_id)
        .all()
    )
    return open_tickets, pending_invoices


def get_customer(db: Session, customer_id: UUID, org_id: UUID) -> Customer | None:
    """Get customer by ID (org-scoped)."""
    return db.query(Customer).filter(
        Customer.id == customer_id,
        Customer.organization_id == org_id,
    ).first()


def find_by_email(db: Session, org_id: UUID, email: str) -> Customer | None:
    return db.query(Customer).filter(
        Customer.organization_id == org_id,
        Customer.email == normalize_email(email),
    ).first()


def match_customer(db: Session, org_id: UUID, value: str) -> Customer | None:
    """Find a customer by exact email or phone."""
    email = normalize_email(value)
    phone = normalize_phone(value)
    conditions = [Customer.email == email]
    if phone:
        conditions.append(Customer.phone == phone)
    return db.query(Customer).filter(
        Customer.organization_id == org_id,
        or_(*conditions),
    ).first()


def create_customer(
    db: Session,
    org_id: UUID,
    user_id: UUID | None,
    data: CustomerCreate,
    sync: bool = True,
) -> Customer:
    """
    Create a customer and relay it to ChronusDev.

    Raises:
        ValueError: duplicate email or invalid plan/status
    """
    plan = normalize_enum_value(data.plan)
    status = normalize_enum_value(data.status)
    _validate_enums(plan, status)
    if find_by_email(db, org_id, data.email):
        raise ValueError("A customer with this email already exists")

    customer = Customer(
        organization_id=org_id,
        name=data.name.strip(),
        email=normalize_email(data.email),
        phone=normalize_phone(data.phone),
        company=data.company,
        plan=plan,
        status=status,
        notes=data.notes,
        tags=data.tags,
        monthly_revenue=data.monthly_revenue,
        currency=data.currency.upper(),
    )
    db.add(customer)
    db.flush()
    activity_service.log_activity(
        db,
        organization_id=org_id,
        activity_type=ActivityType.CREATED,
        description=f"Customer {customer.name} created",
        actor_user_id=user_id,
        entity_type="customer",
        entity_id=customer.id,
    )
    db.commit()
    db.refresh(customer)

    if sync:
        sync_customer_to_chronusdev(db, customer)
    return customer


def update_customer(
    db: Session,
    customer: Customer,
    user_id: UUID | None,
    data: CustomerUpdate,
) -> Customer:
    """Update customer fields (only those present in the request)."""
    updates = data.model_dump(exclude_unset=True)
    if "plan" in updates:
        updates["plan"] = normalize_enum_value(updates["plan"])
    if "status" in updates:
        updates["status"] = normalize_enum_value(updates["status"])
    _validate_enums(updates.get("plan"), updates.get("status"))

    if "email" in updates:
        email = normalize_email(updates["email"])
        other = find_by_email(db, customer.organization_id, email)
        if other and other.id != customer.id:
            raise ValueError("A customer with this email already exists")
        updates["email"] = email
    if "phone" in updates:
        updates["phone"] = normalize_phone(updates["phone"])

    for field, value in updates.items():
        if value is None and field in ("name", "email", "plan", "status", "tags", "monthly_revenue", "currency"):
            continue
        setattr(customer, field, value)

    activity_service.log_activity(
        db,
        organization_id=customer.organization_id,
        activity_type=ActivityType.UPDATED,
        description=f"Customer {customer.name} updated",
        actor_user_id=user_id,
        entity_type="customer",
        entity_id=customer.id,
        details={"fields": sorted(updates)},
    )
    db.commit()
    db.refresh(customer)

    if customer.chronusdev_client_id:
        relay_service.notify_chronusdev("customer-updated", customer_payload(customer))
    return customer


def delete_customer(db: Session, customer: Customer) -> None:
    db.delete(customer)
    db.commit()


def get_customer_360(db: Session, customer: Customer) -> dict:
    """Customer with tickets, invoices, activity and conversations."""
    org_id = customer.organization_id
    tickets = db.query(Ticket).filter(
        Ticket.organization_id == org_id, Ticket.customer_id == customer.id
    ).order_by(Ticket.created_at.desc()).all()
    invoices = db.query(Invoice).filter(
        Invoice.organization_id == org_id, Invoice.customer_id == customer.id
    ).order_by(Invoice.created_at.desc()).all()
    activities = db.query(Activity).filter(
        Activity.organization_id == org_id,
        Activity.entity_type == "customer",
        Activity.entity_id == customer.id,
    ).order_by(Activity.created_at.desc()).limit(50).all()
    conversation_filters = [Conversation.customer_id == customer.id]
    if customer.email:
        conversation_filters.append(Conversation.customer_contact == customer.email)
    if customer.phone:
        conversation_filters.append(Conversation.customer_contact == customer.phone)
    conversations = db.query(Conversation).filter(
        Conversation.organization_id == org_id,
        or_(*conversation_filters),
    ).order_by(Conversation.updated_at.desc()).all()

    return {
        "customer": customer,
        "tickets": tickets,
        "invoices": invoices,
        "activities": activities,
        "conversations": conversations,
        "stats": {
            "total_tickets": len(tickets),
            "open_tickets": sum(1 for t in tickets if t.status == TicketStatus.OPEN.value),
            "total_invoiced": round(sum(i.total for i in invoices), 2),
            "outstanding_balance": round(sum(i.balance for i in invoices if i.status != InvoiceStatus.PAID.value), 2),
        },
    }


# =============================================================================
# ChronusDev sync
# =============================================================================


def customer_payload(customer: Customer) -> dict:
    """Wire shape of a customer for ChronusDev relays."""
    return {
        "id": str(customer.id),
        "name": customer.name,
        "email": customer.email,
        "phone": customer.phone,
        "company": customer.company,
        "organizationId": str(customer.organization_id),
    }


def sync_customer_to_chronusdev(db: Session, customer: Customer) -> str | None:
    """Relay a customer to ChronusDev and remember the client id it answers with."""
    result = relay_service.notify_chronusdev("customer-created", customer_payload(customer))
    client_id = (result or {}).get("client_id")
    if client_id:
        customer.chronusdev_client_id = str(client_id)
        db.commit()
        logger.info("Customer %s linked to ChronusDev client %s", customer.id, client_id)
    return client_id


def list_for_chronusdev(db: Session, org_id: UUID) -> list[Customer]:
    return db.query(Customer).filter(
        Customer.organization_id == org_id
    ).order_by(Customer.name).all()
