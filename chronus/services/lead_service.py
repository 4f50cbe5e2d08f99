"""Lead service - CRM lead CRUD, bulk import and conversion to customer."""

from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from chronus.db.enums import ActivityType, CustomerStatus, LeadSource, LeadStatus, Plan
from chronus.db.models import Customer, Invoice, Lead
from chronus.schemas.lead import MAX_BULK_LEADS, LeadCreate, LeadUpdate
from chronus.services import activity_service, notification_service, org_service
from chronus.services.customer_service import find_by_email, tag_filter
from chronus.utils.normalization import normalize_email, normalize_enum_value, normalize_phone


def _clean_enums(status: str | None, source: str | None) -> tuple[str | None, str | None]:
    status = normalize_enum_value(status)
    source = normalize_enum_value(source)
    if status is not None and not LeadStatus.has_value(status):
        raise ValueError(f"Invalid status: {status}")
    if source is not None and not LeadSource.has_value(source):
        raise ValueError(f"Invalid source: {source}")
    return status, source


def _check_assignee(db: Session, org_id: UUID, user_id: UUID | None) -> None:
    if user_id and not org_service.is_member(db, org_id, user_id):
        raise ValueError("Assignee is not a member of this organization")


def list_leads(
    db: Session,
    org_id: UUID,
    status: str | None = None,
    source: str | None = None,
    search: str | None = None,
    tags: list[str] | None = None,
):
    query = db.query(Lead).filter(Lead.organization_id == org_id)
    if status:
        query = query.filter(Lead.status == normalize_enum_value(status))
    if source:
        query = query.filter(Lead.source == normalize_enum_value(source))
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(or_(Lead.name.ilike(term), Lead.email.ilike(term), Lead.company.ilike(term)))
    if tags:
        query = query.filter(tag_filter(Lead.tags, tags))
    return query.order_by(Lead.created_at.desc())


def get_lead(db: Session, lead_id: UUID, org_id: UUID) -> Lead | None:
    return db.query(Lead).filter(Lead.id == lead_id, Lead.organization_id == org_id).first()


def _build_lead(org_id: UUID, data: LeadCreate, source_override: LeadSource | None = None) -> Lead:
    status, source = _clean_enums(data.status, data.source)
    return Lead(
        organization_id=org_id,
        name=data.name.strip(),
        email=normalize_email(data.email),
        phone=normalize_phone(data.phone),
        company=data.company,
        value=data.value,
        status=status,
        source=source_override.value if source_override else source,
        notes=data.notes,
        tags=data.tags,
        assigned_to_user_id=data.assigned_to_user_id,
    )


def create_lead(
    db: Session,
    org_id: UUID,
    user_id: UUID | None,
    data: LeadCreate,
    actor_name: str = "Someone",
    source_override: LeadSource | None = None,
) -> Lead:
    _check_assignee(db, org_id, data.assigned_to_user_id)
    lead = _build_lead(org_id, data, source_override)
    db.add(lead)
    db.flush()
    activity_service.log_activity(
        db,
        organization_id=org_id,
        activity_type=ActivityType.CREATED,
        description=f"Lead {lead.name} created",
        actor_user_id=user_id,
        entity_type="lead",
        entity_id=lead.id,
        details={"source": lead.source},
    )
    db.commit()
    db.refresh(lead)
    notification_service.notify_lead_assigned(db, lead, lead.assigned_to_user_id, actor_name)
    return lead


def bulk_create_leads(db: Session, org_id: UUID, leads: list[LeadCreate]) -> int:
    """
    Insert up to MAX_BULK_LEADS leads in one transaction.

    Raises:
        ValueError: empty batch, batch too large, or an invalid row
    """
    if not leads:
        raise ValueError("No leads provided")
    if len(leads) > MAX_BULK_LEADS:
        raise ValueError(f"Maximum {MAX_BULK_LEADS} leads per request")
    for assignee_id in {data.assigned_to_user_id for data in leads}:
        _check_assignee(db, org_id, assignee_id)
    rows = [_build_lead(org_id, data) for data in leads]
    db.add_all(rows)
    db.commit()
    return len(rows)


def update_lead(
    db: Session,
    lead: Lead,
    user_id: UUID | None,
    data: LeadUpdate,
    actor_name: str = "Someone",
) -> Lead:
    updates = data.model_dump(exclude_unset=True)
    status, source = _clean_enums(updates.get("status"), updates.get("source"))
    if "status" in updates:
        updates["status"] = status
    if "source" in updates:
        updates["source"] = source
    if "email" in updates:
        updates["email"] = normalize_email(updates["email"])
    if "phone" in updates:
        updates["phone"] = normalize_phone(updates["phone"])

    old_assignee = lead.assigned_to_user_id
    if "assigned_to_user_id" in updates:
        _check_assignee(db, lead.organization_id, updates["assigned_to_user_id"])

    old_status = lead.status
    for field, value in updates.items():
        if value is None and field in ("name", "status", "source", "tags", "value"):
            continue
        setattr(lead, field, value)

    if lead.status != old_status:
        activity_service.log_activity(
            db,
            organization_id=lead.organization_id,
            activity_type=ActivityType.STATUS_CHANGE,
            description=f"Lead {lead.name}: {old_status} -> {lead.status}",
            actor_user_id=user_id,
            entity_type="lead",
            entity_id=lead.id,
            details={"from": old_status, "to": lead.status},
        )
    db.commit()
    db.refresh(lead)

    if lead.assigned_to_user_id and lead.assigned_to_user_id != old_assignee:
        notification_service.notify_lead_assigned(db, lead, lead.assigned_to_user_id, actor_name)
    return lead


def delete_lead(db: Session, lead: Lead) -> None:
    db.delete(lead)
    db.commit()


def convert_to_customer(
    db: Session,
    lead: Lead,
    user_id: UUID | None,
    plan: str | None = None,
    commit: bool = True,
) -> Customer:
    """
    Turn a lead into a customer and mark it WON.

    Reuses an existing customer with the same email; leads without email get
    a placeholder address so the customer row stays valid. Invoices and
    quotes drafted for the lead move to the customer.

    Raises:
        ValueError: unknown plan
    """
    plan = normalize_enum_value(plan) or Plan.FREE.value
    if not Plan.has_value(plan):
        raise ValueError(f"Invalid plan: {plan}")

    if lead.customer_id:
        existing = db.query(Customer).filter(Customer.id == lead.customer_id).first()
        if existing:
            return existing

    email = lead.email or f"lead-{lead.id}@leads.local"
    customer = find_by_email(db, lead.organization_id, email)
    if not customer:
        customer = Customer(
            organization_id=lead.organization_id,
            name=lead.name,
            email=email,
            phone=lead.phone,
            company=lead.company,
            plan=plan,
            status=CustomerStatus.ACTIVE.value,
            tags=list(lead.tags or []),
            notes=lead.notes,
        )
        db.add(customer)
        db.flush()

    lead.customer_id = customer.id
    lead.status = LeadStatus.WON.value
    moved = db.query(Invoice).filter(
        Invoice.organization_id == lead.organization_id,
        Invoice.lead_id == lead.id,
        Invoice.customer_id.is_(None),
    ).update({Invoice.customer_id: customer.id}, synchronize_session="fetch")
    activity_service.log_activity(
        db,
        organization_id=lead.organization_id,
        activity_type=ActivityType.STATUS_CHANGE,
        description=f"Lead {lead.name} converted to customer",
        actor_user_id=user_id,
        entity_type="customer",
        entity_id=customer.id,
        details={"lead_id": str(lead.id), "invoices_moved": moved},
    )
    if not commit:
        db.flush()
        return customer
    db.commit()
    db.refresh(customer)
    notification_service.notify_lead_converted(db, lead, customer, user_id)
    return customer
