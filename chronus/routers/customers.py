"""Customers router - CRUD, 360 view, match and the ChronusDev listing."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from chronus.core.deps import get_current_session, get_db, verify_sync_key
from chronus.schemas.auth import UserSession
from chronus.schemas.conversation import ConversationRead
from chronus.schemas.customer import (
    CustomerCreate,
    CustomerListItem,
    CustomerListResponse,
    CustomerRead,
    CustomerUpdate,
    FromLeadRequest,
    FromLeadResponse,
)
from chronus.schemas.invoice import InvoiceRead
from chronus.schemas.ticket import TicketRead
from chronus.services import activity_service, customer_service, lead_service
from chronus.utils.normalization import parse_tags
from chronus.utils.pagination import PaginationParams, get_pagination, page_envelope, paginate_query

router = APIRouter()


@router.get("", response_model=CustomerListResponse)
def list_customers(
    status: str | None = None,
    plan: str | None = None,
    search: str | None = Query(None, max_length=100),
    tags: str | None = Query(None, description="Comma-separated tags, any match"),
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """List customers with open ticket and pending invoice counts."""
    query = customer_service.list_customers(
        db, session.org_id, status=status, plan=plan, search=search, tags=parse_tags(tags),
    )
    customers, total = paginate_query(query, pagination)
    open_tickets, pending_invoices = customer_service.get_list_counts(db, [c.id for c in customers])

    items = []
    for customer in customers:
        item = CustomerListItem.model_validate(customer)
        item.open_tickets = open_tickets.get(customer.id, 0)
        item.pending_invoices = pending_invoices.get(customer.id, 0)
        items.append(item)
    return page_envelope(items, total, pagination)


@router.get("/match", response_model=CustomerRead)
def match_customer(
    value: str = Query(..., min_length=1),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Find a customer by exact email or phone."""
    customer = customer_service.match_customer(db, session.org_id, value)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@router.get("/for-chronusdev", response_model=list[CustomerRead], dependencies=[Depends(verify_sync_key)])
def list_for_chronusdev(
    organization_id: UUID | None = None,
    db: Session = Depends(get_db),
):
    """Customers of one organization, for the ChronusDev client picker."""
    if not organization_id:
        raise HTTPException(status_code=400, detail="organization_id is required")
    return customer_service.list_for_chronusdev(db, organization_id)


@router.post("", response_model=CustomerRead, status_code=201)
def create_customer(
    data: CustomerCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return customer_service.create_customer(db, session.org_id, session.user_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/from-lead/{lead_id}", response_model=FromLeadResponse)
def create_from_lead(
    lead_id: UUID,
    data: FromLeadRequest | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Convert a lead: customer on the chosen plan, lead WON, its invoices moved over."""
    lead = lead_service.get_lead(db, lead_id, session.org_id)
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    try:
        customer = lead_service.convert_to_customer(db, lead, session.user_id, plan=data.plan if data else None)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "customer_id": customer.id}


@router.get("/{customer_id}", response_model=CustomerRead)
def get_customer(
    customer_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    customer = customer_service.get_customer(db, customer_id, session.org_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@router.get("/{customer_id}/360")
def get_customer_360(
    customer_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Customer with tickets, invoices, activity and conversations."""
    customer = customer_service.get_customer(db, customer_id, session.org_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")

    view = customer_service.get_customer_360(db, customer)
    return {
        "customer": CustomerRead.model_validate(view["customer"]),
        "tickets": [TicketRead.model_validate(t) for t in view["tickets"]],
        "invoices": [InvoiceRead.model_validate(i) for i in view["invoices"]],
        "activities": [activity_service.serialize_activity(a) for a in view["activities"]],
        "conversations": [ConversationRead.model_validate(c) for c in view["conversations"]],
        "stats": view["stats"],
    }


@router.put("/{customer_id}", response_model=CustomerRead)
def update_customer(
    customer_id: UUID,
    data: CustomerUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    customer = customer_service.get_customer(db, customer_id, session.org_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    try:
        return customer_service.update_customer(db, customer, session.user_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{customer_id}", status_code=204)
def delete_customer(
    customer_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    customer = customer_service.get_customer(db, customer_id, session.org_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    customer_service.delete_customer(db, customer)
