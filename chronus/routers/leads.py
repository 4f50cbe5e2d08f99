"""Leads router - pipeline CRUD, bulk import and conversion."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from chronus.core.deps import get_current_session, get_db
from chronus.schemas.auth import UserSession
from chronus.schemas.customer import CustomerRead
from chronus.schemas.lead import LeadBulkCreate, LeadCreate, LeadListResponse, LeadRead, LeadUpdate
from chronus.services import lead_service
from chronus.utils.normalization import parse_tags
from chronus.utils.pagination import PaginationParams, get_pagination, page_envelope, paginate_query

router = APIRouter()


@router.get("", response_model=LeadListResponse)
def list_leads(
    status: str | None = None,
    source: str | None = None,
    search: str | None = Query(None, max_length=100),
    tags: str | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    query = lead_service.list_leads(
        db, session.org_id, status=status, source=source, search=search, tags=parse_tags(tags),
    )
    leads, total = paginate_query(query, pagination)
    return page_envelope(leads, total, pagination)


@router.post("", response_model=LeadRead, status_code=201)
def create_lead(
    data: LeadCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return lead_service.create_lead(db, session.org_id, session.user_id, data, actor_name=session.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/bulk", status_code=201)
def bulk_create_leads(
    data: LeadBulkCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Import up to 500 leads at once."""
    try:
        created = lead_service.bulk_create_leads(db, session.org_id, data.leads)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"created": created}


@router.get("/{lead_id}", response_model=LeadRead)
def get_lead(
    lead_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    lead = lead_service.get_lead(db, lead_id, session.org_id)
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    return lead


@router.put("/{lead_id}", response_model=LeadRead)
def update_lead(
    lead_id: UUID,
    data: LeadUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    lead = lead_service.get_lead(db, lead_id, session.org_id)
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    try:
        return lead_service.update_lead(db, lead, session.user_id, data, actor_name=session.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{lead_id}", status_code=204)
def delete_lead(
    lead_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    lead = lead_service.get_lead(db, lead_id, session.org_id)
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    lead_service.delete_lead(db, lead)


@router.post("/{lead_id}/convert", response_model=CustomerRead)
def convert_lead(
    lead_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Create a customer from the lead and mark the lead WON."""
    lead = lead_service.get_lead(db, lead_id, session.org_id)
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    return lead_service.convert_to_customer(db, lead, session.user_id)
