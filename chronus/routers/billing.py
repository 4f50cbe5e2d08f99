"""Billing router - subscription plan, seats and upgrades."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from chronus.core.deps import get_current_session, get_db, require_roles
from chronus.db.enums import Role
from chronus.schemas.auth import UserSession
from chronus.schemas.billing import BillingInvoiceRead, SubscriptionRead, UpgradeRequest
from chronus.services import billing_service, org_service

router = APIRouter()


def _current_org(db: Session, session: UserSession):
    org = org_service.get_org_by_id(db, session.org_id)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


@router.get("/subscription", response_model=SubscriptionRead)
def get_subscription(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return billing_service.get_subscription(db, _current_org(db, session))


@router.get("/invoices", response_model=list[BillingInvoiceRead])
def list_billing_invoices(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return billing_service.list_billing_invoices(db, session.org_id)


@router.post("/upgrade", response_model=SubscriptionRead)
def upgrade(
    data: UpgradeRequest,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    org = _current_org(db, session)
    try:
        org = billing_service.upgrade(db, org, data.plan)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return billing_service.get_subscription(db, org)
