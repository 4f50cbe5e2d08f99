"""Billing service - organization plan, seats and upgrade invoices."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from chronus.db.enums import InvoiceStatus, Plan, SubscriptionStatus
from chronus.db.models import BillingInvoice, Membership, Organization
from chronus.utils.normalization import normalize_enum_value

logger = logging.getLogger(__name__)

SEAT_LIMITS = {
    Plan.FREE.value: 3,
    Plan.STARTER.value: 5,
    Plan.PRO.value: 10,
    Plan.ENTERPRISE.value: 999,
}

COST_PER_SEAT = {
    Plan.FREE.value: 0.0,
    Plan.STARTER.value: 9.0,
    Plan.PRO.value: 15.0,
    Plan.ENTERPRISE.value: 29.0,
}

UPGRADE_AMOUNTS = {
    Plan.STARTER.value: 19.0,
    Plan.PRO.value: 45.0,
    Plan.ENTERPRISE.value: 290.0,
}


def get_subscription(db: Session, org: Organization) -> dict:
    seats_used = db.query(Membership).filter(Membership.organization_id == org.id).count()
    cost_per_seat = COST_PER_SEAT.get(org.plan, 0.0)
    return {
        "plan": org.plan,
        "status": org.subscription_status,
        "seats_used": seats_used,
        "seat_limit": SEAT_LIMITS.get(org.plan, SEAT_LIMITS[Plan.FREE.value]),
        "cost_per_seat": cost_per_seat,
        "monthly_cost": round(cost_per_seat * seats_used, 2),
    }


def list_billing_invoices(db: Session, org_id: UUID) -> list[BillingInvoice]:
    return db.query(BillingInvoice).filter(
        BillingInvoice.organization_id == org_id
    ).order_by(BillingInvoice.created_at.desc()).all()


def upgrade(db: Session, org: Organization, plan: str) -> Organization:
    """
    Switch the organization's plan and activate it.

    Paid plans record a PAID billing invoice for the upgrade amount.

    Raises:
        ValueError: unknown plan
    """
    plan = normalize_enum_value(plan)
    if not Plan.has_value(plan):
        raise ValueError(f"Invalid plan: {plan}")

    org.plan = plan
    org.subscription_status = SubscriptionStatus.ACTIVE.value
    amount = UPGRADE_AMOUNTS.get(plan)
    if amount:
        db.add(BillingInvoice(
            organization_id=org.id,
            plan=plan,
            amount=amount,
            status=InvoiceStatus.PAID.value,
        ))
    db.commit()
    db.refresh(org)
    logger.info("Organization %s moved to plan %s", org.id, plan)
    return org
