"""Organization service - tenant creation and lookups."""

import re
import uuid
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from chronus.db.enums import Plan, SubscriptionStatus
from chronus.db.models import Membership, Organization


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug[:80] or "org"


def create_org(
    db: Session,
    name: str,
    slug: str | None = None,
    crm_organization_id: str | None = None,
    commit: bool = True,
) -> Organization:
    """Create an organization with a unique slug."""
    base = slug or slugify(name)
    candidate = base
    while db.query(Organization).filter(Organization.slug == candidate).first():
        candidate = f"{base}-{uuid.uuid4().hex[:6]}"

    org = Organization(
        name=name,
        slug=candidate,
        plan=Plan.FREE.value,
        subscription_status=SubscriptionStatus.ACTIVE.value,
        crm_organization_id=crm_organization_id,
    )
    db.add(org)
    if commit:
        db.commit()
        db.refresh(org)
    else:
        db.flush()
    return org


def get_org_by_id(db: Session, org_id: UUID) -> Organization | None:
    return db.query(Organization).filter(Organization.id == org_id).first()


def resolve_linked_org(db: Session, crm_org_ref: str | None) -> Organization | None:
    """Find the local org linked to a CRM organization id (or sharing its id)."""
    if not crm_org_ref:
        return None
    try:
        as_uuid = UUID(str(crm_org_ref))
    except ValueError:
        as_uuid = None
    return db.query(Organization).filter(
        or_(Organization.crm_organization_id == str(crm_org_ref), Organization.id == as_uuid)
    ).first()


def link_crm(db: Session, org: Organization, crm_organization_id: str) -> Organization:
    """Link this org to a CRM tenant. The CRM id can only be linked once."""
    other = db.query(Organization).filter(
        Organization.crm_organization_id == crm_organization_id,
        Organization.id != org.id,
    ).first()
    if other:
        raise ValueError("CRM organization is already linked to another organization")
    org.crm_organization_id = crm_organization_id
    db.commit()
    db.refresh(org)
    return org


def list_active_orgs(db: Session) -> list[Organization]:
    return db.query(Organization).filter(
        Organization.subscription_status == SubscriptionStatus.ACTIVE.value
    ).all()


def member_ids_with_roles(db: Session, org_id: UUID, roles: list[str]) -> list[UUID]:
    return [
        m.user_id for m in db.query(Membership).filter(
            Membership.organization_id == org_id,
            Membership.role.in_(roles),
        ).all()
    ]


def get_membership(db: Session, org_id: UUID, user_id: UUID) -> Membership | None:
    return db.query(Membership).options(joinedload(Membership.user)).filter(
        Membership.organization_id == org_id,
        Membership.user_id == user_id,
    ).first()


def is_member(db: Session, org_id: UUID, user_id: UUID) -> bool:
    return get_membership(db, org_id, user_id) is not None


def list_members(db: Session, org_id: UUID) -> list[dict]:
    memberships = db.query(Membership).options(joinedload(Membership.user)).filter(
        Membership.organization_id == org_id
    ).order_by(Membership.created_at).all()
    return [
        {"user_id": m.user_id, "email": m.user.email, "name": m.user.name, "role": m.role}
        for m in memberships
    ]
