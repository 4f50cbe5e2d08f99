"""Organizations router - current org, members and the CRM link."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from chronus.core.deps import get_current_session, get_db, require_roles
from chronus.db.enums import Role
from chronus.db.models import User
from chronus.schemas.auth import UserSession
from chronus.schemas.organization import LinkCrmRequest, MemberCreate, MemberRead, OrganizationRead
from chronus.services import auth_service, org_service
from chronus.utils.normalization import normalize_email

router = APIRouter()


def _current_org(db: Session, session: UserSession):
    org = org_service.get_org_by_id(db, session.org_id)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


@router.get("/current", response_model=OrganizationRead)
def get_current_org(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return _current_org(db, session)


@router.get("/current/members", response_model=list[MemberRead])
def list_members(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return org_service.list_members(db, session.org_id)


@router.post("/current/members", response_model=MemberRead, status_code=201)
def add_member(
    data: MemberCreate,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    """Add an existing user to the organization by email."""
    user = db.query(User).filter(User.email == normalize_email(data.email)).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if org_service.is_member(db, session.org_id, user.id):
        raise HTTPException(status_code=400, detail="User is already a member")

    membership = auth_service.add_member(db, session.org_id, user.id, data.role)
    return MemberRead(user_id=user.id, email=user.email, name=user.name, role=membership.role)


@router.post("/current/link-crm", response_model=OrganizationRead)
def link_crm(
    data: LinkCrmRequest,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    """Link this organization to its ChronusCRM tenant."""
    org = _current_org(db, session)
    try:
        return org_service.link_crm(db, org, data.crm_organization_id.strip())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
