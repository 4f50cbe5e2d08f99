"""FastAPI dependencies for authentication, authorization, and database access."""

import logging
from typing import Generator
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy import or_
from sqlalchemy.orm import Session

from chronus.core.config import settings
from chronus.core.security import constant_time_equals, decode_session_token
from chronus.db.session import SessionLocal

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"
SYNC_KEY_HEADER = "X-Sync-Key"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_bearer_token(request: Request) -> str | None:
    """Extract the token from an `Authorization: Bearer <token>` header."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _provision_user(db: Session, payload: dict):
    """
    Create (or find by email) a local user for a token issued by the companion product.

    The token's org_id may be this database's organization id or the linked
    crm_organization_id. CRM AGENT maps to DEV.
    """
    from chronus.db.enums import Role
    from chronus.db.models import Membership, Organization, User
    from chronus.utils.normalization import normalize_email

    email = normalize_email(payload.get("email"))
    if not email:
        return None

    user = db.query(User).filter(User.email == email).first()
    if not user:
        user = User(email=email, name=payload.get("name") or email.split("@")[0])
        db.add(user)
        db.flush()
        logger.info("Provisioned user %s from external token", user.id)

    org_ref = payload.get("org_id")
    if org_ref:
        org = db.query(Organization).filter(
            or_(Organization.crm_organization_id == org_ref, Organization.id == _as_uuid(org_ref))
        ).first()
        if org:
            exists = db.query(Membership).filter(
                Membership.user_id == user.id,
                Membership.organization_id == org.id,
            ).first()
            if not exists:
                role = payload.get("role") or Role.DEV.value
                if role == Role.AGENT.value or not Role.has_value(role):
                    role = Role.DEV.value
                db.add(Membership(user_id=user.id, organization_id=org.id, role=role))
    db.commit()
    db.refresh(user)
    return user


def _as_uuid(value) -> UUID | None:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def get_current_user(
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Get authenticated user from the Bearer token.

    Validates:
    - Token exists, is valid and not expired
    - Session was not logged out
    - User exists (or is provisioned) and is active
    - Token version matches (for revocation support)

    Raises:
        HTTPException 401: Authentication failed
    """
    from chronus.db.models import AuthSession, User

    token = get_bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = decode_session_token(token)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid session")

    jti = payload.get("jti")
    if jti:
        auth_session = db.query(AuthSession).filter(AuthSession.jti == jti).first()
        if auth_session and auth_session.revoked_at is not None:
            raise HTTPException(status_code=401, detail="Session revoked")

    user = db.query(User).filter(User.id == _as_uuid(payload.get("sub"))).first()
    foreign_token = False
    if not user and settings.JIT_PROVISIONING_ENABLED:
        user = _provision_user(db, payload)
        foreign_token = True
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    # Token version check (revocation support)
    if not foreign_token and user.token_version != payload.get("token_version"):
        raise HTTPException(status_code=401, detail="Session revoked")

    request.state.token_payload = payload
    return user


def _session_from_api_key(request: Request, db: Session, raw_key: str):
    from chronus.db.enums import Role
    from chronus.schemas.auth import UserSession
    from chronus.services import api_key_service

    api_key = api_key_service.authenticate(db, raw_key)
    if not api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")
    creator = api_key_service.get_key_owner(db, api_key)
    if not creator or not creator.is_active:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return UserSession(
        user_id=creator.id,
        org_id=api_key.organization_id,
        role=Role.ADMIN,
        email=creator.email,
        name=creator.name,
        via_api_key=True,
    )


def get_current_session(
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Get full session context: user_id, org_id, role.

    This is the PRIMARY auth dependency for most endpoints.
    Accepts a Bearer session token or an X-API-Key header.

    Raises:
        HTTPException 401: Not authenticated
        HTTPException 403: No membership or unknown role
    """
    from chronus.db.enums import Role
    from chronus.db.models import Membership, Organization
    from chronus.schemas.auth import UserSession

    raw_key = request.headers.get(API_KEY_HEADER)
    if raw_key and not get_bearer_token(request):
        return _session_from_api_key(request, db, raw_key)

    user = get_current_user(request, db)
    payload = request.state.token_payload

    query = db.query(Membership).filter(Membership.user_id == user.id)
    org_ref = payload.get("org_id")
    if org_ref:
        query = query.join(Organization, Organization.id == Membership.organization_id).filter(
            or_(Organization.id == _as_uuid(org_ref), Organization.crm_organization_id == org_ref)
        )
    membership = query.first()

    if not membership:
        raise HTTPException(status_code=403, detail="No organization membership")

    # Validate role is a known enum value - return 403 not 500
    if not Role.has_value(membership.role):
        raise HTTPException(
            status_code=403,
            detail=f"Unknown role '{membership.role}'. Contact administrator."
        )

    return UserSession(
        user_id=user.id,
        org_id=membership.organization_id,
        role=Role(membership.role),
        email=user.email,
        name=user.name,
        jti=payload.get("jti"),
    )


def require_roles(allowed_roles: list):
    """
    Dependency factory for role-based authorization.

    SUPER_ADMIN passes every check.

    Usage:
        @router.post("/admin", dependencies=[Depends(require_roles([Role.ADMIN]))])
    """
    from chronus.db.enums import Role

    def dependency(request: Request, db: Session = Depends(get_db)):
        session = get_current_session(request, db)
        if session.role != Role.SUPER_ADMIN and session.role not in allowed_roles:
            raise HTTPException(
                status_code=403,
                detail=f"Role '{session.role.value}' not authorized for this action"
            )
        return session
    return dependency


def get_org_scope(
    request: Request,
    db: Session = Depends(get_db)
) -> UUID:
    """
    Get org_id for query scoping.

    Every list/detail query MUST filter by this value
    to ensure proper tenant isolation.
    """
    session = get_current_session(request, db)
    return session.org_id


def verify_sync_key(
    x_sync_key: str | None = Header(None),
    x_api_key: str | None = Header(None),
) -> None:
    """
    Verify the shared key on relay webhooks between CRM and ChronusDev.

    Raises:
        HTTPException 501: CRM_SYNC_KEY not configured
        HTTPException 401: Missing or wrong key
    """
    if not settings.CRM_SYNC_KEY:
        raise HTTPException(status_code=501, detail="CRM_SYNC_KEY not configured")
    if not constant_time_equals(x_sync_key or x_api_key, settings.CRM_SYNC_KEY):
        raise HTTPException(status_code=401, detail="Invalid sync key")


# =============================================================================
# Permission Check Helpers (use enum sets from db.enums)
# =============================================================================

def can_manage(session) -> bool:
    """Check if user can manage projects, assignments and payouts."""
    from chronus.db.enums import ROLES_CAN_MANAGE, Role
    return session.role == Role.SUPER_ADMIN or session.role in ROLES_CAN_MANAGE


def is_member_scoped(session) -> bool:
    """Check if user only sees projects they are a member of."""
    from chronus.db.enums import ROLES_MEMBER_SCOPED
    return session.role in ROLES_MEMBER_SCOPED
