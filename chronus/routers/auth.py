"""Auth router - registration, login, logout and current user."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from chronus.core.deps import get_current_session, get_current_user, get_db
from chronus.core.rate_limit import AUTH_LIMIT, limiter
from chronus.db.enums import Role
from chronus.db.models import Organization, User
from chronus.schemas.auth import AuthResponse, LoginRequest, MeResponse, RegisterRequest, UserRead, UserSession
from chronus.services import auth_service

router = APIRouter()


def _auth_response(issued: auth_service.IssuedSession) -> AuthResponse:
    membership = issued.membership
    return AuthResponse(
        token=issued.token,
        user=UserRead.model_validate(issued.user),
        org_id=membership.organization_id if membership else None,
        role=Role(membership.role) if membership else None,
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
@limiter.limit(AUTH_LIMIT)
def register(request: Request, body: RegisterRequest, db: Session = Depends(get_db)):
    """Create an account, optionally with a new organization (caller becomes ADMIN)."""
    try:
        issued = auth_service.register(
            db,
            email=body.email,
            password=body.password,
            name=body.name,
            organization_name=body.organization_name,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _auth_response(issued)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(AUTH_LIMIT)
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)):
    try:
        issued = auth_service.login(db, body.email, body.password, body.organization_id)
    except auth_service.InvalidCredentials:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return _auth_response(issued)


@router.post("/logout")
def logout(
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Revoke the presented token. Later requests with it get 401."""
    payload = request.state.token_payload
    exp = payload.get("exp")
    expires_at = datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None
    auth_service.logout(db, user.id, payload.get("jti"), expires_at)
    return {"success": True}


@router.get("/me", response_model=MeResponse)
def get_me(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Current user, organization and role."""
    user = db.query(User).filter(User.id == session.user_id).first()
    org = db.query(Organization).filter(Organization.id == session.org_id).first()
    if not user or not org:
        raise HTTPException(status_code=404, detail="User not found")
    return MeResponse(
        user_id=user.id,
        email=user.email,
        name=user.name,
        avatar_url=user.avatar_url,
        org_id=org.id,
        org_name=org.name,
        org_slug=org.slug,
        org_plan=org.plan,
        role=session.role,
    )
