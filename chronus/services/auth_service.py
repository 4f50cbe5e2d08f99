"""Authentication service - registration, login and logout."""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from chronus.core.security import create_session_token, hash_password, verify_password
from chronus.db.enums import Role
from chronus.db.models import AuthSession, Membership, User
from chronus.services import org_service
from chronus.utils.datetime_utils import utcnow
from chronus.utils.normalization import normalize_email

logger = logging.getLogger(__name__)


class InvalidCredentials(Exception):
    pass


@dataclass
class IssuedSession:
    token: str
    user: User
    membership: Membership | None


def _issue(db: Session, user: User, membership: Membership | None) -> IssuedSession:
    token, jti, expires_at = create_session_token(
        user_id=user.id,
        org_id=membership.organization_id if membership else None,
        role=membership.role if membership else "",
        token_version=user.token_version,
        email=user.email,
        name=user.name,
    )
    db.add(AuthSession(user_id=user.id, jti=jti, expires_at=expires_at))
    db.commit()
    db.refresh(user)
    return IssuedSession(token=token, user=user, membership=membership)


def register(
    db: Session,
    email: str,
    password: str,
    name: str,
    organization_name: str | None = None,
) -> IssuedSession:
    """
    Register a user.

    With organization_name a new org is created and the user becomes its ADMIN;
    otherwise the user has no membership until an admin adds one.

    Raises:
        ValueError: Email already registered
    """
    email = normalize_email(email)
    if db.query(User).filter(User.email == email).first():
        raise ValueError("Email already registered")

    user = User(email=email, name=name.strip(), password_hash=hash_password(password))
    db.add(user)
    db.flush()

    membership = None
    if organization_name:
        org = org_service.create_org(db, organization_name, commit=False)
        membership = Membership(user_id=user.id, organization_id=org.id, role=Role.ADMIN.value)
        db.add(membership)
        db.flush()
    logger.info("Registered user %s", user.id)
    return _issue(db, user, membership)


def login(
    db: Session,
    email: str,
    password: str,
    organization_id: UUID | None = None,
) -> IssuedSession:
    """
    Verify credentials and issue a session token.

    Raises:
        InvalidCredentials: unknown email, wrong password, or disabled user
    """
    user = db.query(User).filter(User.email == normalize_email(email)).first()
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        raise InvalidCredentials("Invalid credentials")

    query = db.query(Membership).filter(Membership.user_id == user.id)
    if organization_id:
        query = query.filter(Membership.organization_id == organization_id)
    membership = query.order_by(Membership.created_at).first()

    user.last_login_at = utcnow()
    return _issue(db, user, membership)


def logout(db: Session, user_id: UUID, jti: str | None, expires_at=None) -> bool:
    """
    Revoke the session behind a token.

    Tokens issued elsewhere have no session row; a revoked row is recorded for them.
    """
    if not jti:
        return False
    session = db.query(AuthSession).filter(AuthSession.jti == jti).first()
    if not session:
        session = AuthSession(user_id=user_id, jti=jti, expires_at=expires_at or utcnow())
        db.add(session)
    session.revoked_at = utcnow()
    db.commit()
    return True


def add_member(db: Session, org_id: UUID, user_id: UUID, role: Role) -> Membership:
    membership = db.query(Membership).filter(
        Membership.organization_id == org_id,
        Membership.user_id == user_id,
    ).first()
    if membership:
        membership.role = role.value
    else:
        membership = Membership(organization_id=org_id, user_id=user_id, role=role.value)
        db.add(membership)
    db.commit()
    db.refresh(membership)
    return membership
