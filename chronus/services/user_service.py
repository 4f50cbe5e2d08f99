"""
User service - ChronusDev team members of the current organization.

Removing a member deletes the membership. A user left with no membership
anywhere is soft-disabled: is_active is cleared and token_version bumped so
existing tokens stop working.
"""

import logging
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from chronus.core.security import hash_password
from chronus.db.enums import ActivityType, Role
from chronus.db.models import Membership, User
from chronus.schemas.user import TeamUserCreate, TeamUserUpdate
from chronus.services import activity_service, notification_service, org_service
from chronus.utils.normalization import normalize_email

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def serialize_member(membership: Membership) -> dict:
    user = membership.user
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "avatar_url": user.avatar_url,
        "role": membership.role,
        "default_pay_rate": membership.default_pay_rate,
        "is_active": user.is_active,
        "last_login_at": user.last_login_at,
    }


def list_members(db: Session, org_id: UUID) -> list[Membership]:
    return db.query(Membership).options(joinedload(Membership.user)).filter(
        Membership.organization_id == org_id
    ).order_by(Membership.created_at).all()


def _check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def create_member(db: Session, org_id: UUID, actor_user_id: UUID, data: TeamUserCreate) -> Membership:
    """
    Add a user to the organization, creating the account when the email is new.

    Raises:
        ValueError: new email without password, short password, or already a member
    """
    email = normalize_email(data.email)
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        if not data.password:
            raise ValueError("Password is required for a new user")
        _check_password(data.password)
        user = User(email=email, name=data.name.strip(), password_hash=hash_password(data.password))
        db.add(user)
        db.flush()
        logger.info("Created user %s for org %s", user.id, org_id)
    elif org_service.is_member(db, org_id, user.id):
        raise ValueError("User is already a member of this organization")
    else:
        user.is_active = True

    membership = Membership(
        user_id=user.id,
        organization_id=org_id,
        role=data.role.value,
        default_pay_rate=data.default_pay_rate,
    )
    db.add(membership)
    db.flush()
    activity_service.log_activity(
        db,
        organization_id=org_id,
        activity_type=ActivityType.CREATED,
        description=f"User {user.name} added to the organization",
        actor_user_id=actor_user_id,
        entity_type="user",
        entity_id=user.id,
    )
    db.commit()
    db.refresh(membership)

    org = org_service.get_org_by_id(db, org_id)
    notification_service.notify_member_added(db, org_id, user.id, org.name if org else "the organization")
    return membership


def update_member(
    db: Session,
    membership: Membership,
    actor_user_id: UUID,
    actor_can_manage: bool,
    data: TeamUserUpdate,
) -> Membership:
    """
    Update profile fields, and role/pay rate when a manager edits someone else.

    Raises:
        ValueError: password too short
    """
    user = membership.user
    updates = data.model_dump(exclude_unset=True)

    if updates.get("name"):
        user.name = updates["name"].strip()
    if "avatar_url" in updates:
        user.avatar_url = updates["avatar_url"]
    if updates.get("password"):
        _check_password(updates["password"])
        user.password_hash = hash_password(updates["password"])

    if actor_can_manage and user.id != actor_user_id:
        if updates.get("role") is not None:
            membership.role = Role(updates["role"]).value
        if updates.get("default_pay_rate") is not None:
            membership.default_pay_rate = updates["default_pay_rate"]

    activity_service.log_activity(
        db,
        organization_id=membership.organization_id,
        activity_type=ActivityType.UPDATED,
        description=f"User {user.name} updated",
        actor_user_id=actor_user_id,
        entity_type="user",
        entity_id=user.id,
    )
    db.commit()
    db.refresh(membership)
    return membership


def remove_member(db: Session, membership: Membership, actor_user_id: UUID) -> bool:
    """
    Remove a user from the organization.

    Returns True when the user had no other membership and was disabled.

    Raises:
        ValueError: removing yourself
    """
    user = membership.user
    if user.id == actor_user_id:
        raise ValueError("You cannot remove yourself")

    org_id = membership.organization_id
    db.delete(membership)
    db.flush()

    remaining = db.query(Membership).filter(Membership.user_id == user.id).count()
    disabled = remaining == 0
    if disabled:
        user.is_active = False
        user.token_version += 1

    activity_service.log_activity(
        db,
        organization_id=org_id,
        activity_type=ActivityType.DELETED,
        description=f"User {user.name} removed from the organization",
        actor_user_id=actor_user_id,
        entity_type="user",
        entity_id=user.id,
        details={"disabled": disabled},
    )
    db.commit()
    logger.info("Removed user %s from org %s (disabled=%s)", user.id, org_id, disabled)
    return disabled
