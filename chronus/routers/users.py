"""Users router - team members of the current ChronusDev organization."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from chronus.core.deps import can_manage, get_current_session, get_db, require_roles
from chronus.db.enums import Role
from chronus.schemas.auth import UserSession
from chronus.schemas.payout import UserBalance
from chronus.schemas.user import TeamUserCreate, TeamUserRead, TeamUserUpdate
from chronus.services import org_service, payout_service, user_service

router = APIRouter()


def _get_member_or_404(db: Session, org_id: UUID, user_id: UUID):
    membership = org_service.get_membership(db, org_id, user_id)
    if not membership:
        raise HTTPException(status_code=404, detail="User not found")
    return membership


def _require_self_or_manager(session: UserSession, user_id: UUID) -> None:
    if session.user_id != user_id and not can_manage(session):
        raise HTTPException(status_code=403, detail="Not allowed to access this user")


@router.get("", response_model=list[TeamUserRead])
def list_users(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return [user_service.serialize_member(m) for m in user_service.list_members(db, session.org_id)]


@router.post("", response_model=TeamUserRead, status_code=201)
def create_user(
    data: TeamUserCreate,
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.MANAGER])),
    db: Session = Depends(get_db),
):
    """Add a member, creating the account when the email is unknown."""
    try:
        membership = user_service.create_member(db, session.org_id, session.user_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return user_service.serialize_member(membership)


@router.get("/{user_id}", response_model=TeamUserRead)
def get_user(
    user_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return user_service.serialize_member(_get_member_or_404(db, session.org_id, user_id))


@router.get("/{user_id}/balance", response_model=UserBalance)
def get_user_balance(
    user_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Hours, pay owed and payouts. Members may read their own balance."""
    _require_self_or_manager(session, user_id)
    membership = _get_member_or_404(db, session.org_id, user_id)
    return payout_service.user_balance(db, session.org_id, membership)


@router.put("/{user_id}", response_model=TeamUserRead)
def update_user(
    user_id: UUID,
    data: TeamUserUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    _require_self_or_manager(session, user_id)
    membership = _get_member_or_404(db, session.org_id, user_id)
    try:
        membership = user_service.update_member(db, membership, session.user_id, can_manage(session), data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return user_service.serialize_member(membership)


@router.delete("/{user_id}", status_code=204)
def delete_user(
    user_id: UUID,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    """Remove the member; a user with no organization left is disabled."""
    membership = _get_member_or_404(db, session.org_id, user_id)
    try:
        user_service.remove_member(db, membership, session.user_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
