"""Payouts router - payments to team members and their balances (ADMIN or MANAGER)."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from chronus.core.deps import get_db, require_roles
from chronus.db.enums import Role
from chronus.schemas.auth import UserSession
from chronus.schemas.payout import EarningsRow, PayoutCreate, PayoutRead, TeamMemberBalance, UserBalance
from chronus.services import org_service, payout_service

router = APIRouter()

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"

managers = require_roles([Role.ADMIN, Role.MANAGER])


@router.get("", response_model=list[PayoutRead])
def list_payouts(
    user_id: UUID | None = None,
    month: str | None = Query(None, pattern=MONTH_PATTERN),
    session: UserSession = Depends(managers),
    db: Session = Depends(get_db),
):
    payouts = payout_service.list_payouts(db, session.org_id, user_id, month)
    return [payout_service.serialize_payout(p) for p in payouts]


@router.post("", response_model=PayoutRead, status_code=201)
def create_payout(
    data: PayoutCreate,
    session: UserSession = Depends(managers),
    db: Session = Depends(get_db),
):
    try:
        payout = payout_service.create_payout(db, session.org_id, session.user_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return payout_service.serialize_payout(payout)


@router.get("/team-summary", response_model=list[TeamMemberBalance])
def team_summary(
    session: UserSession = Depends(managers),
    db: Session = Depends(get_db),
):
    """Hours, debt, paid and balance for every member."""
    return payout_service.team_summary(db, session.org_id)


@router.get("/team-summary/{user_id}/details", response_model=list[EarningsRow])
def earnings_details(
    user_id: UUID,
    month: str | None = Query(None, pattern=MONTH_PATTERN),
    session: UserSession = Depends(managers),
    db: Session = Depends(get_db),
):
    if not org_service.is_member(db, session.org_id, user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return payout_service.earnings_details(db, session.org_id, user_id, month)


@router.get("/user/{user_id}/balance", response_model=UserBalance)
def user_balance(
    user_id: UUID,
    session: UserSession = Depends(managers),
    db: Session = Depends(get_db),
):
    membership = org_service.get_membership(db, session.org_id, user_id)
    if not membership:
        raise HTTPException(status_code=404, detail="User not found")
    return payout_service.user_balance(db, session.org_id, membership)


@router.delete("/{payout_id}", status_code=204)
def delete_payout(
    payout_id: UUID,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    payout = payout_service.get_payout(db, payout_id, session.org_id)
    if not payout:
        raise HTTPException(status_code=404, detail="Payout not found")
    payout_service.delete_payout(db, payout, session.user_id)
