"""Standups router - daily yesterday/today/blockers entries."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from chronus.core.deps import get_current_session, get_db
from chronus.schemas.auth import UserSession
from chronus.schemas.standup import StandupCreate, StandupRead
from chronus.services import standup_service

router = APIRouter()


@router.get("", response_model=list[StandupRead])
def list_standups(
    day: date | None = Query(None, alias="date"),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    standups = standup_service.list_standups(db, session.org_id, day)
    return [standup_service.serialize_standup(s) for s in standups]


@router.post("", response_model=StandupRead, status_code=201)
def submit_standup(
    data: StandupCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Create or replace the caller's standup for today."""
    standup = standup_service.submit_standup(db, session.org_id, session.user_id, data)
    return standup_service.serialize_standup(standup)
