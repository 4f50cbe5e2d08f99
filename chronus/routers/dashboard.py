"""Dashboard routers - one per product."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from chronus.core.deps import get_current_session, get_db, require_roles
from chronus.db.enums import Role
from chronus.schemas.auth import UserSession
from chronus.schemas.dashboard import CrmSummary, DevSummary, TeamMemberStatus
from chronus.services import dashboard_service

crm_router = APIRouter()
dev_router = APIRouter()

managers = require_roles([Role.ADMIN, Role.MANAGER])


@crm_router.get("/summary", response_model=CrmSummary)
def crm_summary(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return dashboard_service.crm_summary(db, session.org_id)


@dev_router.get("/summary", response_model=DevSummary)
def dev_summary(
    session: UserSession = Depends(managers),
    db: Session = Depends(get_db),
):
    """Project/task counts, income vs expense and the latest activity."""
    return dashboard_service.dev_summary(db, session.org_id)


@dev_router.get("/team-status", response_model=list[TeamMemberStatus])
def team_status(
    session: UserSession = Depends(managers),
    db: Session = Depends(get_db),
):
    return dashboard_service.team_status(db, session.org_id)
