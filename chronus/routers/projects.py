"""Projects router - projects and per-project members with pay/bill rates."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from chronus.core.deps import get_current_session, get_db, is_member_scoped, require_roles
from chronus.db.enums import Role
from chronus.schemas.auth import UserSession
from chronus.schemas.project import (
    ProjectCreate,
    ProjectMemberRead,
    ProjectMemberUpsert,
    ProjectRead,
    ProjectUpdate,
)
from chronus.services import project_service

router = APIRouter()


def _get_project_or_404(db: Session, project_id: UUID, org_id: UUID):
    project = project_service.get_project(db, project_id, org_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def _member_read(member) -> ProjectMemberRead:
    return ProjectMemberRead(
        user_id=member.user_id,
        name=member.user.name,
        email=member.user.email,
        role=member.role,
        pay_rate=member.pay_rate,
        bill_rate=member.bill_rate,
    )


@router.get("", response_model=list[ProjectRead])
def list_projects(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """List projects. DEV users only see projects they belong to."""
    member_user_id = session.user_id if is_member_scoped(session) else None
    return project_service.list_projects(db, session.org_id, member_user_id=member_user_id)


@router.post("", response_model=ProjectRead, status_code=201)
def create_project(
    data: ProjectCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return project_service.create_project(db, session.org_id, session.user_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{project_id}", response_model=ProjectRead)
def get_project(
    project_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return _get_project_or_404(db, project_id, session.org_id)


@router.put("/{project_id}", response_model=ProjectRead)
def update_project(
    project_id: UUID,
    data: ProjectUpdate,
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.MANAGER])),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, project_id, session.org_id)
    return project_service.update_project(db, project, data)


@router.delete("/{project_id}", status_code=204)
def delete_project(
    project_id: UUID,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, project_id, session.org_id)
    project_service.delete_project(db, project)


# =============================================================================
# Members
# =============================================================================


@router.get("/{project_id}/members", response_model=list[ProjectMemberRead])
def list_members(
    project_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, project_id, session.org_id)
    return [_member_read(m) for m in project_service.list_members(db, project)]


@router.post("/{project_id}/members", response_model=ProjectMemberRead)
def upsert_member(
    project_id: UUID,
    data: ProjectMemberUpsert,
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.MANAGER])),
    db: Session = Depends(get_db),
):
    """Add a member or update their role and rates."""
    project = _get_project_or_404(db, project_id, session.org_id)
    try:
        member = project_service.upsert_member(db, project, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _member_read(member)


@router.delete("/{project_id}/members/{user_id}", status_code=204)
def remove_member(
    project_id: UUID,
    user_id: UUID,
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.MANAGER])),
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(db, project_id, session.org_id)
    if not project_service.remove_member(db, project, user_id):
        raise HTTPException(status_code=404, detail="Member not found")
