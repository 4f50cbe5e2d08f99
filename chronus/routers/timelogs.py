"""Time logs router - timers, manual entries and notes."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from chronus.core.deps import can_manage, get_current_session, get_db, is_member_scoped
from chronus.db.models import User
from chronus.schemas.auth import UserSession
from chronus.schemas.timelog import NoteUpdate, TimeLogCreate, TimeLogRead, TimerStart, TimerStop
from chronus.services import timelog_service

router = APIRouter()


def _get_own_log_or_404(db: Session, session: UserSession, timelog_id: UUID):
    """Time log the caller may change: their own, or any as ADMIN/MANAGER."""
    log = timelog_service.get_timelog(db, timelog_id, session.org_id)
    if not log:
        raise HTTPException(status_code=404, detail="Time log not found")
    if log.user_id != session.user_id and not can_manage(session):
        raise HTTPException(status_code=403, detail="Not allowed to change this time log")
    return log


@router.get("/current", response_model=TimeLogRead | None)
def get_current_timer(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """The caller's running timer, or null."""
    log = timelog_service.get_running(db, session.user_id)
    return timelog_service.serialize_timelog(log) if log else None


@router.get("/active", response_model=list[TimeLogRead])
def list_active_timers(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Every running timer in the organization."""
    return [timelog_service.serialize_timelog(log) for log in timelog_service.list_active(db, session.org_id)]


@router.get("", response_model=list[TimeLogRead])
def list_timelogs(
    task_id: UUID | None = None,
    project_id: UUID | None = None,
    user_id: UUID | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Newest first. DEV users only see their own logs."""
    if is_member_scoped(session):
        user_id = session.user_id
    logs = timelog_service.list_timelogs(
        db, session.org_id, task_id=task_id, project_id=project_id, user_id=user_id,
    )
    return [timelog_service.serialize_timelog(log) for log in logs]


@router.post("", response_model=TimeLogRead, status_code=201)
def create_manual_entry(
    data: TimeLogCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        log = timelog_service.create_manual(db, session.org_id, session.user_id, data)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return timelog_service.serialize_timelog(log)


@router.post("/start", response_model=TimeLogRead, status_code=201)
def start_timer(
    data: TimerStart,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        log = timelog_service.start_timer(db, session.org_id, session.user_id, data.task_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return timelog_service.serialize_timelog(log)


@router.post("/stop", response_model=TimeLogRead)
def stop_timer(
    data: TimerStop,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    log = _get_own_log_or_404(db, session, data.timelog_id)
    user = db.get(User, session.user_id)
    try:
        log = timelog_service.stop_timer(db, log, user, data.note)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return timelog_service.serialize_timelog(log)


@router.put("/{timelog_id}/note", response_model=TimeLogRead)
def update_note(
    timelog_id: UUID,
    data: NoteUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    log = _get_own_log_or_404(db, session, timelog_id)
    return timelog_service.serialize_timelog(timelog_service.update_note(db, log, data.note))
