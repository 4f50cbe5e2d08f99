"""
Time log service - timers and manual entries.

A user has at most one running timer (end IS NULL). Pay and bill rates are
copied from the user's project membership when the log is created, so later
rate changes don't rewrite history.
"""

from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from chronus.db.enums import ActivityType
from chronus.db.models import Task, TimeLog, User
from chronus.schemas.timelog import TimeLogCreate
from chronus.services import activity_service, project_service, task_service
from chronus.utils.datetime_utils import ensure_utc, hours_between, utcnow

LIST_LIMIT = 100


def serialize_timelog(log: TimeLog) -> dict:
    hours = hours_between(log.start, log.end)
    return {
        "id": log.id,
        "task_id": log.task_id,
        "project_id": log.project_id,
        "user_id": log.user_id,
        "start": log.start,
        "end": log.end,
        "note": log.note,
        "pay_rate": log.pay_rate,
        "bill_rate": log.bill_rate,
        "hours": hours,
        "pay_cost": round(hours * log.pay_rate, 2),
        "bill_cost": round(hours * log.bill_rate, 2),
        "user_name": log.user.name if log.user else None,
        "task_title": log.task.title if log.task else None,
    }


def get_running(db: Session, user_id: UUID) -> TimeLog | None:
    return db.query(TimeLog).filter(TimeLog.user_id == user_id, TimeLog.end.is_(None)).first()


def list_active(db: Session, org_id: UUID) -> list[TimeLog]:
    return db.query(TimeLog).options(
        joinedload(TimeLog.user), joinedload(TimeLog.task)
    ).filter(
        TimeLog.organization_id == org_id,
        TimeLog.end.is_(None),
    ).order_by(TimeLog.start).all()


def get_timelog(db: Session, timelog_id: UUID, org_id: UUID) -> TimeLog | None:
    return db.query(TimeLog).filter(TimeLog.id == timelog_id, TimeLog.organization_id == org_id).first()


def list_timelogs(
    db: Session,
    org_id: UUID,
    task_id: UUID | None = None,
    project_id: UUID | None = None,
    user_id: UUID | None = None,
) -> list[TimeLog]:
    query = db.query(TimeLog).options(
        joinedload(TimeLog.user), joinedload(TimeLog.task)
    ).filter(TimeLog.organization_id == org_id)
    if task_id:
        query = query.filter(TimeLog.task_id == task_id)
    if project_id:
        query = query.filter(TimeLog.project_id == project_id)
    if user_id:
        query = query.filter(TimeLog.user_id == user_id)
    return query.order_by(TimeLog.start.desc()).limit(LIST_LIMIT).all()


def _rates(db: Session, project_id: UUID, user_id: UUID) -> tuple[float, float]:
    member = project_service.get_membership(db, project_id, user_id)
    if member is None:
        return 0.0, 0.0
    return member.pay_rate, member.bill_rate


def _get_task(db: Session, org_id: UUID, task_id: UUID) -> Task:
    task = task_service.get_task(db, task_id, org_id)
    if not task:
        raise LookupError("Task not found")
    return task


def create_manual(db: Session, org_id: UUID, user_id: UUID, data: TimeLogCreate) -> TimeLog:
    """
    Record a finished block of time.

    Raises:
        LookupError: task not in org
        ValueError: end is not after start
    """
    task = _get_task(db, org_id, data.task_id)
    start, end = ensure_utc(data.start), ensure_utc(data.end)
    if end <= start:
        raise ValueError("End must be after start")

    pay_rate, bill_rate = _rates(db, task.project_id, user_id)
    log = TimeLog(
        organization_id=org_id,
        task_id=task.id,
        project_id=task.project_id,
        user_id=user_id,
        start=start,
        end=end,
        note=data.note,
        pay_rate=pay_rate,
        bill_rate=bill_rate,
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    return log


def start_timer(db: Session, org_id: UUID, user_id: UUID, task_id: UUID) -> TimeLog:
    """
    Start a timer on a task.

    Starting also takes an unassigned task and moves BACKLOG/TODO to
    IN_PROGRESS.

    Raises:
        LookupError: task not in org
        ValueError: the user already has a running timer
    """
    task = _get_task(db, org_id, task_id)
    if get_running(db, user_id) is not None:
        raise ValueError("You already have a running timer")

    if task.assigned_to_user_id is None:
        task.assigned_to_user_id = user_id
    task_service.start_if_idle(task)

    pay_rate, bill_rate = _rates(db, task.project_id, user_id)
    log = TimeLog(
        organization_id=org_id,
        task_id=task.id,
        project_id=task.project_id,
        user_id=user_id,
        start=utcnow(),
        pay_rate=pay_rate,
        bill_rate=bill_rate,
    )
    db.add(log)
    db.flush()
    activity_service.log_activity(
        db,
        organization_id=org_id,
        activity_type=ActivityType.TIMELOG_STARTED,
        description=f"Timer started on \"{task.title}\"",
        actor_user_id=user_id,
        entity_type="task",
        entity_id=task.id,
        details={"timelog_id": str(log.id)},
    )
    db.commit()
    db.refresh(log)
    return log


def stop_timer(db: Session, log: TimeLog, user: User, note: str | None = None) -> TimeLog:
    """
    Stop a running timer. A note is also posted as a task comment.

    Raises:
        ValueError: timer already stopped
    """
    if log.end is not None:
        raise ValueError("Timer already stopped")

    log.end = utcnow()
    if note:
        log.note = note
    hours = hours_between(log.start, log.end)
    activity_service.log_activity(
        db,
        organization_id=log.organization_id,
        activity_type=ActivityType.TIMELOG_STOPPED,
        description=f"Timer stopped after {hours:.2f}h",
        actor_user_id=user.id,
        entity_type="task" if log.task_id else "project",
        entity_id=log.task_id or log.project_id,
        details={"timelog_id": str(log.id), "hours": hours},
    )
    db.commit()
    db.refresh(log)

    if note and log.task is not None:
        task_service.add_comment(db, log.task, user, note)
    return log


def update_note(db: Session, log: TimeLog, note: str | None) -> TimeLog:
    log.note = note
    db.commit()
    db.refresh(log)
    return log
