"""Task service - ChronusDev task management and CRM ticket relays."""

import logging
from collections import defaultdict
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from chronus.db.enums import ActivityType, TaskStatus
from chronus.db.models import Task, TaskAttachment, TaskComment, TimeLog, User
from chronus.schemas.task import AttachmentCreate, TaskCreate, TaskUpdate
from chronus.services import activity_service, notification_service, project_service, relay_service
from chronus.utils.datetime_utils import hours_between, utcnow

logger = logging.getLogger(__name__)

NOT_STARTED = {TaskStatus.BACKLOG.value, TaskStatus.TODO.value}


def list_tasks(
    db: Session,
    org_id: UUID,
    project_id: UUID | None = None,
    status: str | None = None,
    assigned_to: UUID | None = None,
    member_user_id: UUID | None = None,
) -> list[Task]:
    """
    List tasks in an org.

    member_user_id limits results to projects that user belongs to (DEV role).
    """
    query = db.query(Task).filter(Task.organization_id == org_id)
    if project_id:
        query = query.filter(Task.project_id == project_id)
    if status:
        query = query.filter(Task.status == status.upper())
    if assigned_to:
        query = query.filter(Task.assigned_to_user_id == assigned_to)
    if member_user_id:
        query = query.filter(Task.project_id.in_(project_service.member_project_ids(db, member_user_id)))
    return query.order_by(Task.created_at.desc()).all()


def get_time_stats(db: Session, task_ids: list[UUID]) -> tuple[dict, dict]:
    """
    Per-task logged hours (finished logs) and active workers (running timers).

    Returns:
        (hours by task id, list of {user_id, name, since} by task id)
    """
    if not task_ids:
        return {}, {}
    logs = db.query(TimeLog).options(joinedload(TimeLog.user)).filter(
        TimeLog.task_id.in_(task_ids)
    ).all()

    hours: dict = defaultdict(float)
    workers: dict = defaultdict(list)
    for log in logs:
        if log.end is None:
            workers[log.task_id].append({
                "user_id": log.user_id,
                "name": log.user.name if log.user else "",
                "since": log.start,
            })
        else:
            hours[log.task_id] += hours_between(log.start, log.end)
    return {task_id: round(total, 2) for task_id, total in hours.items()}, dict(workers)


def get_task(db: Session, task_id: UUID, org_id: UUID) -> Task | None:
    return db.query(Task).filter(Task.id == task_id, Task.organization_id == org_id).first()


def get_by_crm_ticket(db: Session, crm_ticket_id: str) -> Task | None:
    return db.query(Task).filter(Task.crm_ticket_id == str(crm_ticket_id)).first()


def _check_assignee(db: Session, project_id: UUID, assignee_id: UUID | None) -> None:
    if assignee_id and project_service.get_membership(db, project_id, assignee_id) is None:
        raise ValueError("Assignee is not a member of this project")


def create_task(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    data: TaskCreate,
    actor_name: str = "Someone",
) -> Task:
    """Create a new task in one of the org's projects."""
    if not project_service.get_project(db, data.project_id, org_id):
        raise ValueError("Project not found")
    _check_assignee(db, data.project_id, data.assigned_to_user_id)

    task = Task(
        organization_id=org_id,
        project_id=data.project_id,
        title=data.title.strip(),
        description=data.description,
        status=data.status.value,
        priority=data.priority.value,
        assigned_to_user_id=data.assigned_to_user_id,
        created_by_user_id=user_id,
        estimated_hours=data.estimated_hours,
        due_date=data.due_date,
        completed_at=utcnow() if data.status == TaskStatus.DONE else None,
    )
    db.add(task)
    db.flush()
    activity_service.log_activity(
        db,
        organization_id=org_id,
        activity_type=ActivityType.CREATED,
        description=f"Task \"{task.title}\" created",
        actor_user_id=user_id,
        entity_type="task",
        entity_id=task.id,
    )
    db.commit()
    db.refresh(task)

    if task.assigned_to_user_id and task.assigned_to_user_id != user_id:
        notification_service.notify_task_assigned(db, task, task.assigned_to_user_id, actor_name)
    return task


def can_edit(task: Task, user_id: UUID, is_manager: bool) -> bool:
    return is_manager or user_id in (task.assigned_to_user_id, task.created_by_user_id)


def _relay_status(task: Task, completed_by: str) -> None:
    if not task.crm_ticket_id:
        return
    if task.status == TaskStatus.DONE.value:
        relay_service.notify_crm("task-completed", {
            "ticketId": task.crm_ticket_id,
            "taskId": str(task.id),
            "completedBy": completed_by,
        })
    else:
        relay_service.notify_crm("task-status-changed", {
            "ticketId": task.crm_ticket_id,
            "taskId": str(task.id),
            "status": task.status,
        })


def update_task(
    db: Session,
    task: Task,
    user_id: UUID,
    data: TaskUpdate,
    actor_name: str = "Someone",
) -> Task:
    """
    Update task fields.

    Uses exclude_unset=True so only explicitly provided fields are updated.
    None values ARE applied to clear optional fields.

    Side effects: STATUS_CHANGE / ASSIGNMENT activities, CRM relay for
    linked tasks, and a notification for a new assignee.
    """
    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("assigned_to_user_id"):
        _check_assignee(db, task.project_id, update_data["assigned_to_user_id"])

    old_status = task.status
    old_assignee = task.assigned_to_user_id

    # Fields that can be cleared (set to None)
    clearable_fields = {"description", "assigned_to_user_id", "estimated_hours", "due_date"}

    for field, value in update_data.items():
        if value is None and field not in clearable_fields:
            continue
        if field in ("status", "priority"):
            value = value.value
        setattr(task, field, value)

    status_changed = task.status != old_status
    if status_changed:
        task.completed_at = utcnow() if task.status == TaskStatus.DONE.value else None
        activity_service.log_activity(
            db,
            organization_id=task.organization_id,
            activity_type=ActivityType.STATUS_CHANGE,
            description=f"Task \"{task.title}\": {old_status} -> {task.status}",
            actor_user_id=user_id,
            entity_type="task",
            entity_id=task.id,
            details={"from": old_status, "to": task.status},
        )
    assignee_changed = task.assigned_to_user_id != old_assignee
    if assignee_changed:
        activity_service.log_activity(
            db,
            organization_id=task.organization_id,
            activity_type=ActivityType.ASSIGNMENT,
            description=f"Task \"{task.title}\" reassigned",
            actor_user_id=user_id,
            entity_type="task",
            entity_id=task.id,
            details={
                "from": str(old_assignee) if old_assignee else None,
                "to": str(task.assigned_to_user_id) if task.assigned_to_user_id else None,
            },
        )
    db.commit()
    db.refresh(task)

    if status_changed:
        _relay_status(task, actor_name)
    if assignee_changed and task.assigned_to_user_id and task.assigned_to_user_id != user_id:
        notification_service.notify_task_assigned(db, task, task.assigned_to_user_id, actor_name)
    return task


def delete_task(db: Session, task: Task) -> None:
    db.delete(task)
    db.commit()


def start_if_idle(task: Task) -> bool:
    """Move a BACKLOG/TODO task to IN_PROGRESS. Caller commits."""
    if task.status in NOT_STARTED:
        task.status = TaskStatus.IN_PROGRESS.value
        return True
    return False


def assign_to_self(db: Session, task: Task, user_id: UUID) -> Task:
    """Take a task: assign it to the caller and start it."""
    old_assignee = task.assigned_to_user_id
    task.assigned_to_user_id = user_id
    started = start_if_idle(task)
    if old_assignee != user_id:
        activity_service.log_activity(
            db,
            organization_id=task.organization_id,
            activity_type=ActivityType.ASSIGNMENT,
            description=f"Task \"{task.title}\" taken",
            actor_user_id=user_id,
            entity_type="task",
            entity_id=task.id,
        )
    db.commit()
    db.refresh(task)
    if started:
        _relay_status(task, "")
    return task


def apply_crm_status(db: Session, task: Task, crm_status: str | None) -> bool:
    """Mirror a resolved/closed CRM ticket onto its task. Returns True when changed."""
    if (crm_status or "").upper() not in ("RESOLVED", "CLOSED"):
        return False
    if task.status == TaskStatus.DONE.value:
        return False
    old_status = task.status
    task.status = TaskStatus.DONE.value
    task.completed_at = utcnow()
    activity_service.log_activity(
        db,
        organization_id=task.organization_id,
        activity_type=ActivityType.STATUS_CHANGE,
        description=f"Task \"{task.title}\": {old_status} -> DONE (CRM ticket {crm_status.upper()})",
        entity_type="task",
        entity_id=task.id,
        details={"from": old_status, "to": task.status, "crm_status": crm_status},
    )
    db.commit()
    return True


# =============================================================================
# Comments and attachments
# =============================================================================


def list_comments(db: Session, task: Task) -> list[TaskComment]:
    return db.query(TaskComment).filter(
        TaskComment.task_id == task.id
    ).order_by(TaskComment.created_at).all()


def add_comment(db: Session, task: Task, user: User | None, content: str, relay: bool = True) -> TaskComment:
    comment = TaskComment(task_id=task.id, user_id=user.id if user else None, content=content)
    db.add(comment)
    db.flush()
    activity_service.log_activity(
        db,
        organization_id=task.organization_id,
        activity_type=ActivityType.COMMENT,
        description=f"Comment on task \"{task.title}\"",
        actor_user_id=user.id if user else None,
        entity_type="task",
        entity_id=task.id,
    )
    db.commit()
    db.refresh(comment)

    if relay and task.crm_ticket_id:
        relay_service.notify_crm("comment-added", {
            "ticketId": task.crm_ticket_id,
            "taskId": str(task.id),
            "content": content,
            "authorName": user.name if user else "ChronusDev",
        })
    return comment


def list_attachments(db: Session, task: Task) -> list[TaskAttachment]:
    return db.query(TaskAttachment).filter(
        TaskAttachment.task_id == task.id
    ).order_by(TaskAttachment.created_at).all()


def add_attachment(db: Session, task: Task, user_id: UUID | None, data: AttachmentCreate) -> TaskAttachment:
    attachment = TaskAttachment(
        task_id=task.id,
        name=data.name,
        url=data.url,
        size=data.size,
        uploaded_by_user_id=user_id,
    )
    db.add(attachment)
    db.commit()
    db.refresh(attachment)

    if task.crm_ticket_id:
        relay_service.notify_crm("attachment-added", {
            "ticketId": task.crm_ticket_id,
            "taskId": str(task.id),
            "name": attachment.name,
            "url": attachment.url,
        })
    return attachment
