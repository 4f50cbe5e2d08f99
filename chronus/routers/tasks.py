"""Tasks router - tasks, self-assignment, comments and attachments."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from chronus.core.deps import can_manage, get_current_session, get_db, is_member_scoped, require_roles
from chronus.db.enums import Role
from chronus.db.models import User
from chronus.schemas.auth import UserSession
from chronus.schemas.task import (
    ActiveWorker,
    AttachmentCreate,
    AttachmentRead,
    TaskCommentCreate,
    TaskCommentRead,
    TaskCreate,
    TaskListItem,
    TaskRead,
    TaskUpdate,
)
from chronus.services import task_service

router = APIRouter()


def _get_task_or_404(db: Session, task_id: UUID, org_id: UUID):
    task = task_service.get_task(db, task_id, org_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.get("", response_model=list[TaskListItem])
def list_tasks(
    project_id: UUID | None = None,
    status: str | None = None,
    assigned_to: UUID | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """List tasks with logged hours and who is currently timing each one."""
    member_user_id = session.user_id if is_member_scoped(session) else None
    tasks = task_service.list_tasks(
        db, session.org_id, project_id=project_id, status=status,
        assigned_to=assigned_to, member_user_id=member_user_id,
    )
    hours, workers = task_service.get_time_stats(db, [t.id for t in tasks])

    items = []
    for task in tasks:
        item = TaskListItem.model_validate(task)
        item.total_hours = hours.get(task.id, 0.0)
        item.active_workers = [ActiveWorker(**w) for w in workers.get(task.id, [])]
        items.append(item)
    return items


@router.post("", response_model=TaskRead, status_code=201)
def create_task(
    data: TaskCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return task_service.create_task(db, session.org_id, session.user_id, data, actor_name=session.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{task_id}", response_model=TaskRead)
def get_task(
    task_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return _get_task_or_404(db, task_id, session.org_id)


@router.put("/{task_id}", response_model=TaskRead)
def update_task(
    task_id: UUID,
    data: TaskUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Update a task. Allowed for ADMIN/MANAGER, the assignee and the creator."""
    task = _get_task_or_404(db, task_id, session.org_id)
    if not task_service.can_edit(task, session.user_id, can_manage(session)):
        raise HTTPException(status_code=403, detail="Not allowed to edit this task")
    try:
        return task_service.update_task(db, task, session.user_id, data, actor_name=session.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{task_id}", status_code=204)
def delete_task(
    task_id: UUID,
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.MANAGER])),
    db: Session = Depends(get_db),
):
    task = _get_task_or_404(db, task_id, session.org_id)
    task_service.delete_task(db, task)


@router.post("/{task_id}/assign", response_model=TaskRead)
def assign_to_me(
    task_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Take the task and start it."""
    task = _get_task_or_404(db, task_id, session.org_id)
    return task_service.assign_to_self(db, task, session.user_id)


# =============================================================================
# Comments and attachments
# =============================================================================


@router.get("/{task_id}/comments", response_model=list[TaskCommentRead])
def list_comments(
    task_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    task = _get_task_or_404(db, task_id, session.org_id)
    return task_service.list_comments(db, task)


@router.post("/{task_id}/comments", response_model=TaskCommentRead, status_code=201)
def add_comment(
    task_id: UUID,
    data: TaskCommentCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    task = _get_task_or_404(db, task_id, session.org_id)
    user = db.get(User, session.user_id)
    return task_service.add_comment(db, task, user, data.content)


@router.get("/{task_id}/attachments", response_model=list[AttachmentRead])
def list_attachments(
    task_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    task = _get_task_or_404(db, task_id, session.org_id)
    return task_service.list_attachments(db, task)


@router.post("/{task_id}/attachments", response_model=AttachmentRead, status_code=201)
def add_attachment(
    task_id: UUID,
    data: AttachmentCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    task = _get_task_or_404(db, task_id, session.org_id)
    return task_service.add_attachment(db, task, session.user_id, data)
