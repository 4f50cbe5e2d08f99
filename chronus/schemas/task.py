"""Pydantic schemas for ChronusDev tasks."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from chronus.db.enums import Priority, TaskStatus


class TaskCreate(BaseModel):
    project_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    assigned_to_user_id: UUID | None = None
    estimated_hours: float | None = Field(None, ge=0)
    due_date: date | None = None


class TaskUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    status: TaskStatus | None = None
    priority: Priority | None = None
    assigned_to_user_id: UUID | None = None
    estimated_hours: float | None = Field(None, ge=0)
    due_date: date | None = None


class ActiveWorker(BaseModel):
    user_id: UUID
    name: str
    since: datetime


class TaskRead(BaseModel):
    id: UUID
    project_id: UUID
    title: str
    description: str | None
    status: str
    priority: str
    assigned_to_user_id: UUID | None
    created_by_user_id: UUID | None
    estimated_hours: float | None
    due_date: date | None
    crm_ticket_id: str | None
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TaskListItem(TaskRead):
    total_hours: float = 0.0
    active_workers: list[ActiveWorker] = Field(default_factory=list)


class TaskCommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


class TaskCommentRead(BaseModel):
    id: UUID
    user_id: UUID | None
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AttachmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=1000)
    size: int | None = Field(None, ge=0)


class AttachmentRead(BaseModel):
    id: UUID
    name: str
    url: str
    size: int | None
    uploaded_by_user_id: UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}
