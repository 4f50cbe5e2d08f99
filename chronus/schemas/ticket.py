"""Pydantic schemas for CRM tickets."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from chronus.db.enums import Priority, TicketStatus


class TicketCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    status: str = TicketStatus.OPEN.value
    priority: str = Priority.MEDIUM.value
    customer_id: UUID | None = None
    assigned_to_user_id: UUID | None = None


class TicketUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    status: str | None = None
    priority: str | None = None
    customer_id: UUID | None = None
    assigned_to_user_id: UUID | None = None


class TicketRead(BaseModel):
    id: UUID
    title: str
    description: str | None
    status: str
    priority: str
    customer_id: UUID | None
    assigned_to_user_id: UUID | None
    created_by_user_id: UUID | None
    resolved_at: datetime | None
    chronusdev_task_id: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TicketListResponse(BaseModel):
    items: list[TicketRead]
    total: int
    page: int
    per_page: int
    pages: int


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


class CommentRead(BaseModel):
    id: UUID
    user_id: UUID | None
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}


class SendToChronusDevResponse(BaseModel):
    success: bool
    task_id: str | None
    project_id: str | None


class AttachmentCreate(BaseModel):
    """Attachment metadata; the file itself lives at url."""
    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=1000)
    type: str | None = Field(None, max_length=100)
    size: int | None = Field(None, ge=0)


class TicketAttachmentRead(BaseModel):
    id: UUID
    name: str
    url: str
    type: str
    size: int
    uploaded_by_user_id: UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}
