"""Pydantic schemas for CRM leads."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from chronus.db.enums import LeadSource, LeadStatus

MAX_BULK_LEADS = 500


class LeadCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    company: str | None = Field(None, max_length=255)
    value: float = Field(0.0, ge=0)
    status: str = LeadStatus.NEW.value
    source: str = LeadSource.MANUAL.value
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    assigned_to_user_id: UUID | None = None


class LeadUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    value: float | None = Field(None, ge=0)
    status: str | None = None
    source: str | None = None
    notes: str | None = None
    tags: list[str] | None = None
    assigned_to_user_id: UUID | None = None


class LeadBulkCreate(BaseModel):
    leads: list[LeadCreate]


class LeadRead(BaseModel):
    id: UUID
    name: str
    email: str | None
    phone: str | None
    company: str | None
    value: float
    status: str
    source: str
    notes: str | None
    tags: list[str]
    assigned_to_user_id: UUID | None
    customer_id: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class LeadListResponse(BaseModel):
    items: list[LeadRead]
    total: int
    page: int
    per_page: int
    pages: int
