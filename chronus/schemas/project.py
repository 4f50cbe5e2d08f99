"""Pydantic schemas for ChronusDev projects and project members."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from chronus.db.enums import ProjectStatus, Role


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    client_id: UUID | None = None
    budget: float = Field(..., ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    status: ProjectStatus = ProjectStatus.ACTIVE


class ProjectUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    client_id: UUID | None = None
    budget: float | None = Field(None, ge=0)
    currency: str | None = Field(None, min_length=3, max_length=3)
    status: ProjectStatus | None = None


class ProjectRead(BaseModel):
    id: UUID
    name: str
    description: str | None
    client_id: UUID | None
    budget: float
    currency: str
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProjectMemberUpsert(BaseModel):
    user_id: UUID
    role: Role = Role.DEV
    pay_rate: float = Field(0, ge=0)
    bill_rate: float = Field(0, ge=0)


class ProjectMemberRead(BaseModel):
    user_id: UUID
    name: str
    email: str
    role: str
    pay_rate: float
    bill_rate: float
