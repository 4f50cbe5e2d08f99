"""Pydantic schemas for ChronusDev team members (/users)."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from chronus.db.enums import Role


class TeamUserCreate(BaseModel):
    """Add a member; password is required only when the email is new."""
    email: str = Field(..., min_length=3, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    role: Role = Role.DEV
    default_pay_rate: float = Field(0.0, ge=0)
    password: str | None = Field(None, max_length=128)


class TeamUserUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    avatar_url: str | None = Field(None, max_length=500)
    password: str | None = Field(None, max_length=128)
    # Applied only when an ADMIN/MANAGER edits someone else
    role: Role | None = None
    default_pay_rate: float | None = Field(None, ge=0)


class TeamUserRead(BaseModel):
    id: UUID
    email: str
    name: str
    avatar_url: str | None
    role: str
    default_pay_rate: float
    is_active: bool
    last_login_at: datetime | None
