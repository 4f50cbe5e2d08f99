"""Pydantic schemas for organizations and memberships."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from chronus.db.enums import Role


class OrganizationRead(BaseModel):
    id: UUID
    name: str
    slug: str
    plan: str
    subscription_status: str
    crm_organization_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class LinkCrmRequest(BaseModel):
    crm_organization_id: str = Field(..., min_length=1, max_length=64)


class MemberCreate(BaseModel):
    """Add an existing user (by email) to the current organization."""
    email: str = Field(..., min_length=3, max_length=255)
    role: Role = Role.DEV


class MemberRead(BaseModel):
    user_id: UUID
    email: str
    name: str
    role: str
