"""Pydantic schemas for third-party integrations."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class IntegrationUpsert(BaseModel):
    credentials: dict = Field(default_factory=dict)
    is_enabled: bool = True
    metadata: dict | None = None


class IntegrationRead(BaseModel):
    id: UUID
    provider: str
    is_enabled: bool
    credentials: dict  # masked
    metadata: dict | None
    updated_at: datetime
