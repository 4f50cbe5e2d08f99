"""Pydantic schemas for organization API keys."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ApiKeyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class ApiKeyRead(BaseModel):
    id: UUID
    name: str
    key_prefix: str
    last_used_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ApiKeyCreated(ApiKeyRead):
    """Returned once on creation; `key` is never retrievable again."""
    key: str
