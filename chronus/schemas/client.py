"""Pydantic schemas for ChronusDev clients."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    contact_name: str | None = Field(None, max_length=255)


class ClientUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    email: str | None = Field(None, max_length=255)
    phone: str | None = None
    contact_name: str | None = None


class ClientRead(BaseModel):
    id: UUID
    name: str
    email: str
    phone: str | None
    contact_name: str | None
    crm_customer_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
