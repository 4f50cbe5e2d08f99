"""Pydantic schemas for synced AI-agent conversations."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ConversationRead(BaseModel):
    id: UUID
    session_id: str
    platform: str
    status: str
    customer_name: str | None
    customer_contact: str | None
    agent_code: str | None
    agent_name: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ConversationListResponse(BaseModel):
    items: list[ConversationRead]
    total: int
    page: int
    per_page: int
    pages: int


class MessageRead(BaseModel):
    id: str
    sender: str
    content: str
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class SendMessageRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=4000)


class SyncResult(BaseModel):
    success: bool
    synced_count: int
    conversations: int
