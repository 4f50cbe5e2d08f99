"""Pydantic schemas for ChronusDev transactions."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from chronus.db.enums import TransactionType


class TransactionCreate(BaseModel):
    type: TransactionType
    category: str = Field(..., min_length=1, max_length=100)
    amount: float = Field(..., gt=0)
    description: str = Field(..., min_length=1)
    date: datetime | None = None
    project_id: UUID | None = None


class TransactionRead(BaseModel):
    id: UUID
    type: str
    category: str
    amount: float
    description: str
    date: datetime
    project_id: UUID | None
    created_by_user_id: UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TransactionListResponse(BaseModel):
    items: list[TransactionRead]
    total_income: float
    total_expense: float
    net: float
