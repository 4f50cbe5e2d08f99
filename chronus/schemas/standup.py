"""Pydantic schemas for daily standups."""

import datetime as dt
from uuid import UUID

from pydantic import BaseModel, Field


class StandupCreate(BaseModel):
    yesterday: str = Field(..., min_length=1)
    today: str = Field(..., min_length=1)
    blockers: str | None = None


class StandupRead(BaseModel):
    id: UUID
    user_id: UUID
    user_name: str | None = None
    date: dt.date
    yesterday: str
    today: str
    blockers: str | None
    created_at: dt.datetime
    updated_at: dt.datetime
