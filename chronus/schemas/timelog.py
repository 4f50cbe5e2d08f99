"""Pydantic schemas for ChronusDev time logs."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class TimeLogCreate(BaseModel):
    """Manual entry."""
    task_id: UUID
    start: datetime
    end: datetime
    note: str | None = None


class TimerStart(BaseModel):
    task_id: UUID


class TimerStop(BaseModel):
    timelog_id: UUID
    note: str | None = Field(None, max_length=10000)


class NoteUpdate(BaseModel):
    note: str | None = Field(None, max_length=10000)


class TimeLogRead(BaseModel):
    id: UUID
    task_id: UUID | None
    project_id: UUID
    user_id: UUID
    start: datetime
    end: datetime | None
    note: str | None
    pay_rate: float
    bill_rate: float
    hours: float = 0.0
    pay_cost: float = 0.0
    bill_cost: float = 0.0
    user_name: str | None = None
    task_title: str | None = None
