"""Pydantic schemas for ChronusDev payouts."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class PayoutCreate(BaseModel):
    user_id: UUID
    amount: float = Field(..., gt=0)
    month: str | None = Field(None, pattern=r"^\d{4}-\d{2}$")
    note: str | None = None


class PayoutRead(BaseModel):
    id: UUID
    user_id: UUID
    user_name: str | None = None
    amount: float
    month: str
    note: str | None
    created_by_user_id: UUID | None
    created_at: datetime


class TeamMemberBalance(BaseModel):
    user_id: UUID
    user_name: str
    default_pay_rate: float
    total_hours: float
    total_debt: float
    total_paid: float
    balance: float
    total_bill: float
    project_count: int


class UserBalance(TeamMemberBalance):
    payouts: list[PayoutRead]


class EarningsRow(BaseModel):
    """One (day, project, pay rate) group of finished time logs."""
    id: str
    date: str
    project: str
    rate: float
    hours: float
    amount: float
    task_count: int
    task_summary: str
