"""Pydantic schemas for subscription billing."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class SubscriptionRead(BaseModel):
    plan: str
    status: str
    seats_used: int
    seat_limit: int
    cost_per_seat: float
    monthly_cost: float


class UpgradeRequest(BaseModel):
    plan: str


class BillingInvoiceRead(BaseModel):
    id: UUID
    plan: str
    amount: float
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}
