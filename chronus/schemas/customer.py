"""Pydantic schemas for CRM customers."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from chronus.db.enums import CustomerStatus, Plan


class CustomerCreate(BaseModel):
    """Request to create a customer."""
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    phone: str | None = Field(None, max_length=50)
    company: str | None = Field(None, max_length=255)
    plan: str = Plan.FREE.value
    status: str = CustomerStatus.TRIAL.value
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    monthly_revenue: float = Field(0.0, ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)


class CustomerUpdate(BaseModel):
    """Request to update a customer (partial)."""
    name: str | None = Field(None, min_length=1, max_length=255)
    email: str | None = Field(None, min_length=3, max_length=255)
    phone: str | None = None
    company: str | None = None
    plan: str | None = None
    status: str | None = None
    notes: str | None = None
    tags: list[str] | None = None
    monthly_revenue: float | None = Field(None, ge=0)
    currency: str | None = Field(None, min_length=3, max_length=3)


class CustomerRead(BaseModel):
    id: UUID
    name: str
    email: str
    phone: str | None
    company: str | None
    plan: str
    status: str
    notes: str | None
    tags: list[str]
    monthly_revenue: float
    currency: str
    chronusdev_client_id: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CustomerListItem(CustomerRead):
    open_tickets: int = 0
    pending_invoices: int = 0


class CustomerListResponse(BaseModel):
    items: list[CustomerListItem]
    total: int
    page: int
    per_page: int
    pages: int


class FromLeadRequest(BaseModel):
    plan: str | None = None


class FromLeadResponse(BaseModel):
    success: bool
    customer_id: UUID
