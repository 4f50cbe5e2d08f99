"""Pydantic schemas for CRM invoices and quotes."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from chronus.db.enums import InvoiceType


class InvoiceItem(BaseModel):
    description: str = ""
    quantity: float = Field(1, ge=0)
    price: float = Field(0, ge=0)


class InvoiceCreate(BaseModel):
    type: InvoiceType = InvoiceType.INVOICE
    customer_id: UUID | None = None
    lead_id: UUID | None = None
    items: list[InvoiceItem] = Field(default_factory=list)
    amount: float | None = Field(None, ge=0)
    tax: float = Field(0, ge=0, le=100)  # percent
    discount: float = Field(0, ge=0, le=100)  # percent
    currency: str = Field("USD", min_length=3, max_length=3)
    due_date: datetime | None = None
    notes: str | None = None


class InvoiceUpdate(BaseModel):
    status: str | None = None
    due_date: datetime | None = None
    notes: str | None = None
    customer_id: UUID | None = None


class InvoiceRead(BaseModel):
    id: UUID
    number: str
    type: str
    customer_id: UUID | None
    lead_id: UUID | None
    items: list[InvoiceItem]
    subtotal: float
    tax: float
    discount: float
    total: float
    balance: float
    currency: str
    status: str
    due_date: datetime | None
    paid_at: datetime | None
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class InvoiceListResponse(BaseModel):
    items: list[InvoiceRead]
    total: int
    page: int
    per_page: int
    pages: int
