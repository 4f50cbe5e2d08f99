"""Dashboard summary schemas for both products."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class CrmCounts(BaseModel):
    users: int
    customers: int
    leads: int
    open_tickets: int
    pending_invoices: int


class CrmFinancials(BaseModel):
    total_revenue: float
    currency: str = "USD"


class RecentItem(BaseModel):
    type: str  # "ticket" | "invoice"
    id: UUID
    title: str
    status: str
    created_at: datetime


class CrmSummary(BaseModel):
    counts: CrmCounts
    financials: CrmFinancials
    recent_activity: list[RecentItem]


class DevCounts(BaseModel):
    active_projects: int
    open_tasks: int
    clients: int
    running_timers: int


class DevFinancials(BaseModel):
    income: float
    expense: float
    net: float


class RecentActivity(BaseModel):
    id: UUID
    type: str
    description: str
    user_name: str
    created_at: datetime


class DevSummary(BaseModel):
    counts: DevCounts
    financials: DevFinancials
    recent_activity: list[RecentActivity]


class CurrentTask(BaseModel):
    title: str
    project: str | None
    started_at: datetime


class TeamMemberStatus(BaseModel):
    id: UUID
    name: str
    email: str
    avatar_url: str | None
    status: str  # "ACTIVE" while a timer runs, else "OFFLINE"
    current_task: CurrentTask | None
    last_active: datetime | None
    hours_today: float
