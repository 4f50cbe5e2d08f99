"""
Dashboard service - headline numbers for the CRM and ChronusDev home pages.

CRM revenue is the sum of PAID invoice totals. ChronusDev team status marks a
member ACTIVE while they have a running timer.
"""

from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from chronus.db.enums import (
    CustomerStatus,
    InvoiceStatus,
    LeadStatus,
    ProjectStatus,
    TaskStatus,
    TicketStatus,
    TransactionType,
)
from chronus.db.models import (
    Activity,
    Client,
    Customer,
    Invoice,
    Lead,
    Membership,
    Project,
    Task,
    Ticket,
    TimeLog,
    Transaction,
)
from chronus.utils.datetime_utils import day_bounds, ensure_utc, utcnow

CRM_RECENT_LIMIT = 10
DEV_RECENT_LIMIT = 5
RECENT_LOGS_PER_MEMBER = 50

OPEN_TICKET_STATUSES = [TicketStatus.OPEN.value, TicketStatus.IN_PROGRESS.value]
PENDING_INVOICE_STATUSES = [InvoiceStatus.SENT.value, InvoiceStatus.OVERDUE.value]


def _count(db: Session, model, org_id: UUID, *criteria) -> int:
    return db.query(func.count(model.id)).filter(model.organization_id == org_id, *criteria).scalar() or 0


def crm_summary(db: Session, org_id: UUID) -> dict:
    """Counts, revenue and the latest tickets/invoices combined."""
    revenue = db.query(func.coalesce(func.sum(Invoice.total), 0.0)).filter(
        Invoice.organization_id == org_id,
        Invoice.status == InvoiceStatus.PAID.value,
    ).scalar()

    tickets = db.query(Ticket).filter(Ticket.organization_id == org_id).order_by(
        Ticket.created_at.desc()
    ).limit(CRM_RECENT_LIMIT).all()
    invoices = db.query(Invoice).filter(Invoice.organization_id == org_id).order_by(
        Invoice.created_at.desc()
    ).limit(CRM_RECENT_LIMIT).all()
    recent = [
        {"type": "ticket", "id": t.id, "title": t.title, "status": t.status, "created_at": t.created_at}
        for t in tickets
    ] + [
        {"type": "invoice", "id": i.id, "title": i.number, "status": i.status, "created_at": i.created_at}
        for i in invoices
    ]
    recent.sort(key=lambda item: ensure_utc(item["created_at"]), reverse=True)

    return {
        "counts": {
            "users": _count(db, Membership, org_id),
            "customers": _count(db, Customer, org_id, Customer.status == CustomerStatus.ACTIVE.value),
            "leads": _count(db, Lead, org_id, Lead.status != LeadStatus.WON.value),
            "open_tickets": _count(db, Ticket, org_id, Ticket.status.in_(OPEN_TICKET_STATUSES)),
            "pending_invoices": _count(db, Invoice, org_id, Invoice.status.in_(PENDING_INVOICE_STATUSES)),
        },
        "financials": {"total_revenue": round(revenue or 0.0, 2), "currency": "USD"},
        "recent_activity": recent[:CRM_RECENT_LIMIT],
    }


def dev_summary(db: Session, org_id: UUID) -> dict:
    totals = dict(
        db.query(Transaction.type, func.sum(Transaction.amount)).filter(
            Transaction.organization_id == org_id
        ).group_by(Transaction.type).all()
    )
    income = round(totals.get(TransactionType.INCOME.value) or 0.0, 2)
    expense = round(totals.get(TransactionType.EXPENSE.value) or 0.0, 2)

    activities = db.query(Activity).options(joinedload(Activity.user)).filter(
        Activity.organization_id == org_id
    ).order_by(Activity.created_at.desc()).limit(DEV_RECENT_LIMIT).all()

    return {
        "counts": {
            "active_projects": _count(db, Project, org_id, Project.status == ProjectStatus.ACTIVE.value),
            "open_tasks": _count(db, Task, org_id, Task.status != TaskStatus.DONE.value),
            "clients": _count(db, Client, org_id),
            "running_timers": _count(db, TimeLog, org_id, TimeLog.end.is_(None)),
        },
        "financials": {"income": income, "expense": expense, "net": round(income - expense, 2)},
        "recent_activity": [
            {
                "id": a.id,
                "type": a.type,
                "description": a.description,
                "user_name": a.user.name if a.user else "System",
                "created_at": a.created_at,
            }
            for a in activities
        ],
    }


def team_status(db: Session, org_id: UUID) -> list[dict]:
    """
    Live status of every member.

    hours_today counts today's logs, running ones up to now. Active members
    come first, then the most hours today.
    """
    now = utcnow()
    day_start, day_end = day_bounds(now.date())
    memberships = db.query(Membership).options(joinedload(Membership.user)).filter(
        Membership.organization_id == org_id
    ).all()

    rows = []
    for membership in memberships:
        user = membership.user
        logs = db.query(TimeLog).options(
            joinedload(TimeLog.task).joinedload(Task.project)
        ).filter(
            TimeLog.organization_id == org_id,
            TimeLog.user_id == user.id,
        ).order_by(TimeLog.start.desc()).limit(RECENT_LOGS_PER_MEMBER).all()

        running = next((log for log in logs if log.end is None), None)
        current_task = None
        if running is not None:
            current_task = {
                "title": running.task.title if running.task else "No task",
                "project": running.task.project.name if running.task else None,
                "started_at": running.start,
            }

        hours_today = 0.0
        last_active = None
        for log in logs:
            start = ensure_utc(log.start)
            end = ensure_utc(log.end) if log.end else now
            if last_active is None or end > last_active:
                last_active = end
            if day_start <= start < day_end:
                hours_today += max((end - start).total_seconds(), 0) / 3600

        rows.append({
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "avatar_url": user.avatar_url,
            "status": "ACTIVE" if running else "OFFLINE",
            "current_task": current_task,
            "last_active": last_active,
            "hours_today": round(hours_today, 2),
        })

    rows.sort(key=lambda r: (r["status"] != "ACTIVE", -r["hours_today"]))
    return rows
