"""
Payout service - payments made to team members and what they are owed.

Debt is the pay cost of a member's finished time logs (hours * pay_rate
snapshot); balance is debt minus payouts. Hours are summed unrounded and
rounded to 2 decimals only in the result.
"""

from collections import defaultdict
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from chronus.db.enums import ActivityType
from chronus.db.models import Membership, Payout, Project, TimeLog
from chronus.schemas.payout import PayoutCreate
from chronus.services import activity_service, notification_service, org_service
from chronus.utils.datetime_utils import current_month, ensure_utc, month_bounds

TASK_SUMMARY_TITLES = 3


def serialize_payout(payout: Payout) -> dict:
    return {
        "id": payout.id,
        "user_id": payout.user_id,
        "user_name": payout.user.name if payout.user else None,
        "amount": payout.amount,
        "month": payout.month,
        "note": payout.note,
        "created_by_user_id": payout.created_by_user_id,
        "created_at": payout.created_at,
    }


def list_payouts(
    db: Session,
    org_id: UUID,
    user_id: UUID | None = None,
    month: str | None = None,
) -> list[Payout]:
    query = db.query(Payout).options(joinedload(Payout.user)).filter(Payout.organization_id == org_id)
    if user_id:
        query = query.filter(Payout.user_id == user_id)
    if month:
        query = query.filter(Payout.month == month)
    return query.order_by(Payout.created_at.desc()).all()


def get_payout(db: Session, payout_id: UUID, org_id: UUID) -> Payout | None:
    return db.query(Payout).filter(Payout.id == payout_id, Payout.organization_id == org_id).first()


def create_payout(db: Session, org_id: UUID, actor_user_id: UUID, data: PayoutCreate) -> Payout:
    if not org_service.is_member(db, org_id, data.user_id):
        raise ValueError("User is not a member of this organization")

    payout = Payout(
        organization_id=org_id,
        user_id=data.user_id,
        amount=round(data.amount, 2),
        month=data.month or current_month(),
        note=data.note,
        created_by_user_id=actor_user_id,
    )
    db.add(payout)
    db.flush()
    activity_service.log_activity(
        db,
        organization_id=org_id,
        activity_type=ActivityType.PAYOUT_CREATED,
        description=f"Payout of {payout.amount:.2f} for {payout.month}",
        actor_user_id=actor_user_id,
        entity_type="user",
        entity_id=data.user_id,
        details={"payout_id": str(payout.id)},
    )
    db.commit()
    db.refresh(payout)
    notification_service.notify_payout_created(db, payout)
    return payout


def delete_payout(db: Session, payout: Payout, actor_user_id: UUID) -> None:
    activity_service.log_activity(
        db,
        organization_id=payout.organization_id,
        activity_type=ActivityType.DELETED,
        description=f"Payout of {payout.amount:.2f} for {payout.month} deleted",
        actor_user_id=actor_user_id,
        entity_type="user",
        entity_id=payout.user_id,
        details={"payout_id": str(payout.id)},
    )
    db.delete(payout)
    db.commit()


# =============================================================================
# Balances
# =============================================================================


def _raw_hours(log: TimeLog) -> float:
    seconds = (ensure_utc(log.end) - ensure_utc(log.start)).total_seconds()
    return max(seconds, 0) / 3600


def _finished_logs(db: Session, org_id: UUID, user_id: UUID | None = None) -> list[TimeLog]:
    query = db.query(TimeLog).filter(TimeLog.organization_id == org_id, TimeLog.end.isnot(None))
    if user_id:
        query = query.filter(TimeLog.user_id == user_id)
    return query.all()


def _totals(logs: list[TimeLog], payouts: list[Payout]) -> dict:
    hours = sum(_raw_hours(log) for log in logs)
    debt = sum(_raw_hours(log) * (log.pay_rate or 0) for log in logs)
    bill = sum(_raw_hours(log) * (log.bill_rate or 0) for log in logs)
    paid = sum(p.amount for p in payouts)
    return {
        "total_hours": round(hours, 2),
        "total_debt": round(debt, 2),
        "total_paid": round(paid, 2),
        "balance": round(debt - paid, 2),
        "total_bill": round(bill, 2),
        "project_count": len({log.project_id for log in logs}),
    }


def user_balance(db: Session, org_id: UUID, membership: Membership) -> dict:
    """Balance for one member, with their payouts newest first."""
    payouts = list_payouts(db, org_id, membership.user_id)
    return {
        "user_id": membership.user_id,
        "user_name": membership.user.name,
        "default_pay_rate": membership.default_pay_rate,
        **_totals(_finished_logs(db, org_id, membership.user_id), payouts),
        "payouts": [serialize_payout(p) for p in payouts],
    }


def team_summary(db: Session, org_id: UUID) -> list[dict]:
    """Balance row for every member of the organization."""
    memberships = db.query(Membership).options(joinedload(Membership.user)).filter(
        Membership.organization_id == org_id
    ).order_by(Membership.created_at).all()

    logs_by_user: dict[UUID, list[TimeLog]] = defaultdict(list)
    for log in _finished_logs(db, org_id):
        logs_by_user[log.user_id].append(log)
    payouts_by_user: dict[UUID, list[Payout]] = defaultdict(list)
    for payout in db.query(Payout).filter(Payout.organization_id == org_id).all():
        payouts_by_user[payout.user_id].append(payout)

    return [
        {
            "user_id": m.user_id,
            "user_name": m.user.name,
            "default_pay_rate": m.default_pay_rate,
            **_totals(logs_by_user[m.user_id], payouts_by_user[m.user_id]),
        }
        for m in memberships
    ]


def earnings_details(db: Session, org_id: UUID, user_id: UUID, month: str | None = None) -> list[dict]:
    """
    Daily earnings for a member, one row per (day, project, pay rate).

    Rows are newest day first. task_summary lists the first few distinct
    task titles, with "..." when there are more.
    """
    query = db.query(TimeLog, Project.name).join(Project, Project.id == TimeLog.project_id).options(
        joinedload(TimeLog.task)
    ).filter(
        TimeLog.organization_id == org_id,
        TimeLog.user_id == user_id,
        TimeLog.end.isnot(None),
    )
    if month:
        start, end = month_bounds(month)
        query = query.filter(TimeLog.start >= start, TimeLog.start < end)

    rows: dict[str, dict] = {}
    for log, project_name in query.order_by(TimeLog.start.desc()).all():
        day = ensure_utc(log.start).date().isoformat()
        rate = log.pay_rate or 0
        key = f"{day}-{project_name}-{rate}"
        row = rows.setdefault(key, {
            "id": key, "date": day, "project": project_name, "rate": rate,
            "hours": 0.0, "amount": 0.0, "tasks": {},
        })
        hours = _raw_hours(log)
        row["hours"] += hours
        row["amount"] += hours * rate
        if log.task is not None:
            row["tasks"][log.task.title] = None

    details = []
    for row in rows.values():
        titles = list(row.pop("tasks"))
        summary = ", ".join(titles[:TASK_SUMMARY_TITLES])
        if len(titles) > TASK_SUMMARY_TITLES:
            summary += "..."
        details.append({
            **row,
            "hours": round(row["hours"], 2),
            "amount": round(row["amount"], 2),
            "task_count": len(titles),
            "task_summary": summary,
        })
    return sorted(details, key=lambda d: d["date"], reverse=True)
