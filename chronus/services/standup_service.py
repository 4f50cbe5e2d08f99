"""Standup service - one entry per user per day."""

from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from chronus.db.enums import ActivityType
from chronus.db.models import Standup
from chronus.schemas.standup import StandupCreate
from chronus.services import activity_service
from chronus.utils.datetime_utils import utcnow

LIST_LIMIT = 50


def serialize_standup(standup: Standup) -> dict:
    return {
        "id": standup.id,
        "user_id": standup.user_id,
        "user_name": standup.user.name if standup.user else None,
        "date": standup.day,
        "yesterday": standup.yesterday,
        "today": standup.today,
        "blockers": standup.blockers,
        "created_at": standup.created_at,
        "updated_at": standup.updated_at,
    }


def list_standups(db: Session, org_id: UUID, day: date | None = None) -> list[Standup]:
    query = db.query(Standup).options(joinedload(Standup.user)).filter(Standup.organization_id == org_id)
    if day:
        query = query.filter(Standup.day == day)
    return query.order_by(Standup.day.desc(), Standup.created_at.desc()).limit(LIST_LIMIT).all()


def submit_standup(db: Session, org_id: UUID, user_id: UUID, data: StandupCreate) -> Standup:
    """Create or replace the caller's standup for today (UTC)."""
    today = utcnow().date()
    standup = db.query(Standup).filter(Standup.user_id == user_id, Standup.day == today).first()
    if standup is None:
        standup = Standup(organization_id=org_id, user_id=user_id, day=today)
        db.add(standup)
    standup.yesterday = data.yesterday
    standup.today = data.today
    standup.blockers = data.blockers
    db.flush()
    activity_service.log_activity(
        db,
        organization_id=org_id,
        activity_type=ActivityType.STANDUP,
        description=f"Standup for {today.isoformat()}",
        actor_user_id=user_id,
        entity_type="standup",
        entity_id=standup.id,
    )
    db.commit()
    db.refresh(standup)
    return standup
