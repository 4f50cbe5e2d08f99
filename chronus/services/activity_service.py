"""Activity logging service - feed of changes to customers, tickets, projects and tasks."""

from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from chronus.db.enums import ActivityType
from chronus.db.models import Activity

DEFAULT_ACTIVITY_LIMIT = 50
MAX_ACTIVITY_LIMIT = 200


def log_activity(
    db: Session,
    organization_id: UUID,
    activity_type: ActivityType,
    description: str,
    actor_user_id: UUID | None = None,
    entity_type: str | None = None,
    entity_id: UUID | None = None,
    details: dict | None = None,
) -> Activity:
    """
    Log an activity.

    Args:
        db: Database session
        organization_id: Organization context
        activity_type: Type of activity (from ActivityType enum)
        description: Human readable summary
        actor_user_id: User who performed the action (None for system/relay)
        entity_type: "customer", "ticket", "project", "task", ...
        entity_id: The entity this activity is for
        details: Type-specific details as JSON

    Returns:
        The created activity entry
    """
    activity = Activity(
        organization_id=organization_id,
        user_id=actor_user_id,
        type=activity_type.value,
        description=description,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
    )
    db.add(activity)
    db.flush()  # Don't commit - let caller control transaction
    return activity


def list_activities(
    db: Session,
    org_id: UUID,
    entity_type: str | None = None,
    entity_id: UUID | None = None,
    user_id: UUID | None = None,
    limit: int = DEFAULT_ACTIVITY_LIMIT,
) -> list[Activity]:
    """Newest-first activity feed, capped at MAX_ACTIVITY_LIMIT."""
    limit = max(1, min(limit, MAX_ACTIVITY_LIMIT))
    query = db.query(Activity).options(joinedload(Activity.user)).filter(
        Activity.organization_id == org_id
    )
    if entity_type:
        query = query.filter(Activity.entity_type == entity_type)
    if entity_id:
        query = query.filter(Activity.entity_id == entity_id)
    if user_id:
        query = query.filter(Activity.user_id == user_id)
    return query.order_by(Activity.created_at.desc()).limit(limit).all()


def serialize_activity(activity: Activity) -> dict:
    return {
        "id": activity.id,
        "type": activity.type,
        "description": activity.description,
        "user_id": activity.user_id,
        "user_name": activity.user.name if activity.user else None,
        "entity_type": activity.entity_type,
        "entity_id": activity.entity_id,
        "details": activity.details,
        "created_at": activity.created_at,
    }
