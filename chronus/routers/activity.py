"""Activity router - org-scoped feed of changes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from chronus.core.deps import get_current_session, get_db
from chronus.schemas.activity import ActivityRead
from chronus.schemas.auth import UserSession
from chronus.services import activity_service

router = APIRouter()


@router.get("", response_model=list[ActivityRead])
def list_activity(
    entity_type: str | None = None,
    entity_id: UUID | None = None,
    user_id: UUID | None = None,
    limit: int = Query(activity_service.DEFAULT_ACTIVITY_LIMIT, ge=1, le=activity_service.MAX_ACTIVITY_LIMIT),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Newest first."""
    activities = activity_service.list_activities(
        db, session.org_id, entity_type=entity_type, entity_id=entity_id, user_id=user_id, limit=limit,
    )
    return [activity_service.serialize_activity(a) for a in activities]
