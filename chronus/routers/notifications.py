"""
Notifications Router - /notifications endpoints.

Provides notification listing and read status.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from chronus.core.deps import get_current_session, get_db
from chronus.schemas.auth import UserSession
from chronus.services import notification_service

router = APIRouter()


# =============================================================================
# Schemas
# =============================================================================


class NotificationRead(BaseModel):
    """Notification response."""
    id: str
    type: str
    title: str
    body: str | None
    entity_type: str | None
    entity_id: str | None
    read_at: str | None
    created_at: str


class NotificationListResponse(BaseModel):
    items: list[NotificationRead]
    unread_count: int


class UnreadCountResponse(BaseModel):
    """Unread count only (for polling)."""
    count: int


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/notifications", response_model=NotificationListResponse)
def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Get user's notifications."""
    notifications = notification_service.get_notifications(
        db=db,
        user_id=session.user_id,
        org_id=session.org_id,
        unread_only=unread_only,
        limit=limit,
        offset=offset,
    )
    unread_count = notification_service.get_unread_count(
        db=db,
        user_id=session.user_id,
        org_id=session.org_id,
    )
    return NotificationListResponse(
        items=[NotificationRead(**notification_service.serialize_notification(n)) for n in notifications],
        unread_count=unread_count,
    )


@router.get("/notifications/count", response_model=UnreadCountResponse)
def get_unread_count(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    count = notification_service.get_unread_count(
        db=db,
        user_id=session.user_id,
        org_id=session.org_id,
    )
    return UnreadCountResponse(count=count)


@router.patch("/notifications/{notification_id}/read", response_model=NotificationRead)
def mark_notification_read(
    notification_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    notification = notification_service.mark_read(
        db=db,
        notification_id=notification_id,
        user_id=session.user_id,
        org_id=session.org_id,
    )
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return NotificationRead(**notification_service.serialize_notification(notification))


@router.post("/notifications/read-all")
def mark_all_read(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    count = notification_service.mark_all_read(
        db=db,
        user_id=session.user_id,
        org_id=session.org_id,
    )
    return {"marked_read": count}
