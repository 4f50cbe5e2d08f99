"""
Notification Service - handles in-app notifications.

Provides CRUD for notifications, the WebSocket push, and trigger functions
for lead/ticket/task/payout events.
"""

import logging
from datetime import timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from chronus.core.async_utils import run_async
from chronus.core.websocket import manager
from chronus.db.enums import NotificationType, Role
from chronus.db.models import Membership, Notification
from chronus.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)

DEDUPE_WINDOW = timedelta(hours=1)


def serialize_notification(notification: Notification) -> dict:
    return {
        "id": str(notification.id),
        "type": notification.type,
        "title": notification.title,
        "body": notification.body,
        "entity_type": notification.entity_type,
        "entity_id": str(notification.entity_id) if notification.entity_id else None,
        "read_at": notification.read_at.isoformat() if notification.read_at else None,
        "created_at": notification.created_at.isoformat(),
    }


def push_notification(notification: Notification) -> None:
    """Push a notification to the user's open sockets (no-op when not connected)."""
    if not manager.is_connected(notification.user_id):
        return
    try:
        run_async(
            manager.send_to_user(
                notification.user_id, "notification", serialize_notification(notification)
            ),
            timeout=5,
        )
    except Exception:
        logger.warning("WebSocket push failed for user %s", notification.user_id, exc_info=True)


# =============================================================================
# CRUD
# =============================================================================


def create_notification(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    type: NotificationType,
    title: str,
    body: str | None = None,
    entity_type: str | None = None,
    entity_id: UUID | None = None,
    dedupe_key: str | None = None,
) -> Optional[Notification]:
    """
    Create a notification and push it over WebSocket.

    Returns None when an identical dedupe_key was used in the last hour.
    """
    if dedupe_key:
        existing = db.query(Notification).filter(
            Notification.dedupe_key == dedupe_key,
            Notification.created_at >= utcnow() - DEDUPE_WINDOW,
        ).first()
        if existing:
            return None  # Already notified

    notification = Notification(
        organization_id=org_id,
        user_id=user_id,
        type=type.value,
        title=title,
        body=body,
        entity_type=entity_type,
        entity_id=entity_id,
        dedupe_key=dedupe_key,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    push_notification(notification)
    return notification


def get_notifications(
    db: Session,
    user_id: UUID,
    org_id: UUID,
    unread_only: bool = False,
    limit: int = 20,
    offset: int = 0,
) -> list[Notification]:
    """Get notifications for user."""
    query = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.organization_id == org_id,
    )
    if unread_only:
        query = query.filter(Notification.read_at.is_(None))
    return query.order_by(Notification.created_at.desc()).offset(offset).limit(limit).all()


def get_unread_count(db: Session, user_id: UUID, org_id: UUID) -> int:
    """Get count of unread notifications."""
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.organization_id == org_id,
        Notification.read_at.is_(None),
    ).count()


def mark_read(
    db: Session,
    notification_id: UUID,
    user_id: UUID,
    org_id: UUID,
) -> Optional[Notification]:
    """Mark a notification as read (scoped by org for tenant isolation)."""
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id,
        Notification.organization_id == org_id,
    ).first()

    if notification and not notification.read_at:
        notification.read_at = utcnow()
        db.commit()
        db.refresh(notification)

    return notification


def mark_all_read(db: Session, user_id: UUID, org_id: UUID) -> int:
    """Mark all notifications as read. Returns count updated."""
    count = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.organization_id == org_id,
        Notification.read_at.is_(None),
    ).update({"read_at": utcnow()}, synchronize_session=False)
    db.commit()
    return count


# =============================================================================
# Notification Triggers
# =============================================================================


def notify_lead_assigned(db: Session, lead, assignee_id: UUID | None, actor_name: str) -> None:
    if not assignee_id:
        return
    create_notification(
        db=db,
        org_id=lead.organization_id,
        user_id=assignee_id,
        type=NotificationType.LEAD_ASSIGNED,
        title="New lead assigned",
        body=f"{actor_name} assigned lead {lead.name} to you",
        entity_type="lead",
        entity_id=lead.id,
        dedupe_key=f"lead_assigned:{lead.id}:{assignee_id}",
    )


def notify_ticket_assigned(db: Session, ticket, assignee_id: UUID | None, actor_name: str) -> None:
    if not assignee_id:
        return
    create_notification(
        db=db,
        org_id=ticket.organization_id,
        user_id=assignee_id,
        type=NotificationType.TICKET_ASSIGNED,
        title="Ticket assigned to you",
        body=f"{actor_name} assigned ticket \"{ticket.title}\" to you",
        entity_type="ticket",
        entity_id=ticket.id,
        dedupe_key=f"ticket_assigned:{ticket.id}:{assignee_id}",
    )


def notify_ticket_received(db: Session, ticket, task_id: str | None) -> None:
    """ChronusDev acknowledged a handed-off ticket."""
    if not ticket.assigned_to_user_id:
        return
    create_notification(
        db=db,
        org_id=ticket.organization_id,
        user_id=ticket.assigned_to_user_id,
        type=NotificationType.TICKET_RECEIVED,
        title="Ticket received by ChronusDev",
        body=f"\"{ticket.title}\" is now tracked as a development task",
        entity_type="ticket",
        entity_id=ticket.id,
        dedupe_key=f"ticket_received:{ticket.id}:{task_id}",
    )


def notify_ticket_resolved(db: Session, ticket, completed_by: str | None) -> None:
    """Notify the assignee and the creator that dev work resolved a ticket."""
    recipients = {ticket.assigned_to_user_id, ticket.created_by_user_id} - {None}
    for user_id in recipients:
        create_notification(
            db=db,
            org_id=ticket.organization_id,
            user_id=user_id,
            type=NotificationType.TICKET_RESOLVED,
            title="Ticket resolved",
            body=f"\"{ticket.title}\" was completed by {completed_by or 'the dev team'}",
            entity_type="ticket",
            entity_id=ticket.id,
            dedupe_key=f"ticket_resolved:{ticket.id}:{user_id}",
        )


def notify_task_assigned(db: Session, task, assignee_id: UUID | None, actor_name: str) -> None:
    if not assignee_id:
        return
    create_notification(
        db=db,
        org_id=task.organization_id,
        user_id=assignee_id,
        type=NotificationType.TASK_ASSIGNED,
        title="Task assigned to you",
        body=f"{actor_name} assigned \"{task.title}\" to you",
        entity_type="task",
        entity_id=task.id,
        dedupe_key=f"task_assigned:{task.id}:{assignee_id}",
    )


def notify_admins_task_created(db: Session, task, source: str) -> int:
    """Notify every ADMIN/MANAGER of the task's org. Returns count notified."""
    admin_ids = [
        m.user_id for m in db.query(Membership).filter(
            Membership.organization_id == task.organization_id,
            Membership.role.in_([Role.ADMIN.value, Role.MANAGER.value]),
        ).all()
    ]
    for user_id in admin_ids:
        create_notification(
            db=db,
            org_id=task.organization_id,
            user_id=user_id,
            type=NotificationType.TASK_CREATED,
            title="New task from " + source,
            body=task.title,
            entity_type="task",
            entity_id=task.id,
            dedupe_key=f"task_created:{task.id}:{user_id}",
        )
    return len(admin_ids)


def notify_payout_created(db: Session, payout) -> None:
    create_notification(
        db=db,
        org_id=payout.organization_id,
        user_id=payout.user_id,
        type=NotificationType.PAYOUT_CREATED,
        title="Payout registered",
        body=f"A payout of {payout.amount:.2f} for {payout.month} was recorded",
        entity_type="payout",
        entity_id=payout.id,
    )


def notify_member_added(db: Session, org_id: UUID, user_id: UUID, org_name: str) -> None:
    create_notification(
        db=db,
        org_id=org_id,
        user_id=user_id,
        type=NotificationType.MEMBER_ADDED,
        title="Welcome to the organization",
        body=f"You were added to {org_name}",
        entity_type="organization",
        entity_id=org_id,
        dedupe_key=f"member_added:{org_id}:{user_id}",
    )


def notify_lead_converted(db: Session, lead, customer, user_id: UUID | None) -> None:
    if not user_id:
        return
    create_notification(
        db=db,
        org_id=lead.organization_id,
        user_id=user_id,
        type=NotificationType.LEAD_CONVERTED,
        title="Lead converted",
        body=f"{customer.name} is now a customer",
        entity_type="customer",
        entity_id=customer.id,
        dedupe_key=f"lead_converted:{lead.id}",
    )
