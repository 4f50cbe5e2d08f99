"""Ticket service - CRM support tickets, comments and ChronusDev handoff."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from chronus.db.enums import ActivityType, Priority, TicketStatus
from chronus.db.models import Organization, Ticket, TicketAttachment, TicketComment
from chronus.schemas.ticket import AttachmentCreate, TicketCreate, TicketUpdate
from chronus.services import activity_service, notification_service, org_service, relay_service
from chronus.utils.datetime_utils import utcnow
from chronus.utils.normalization import normalize_enum_value

logger = logging.getLogger(__name__)

# ChronusDev task status -> CRM ticket status
DEV_STATUS_MAP = {
    "IN_PROGRESS": TicketStatus.IN_PROGRESS,
    "REVIEW": TicketStatus.IN_PROGRESS,
    "DONE": TicketStatus.RESOLVED,
}


def _clean_enums(status: str | None, priority: str | None) -> tuple[str | None, str | None]:
    status = normalize_enum_value(status)
    priority = normalize_enum_value(priority)
    if status is not None and not TicketStatus.has_value(status):
        raise ValueError(f"Invalid status: {status}")
    if priority is not None and not Priority.has_value(priority):
        raise ValueError(f"Invalid priority: {priority}")
    return status, priority


def list_tickets(
    db: Session,
    org_id: UUID,
    status: str | None = None,
    priority: str | None = None,
    customer_id: UUID | None = None,
    assigned_to: UUID | None = None,
):
    query = db.query(Ticket).filter(Ticket.organization_id == org_id)
    if status:
        query = query.filter(Ticket.status == normalize_enum_value(status))
    if priority:
        query = query.filter(Ticket.priority == normalize_enum_value(priority))
    if customer_id:
        query = query.filter(Ticket.customer_id == customer_id)
    if assigned_to:
        query = query.filter(Ticket.assigned_to_user_id == assigned_to)
    return query.order_by(Ticket.created_at.desc())


def get_ticket(db: Session, ticket_id: UUID, org_id: UUID | None = None) -> Ticket | None:
    """Get ticket by ID. org_id is None only for relay webhooks (key-authenticated)."""
    query = db.query(Ticket).filter(Ticket.id == ticket_id)
    if org_id is not None:
        query = query.filter(Ticket.organization_id == org_id)
    return query.first()


def _check_refs(db: Session, org_id: UUID, customer_id: UUID | None, assignee_id: UUID | None) -> None:
    if customer_id:
        from chronus.services.customer_service import get_customer
        if not get_customer(db, customer_id, org_id):
            raise ValueError("Customer not found")
    if assignee_id and not org_service.is_member(db, org_id, assignee_id):
        raise ValueError("Assignee is not a member of this organization")


def create_ticket(
    db: Session,
    org_id: UUID,
    user_id: UUID | None,
    data: TicketCreate,
    actor_name: str = "Someone",
) -> Ticket:
    status, priority = _clean_enums(data.status, data.priority)
    _check_refs(db, org_id, data.customer_id, data.assigned_to_user_id)

    ticket = Ticket(
        organization_id=org_id,
        title=data.title.strip(),
        description=data.description,
        status=status,
        priority=priority,
        customer_id=data.customer_id,
        assigned_to_user_id=data.assigned_to_user_id,
        created_by_user_id=user_id,
        resolved_at=utcnow() if status == TicketStatus.RESOLVED.value else None,
    )
    db.add(ticket)
    db.flush()
    activity_service.log_activity(
        db,
        organization_id=org_id,
        activity_type=ActivityType.CREATED,
        description=f"Ticket \"{ticket.title}\" created",
        actor_user_id=user_id,
        entity_type="ticket",
        entity_id=ticket.id,
    )
    db.commit()
    db.refresh(ticket)
    notification_service.notify_ticket_assigned(db, ticket, ticket.assigned_to_user_id, actor_name)
    return ticket


def update_ticket(
    db: Session,
    ticket: Ticket,
    user_id: UUID | None,
    data: TicketUpdate,
    actor_name: str = "Someone",
) -> Ticket:
    """
    Update ticket fields.

    Side effects:
    - RESOLVED sets resolved_at
    - status change on a handed-off ticket is relayed to ChronusDev
    - new assignee is notified
    """
    updates = data.model_dump(exclude_unset=True)
    status, priority = _clean_enums(updates.get("status"), updates.get("priority"))
    if "status" in updates:
        updates["status"] = status
    if "priority" in updates:
        updates["priority"] = priority
    _check_refs(db, ticket.organization_id, updates.get("customer_id"), updates.get("assigned_to_user_id"))

    old_status = ticket.status
    old_assignee = ticket.assigned_to_user_id
    for field, value in updates.items():
        if value is None and field in ("title", "status", "priority"):
            continue
        setattr(ticket, field, value)

    status_changed = ticket.status != old_status
    if status_changed:
        if ticket.status == TicketStatus.RESOLVED.value:
            ticket.resolved_at = utcnow()
        activity_service.log_activity(
            db,
            organization_id=ticket.organization_id,
            activity_type=ActivityType.STATUS_CHANGE,
            description=f"Ticket \"{ticket.title}\": {old_status} -> {ticket.status}",
            actor_user_id=user_id,
            entity_type="ticket",
            entity_id=ticket.id,
            details={"from": old_status, "to": ticket.status},
        )
    db.commit()
    db.refresh(ticket)

    if status_changed and ticket.chronusdev_task_id:
        relay_service.notify_chronusdev("ticket-status-changed", {
            "ticketId": str(ticket.id),
            "taskId": ticket.chronusdev_task_id,
            "status": ticket.status,
            "organizationId": str(ticket.organization_id),
        })
    if ticket.assigned_to_user_id and ticket.assigned_to_user_id != old_assignee:
        notification_service.notify_ticket_assigned(db, ticket, ticket.assigned_to_user_id, actor_name)
    return ticket


def delete_ticket(db: Session, ticket: Ticket) -> None:
    db.delete(ticket)
    db.commit()


def list_comments(db: Session, ticket: Ticket) -> list[TicketComment]:
    return db.query(TicketComment).filter(
        TicketComment.ticket_id == ticket.id
    ).order_by(TicketComment.created_at).all()


def add_comment(db: Session, ticket: Ticket, user_id: UUID | None, content: str) -> TicketComment:
    comment = TicketComment(ticket_id=ticket.id, user_id=user_id, content=content)
    db.add(comment)
    db.flush()
    activity_service.log_activity(
        db,
        organization_id=ticket.organization_id,
        activity_type=ActivityType.COMMENT,
        description=f"Comment on ticket \"{ticket.title}\"",
        actor_user_id=user_id,
        entity_type="ticket",
        entity_id=ticket.id,
    )
    db.commit()
    db.refresh(comment)
    return comment


def list_attachments(db: Session, ticket: Ticket) -> list[TicketAttachment]:
    return db.query(TicketAttachment).filter(
        TicketAttachment.ticket_id == ticket.id
    ).order_by(TicketAttachment.created_at).all()


def add_attachment(db: Session, ticket: Ticket, user_id: UUID | None, data: AttachmentCreate) -> TicketAttachment:
    """
    Attach a file reference to the ticket.

    A ticket already handed to ChronusDev relays the attachment to its task.
    """
    attachment = TicketAttachment(
        ticket_id=ticket.id,
        name=data.name.strip(),
        url=data.url.strip(),
        type=data.type or "unknown",
        size=data.size or 0,
        uploaded_by_user_id=user_id,
    )
    db.add(attachment)
    db.flush()
    activity_service.log_activity(
        db,
        organization_id=ticket.organization_id,
        activity_type=ActivityType.UPDATED,
        description=f"Attachment \"{attachment.name}\" added to ticket \"{ticket.title}\"",
        actor_user_id=user_id,
        entity_type="ticket",
        entity_id=ticket.id,
        details={"attachment_id": str(attachment.id)},
    )
    db.commit()
    db.refresh(attachment)

    if ticket.chronusdev_task_id:
        relay_service.notify_chronusdev("attachment-added", {
            "ticketId": str(ticket.id),
            "taskId": ticket.chronusdev_task_id,
            "attachment": {
                "id": str(attachment.id),
                "name": attachment.name,
                "url": attachment.url,
                "type": attachment.type,
                "size": attachment.size,
            },
        })
    return attachment


# =============================================================================
# ChronusDev handoff
# =============================================================================


def build_handoff_payload(db: Session, ticket: Ticket) -> dict:
    """Wire payload for /webhooks/crm/ticket-created."""
    ticket = db.query(Ticket).options(
        joinedload(Ticket.customer),
        joinedload(Ticket.assignee),
    ).filter(Ticket.id == ticket.id).one()
    org = db.query(Organization).filter(Organization.id == ticket.organization_id).one()

    customer = ticket.customer
    assignee = ticket.assignee
    return {
        "ticket": {
            "id": str(ticket.id),
            "title": ticket.title,
            "description": ticket.description,
            "status": ticket.status,
            "priority": ticket.priority,
        },
        "customer": {
            "id": str(customer.id),
            "name": customer.name,
            "email": customer.email,
            "phone": customer.phone,
            "company": customer.company,
        } if customer else None,
        "assignee": {
            "id": str(assignee.id),
            "name": assignee.name,
            "email": assignee.email,
        } if assignee else None,
        "comments": [
            {
                "content": c.content,
                "author": c.user.name if c.user else "CRM",
                "createdAt": c.created_at.isoformat(),
            }
            for c in list_comments(db, ticket)
        ],
        "attachments": [
            {"id": str(a.id), "name": a.name, "url": a.url, "type": a.type, "size": a.size}
            for a in list_attachments(db, ticket)
        ],
        "organizationId": str(org.id),
        "organizationName": org.name,
    }


def send_to_chronusdev(db: Session, ticket: Ticket, user_id: UUID | None) -> dict:
    """
    Hand a ticket to ChronusDev as a task.

    Raises:
        relay_service.RelayError: relay not configured or failed (ticket unchanged)
    """
    result = relay_service.send_to_chronusdev("ticket-created", build_handoff_payload(db, ticket))
    task_id = result.get("task_id")
    project_id = result.get("project_id")

    ticket.status = TicketStatus.IN_PROGRESS.value
    if task_id:
        ticket.chronusdev_task_id = str(task_id)
    activity_service.log_activity(
        db,
        organization_id=ticket.organization_id,
        activity_type=ActivityType.TICKET_SENT,
        description=f"Ticket \"{ticket.title}\" sent to ChronusDev",
        actor_user_id=user_id,
        entity_type="ticket",
        entity_id=ticket.id,
        details={"task_id": task_id, "project_id": project_id},
    )
    db.commit()
    logger.info("Ticket %s handed off to ChronusDev task %s", ticket.id, task_id)
    return {"success": True, "task_id": task_id, "project_id": project_id}


# =============================================================================
# Inbound ChronusDev events
# =============================================================================


def mark_received(db: Session, ticket: Ticket, task_id: str | None) -> Ticket:
    if task_id:
        ticket.chronusdev_task_id = str(task_id)
        db.commit()
    notification_service.notify_ticket_received(db, ticket, task_id)
    return ticket


def resolve_from_dev(db: Session, ticket: Ticket, task_id: str | None, completed_by: str | None) -> Ticket:
    ticket.status = TicketStatus.RESOLVED.value
    ticket.resolved_at = utcnow()
    activity_service.log_activity(
        db,
        organization_id=ticket.organization_id,
        activity_type=ActivityType.TASK_COMPLETED,
        description=f"ChronusDev task completed by {completed_by or 'the dev team'}",
        entity_type="ticket",
        entity_id=ticket.id,
        details={"task_id": task_id, "completed_by": completed_by},
    )
    db.commit()
    db.refresh(ticket)
    notification_service.notify_ticket_resolved(db, ticket, completed_by)
    return ticket


def apply_dev_status(db: Session, ticket: Ticket, dev_status: str | None) -> bool:
    """Map a ChronusDev task status onto the ticket. Returns False when unmapped."""
    mapped = DEV_STATUS_MAP.get(normalize_enum_value(dev_status) or "")
    if mapped is None:
        return False
    if ticket.status != mapped.value:
        old_status = ticket.status
        ticket.status = mapped.value
        if mapped == TicketStatus.RESOLVED:
            ticket.resolved_at = utcnow()
        activity_service.log_activity(
            db,
            organization_id=ticket.organization_id,
            activity_type=ActivityType.STATUS_CHANGE,
            description=f"Ticket \"{ticket.title}\": {old_status} -> {ticket.status} (ChronusDev)",
            entity_type="ticket",
            entity_id=ticket.id,
            details={"from": old_status, "to": ticket.status, "dev_status": dev_status},
        )
        db.commit()
    return True
