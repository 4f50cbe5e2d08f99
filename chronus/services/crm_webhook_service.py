"""
Inbound CRM events on the ChronusDev side.

The CRM pushes customers and support tickets here. A ticket becomes a task in
a per-client "Soporte" project; re-sending the same ticket returns the task
created the first time.
"""

import logging

from sqlalchemy.orm import Session

from chronus.db.enums import ActivityType, Priority, ProjectStatus, Role, TaskStatus
from chronus.db.models import Client, Organization, Project, ProjectMember, Task, TaskAttachment, TaskComment, User
from chronus.services import (
    activity_service, client_service, notification_service, org_service, project_service,
    relay_service, task_service,
)
from chronus.utils.normalization import normalize_email

logger = logging.getLogger(__name__)

SUPPORT_PROJECT_PREFIX = "Soporte"
TICKET_TITLE_PREFIX = "[TICKET]"
GENERIC_CLIENT_NAME = "CRM"


def resolve_org(db: Session, crm_org_ref: str | None, org_name: str | None = None) -> Organization:
    """Linked org by crm_organization_id or id, else a new org linked to the CRM tenant. Flushes only."""
    org = org_service.resolve_linked_org(db, crm_org_ref)
    if org:
        return org
    if not crm_org_ref:
        raise ValueError("organizationId is required")
    logger.info("Creating organization for CRM tenant %s", crm_org_ref)
    return org_service.create_org(
        db,
        name=org_name or f"CRM {crm_org_ref}",
        crm_organization_id=str(crm_org_ref),
        commit=False,
    )


def sync_customer(db: Session, payload: dict) -> Client:
    org = resolve_org(db, payload.get("organizationId"), payload.get("organizationName"))
    client = client_service.sync_client_from_crm(db, org.id, payload, commit=False)
    db.commit()
    db.refresh(client)
    return client


def _support_client(db: Session, org: Organization, customer: dict | None) -> Client:
    if customer and customer.get("id"):
        return client_service.sync_client_from_crm(db, org.id, customer, commit=False)

    client = db.query(Client).filter(
        Client.organization_id == org.id,
        Client.crm_customer_id.is_(None),
        Client.name == GENERIC_CLIENT_NAME,
    ).first()
    if client is None:
        client = Client(
            organization_id=org.id,
            name=GENERIC_CLIENT_NAME,
            email=f"support-{org.id}@{client_service.PLACEHOLDER_DOMAIN}",
        )
        db.add(client)
        db.flush()
    return client


def _support_project(db: Session, org: Organization, client: Client) -> Project:
    name = f"{SUPPORT_PROJECT_PREFIX} {client.name}"
    project = db.query(Project).filter(
        Project.organization_id == org.id,
        Project.client_id == client.id,
        Project.name == name,
    ).first()
    if project is None:
        project = Project(
            organization_id=org.id,
            client_id=client.id,
            name=name,
            description=f"Support tickets from the CRM for {client.name}",
            budget=0.0,
            status=ProjectStatus.ACTIVE.value,
        )
        db.add(project)
        db.flush()
    project_service.add_org_managers(db, project)
    return project


def _resolve_assignee(db: Session, org: Organization, project: Project, assignee: dict | None) -> User | None:
    email = normalize_email((assignee or {}).get("email"))
    if not email:
        return None
    user = db.query(User).filter(User.email == email).first()
    if user is None or not org_service.is_member(db, org.id, user.id):
        return None
    if project_service.get_membership(db, project.id, user.id) is None:
        db.add(ProjectMember(project_id=project.id, user_id=user.id, role=Role.DEV.value))
        db.flush()
    return user


def receive_ticket(db: Session, payload: dict) -> dict:
    """
    Turn a CRM ticket into a BACKLOG task.

    Returns:
        {"task_id", "project_id", "created"}

    Raises:
        ValueError: payload without ticket id/title or organization
    """
    ticket = payload.get("ticket") or {}
    ticket_id = str(ticket.get("id") or "")
    if not ticket_id or not ticket.get("title"):
        raise ValueError("ticket.id and ticket.title are required")

    existing = task_service.get_by_crm_ticket(db, ticket_id)
    if existing:
        return {"task_id": str(existing.id), "project_id": str(existing.project_id), "created": False}

    org = resolve_org(db, payload.get("organizationId"), payload.get("organizationName"))
    client = _support_client(db, org, payload.get("customer"))
    project = _support_project(db, org, client)
    assignee = _resolve_assignee(db, org, project, payload.get("assignee"))

    priority = str(ticket.get("priority") or "").upper()
    task = Task(
        organization_id=org.id,
        project_id=project.id,
        title=f"{TICKET_TITLE_PREFIX} {ticket['title']}",
        description=ticket.get("description"),
        status=TaskStatus.BACKLOG.value,
        priority=priority if Priority.has_value(priority) else Priority.MEDIUM.value,
        assigned_to_user_id=assignee.id if assignee else None,
        crm_ticket_id=ticket_id,
    )
    db.add(task)
    db.flush()

    for comment in payload.get("comments") or []:
        if not comment.get("content"):
            continue
        author = comment.get("author") or "CRM"
        db.add(TaskComment(task_id=task.id, content=f"[CRM - {author}]: {comment['content']}"))
    for attachment in payload.get("attachments") or []:
        if not attachment.get("url"):
            continue
        db.add(TaskAttachment(
            task_id=task.id,
            name=attachment.get("name") or attachment["url"],
            url=attachment["url"],
            size=attachment.get("size"),
        ))

    activity_service.log_activity(
        db,
        organization_id=org.id,
        activity_type=ActivityType.CREATED,
        description=f"Task created from CRM ticket \"{ticket['title']}\"",
        entity_type="task",
        entity_id=task.id,
        details={"source": "crm", "crm_ticket_id": ticket_id, "project_id": str(project.id)},
    )
    db.commit()
    db.refresh(task)
    logger.info("CRM ticket %s received as task %s", ticket_id, task.id)

    notification_service.notify_admins_task_created(db, task, "CRM")
    if assignee:
        notification_service.notify_task_assigned(db, task, assignee.id, "CRM")
    relay_service.notify_crm("ticket-received", {"ticketId": ticket_id, "taskId": str(task.id)})
    return {"task_id": str(task.id), "project_id": str(project.id), "created": True}


def ticket_status_changed(db: Session, ticket_id: str | None, status: str | None) -> tuple[Task | None, bool]:
    """Returns (task or None when unknown, whether the task changed)."""
    if not ticket_id:
        return None, False
    task = task_service.get_by_crm_ticket(db, ticket_id)
    if task is None:
        return None, False
    return task, task_service.apply_crm_status(db, task, status)


def attachment_added(db: Session, ticket_id: str | None, attachment: dict | None) -> TaskAttachment | None:
    """
    Copy a CRM ticket attachment onto its task.

    Returns None when no task came from that ticket.

    Raises:
        ValueError: attachment without url
    """
    attachment = attachment or {}
    if not attachment.get("url"):
        raise ValueError("attachment.url is required")
    if not ticket_id:
        return None
    task = task_service.get_by_crm_ticket(db, str(ticket_id))
    if task is None:
        return None

    row = TaskAttachment(
        task_id=task.id,
        name=attachment.get("name") or attachment["url"],
        url=attachment["url"],
        size=attachment.get("size"),
    )
    db.add(row)
    db.flush()
    activity_service.log_activity(
        db,
        organization_id=task.organization_id,
        activity_type=ActivityType.UPDATED,
        description=f"Attachment \"{row.name}\" added from CRM",
        entity_type="task",
        entity_id=task.id,
        details={"source": "crm", "crm_ticket_id": str(ticket_id)},
    )
    db.commit()
    db.refresh(row)
    return row
