"""Tickets router - support tickets, comments and ChronusDev handoff."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from chronus.core.deps import get_current_session, get_db
from chronus.schemas.auth import UserSession
from chronus.schemas.ticket import (
    AttachmentCreate,
    CommentCreate,
    CommentRead,
    SendToChronusDevResponse,
    TicketAttachmentRead,
    TicketCreate,
    TicketListResponse,
    TicketRead,
    TicketUpdate,
)
from chronus.services import relay_service, ticket_service
from chronus.utils.pagination import PaginationParams, get_pagination, page_envelope, paginate_query

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_ticket_or_404(db: Session, ticket_id: UUID, org_id: UUID):
    ticket = ticket_service.get_ticket(db, ticket_id, org_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket


@router.get("", response_model=TicketListResponse)
def list_tickets(
    status: str | None = None,
    priority: str | None = None,
    customer_id: UUID | None = None,
    assigned_to: UUID | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    query = ticket_service.list_tickets(
        db, session.org_id, status=status, priority=priority,
        customer_id=customer_id, assigned_to=assigned_to,
    )
    tickets, total = paginate_query(query, pagination)
    return page_envelope(tickets, total, pagination)


@router.post("", response_model=TicketRead, status_code=201)
def create_ticket(
    data: TicketCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return ticket_service.create_ticket(db, session.org_id, session.user_id, data, actor_name=session.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{ticket_id}", response_model=TicketRead)
def get_ticket(
    ticket_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return _get_ticket_or_404(db, ticket_id, session.org_id)


@router.put("/{ticket_id}", response_model=TicketRead)
def update_ticket(
    ticket_id: UUID,
    data: TicketUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    ticket = _get_ticket_or_404(db, ticket_id, session.org_id)
    try:
        return ticket_service.update_ticket(db, ticket, session.user_id, data, actor_name=session.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{ticket_id}", status_code=204)
def delete_ticket(
    ticket_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    ticket = _get_ticket_or_404(db, ticket_id, session.org_id)
    ticket_service.delete_ticket(db, ticket)


@router.get("/{ticket_id}/comments", response_model=list[CommentRead])
def list_comments(
    ticket_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    ticket = _get_ticket_or_404(db, ticket_id, session.org_id)
    return ticket_service.list_comments(db, ticket)


@router.post("/{ticket_id}/comments", response_model=CommentRead, status_code=201)
def add_comment(
    ticket_id: UUID,
    data: CommentCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    ticket = _get_ticket_or_404(db, ticket_id, session.org_id)
    return ticket_service.add_comment(db, ticket, session.user_id, data.content)


@router.get("/{ticket_id}/attachments", response_model=list[TicketAttachmentRead])
def list_attachments(
    ticket_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    ticket = _get_ticket_or_404(db, ticket_id, session.org_id)
    return ticket_service.list_attachments(db, ticket)


@router.post("/{ticket_id}/attachments", response_model=TicketAttachmentRead, status_code=201)
def add_attachment(
    ticket_id: UUID,
    data: AttachmentCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Record an attachment; handed-off tickets relay it to ChronusDev."""
    ticket = _get_ticket_or_404(db, ticket_id, session.org_id)
    return ticket_service.add_attachment(db, ticket, session.user_id, data)


@router.post("/{ticket_id}/send-to-chronusdev", response_model=SendToChronusDevResponse)
def send_to_chronusdev(
    ticket_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """
    Hand the ticket to ChronusDev as a task.

    Returns 503 when the relay isn't configured and 502 when ChronusDev
    fails; the ticket is left unchanged in both cases.
    """
    ticket = _get_ticket_or_404(db, ticket_id, session.org_id)
    try:
        return ticket_service.send_to_chronusdev(db, ticket, session.user_id)
    except relay_service.RelayNotConfigured as e:
        raise HTTPException(status_code=503, detail=str(e))
    except relay_service.RelayError as e:
        logger.warning("Ticket %s handoff failed: %s", ticket.id, e)
        raise HTTPException(status_code=502, detail=f"ChronusDev relay failed: {e}")
