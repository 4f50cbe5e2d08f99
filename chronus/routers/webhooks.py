"""
CRM webhook endpoints.

- /webhooks/incoming/leads: third-party lead capture, authenticated by an
  org API key sent as `Authorization: Bearer sk_live_...`
- /webhooks/chronusdev/*: relays from ChronusDev, authenticated by the shared
  sync key
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from chronus.core.deps import get_bearer_token, get_db, verify_sync_key
from chronus.db.enums import LeadSource
from chronus.schemas.lead import LeadCreate, LeadRead
from chronus.services import api_key_service, lead_service, ticket_service

logger = logging.getLogger(__name__)

router = APIRouter()

INCOMING_LEAD_FIELDS = ("name", "email", "phone", "company", "value", "notes", "tags")


# =============================================================================
# Incoming leads
# =============================================================================


@router.post("/incoming/leads", response_model=LeadRead, status_code=201)
def incoming_lead(
    request: Request,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
):
    """Create a WEBHOOK-sourced lead in the API key's organization."""
    api_key = api_key_service.authenticate(db, get_bearer_token(request))
    if not api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")

    if not str(payload.get("name") or "").strip():
        raise HTTPException(status_code=400, detail="name is required")
    try:
        data = LeadCreate.model_validate({k: payload[k] for k in INCOMING_LEAD_FIELDS if payload.get(k) is not None})
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors()[0]["msg"])

    lead = lead_service.create_lead(
        db,
        api_key.organization_id,
        api_key.created_by_user_id,
        data,
        actor_name="Webhook",
        source_override=LeadSource.WEBHOOK,
    )
    logger.info("Webhook lead %s created via key %s", lead.id, api_key.key_prefix)
    return lead


# =============================================================================
# ChronusDev relays
# =============================================================================


def _ticket_from_payload(db: Session, payload: dict):
    try:
        ticket_id = UUID(str(payload.get("ticketId")))
    except ValueError:
        ticket_id = None
    ticket = ticket_service.get_ticket(db, ticket_id) if ticket_id else None
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket


@router.post("/chronusdev/ticket-received", dependencies=[Depends(verify_sync_key)])
def ticket_received(payload: dict = Body(...), db: Session = Depends(get_db)):
    """ChronusDev accepted a ticket as a task."""
    ticket = _ticket_from_payload(db, payload)
    ticket_service.mark_received(db, ticket, payload.get("taskId"))
    return {"success": True}


@router.post("/chronusdev/task-completed", dependencies=[Depends(verify_sync_key)])
def task_completed(payload: dict = Body(...), db: Session = Depends(get_db)):
    ticket = _ticket_from_payload(db, payload)
    ticket_service.resolve_from_dev(db, ticket, payload.get("taskId"), payload.get("completedBy"))
    return {"success": True}


@router.post("/chronusdev/task-status-changed", dependencies=[Depends(verify_sync_key)])
def task_status_changed(payload: dict = Body(...), db: Session = Depends(get_db)):
    """Mirror a task status; statuses without a ticket equivalent are ignored."""
    ticket = _ticket_from_payload(db, payload)
    mapped = ticket_service.apply_dev_status(db, ticket, payload.get("status"))
    return {"success": True, "mapped": mapped}


@router.post("/chronusdev/comment-added", dependencies=[Depends(verify_sync_key)])
def comment_added(payload: dict = Body(...), db: Session = Depends(get_db)):
    ticket = _ticket_from_payload(db, payload)
    if not payload.get("content"):
        raise HTTPException(status_code=400, detail="content is required")
    author = payload.get("authorName") or "ChronusDev"
    comment = ticket_service.add_comment(db, ticket, None, f"[Dev - {author}]: {payload['content']}")
    return {"success": True, "comment_id": str(comment.id)}


@router.post("/chronusdev/attachment-added", dependencies=[Depends(verify_sync_key)])
def attachment_added(payload: dict = Body(...), db: Session = Depends(get_db)):
    ticket = _ticket_from_payload(db, payload)
    if not payload.get("url"):
        raise HTTPException(status_code=400, detail="url is required")
    name = payload.get("name") or payload["url"]
    comment = ticket_service.add_comment(db, ticket, None, f"[Dev attachment] {name}: {payload['url']}")
    return {"success": True, "comment_id": str(comment.id)}
