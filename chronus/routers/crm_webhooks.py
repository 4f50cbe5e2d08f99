"""
ChronusDev endpoints for CRM relays (/webhooks/crm/*).

All require the shared X-Sync-Key.
"""

import logging

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from chronus.core.deps import get_db, verify_sync_key
from chronus.services import crm_webhook_service

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_sync_key)])


def _sync_customer(db: Session, payload: dict) -> dict:
    if not payload.get("id"):
        raise HTTPException(status_code=400, detail="id is required")
    try:
        client = crm_webhook_service.sync_customer(db, payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "client_id": str(client.id)}


@router.post("/customer-created")
def customer_created(payload: dict = Body(...), db: Session = Depends(get_db)):
    return _sync_customer(db, payload)


@router.post("/customer-updated")
def customer_updated(payload: dict = Body(...), db: Session = Depends(get_db)):
    return _sync_customer(db, payload)


@router.post("/ticket-created")
def ticket_created(payload: dict = Body(...), db: Session = Depends(get_db)):
    """Turn a CRM ticket into a task. Re-sending a ticket returns its existing task."""
    try:
        result = crm_webhook_service.receive_ticket(db, payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, **result}


@router.post("/ticket-status-changed")
def ticket_status_changed(payload: dict = Body(...), db: Session = Depends(get_db)):
    task, changed = crm_webhook_service.ticket_status_changed(db, payload.get("ticketId"), payload.get("status"))
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return {"success": True, "task_id": str(task.id), "updated": changed}


@router.post("/attachment-added")
def attachment_added(payload: dict = Body(...), db: Session = Depends(get_db)):
    try:
        attachment = crm_webhook_service.attachment_added(db, payload.get("ticketId"), payload.get("attachment"))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if attachment is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return {"success": True, "attachment_id": str(attachment.id), "task_id": str(attachment.task_id)}
