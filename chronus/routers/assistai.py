"""AssistAI router - vendor agents, mirrored conversations and manual sync."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from chronus.core.async_utils import run_async
from chronus.core.deps import get_current_session, get_db
from chronus.schemas.auth import UserSession
from chronus.schemas.conversation import (
    ConversationListResponse,
    MessageRead,
    SendMessageRequest,
    SyncResult,
)
from chronus.services import assistai_service
from chronus.utils.pagination import PaginationParams, get_pagination, page_envelope, paginate_query

logger = logging.getLogger(__name__)

router = APIRouter()

RECENT_SYNC_LIMIT = 20
FULL_SYNC_LIMIT = 100


def _require_config(db: Session, org_id: UUID) -> assistai_service.AssistAIConfig:
    config = assistai_service.resolve_config(db, org_id)
    if config is None:
        raise HTTPException(status_code=400, detail="AssistAI is not configured for this organization")
    return config


def _vendor_error(exc: assistai_service.AssistAIError) -> HTTPException:
    logger.warning("AssistAI request failed: %s", exc)
    return HTTPException(status_code=502, detail=str(exc))


@router.get("/agents")
def list_agents(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    config = _require_config(db, session.org_id)
    try:
        agents = run_async(assistai_service.get_agents(config))
    except assistai_service.AssistAIError as e:
        raise _vendor_error(e)
    return {"agents": agents}


@router.get("/conversations", response_model=ConversationListResponse)
def list_conversations(
    platform: str | None = None,
    status: str | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Locally mirrored conversations, most recently active first."""
    query = assistai_service.list_conversations(db, session.org_id, platform=platform, status=status)
    conversations, total = paginate_query(query, pagination)
    return page_envelope(conversations, total, pagination)


@router.get("/conversations/{conversation_id}/messages", response_model=list[MessageRead])
def list_messages(
    conversation_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    conversation = assistai_service.get_conversation(db, conversation_id, session.org_id)
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return assistai_service.list_messages(db, conversation)


@router.post("/conversations/{uuid}/messages")
def send_message(
    uuid: str,
    data: SendMessageRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Send a message through AssistAI using the remote conversation uuid."""
    config = _require_config(db, session.org_id)
    try:
        remote = run_async(assistai_service.send_message(config, uuid, data.content, session.name))
    except assistai_service.AssistAIError as e:
        raise _vendor_error(e)
    assistai_service.record_outgoing(db, session.org_id, uuid, data.content, remote)
    return {"success": True, "data": remote}


def _run_sync(db: Session, org_id: UUID, limit: int) -> dict:
    config = _require_config(db, org_id)
    try:
        return run_async(assistai_service.sync_recent_conversations(db, config, org_id, limit))
    except assistai_service.AssistAIError as e:
        raise _vendor_error(e)


@router.post("/sync-recent", response_model=SyncResult)
def sync_recent(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return _run_sync(db, session.org_id, RECENT_SYNC_LIMIT)


@router.post("/sync-all", response_model=SyncResult)
def sync_all(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return _run_sync(db, session.org_id, FULL_SYNC_LIMIT)
