"""
AssistAI client and conversation sync.

The vendor API lives under {baseUrl}/api/v1 and authenticates with a bearer
token plus tenant/organization headers. Conversations and their messages are
mirrored into local Conversation/ConversationMessage rows keyed by
"assistai-{remote id}" so repeated syncs are idempotent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

import anyio
import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from chronus.core.config import settings
from chronus.db.enums import (
    ConversationPlatform, ConversationStatus, IntegrationProvider, MessageSender, MessageStatus,
)
from chronus.db.models import Conversation, ConversationMessage
from chronus.services import integration_service
from chronus.utils.datetime_utils import parse_remote_datetime, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0
AGENTS_TIMEOUT = 5.0
MESSAGES_PER_CONVERSATION = 50
SESSION_PREFIX = "assistai-"


class AssistAIError(Exception):
    """AssistAI request failed (transport error or non-2xx answer)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class AssistAIConfig:
    base_url: str
    api_token: str
    tenant_domain: str
    organization_code: str

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_token}",
            "x-tenant-domain": self.tenant_domain,
            "x-organization-code": self.organization_code,
            "Content-Type": "application/json",
        }

    def url(self, endpoint: str) -> str:
        return f"{self.base_url.rstrip('/')}/api/v1{endpoint}"


# =============================================================================
# Config resolution
# =============================================================================


def _config_from_credentials(credentials: dict | None) -> AssistAIConfig | None:
    if not credentials:
        return None
    token = credentials.get("apiToken") or credentials.get("api_token")
    tenant = credentials.get("tenantDomain") or credentials.get("tenant_domain")
    org_code = credentials.get("organizationCode") or credentials.get("organization_code")
    if not (token and tenant and org_code):
        return None
    base_url = credentials.get("baseUrl") or credentials.get("base_url") or settings.ASSISTAI_API_URL
    return AssistAIConfig(
        base_url=base_url,
        api_token=token,
        tenant_domain=tenant,
        organization_code=org_code,
    )


def resolve_config(db: Session, org_id: UUID | None) -> AssistAIConfig | None:
    """
    Find AssistAI credentials for an organization.

    Order: the org's enabled integration, the global integration
    (organization_id IS NULL), then environment variables.
    """
    provider = IntegrationProvider.ASSISTAI.value
    candidates = [org_id, None] if org_id is not None else [None]
    for owner in candidates:
        try:
            config = _config_from_credentials(
                integration_service.get_enabled_credentials(db, owner, provider)
            )
        except ValueError:
            logger.warning("Unreadable AssistAI credentials (org=%s)", owner)
            config = None
        if config:
            return config

    if settings.assistai_env_configured:
        return AssistAIConfig(
            base_url=settings.ASSISTAI_API_URL,
            api_token=settings.ASSISTAI_API_TOKEN,
            tenant_domain=settings.ASSISTAI_TENANT_DOMAIN,
            organization_code=settings.ASSISTAI_ORG_CODE,
        )
    return None


# =============================================================================
# HTTP
# =============================================================================


def _parse(response: httpx.Response, endpoint: str):
    if response.status_code >= 400:
        raise AssistAIError(
            f"AssistAI error {response.status_code} on {endpoint}",
            status_code=response.status_code,
        )
    try:
        return response.json()
    except ValueError as exc:
        raise AssistAIError(f"AssistAI returned invalid JSON on {endpoint}") from exc


async def assistai_get(config: AssistAIConfig, endpoint: str, *, timeout: float = DEFAULT_TIMEOUT):
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(config.url(endpoint), headers=config.headers)
    except httpx.HTTPError as exc:
        raise AssistAIError(f"AssistAI connection failed: {exc}") from exc
    return _parse(response, endpoint)


async def assistai_post(config: AssistAIConfig, endpoint: str, body: dict):
    try:
        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
            response = await client.post(config.url(endpoint), json=body, headers=config.headers)
    except httpx.HTTPError as exc:
        raise AssistAIError(f"AssistAI connection failed: {exc}") from exc
    return _parse(response, endpoint)


def _data(payload) -> list:
    if isinstance(payload, dict):
        data = payload.get("data")
        return data if isinstance(data, list) else []
    return payload if isinstance(payload, list) else []


async def get_agents(config: AssistAIConfig) -> list[dict]:
    return _data(await assistai_get(config, "/agents", timeout=AGENTS_TIMEOUT))


async def get_conversations(config: AssistAIConfig, limit: int = 20) -> list[dict]:
    return _data(await assistai_get(
        config, f"/conversation?take={limit}&page=1&orderBy=lastMessageDate&order=DESC"
    ))


async def get_messages(config: AssistAIConfig, uuid: str, limit: int = MESSAGES_PER_CONVERSATION) -> list[dict]:
    return _data(await assistai_get(config, f"/conversation/{uuid}/messages?take={limit}&order=ASC"))


async def send_message(config: AssistAIConfig, uuid: str, content: str, sender_name: str = "Agent") -> dict:
    result = await assistai_post(config, f"/conversation/{uuid}/messages", {
        "content": content,
        "senderMetadata": {
            "id": 0,
            "email": "system@chronus.com",
            "firstname": sender_name,
            "lastname": "Bot",
        },
    })
    return result if isinstance(result, dict) else {}


# =============================================================================
# Sync
# =============================================================================


def detect_platform(conversation: dict, messages: list[dict]) -> ConversationPlatform:
    channel = str((messages[0].get("channel") if messages else "") or "").lower()
    source = str(conversation.get("source") or "").lower()
    if "whatsapp" in (channel, source):
        return ConversationPlatform.WHATSAPP
    if "instagram" in (channel, source):
        return ConversationPlatform.INSTAGRAM
    return ConversationPlatform.ASSISTAI


def resolve_agent_name(agent_code: str, agents: dict[str, str]) -> str:
    if not agent_code:
        return "Unknown Agent"
    return agents.get(agent_code) or "AssistAI Bot"


def _customer_name(conversation: dict) -> str:
    for key in ("guest", "contact"):
        person = conversation.get(key)
        if isinstance(person, dict) and person.get("name"):
            return person["name"]
    if conversation.get("sender"):
        return f"@{conversation['sender']}"
    return "Guest"


def upsert_conversation(
    db: Session,
    org_id: UUID | None,
    remote: dict,
    messages: list[dict],
    agents: dict[str, str],
) -> Conversation:
    """Insert or refresh one remote conversation and its messages. Commits."""
    uuid = str(remote.get("id") or remote.get("uuid"))
    session_id = f"{SESSION_PREFIX}{uuid}"
    agent_code = remote.get("agentCode") or ""
    agent_name = resolve_agent_name(agent_code, agents)
    updated_at = (
        parse_remote_datetime(remote.get("updatedAt"))
        or parse_remote_datetime(remote.get("createdAt"))
        or utcnow()
    )

    conversation = db.query(Conversation).filter(Conversation.session_id == session_id).first()
    if conversation:
        conversation.status = ConversationStatus.ACTIVE.value
        conversation.agent_code = agent_code or None
        conversation.agent_name = agent_name
        conversation.updated_at = updated_at
    else:
        conversation = Conversation(
            organization_id=org_id,
            session_id=session_id,
            platform=detect_platform(remote, messages).value,
            status=ConversationStatus.ACTIVE.value,
            customer_name=_customer_name(remote),
            customer_contact=remote.get("contactPhone") or remote.get("sender"),
            agent_code=agent_code or None,
            agent_name=agent_name,
            created_at=parse_remote_datetime(remote.get("createdAt")) or utcnow(),
            updated_at=updated_at,
        )
        db.add(conversation)
        db.flush()

    for message in messages:
        if message.get("id") is None:
            continue
        message_id = f"{SESSION_PREFIX}{message['id']}"
        existing = db.get(ConversationMessage, message_id)
        if existing:
            existing.status = MessageStatus.DELIVERED.value
            continue
        db.add(ConversationMessage(
            id=message_id,
            conversation_id=conversation.id,
            sender=(MessageSender.USER if message.get("role") == "user" else MessageSender.AGENT).value,
            content=message.get("content") or "",
            status=MessageStatus.DELIVERED.value,
            created_at=parse_remote_datetime(message.get("createdAt")) or utcnow(),
        ))

    db.commit()
    return conversation


async def sync_recent_conversations(
    db: Session,
    config: AssistAIConfig,
    org_id: UUID | None,
    limit: int = 20,
) -> dict:
    """
    Pull the most recent remote conversations into local storage.

    Raises:
        AssistAIError: the conversation list could not be fetched
    """
    try:
        agents = {a.get("code"): a.get("name") for a in await get_agents(config) if a.get("code")}
    except AssistAIError as exc:
        logger.warning("AssistAI agents unavailable, names will fall back: %s", exc)
        agents = {}

    synced = 0
    remote_conversations = await get_conversations(config, limit)
    for remote in remote_conversations:
        uuid = remote.get("id") or remote.get("uuid")
        if not uuid:
            continue
        try:
            messages = await get_messages(config, str(uuid))
        except AssistAIError as exc:
            logger.warning("Failed to fetch messages for conversation %s: %s", uuid, exc)
            messages = []

        try:
            await anyio.to_thread.run_sync(upsert_conversation, db, org_id, remote, messages, agents)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to store conversation %s", uuid)
            continue
        synced += 1

    return {"success": True, "synced_count": synced, "conversations": len(remote_conversations)}


# =============================================================================
# Local reads
# =============================================================================


def list_conversations(db: Session, org_id: UUID, platform: str | None = None, status: str | None = None):
    query = db.query(Conversation).filter(Conversation.organization_id == org_id)
    if platform:
        query = query.filter(Conversation.platform == platform.upper())
    if status:
        query = query.filter(Conversation.status == status.upper())
    return query.order_by(Conversation.updated_at.desc())


def get_conversation(db: Session, conversation_id: UUID, org_id: UUID) -> Conversation | None:
    return db.query(Conversation).filter(
        Conversation.id == conversation_id,
        Conversation.organization_id == org_id,
    ).first()


def list_messages(db: Session, conversation: Conversation) -> list[ConversationMessage]:
    return db.query(ConversationMessage).filter(
        ConversationMessage.conversation_id == conversation.id
    ).order_by(ConversationMessage.created_at).all()


def record_outgoing(db: Session, org_id: UUID, uuid: str, content: str, remote: dict) -> ConversationMessage | None:
    """Store a message we sent when its conversation is mirrored locally."""
    conversation = db.query(Conversation).filter(
        Conversation.session_id == f"{SESSION_PREFIX}{uuid}",
        Conversation.organization_id == org_id,
    ).first()
    body = remote.get("data") if isinstance(remote.get("data"), dict) else remote
    remote_id = body.get("id")
    if not conversation or remote_id is None:
        return None
    message_id = f"{SESSION_PREFIX}{remote_id}"
    if db.get(ConversationMessage, message_id):
        return None
    message = ConversationMessage(
        id=message_id,
        conversation_id=conversation.id,
        sender=MessageSender.AGENT.value,
        content=content,
        status=MessageStatus.SENT.value,
    )
    db.add(message)
    conversation.updated_at = utcnow()
    db.commit()
    return message
