"""Tests for the AssistAI router, the periodic sync job and its internal trigger."""

import threading

import httpx
import pytest
from httpx import AsyncClient

from chronus.core.config import settings
from chronus.core.encryption import encrypt_credentials
from chronus.db.enums import IntegrationProvider
from chronus.db.models import Conversation, ConversationMessage, Integration, Organization
from chronus.jobs import assistai_sync
from chronus.services import assistai_service


def _configure(db, org, org_code: str = "ORG1") -> None:
    db.add(Integration(
        organization_id=org.id,
        provider=IntegrationProvider.ASSISTAI.value,
        credentials_encrypted=encrypt_credentials({
            "apiToken": "tok_test",
            "tenantDomain": "acme",
            "organizationCode": org_code,
        }),
        is_enabled=True,
    ))
    db.commit()


class FakeAssistAI:
    """In-memory AssistAI: conversations keyed by organization code."""

    def __init__(self):
        self.conversations: dict[str, list[dict]] = {}
        self.messages: dict[str, list[dict]] = {}
        self.failing_codes: set[str] = set()
        self.sent: list[tuple[str, str]] = []

    async def get_agents(self, config):
        return [{"code": "agent-1", "name": "Sofia"}]

    async def get_conversations(self, config, limit=20):
        if config.organization_code in self.failing_codes:
            raise assistai_service.AssistAIError("AssistAI error 500 on /conversation", status_code=500)
        return self.conversations.get(config.organization_code, [])[:limit]

    async def get_messages(self, config, uuid, limit=50):
        return self.messages.get(uuid, [])

    async def send_message(self, config, uuid, content, sender_name="Agent"):
        self.sent.append((uuid, content))
        return {"data": {"id": f"out-{len(self.sent)}"}}


@pytest.fixture
def fake_assistai(monkeypatch) -> FakeAssistAI:
    fake = FakeAssistAI()
    for name in ("get_agents", "get_conversations", "get_messages", "send_message"):
        monkeypatch.setattr(assistai_service, name, getattr(fake, name))
    return fake


def _remote(uuid: str, **extra) -> dict:
    conversation = {
        "id": uuid,
        "agentCode": "agent-1",
        "contactPhone": "+15550100",
        "guest": {"name": "Maria"},
        "updatedAt": "2026-10-01T10:00:00Z",
        "createdAt": "2026-10-01T09:00:00Z",
    }
    conversation.update(extra)
    return conversation


# =============================================================================
# Router
# =============================================================================


@pytest.mark.asyncio
async def test_requires_configuration(authed_crm_client: AsyncClient, fake_assistai):
    assert (await authed_crm_client.get("/assistai/agents")).status_code == 400
    assert (await authed_crm_client.post("/assistai/sync-recent")).status_code == 400


@pytest.mark.asyncio
async def test_agents(authed_crm_client: AsyncClient, fake_assistai, db, test_org):
    _configure(db, test_org)
    response = await authed_crm_client.get("/assistai/agents")
    assert response.status_code == 200
    assert response.json() == {"agents": [{"code": "agent-1", "name": "Sofia"}]}


@pytest.mark.asyncio
async def test_vendor_error_is_bad_gateway(authed_crm_client: AsyncClient, fake_assistai, db, test_org):
    _configure(db, test_org)
    fake_assistai.failing_codes.add("ORG1")
    response = await authed_crm_client.post("/assistai/sync-recent")
    assert response.status_code == 502


@pytest.mark.asyncio
async def test_sync_then_read(authed_crm_client: AsyncClient, fake_assistai, db, test_org):
    _configure(db, test_org)
    fake_assistai.conversations["ORG1"] = [_remote("c-1", source="whatsapp")]
    fake_assistai.messages["c-1"] = [
        {"id": 1, "role": "user", "content": "Hola", "createdAt": "2026-10-01T09:00:00Z"},
        {"id": 2, "role": "assistant", "content": "Hi Maria", "createdAt": "2026-10-01T09:01:00Z"},
    ]

    response = await authed_crm_client.post("/assistai/sync-recent")
    assert response.status_code == 200
    assert response.json() == {"success": True, "synced_count": 1, "conversations": 1}

    listing = (await authed_crm_client.get("/assistai/conversations")).json()
    assert listing["total"] == 1
    conversation = listing["items"][0]
    assert conversation["platform"] == "WHATSAPP"
    assert conversation["agent_name"] == "Sofia"
    assert conversation["customer_name"] == "Maria"

    messages = (await authed_crm_client.get(f"/assistai/conversations/{conversation['id']}/messages")).json()
    assert [(m["sender"], m["content"]) for m in messages] == [("USER", "Hola"), ("AGENT", "Hi Maria")]


@pytest.mark.asyncio
async def test_send_message_records_locally(authed_crm_client: AsyncClient, fake_assistai, db, test_org):
    _configure(db, test_org)
    fake_assistai.conversations["ORG1"] = [_remote("c-1")]
    await authed_crm_client.post("/assistai/sync-recent")

    response = await authed_crm_client.post("/assistai/conversations/c-1/messages", json={"content": "On it"})
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert fake_assistai.sent == [("c-1", "On it")]

    stored = db.query(ConversationMessage).all()
    assert [m.content for m in stored] == ["On it"]


@pytest.mark.asyncio
async def test_unknown_conversation_messages(authed_crm_client: AsyncClient):
    response = await authed_crm_client.get(
        "/assistai/conversations/00000000-0000-0000-0000-000000000001/messages"
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_vendor_get_is_single_attempt(monkeypatch):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, json={"error": "busy"})

    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        httpx, "AsyncClient", lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs)
    )
    config = assistai_service.AssistAIConfig(
        base_url="https://assistai.test", api_token="tok", tenant_domain="acme", organization_code="ORG1",
    )

    with pytest.raises(assistai_service.AssistAIError) as excinfo:
        await assistai_service.get_conversations(config)
    assert excinfo.value.status_code == 503
    assert len(calls) == 1
    assert calls[0].headers["x-organization-code"] == "ORG1"


# =============================================================================
# Sync job
# =============================================================================


def _second_org(db) -> Organization:
    org = Organization(name="Second", slug="second-org")
    db.add(org)
    db.commit()
    return org


@pytest.mark.asyncio
async def test_job_skips_when_already_running(monkeypatch, db):
    monkeypatch.setattr(assistai_sync, "_sync_running", True)
    result = await assistai_sync.run_assistai_sync()
    assert result == {"skipped": True, "organizations": 0, "synced": 0}


@pytest.mark.asyncio
async def test_job_is_idempotent(fake_assistai, db, test_org):
    _configure(db, test_org)
    fake_assistai.conversations["ORG1"] = [_remote("c-1")]
    fake_assistai.messages["c-1"] = [{"id": 7, "role": "user", "content": "Hola"}]

    first = await assistai_sync.run_assistai_sync()
    second = await assistai_sync.run_assistai_sync()

    assert first == {"skipped": False, "organizations": 1, "synced": 1}
    assert second == first
    db.expire_all()
    assert db.query(Conversation).count() == 1
    assert db.query(ConversationMessage).count() == 1
    assert not assistai_sync.is_running()


@pytest.mark.asyncio
async def test_job_survives_one_org_failing(fake_assistai, db, test_org):
    other = _second_org(db)
    _configure(db, test_org, org_code="BROKEN")
    _configure(db, other, org_code="ORG2")
    fake_assistai.failing_codes.add("BROKEN")
    fake_assistai.conversations["ORG2"] = [_remote("c-2"), _remote("c-3")]

    result = await assistai_sync.run_assistai_sync()

    assert result == {"skipped": False, "organizations": 1, "synced": 2}
    db.expire_all()
    assert {c.organization_id for c in db.query(Conversation).all()} == {other.id}
    assert not assistai_sync.is_running()


@pytest.mark.asyncio
async def test_job_ignores_unconfigured_orgs(fake_assistai, db, test_org):
    result = await assistai_sync.run_assistai_sync()
    assert result == {"skipped": False, "organizations": 0, "synced": 0}


@pytest.mark.asyncio
async def test_job_keeps_database_work_off_the_event_loop(fake_assistai, db, test_org, monkeypatch):
    _configure(db, test_org)
    fake_assistai.conversations["ORG1"] = [_remote("c-1")]
    loop_thread = threading.get_ident()
    db_threads = []

    def recording(fn):
        def wrapper(*args, **kwargs):
            db_threads.append(threading.get_ident())
            return fn(*args, **kwargs)
        return wrapper

    monkeypatch.setattr(assistai_service, "resolve_config", recording(assistai_service.resolve_config))
    monkeypatch.setattr(assistai_service, "upsert_conversation", recording(assistai_service.upsert_conversation))

    result = await assistai_sync.run_assistai_sync()

    assert result == {"skipped": False, "organizations": 1, "synced": 1}
    assert len(db_threads) == 2
    assert loop_thread not in db_threads


# =============================================================================
# Internal trigger
# =============================================================================


@pytest.mark.asyncio
async def test_internal_trigger_unconfigured(crm_client: AsyncClient):
    response = await crm_client.post("/internal/scheduled/assistai-sync", headers={"X-Internal-Secret": "x"})
    assert response.status_code == 501


@pytest.mark.asyncio
async def test_internal_trigger(crm_client: AsyncClient, monkeypatch, fake_assistai, db, test_org):
    monkeypatch.setattr(settings, "INTERNAL_SECRET", "cron-secret")

    wrong = await crm_client.post("/internal/scheduled/assistai-sync", headers={"X-Internal-Secret": "nope"})
    assert wrong.status_code == 403

    _configure(db, test_org)
    fake_assistai.conversations["ORG1"] = [_remote("c-1")]
    response = await crm_client.post(
        "/internal/scheduled/assistai-sync", headers={"X-Internal-Secret": "cron-secret"}
    )
    assert response.status_code == 200
    assert response.json() == {"skipped": False, "organizations": 1, "synced": 1}
