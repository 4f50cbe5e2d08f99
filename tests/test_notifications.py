"""Tests for notifications, the activity feed and the WebSocket registry."""

import json
import uuid

import pytest
from httpx import AsyncClient

from chronus.core.websocket import ConnectionManager
from chronus.db.enums import NotificationType, Role
from chronus.services import notification_service


def _notify(db, org, user, title="Hello", dedupe_key=None):
    return notification_service.create_notification(
        db=db,
        org_id=org.id,
        user_id=user.id,
        type=NotificationType.TASK_CREATED,
        title=title,
        dedupe_key=dedupe_key,
    )


@pytest.mark.asyncio
async def test_list_count_and_read(authed_dev_client: AsyncClient, db, test_org, test_user):
    first = _notify(db, test_org, test_user, "First")
    _notify(db, test_org, test_user, "Second")

    listed = (await authed_dev_client.get("/notifications")).json()
    assert listed["unread_count"] == 2
    assert {n["title"] for n in listed["items"]} == {"First", "Second"}
    assert (await authed_dev_client.get("/notifications/count")).json() == {"count": 2}

    read = await authed_dev_client.patch(f"/notifications/{first.id}/read")
    assert read.status_code == 200
    assert read.json()["read_at"] is not None

    unread = (await authed_dev_client.get("/notifications", params={"unread_only": True})).json()
    assert [n["title"] for n in unread["items"]] == ["Second"]

    marked = await authed_dev_client.post("/notifications/read-all")
    assert marked.json() == {"marked_read": 1}
    assert (await authed_dev_client.get("/notifications/count")).json() == {"count": 0}


@pytest.mark.asyncio
async def test_cannot_read_someone_elses(authed_crm_client: AsyncClient, db, test_org, make_user):
    other = make_user(test_org, Role.AGENT, name="Other")
    notification = _notify(db, test_org, other)

    response = await authed_crm_client.patch(f"/notifications/{notification.id}/read")
    assert response.status_code == 404


def test_dedupe_key_suppresses_repeat(db, test_org, test_user):
    assert _notify(db, test_org, test_user, dedupe_key="lead:1") is not None
    assert _notify(db, test_org, test_user, dedupe_key="lead:1") is None


@pytest.mark.asyncio
async def test_activity_feed(authed_crm_client: AsyncClient, test_user):
    created = (await authed_crm_client.post("/customers", json={"name": "Acme", "email": "ops@acme.test"})).json()
    await authed_crm_client.post("/leads", json={"name": "Ada", "email": "ada@lead.test"})

    feed = (await authed_crm_client.get("/activity")).json()
    assert len(feed) >= 2
    assert feed[0]["user_name"] == "Test User"

    for_customer = (await authed_crm_client.get(
        "/activity", params={"entity_type": "customer", "entity_id": created["id"]}
    )).json()
    assert [a["type"] for a in for_customer] == ["CREATED"]

    limited = (await authed_crm_client.get("/activity", params={"limit": 1})).json()
    assert len(limited) == 1


class FakeSocket:
    def __init__(self, fail=False):
        self.sent: list[str] = []
        self.accepted = False
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def send_text(self, text):
        if self.fail:
            raise RuntimeError("closed")
        self.sent.append(text)


@pytest.mark.asyncio
async def test_connection_manager_routes_by_user_and_org():
    manager = ConnectionManager()
    org_id, alice, bob = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    alice_ws, bob_ws = FakeSocket(), FakeSocket()
    await manager.connect(alice_ws, alice, org_id)
    await manager.connect(bob_ws, bob, org_id)
    assert alice_ws.accepted
    assert manager.get_total_connections() == 2

    reached = await manager.send_to_user(alice, "notification", {"id": "n-1"})
    assert reached == 1
    assert json.loads(alice_ws.sent[0]) == {"type": "notification", "data": {"id": "n-1"}}
    assert bob_ws.sent == []

    await manager.send_to_org(org_id, "refresh", {})
    assert len(bob_ws.sent) == 1

    await manager.disconnect(alice_ws, alice)
    assert not manager.is_connected(alice)


@pytest.mark.asyncio
async def test_connection_manager_drops_dead_sockets():
    manager = ConnectionManager()
    user_id = uuid.uuid4()
    await manager.connect(FakeSocket(fail=True), user_id)

    assert await manager.send_to_user(user_id, "notification", {}) == 0
    assert not manager.is_connected(user_id)
