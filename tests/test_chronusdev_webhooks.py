"""Tests for the ChronusDev -> CRM relay endpoints."""

import pytest
from httpx import AsyncClient

from chronus.db.enums import Role
from chronus.db.models import Notification


@pytest.fixture
async def handed_off(authed_crm_client: AsyncClient, make_user, test_org, db) -> dict:
    agent = make_user(test_org, Role.AGENT, name="Agent")
    response = await authed_crm_client.post(
        "/tickets", json={"title": "Export fails", "assigned_to_user_id": str(agent.id)}
    )
    ticket = response.json()
    ticket["agent_id"] = agent.id
    return ticket


@pytest.mark.asyncio
async def test_sync_key_required(crm_client: AsyncClient, sync_key, handed_off):
    body = {"ticketId": handed_off["id"], "taskId": "t-1"}
    no_key = await crm_client.post("/webhooks/chronusdev/ticket-received", json=body)
    assert no_key.status_code == 401

    wrong = await crm_client.post(
        "/webhooks/chronusdev/ticket-received", json=body, headers={"X-Sync-Key": "wrong"}
    )
    assert wrong.status_code == 401


@pytest.mark.asyncio
async def test_unknown_ticket(crm_client: AsyncClient, sync_key):
    headers = {"X-Sync-Key": sync_key}
    for ticket_id in ("not-a-uuid", "00000000-0000-0000-0000-000000000001", None):
        response = await crm_client.post(
            "/webhooks/chronusdev/task-completed", json={"ticketId": ticket_id}, headers=headers
        )
        assert response.status_code == 404


@pytest.mark.asyncio
async def test_ticket_received(authed_crm_client: AsyncClient, crm_client: AsyncClient, sync_key, handed_off, db):
    response = await crm_client.post(
        "/webhooks/chronusdev/ticket-received",
        json={"ticketId": handed_off["id"], "taskId": "task-9"},
        headers={"X-Sync-Key": sync_key},
    )
    assert response.status_code == 200
    assert response.json() == {"success": True}

    ticket = (await authed_crm_client.get(f"/tickets/{handed_off['id']}")).json()
    assert ticket["chronusdev_task_id"] == "task-9"
    types = [n.type for n in db.query(Notification).filter(Notification.user_id == handed_off["agent_id"])]
    assert "ticket_received" in types


@pytest.mark.asyncio
async def test_task_completed_resolves(authed_crm_client: AsyncClient, crm_client: AsyncClient, sync_key, handed_off, db, test_user):
    response = await crm_client.post(
        "/webhooks/chronusdev/task-completed",
        json={"ticketId": handed_off["id"], "taskId": "task-9", "completedBy": "Dana"},
        headers={"X-Sync-Key": sync_key},
    )
    assert response.status_code == 200

    ticket = (await authed_crm_client.get(f"/tickets/{handed_off['id']}")).json()
    assert ticket["status"] == "RESOLVED"
    assert ticket["resolved_at"] is not None

    notified = {n.user_id for n in db.query(Notification).filter(Notification.type == "ticket_resolved")}
    assert notified == {handed_off["agent_id"], test_user.id}


@pytest.mark.asyncio
async def test_task_status_mapping(authed_crm_client: AsyncClient, crm_client: AsyncClient, sync_key, handed_off):
    headers = {"X-Sync-Key": sync_key}
    url = "/webhooks/chronusdev/task-status-changed"

    review = await crm_client.post(url, json={"ticketId": handed_off["id"], "status": "REVIEW"}, headers=headers)
    assert review.json() == {"success": True, "mapped": True}
    assert (await authed_crm_client.get(f"/tickets/{handed_off['id']}")).json()["status"] == "IN_PROGRESS"

    backlog = await crm_client.post(url, json={"ticketId": handed_off["id"], "status": "BACKLOG"}, headers=headers)
    assert backlog.json() == {"success": True, "mapped": False}
    assert (await authed_crm_client.get(f"/tickets/{handed_off['id']}")).json()["status"] == "IN_PROGRESS"

    done = await crm_client.post(url, json={"ticketId": handed_off["id"], "status": "done"}, headers=headers)
    assert done.json()["mapped"] is True
    assert (await authed_crm_client.get(f"/tickets/{handed_off['id']}")).json()["status"] == "RESOLVED"


@pytest.mark.asyncio
async def test_comment_and_attachment(authed_crm_client: AsyncClient, crm_client: AsyncClient, sync_key, handed_off):
    headers = {"X-Sync-Key": sync_key}
    comment = await crm_client.post(
        "/webhooks/chronusdev/comment-added",
        json={"ticketId": handed_off["id"], "content": "Fixed in build 12", "authorName": "Dana"},
        headers=headers,
    )
    assert comment.status_code == 200
    assert comment.json()["success"] is True

    attachment = await crm_client.post(
        "/webhooks/chronusdev/attachment-added",
        json={"ticketId": handed_off["id"], "name": "log.txt", "url": "https://files.test/log.txt"},
        headers=headers,
    )
    assert attachment.status_code == 200

    missing = await crm_client.post(
        "/webhooks/chronusdev/comment-added", json={"ticketId": handed_off["id"]}, headers=headers
    )
    assert missing.status_code == 400

    comments = (await authed_crm_client.get(f"/tickets/{handed_off['id']}/comments")).json()
    assert [c["content"] for c in comments] == [
        "[Dev - Dana]: Fixed in build 12",
        "[Dev attachment] log.txt: https://files.test/log.txt",
    ]
