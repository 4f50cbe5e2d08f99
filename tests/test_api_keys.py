"""Tests for org API keys and the API-key-authenticated lead webhook."""

import pytest
from httpx import AsyncClient

from chronus.db.enums import Role


async def _new_key(client: AsyncClient, name: str = "Website form") -> dict:
    response = await client.post("/api-keys", json={"name": name})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_list_delete(authed_crm_client: AsyncClient):
    created = await _new_key(authed_crm_client)
    assert created["key"].startswith("sk_live_")
    assert created["key"].startswith(created["key_prefix"])

    listing = await authed_crm_client.get("/api-keys")
    assert listing.status_code == 200
    keys = listing.json()
    assert len(keys) == 1
    assert "key" not in keys[0]

    assert (await authed_crm_client.delete(f"/api-keys/{created['id']}")).status_code == 204
    assert (await authed_crm_client.delete(f"/api-keys/{created['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_non_admin_forbidden(crm_client: AsyncClient, make_user, test_org, headers_for):
    agent = make_user(test_org, Role.AGENT, name="Agent")
    response = await crm_client.get("/api-keys", headers=headers_for(agent, test_org, Role.AGENT))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_api_key_authenticates_rest_calls(authed_crm_client: AsyncClient, crm_client: AsyncClient):
    created = await _new_key(authed_crm_client)
    await authed_crm_client.post("/customers", json={"name": "Jane", "email": "jane@corp.com"})

    response = await crm_client.get("/customers", headers={"X-API-Key": created["key"]})
    assert response.status_code == 200
    assert response.json()["total"] == 1

    bad = await crm_client.get("/customers", headers={"X-API-Key": "sk_live_wrong"})
    assert bad.status_code == 401


@pytest.mark.asyncio
async def test_incoming_lead_webhook(authed_crm_client: AsyncClient, crm_client: AsyncClient):
    created = await _new_key(authed_crm_client)
    headers = {"Authorization": f"Bearer {created['key']}"}

    response = await crm_client.post(
        "/webhooks/incoming/leads",
        json={"name": "Web Visitor", "email": "visitor@site.com", "source": "MANUAL", "extra": "ignored"},
        headers=headers,
    )
    assert response.status_code == 201
    lead = response.json()
    assert lead["source"] == "WEBHOOK"
    assert lead["email"] == "visitor@site.com"

    listing = await authed_crm_client.get("/leads", params={"source": "WEBHOOK"})
    assert listing.json()["total"] == 1


@pytest.mark.asyncio
async def test_incoming_lead_rejections(authed_crm_client: AsyncClient, crm_client: AsyncClient):
    created = await _new_key(authed_crm_client)
    headers = {"Authorization": f"Bearer {created['key']}"}

    no_key = await crm_client.post("/webhooks/incoming/leads", json={"name": "X"})
    assert no_key.status_code == 401

    wrong_key = await crm_client.post(
        "/webhooks/incoming/leads", json={"name": "X"}, headers={"Authorization": "Bearer sk_live_nope"}
    )
    assert wrong_key.status_code == 401

    no_name = await crm_client.post("/webhooks/incoming/leads", json={"email": "a@b.com"}, headers=headers)
    assert no_name.status_code == 400

    bad_value = await crm_client.post(
        "/webhooks/incoming/leads", json={"name": "X", "value": -5}, headers=headers
    )
    assert bad_value.status_code == 400


@pytest.mark.asyncio
async def test_deleted_key_stops_working(authed_crm_client: AsyncClient, crm_client: AsyncClient):
    created = await _new_key(authed_crm_client)
    await authed_crm_client.delete(f"/api-keys/{created['id']}")

    response = await crm_client.post(
        "/webhooks/incoming/leads",
        json={"name": "Late"},
        headers={"Authorization": f"Bearer {created['key']}"},
    )
    assert response.status_code == 401
