"""Tests for CRM leads: CRUD, bulk import, assignment and conversion."""

import pytest
from httpx import AsyncClient

from chronus.db.enums import Role
from chronus.db.models import Notification


@pytest.mark.asyncio
async def test_create_lead_defaults(authed_crm_client: AsyncClient):
    response = await authed_crm_client.post("/leads", json={"name": "Prospect", "email": "P@Corp.com"})
    assert response.status_code == 201
    lead = response.json()
    assert lead["status"] == "NEW"
    assert lead["source"] == "MANUAL"
    assert lead["email"] == "p@corp.com"


@pytest.mark.asyncio
async def test_invalid_status_rejected(authed_crm_client: AsyncClient):
    response = await authed_crm_client.post("/leads", json={"name": "Prospect", "status": "MAYBE"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_assignee_must_be_member(authed_crm_client: AsyncClient, make_user):
    outsider = make_user(None, name="Outsider")
    response = await authed_crm_client.post(
        "/leads", json={"name": "Prospect", "assigned_to_user_id": str(outsider.id)}
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_assignment_notifies_assignee(authed_crm_client: AsyncClient, make_user, test_org, db):
    agent = make_user(test_org, Role.AGENT, name="Agent")
    response = await authed_crm_client.post(
        "/leads", json={"name": "Prospect", "assigned_to_user_id": str(agent.id)}
    )
    assert response.status_code == 201

    notifications = db.query(Notification).filter(Notification.user_id == agent.id).all()
    assert len(notifications) == 1
    assert notifications[0].type == "lead_assigned"


@pytest.mark.asyncio
async def test_bulk_create(authed_crm_client: AsyncClient):
    leads = [{"name": f"Lead {i}"} for i in range(3)]
    response = await authed_crm_client.post("/leads/bulk", json={"leads": leads})
    assert response.status_code == 201
    assert response.json() == {"created": 3}

    listing = await authed_crm_client.get("/leads")
    assert listing.json()["total"] == 3


@pytest.mark.asyncio
async def test_bulk_limits(authed_crm_client: AsyncClient):
    empty = await authed_crm_client.post("/leads/bulk", json={"leads": []})
    assert empty.status_code == 400

    too_many = await authed_crm_client.post(
        "/leads/bulk", json={"leads": [{"name": f"L{i}"} for i in range(501)]}
    )
    assert too_many.status_code == 400

    listing = await authed_crm_client.get("/leads")
    assert listing.json()["total"] == 0


@pytest.mark.asyncio
async def test_bulk_rejects_outside_assignee(authed_crm_client: AsyncClient, make_user):
    outsider = make_user(None, name="Outsider")
    leads = [{"name": "Fine"}, {"name": "Bad", "assigned_to_user_id": str(outsider.id)}]
    response = await authed_crm_client.post("/leads/bulk", json={"leads": leads})
    assert response.status_code == 400
    assert "not a member" in response.json()["detail"]

    listing = await authed_crm_client.get("/leads")
    assert listing.json()["total"] == 0


@pytest.mark.asyncio
async def test_update_status_and_filter(authed_crm_client: AsyncClient):
    lead = (await authed_crm_client.post("/leads", json={"name": "Prospect"})).json()
    await authed_crm_client.post("/leads", json={"name": "Other"})

    response = await authed_crm_client.put(f"/leads/{lead['id']}", json={"status": "qualified"})
    assert response.status_code == 200
    assert response.json()["status"] == "QUALIFIED"

    qualified = await authed_crm_client.get("/leads", params={"status": "QUALIFIED"})
    assert [item["name"] for item in qualified.json()["items"]] == ["Prospect"]


@pytest.mark.asyncio
async def test_convert_lead_to_customer(authed_crm_client: AsyncClient):
    lead = (await authed_crm_client.post(
        "/leads", json={"name": "Prospect", "email": "buyer@corp.com", "company": "Corp"}
    )).json()

    response = await authed_crm_client.post(f"/leads/{lead['id']}/convert")
    assert response.status_code == 200
    customer = response.json()
    assert customer["email"] == "buyer@corp.com"
    assert customer["status"] == "ACTIVE"

    updated = (await authed_crm_client.get(f"/leads/{lead['id']}")).json()
    assert updated["status"] == "WON"
    assert updated["customer_id"] == customer["id"]

    again = await authed_crm_client.post(f"/leads/{lead['id']}/convert")
    assert again.json()["id"] == customer["id"]


@pytest.mark.asyncio
async def test_delete_lead(authed_crm_client: AsyncClient):
    lead = (await authed_crm_client.post("/leads", json={"name": "Prospect"})).json()
    assert (await authed_crm_client.delete(f"/leads/{lead['id']}")).status_code == 204
    assert (await authed_crm_client.get(f"/leads/{lead['id']}")).status_code == 404
