"""Tests for the current organization, its members and the CRM link."""

import pytest
from httpx import AsyncClient

from chronus.db.enums import Role
from chronus.db.models import Organization


@pytest.mark.asyncio
async def test_current_org(authed_dev_client: AsyncClient, test_org):
    response = await authed_dev_client.get("/organizations/current")
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == str(test_org.id)
    assert data["crm_organization_id"] is None


@pytest.mark.asyncio
async def test_add_member_by_email(authed_dev_client: AsyncClient, make_user, test_user):
    newcomer = make_user(None, name="Newcomer")

    added = await authed_dev_client.post(
        "/organizations/current/members", json={"email": newcomer.email.upper(), "role": "MANAGER"}
    )
    assert added.status_code == 201
    assert added.json()["role"] == "MANAGER"

    again = await authed_dev_client.post("/organizations/current/members", json={"email": newcomer.email})
    assert again.status_code == 400

    unknown = await authed_dev_client.post("/organizations/current/members", json={"email": "ghost@test.com"})
    assert unknown.status_code == 404

    members = (await authed_dev_client.get("/organizations/current/members")).json()
    assert {m["user_id"] for m in members} == {str(test_user.id), str(newcomer.id)}


@pytest.mark.asyncio
async def test_only_admin_adds_members(dev_client: AsyncClient, make_user, test_org, headers_for):
    manager = make_user(test_org, Role.MANAGER, name="Manager")
    newcomer = make_user(None, name="Newcomer")
    response = await dev_client.post(
        "/organizations/current/members",
        json={"email": newcomer.email},
        headers=headers_for(manager, test_org, Role.MANAGER),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_link_crm(authed_dev_client: AsyncClient, db):
    linked = await authed_dev_client.post("/organizations/current/link-crm", json={"crm_organization_id": " crm-42 "})
    assert linked.status_code == 200
    assert linked.json()["crm_organization_id"] == "crm-42"

    db.add(Organization(name="Other", slug="other-org", crm_organization_id="crm-99"))
    db.commit()
    conflict = await authed_dev_client.post("/organizations/current/link-crm", json={"crm_organization_id": "crm-99"})
    assert conflict.status_code == 400
