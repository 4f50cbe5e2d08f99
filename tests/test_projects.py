"""Tests for ChronusDev clients, projects and project members."""

import pytest
from httpx import AsyncClient

from chronus.db.enums import Role


async def _project(client: AsyncClient, **overrides) -> dict:
    body = {"name": "Website", "budget": 5000}
    body.update(overrides)
    response = await client.post("/projects", json=body)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_client_crud(authed_dev_client: AsyncClient):
    response = await authed_dev_client.post("/clients", json={"name": "Globex", "contact_name": "Hank"})
    assert response.status_code == 201
    client = response.json()
    assert client["email"].endswith("@crm.local")

    updated = await authed_dev_client.put(f"/clients/{client['id']}", json={"email": "Hank@Globex.com"})
    assert updated.json()["email"] == "hank@globex.com"

    listing = await authed_dev_client.get("/clients")
    assert [c["name"] for c in listing.json()] == ["Globex"]

    assert (await authed_dev_client.delete(f"/clients/{client['id']}")).status_code == 204
    assert (await authed_dev_client.get(f"/clients/{client['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_create_project_with_client(authed_dev_client: AsyncClient, test_user):
    client = (await authed_dev_client.post("/clients", json={"name": "Globex"})).json()
    project = await _project(authed_dev_client, client_id=client["id"], currency="eur")
    assert project["client_id"] == client["id"]
    assert project["currency"] == "EUR"
    assert project["status"] == "ACTIVE"

    members = (await authed_dev_client.get(f"/projects/{project['id']}/members")).json()
    assert [(m["user_id"], m["role"]) for m in members] == [(str(test_user.id), "MANAGER")]


@pytest.mark.asyncio
async def test_unknown_client_rejected(authed_dev_client: AsyncClient):
    response = await authed_dev_client.post(
        "/projects", json={"name": "X", "budget": 1, "client_id": "00000000-0000-0000-0000-000000000001"}
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_dev_sees_only_member_projects(
    authed_dev_client: AsyncClient, dev_client: AsyncClient, make_user, test_org, headers_for
):
    project = await _project(authed_dev_client)
    await _project(authed_dev_client, name="Internal")
    dev = make_user(test_org, Role.DEV, name="Dev")
    headers = headers_for(dev, test_org, Role.DEV)

    assert (await dev_client.get("/projects", headers=headers)).json() == []

    response = await authed_dev_client.post(
        f"/projects/{project['id']}/members",
        json={"user_id": str(dev.id), "role": "DEV", "pay_rate": 20, "bill_rate": 45},
    )
    assert response.status_code == 200
    assert response.json()["pay_rate"] == 20
    assert response.json()["name"] == "Dev"

    visible = (await dev_client.get("/projects", headers=headers)).json()
    assert [p["name"] for p in visible] == ["Website"]

    admin_view = (await authed_dev_client.get("/projects")).json()
    assert len(admin_view) == 2


@pytest.mark.asyncio
async def test_member_must_belong_to_org(authed_dev_client: AsyncClient, make_user):
    project = await _project(authed_dev_client)
    stranger = make_user(None, name="Stranger")
    response = await authed_dev_client.post(
        f"/projects/{project['id']}/members", json={"user_id": str(stranger.id)}
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_member_upsert_and_remove(authed_dev_client: AsyncClient, make_user, test_org):
    project = await _project(authed_dev_client)
    dev = make_user(test_org, Role.DEV, name="Dev")
    url = f"/projects/{project['id']}/members"

    await authed_dev_client.post(url, json={"user_id": str(dev.id), "pay_rate": 10})
    await authed_dev_client.post(url, json={"user_id": str(dev.id), "pay_rate": 25, "bill_rate": 60})
    members = (await authed_dev_client.get(url)).json()
    assert len(members) == 2
    dev_member = next(m for m in members if m["user_id"] == str(dev.id))
    assert (dev_member["pay_rate"], dev_member["bill_rate"]) == (25, 60)

    assert (await authed_dev_client.delete(f"{url}/{dev.id}")).status_code == 204
    assert (await authed_dev_client.delete(f"{url}/{dev.id}")).status_code == 404


@pytest.mark.asyncio
async def test_project_permissions(
    authed_dev_client: AsyncClient, dev_client: AsyncClient, make_user, test_org, headers_for
):
    project = await _project(authed_dev_client)
    dev = make_user(test_org, Role.DEV, name="Dev")
    manager = make_user(test_org, Role.MANAGER, name="Manager")

    dev_update = await dev_client.put(
        f"/projects/{project['id']}", json={"budget": 1}, headers=headers_for(dev, test_org, Role.DEV)
    )
    assert dev_update.status_code == 403

    manager_headers = headers_for(manager, test_org, Role.MANAGER)
    manager_update = await dev_client.put(
        f"/projects/{project['id']}", json={"status": "PAUSED"}, headers=manager_headers
    )
    assert manager_update.status_code == 200
    assert manager_update.json()["status"] == "PAUSED"

    manager_delete = await dev_client.delete(f"/projects/{project['id']}", headers=manager_headers)
    assert manager_delete.status_code == 403

    assert (await authed_dev_client.delete(f"/projects/{project['id']}")).status_code == 204
    assert (await authed_dev_client.get(f"/projects/{project['id']}")).status_code == 404
