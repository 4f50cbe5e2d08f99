"""Tests for global search in both products."""

import pytest
from httpx import AsyncClient

from chronus.db.enums import Role


@pytest.mark.asyncio
async def test_crm_search_groups_types(authed_crm_client: AsyncClient):
    await authed_crm_client.post("/customers", json={"name": "Acme Corp", "email": "ops@acme.com"})
    await authed_crm_client.post("/leads", json={"name": "Acme Lead", "company": "Acme"})
    await authed_crm_client.post("/tickets", json={"title": "Acme cannot log in"})
    await authed_crm_client.post("/leads", json={"name": "Unrelated"})

    response = await authed_crm_client.get("/search", params={"q": "acme"})
    assert response.status_code == 200
    types = sorted(r["type"] for r in response.json()["results"])
    assert types == ["customer", "lead", "ticket"]


@pytest.mark.asyncio
async def test_short_query_rejected(authed_crm_client: AsyncClient, authed_dev_client: AsyncClient):
    assert (await authed_crm_client.get("/search", params={"q": "a"})).status_code == 400
    assert (await authed_dev_client.get("/search", params={"q": " "})).status_code == 400


@pytest.mark.asyncio
async def test_dev_search_is_member_scoped(
    authed_dev_client: AsyncClient, dev_client: AsyncClient, make_user, test_org, headers_for
):
    await authed_dev_client.post("/projects", json={"name": "Apollo", "budget": 1000})
    await authed_dev_client.post("/projects", json={"name": "Apollo Mobile", "budget": 500})

    admin_view = await authed_dev_client.get("/search", params={"q": "apollo"})
    assert len(admin_view.json()["results"]) == 2

    dev = make_user(test_org, Role.DEV, name="Dev")
    dev_view = await dev_client.get(
        "/search", params={"q": "apollo"}, headers=headers_for(dev, test_org, Role.DEV)
    )
    assert dev_view.json()["results"] == []
