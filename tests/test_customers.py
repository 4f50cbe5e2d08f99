"""Tests for CRM customers: CRUD, tenant isolation, match, 360 and the ChronusDev relay."""

import pytest
from httpx import AsyncClient

from chronus.db.enums import Role
from chronus.db.models import Notification, Organization


async def _create(client: AsyncClient, **overrides) -> dict:
    body = {"name": "Jane Buyer", "email": "jane@buyer.com", "phone": "+1 555 0100"}
    body.update(overrides)
    response = await client.post("/customers", json=body)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_and_get_customer(authed_crm_client: AsyncClient):
    created = await _create(authed_crm_client, email="Jane@Buyer.com", tags=["vip"])
    assert created["email"] == "jane@buyer.com"
    assert created["plan"] == "FREE"
    assert created["status"] == "TRIAL"

    response = await authed_crm_client.get(f"/customers/{created['id']}")
    assert response.status_code == 200
    assert response.json()["tags"] == ["vip"]


@pytest.mark.asyncio
async def test_duplicate_email_rejected(authed_crm_client: AsyncClient):
    await _create(authed_crm_client)
    response = await authed_crm_client.post("/customers", json={"name": "Other", "email": "JANE@buyer.com"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_invalid_plan_rejected(authed_crm_client: AsyncClient):
    response = await authed_crm_client.post(
        "/customers", json={"name": "X", "email": "x@x.com", "plan": "PLATINUM"}
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_filters_and_counts(authed_crm_client: AsyncClient):
    jane = await _create(authed_crm_client, tags=["vip"], status="ACTIVE")
    await _create(authed_crm_client, name="Bob", email="bob@shop.com", status="CHURNED")
    await authed_crm_client.post("/tickets", json={"title": "Broken", "customer_id": jane["id"]})

    everyone = await authed_crm_client.get("/customers")
    assert everyone.json()["total"] == 2

    active = await authed_crm_client.get("/customers", params={"status": "ACTIVE"})
    items = active.json()["items"]
    assert [c["name"] for c in items] == ["Jane Buyer"]
    assert items[0]["open_tickets"] == 1
    assert items[0]["pending_invoices"] == 0

    by_tag = await authed_crm_client.get("/customers", params={"tags": "vip,other"})
    assert by_tag.json()["total"] == 1

    by_search = await authed_crm_client.get("/customers", params={"search": "shop"})
    assert [c["name"] for c in by_search.json()["items"]] == ["Bob"]


@pytest.mark.asyncio
async def test_update_and_delete(authed_crm_client: AsyncClient):
    created = await _create(authed_crm_client)
    response = await authed_crm_client.put(
        f"/customers/{created['id']}", json={"plan": "pro", "monthly_revenue": 99.5}
    )
    assert response.status_code == 200
    assert response.json()["plan"] == "PRO"
    assert response.json()["monthly_revenue"] == 99.5

    assert (await authed_crm_client.delete(f"/customers/{created['id']}")).status_code == 204
    assert (await authed_crm_client.get(f"/customers/{created['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_other_org_cannot_see_customer(
    authed_crm_client: AsyncClient, crm_client: AsyncClient, db, make_user, headers_for
):
    created = await _create(authed_crm_client)

    other_org = Organization(name="Rival", slug="rival")
    db.add(other_org)
    db.commit()
    outsider = make_user(other_org, Role.ADMIN, name="Outsider")
    headers = headers_for(outsider, other_org, Role.ADMIN)

    assert (await crm_client.get(f"/customers/{created['id']}", headers=headers)).status_code == 404
    listing = await crm_client.get("/customers", headers=headers)
    assert listing.json()["total"] == 0


@pytest.mark.asyncio
async def test_match_by_email_or_phone(authed_crm_client: AsyncClient):
    created = await _create(authed_crm_client)

    by_email = await authed_crm_client.get("/customers/match", params={"value": "JANE@buyer.com"})
    assert by_email.status_code == 200
    assert by_email.json()["id"] == created["id"]

    by_phone = await authed_crm_client.get("/customers/match", params={"value": created["phone"]})
    assert by_phone.json()["id"] == created["id"]

    missing = await authed_crm_client.get("/customers/match", params={"value": "nobody@x.com"})
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_customer_360(authed_crm_client: AsyncClient):
    created = await _create(authed_crm_client)
    await authed_crm_client.post("/tickets", json={"title": "Help", "customer_id": created["id"]})

    response = await authed_crm_client.get(f"/customers/{created['id']}/360")
    assert response.status_code == 200
    view = response.json()
    assert view["customer"]["id"] == created["id"]
    assert len(view["tickets"]) == 1
    assert view["stats"]["open_tickets"] == 1
    assert view["activities"][0]["type"] == "CREATED"


@pytest.mark.asyncio
async def test_create_relays_to_chronusdev(authed_crm_client: AsyncClient, relay, sync_key):
    relay.reply(200, {"success": True, "client_id": "client-42"})
    created = await _create(authed_crm_client)

    assert relay.events() == ["customer-created"]
    call = relay.calls[0]
    assert call["url"] == "http://chronusdev.test/webhooks/crm/customer-created"
    assert call["headers"]["X-Sync-Key"] == sync_key
    assert call["payload"]["email"] == "jane@buyer.com"
    assert created["chronusdev_client_id"] == "client-42"


@pytest.mark.asyncio
async def test_relay_failure_does_not_block_create(authed_crm_client: AsyncClient, relay):
    relay.reply(500, {"error": "down"})
    created = await _create(authed_crm_client)
    assert created["chronusdev_client_id"] is None


@pytest.mark.asyncio
async def test_for_chronusdev_requires_sync_key(crm_client: AsyncClient, authed_crm_client: AsyncClient, sync_key, test_org):
    await _create(authed_crm_client)

    no_key = await crm_client.get("/customers/for-chronusdev", params={"organization_id": str(test_org.id)})
    assert no_key.status_code == 401

    headers = {"X-Sync-Key": sync_key}
    missing_org = await crm_client.get("/customers/for-chronusdev", headers=headers)
    assert missing_org.status_code == 400

    ok = await crm_client.get(
        "/customers/for-chronusdev", params={"organization_id": str(test_org.id)}, headers=headers
    )
    assert ok.status_code == 200
    assert [c["email"] for c in ok.json()] == ["jane@buyer.com"]


@pytest.mark.asyncio
async def test_for_chronusdev_unconfigured(crm_client: AsyncClient, db, test_org):
    response = await crm_client.get(
        "/customers/for-chronusdev",
        params={"organization_id": str(test_org.id)},
        headers={"X-Sync-Key": "anything"},
    )
    assert response.status_code == 501


@pytest.mark.asyncio
async def test_customer_from_lead(authed_crm_client: AsyncClient, test_user, db):
    lead = (await authed_crm_client.post(
        "/leads", json={"name": "Prospect", "email": "buyer@corp.com", "company": "Corp"}
    )).json()
    quote = (await authed_crm_client.post(
        "/invoices", json={"type": "QUOTE", "amount": 300, "lead_id": lead["id"]}
    )).json()

    response = await authed_crm_client.post(f"/customers/from-lead/{lead['id']}", json={"plan": "pro"})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True

    customer = (await authed_crm_client.get(f"/customers/{body['customer_id']}")).json()
    assert (customer["plan"], customer["status"]) == ("PRO", "ACTIVE")
    assert (await authed_crm_client.get(f"/leads/{lead['id']}")).json()["status"] == "WON"
    moved = (await authed_crm_client.get(f"/invoices/{quote['id']}")).json()
    assert moved["customer_id"] == body["customer_id"]

    types = [n.type for n in db.query(Notification).filter(Notification.user_id == test_user.id)]
    assert "lead_converted" in types


@pytest.mark.asyncio
async def test_customer_from_lead_reuses_email_match(authed_crm_client: AsyncClient):
    existing = await _create(authed_crm_client, email="buyer@corp.com")
    lead = (await authed_crm_client.post("/leads", json={"name": "Prospect", "email": "buyer@corp.com"})).json()

    response = await authed_crm_client.post(f"/customers/from-lead/{lead['id']}")
    assert response.status_code == 200
    assert response.json()["customer_id"] == existing["id"]


@pytest.mark.asyncio
async def test_customer_from_lead_errors(authed_crm_client: AsyncClient):
    missing = await authed_crm_client.post("/customers/from-lead/00000000-0000-0000-0000-000000000000")
    assert missing.status_code == 404

    lead = (await authed_crm_client.post("/leads", json={"name": "Prospect"})).json()
    bad_plan = await authed_crm_client.post(f"/customers/from-lead/{lead['id']}", json={"plan": "PLATINUM"})
    assert bad_plan.status_code == 400
