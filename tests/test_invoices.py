"""Tests for invoices and quotes."""

import pytest
from httpx import AsyncClient
from sqlalchemy.orm import Session

from chronus.db.models import Customer, Organization


@pytest.mark.asyncio
async def test_numbering_and_totals(authed_crm_client: AsyncClient):
    invoice = await authed_crm_client.post("/invoices", json={
        "items": [
            {"description": "Seats", "quantity": 2, "price": 50},
            {"description": "Setup", "quantity": 1, "price": 100},
        ],
        "tax": 10,
        "discount": 5,
    })
    assert invoice.status_code == 201
    data = invoice.json()
    assert data["number"] == "INV-000001"
    assert data["subtotal"] == 200
    assert data["total"] == 210
    assert data["balance"] == 210
    assert data["status"] == "DRAFT"
    assert data["due_date"] is not None

    quote = await authed_crm_client.post("/invoices", json={"type": "QUOTE", "amount": 75})
    assert quote.json()["number"] == "QT-000002"
    assert quote.json()["total"] == 75


@pytest.mark.asyncio
async def test_items_or_amount_required(authed_crm_client: AsyncClient):
    response = await authed_crm_client.post("/invoices", json={"tax": 5})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_paid_converts_linked_lead(authed_crm_client: AsyncClient):
    lead = (await authed_crm_client.post("/leads", json={"name": "Buyer", "email": "buyer@corp.com"})).json()
    invoice = (await authed_crm_client.post(
        "/invoices", json={"lead_id": lead["id"], "amount": 500}
    )).json()
    assert invoice["customer_id"] is None

    paid = await authed_crm_client.put(f"/invoices/{invoice['id']}", json={"status": "PAID"})
    assert paid.status_code == 200
    data = paid.json()
    assert data["paid_at"] is not None
    assert data["balance"] == 0
    assert data["customer_id"] is not None

    converted = (await authed_crm_client.get(f"/leads/{lead['id']}")).json()
    assert converted["status"] == "WON"
    assert converted["customer_id"] == data["customer_id"]


@pytest.mark.asyncio
async def test_invalid_status(authed_crm_client: AsyncClient):
    invoice = (await authed_crm_client.post("/invoices", json={"amount": 10})).json()
    response = await authed_crm_client.put(f"/invoices/{invoice['id']}", json={"status": "LOST"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_and_delete(authed_crm_client: AsyncClient):
    invoice = (await authed_crm_client.post("/invoices", json={"amount": 10})).json()
    listing = await authed_crm_client.get("/invoices")
    assert listing.json()["total"] == 1

    assert (await authed_crm_client.delete(f"/invoices/{invoice['id']}")).status_code == 204
    assert (await authed_crm_client.get(f"/invoices/{invoice['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_number_not_reused_after_delete(authed_crm_client: AsyncClient):
    first = (await authed_crm_client.post("/invoices", json={"amount": 10})).json()
    second = (await authed_crm_client.post("/invoices", json={"amount": 20})).json()
    assert (await authed_crm_client.delete(f"/invoices/{first['id']}")).status_code == 204

    third = await authed_crm_client.post("/invoices", json={"amount": 30})
    assert third.status_code == 201
    assert second["number"] == "INV-000002"
    assert third.json()["number"] == "INV-000003"


@pytest.mark.asyncio
async def test_update_rejects_customer_from_other_org(authed_crm_client: AsyncClient, db: Session):
    rival = Organization(name="Rival", slug="rival-invoices")
    db.add(rival)
    db.flush()
    foreign = Customer(organization_id=rival.id, name="Foreign", email="foreign@rival.com")
    db.add(foreign)
    db.commit()

    invoice = (await authed_crm_client.post("/invoices", json={"amount": 10})).json()
    response = await authed_crm_client.put(
        f"/invoices/{invoice['id']}", json={"customer_id": str(foreign.id)}
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Customer not found"

    unchanged = (await authed_crm_client.get(f"/invoices/{invoice['id']}")).json()
    assert unchanged["customer_id"] is None
