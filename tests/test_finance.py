"""Tests for the transaction ledger and team payouts."""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from chronus.db.enums import Role
from chronus.db.models import Membership, Notification, Payout, Project, Task, TimeLog
from chronus.utils.datetime_utils import current_month, utcnow


async def _record(client: AsyncClient, type_: str, category: str, amount: float, date: str) -> dict:
    response = await client.post("/transactions", json={
        "type": type_, "category": category, "amount": amount, "description": f"{category} {amount}", "date": date,
    })
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_ledger_totals(authed_dev_client: AsyncClient):
    await _record(authed_dev_client, "INCOME", "Consulting", 1500, "2026-09-05T10:00:00Z")
    await _record(authed_dev_client, "INCOME", "Development", 500.5, "2026-10-02T10:00:00Z")
    await _record(authed_dev_client, "EXPENSE", "Hosting", 120.25, "2026-10-03T10:00:00Z")

    ledger = (await authed_dev_client.get("/transactions")).json()
    assert len(ledger["items"]) == 3
    assert ledger["total_income"] == 2000.5
    assert ledger["total_expense"] == 120.25
    assert ledger["net"] == 1880.25
    assert ledger["items"][0]["category"] == "Hosting"


@pytest.mark.asyncio
async def test_ledger_filters(authed_dev_client: AsyncClient):
    await _record(authed_dev_client, "INCOME", "Consulting", 1500, "2026-09-05T10:00:00Z")
    await _record(authed_dev_client, "INCOME", "Development", 500, "2026-10-02T10:00:00Z")
    await _record(authed_dev_client, "EXPENSE", "Hosting", 100, "2026-10-03T10:00:00Z")

    october = (await authed_dev_client.get(
        "/transactions", params={"start_date": "2026-10-01", "end_date": "2026-10-31"}
    )).json()
    assert len(october["items"]) == 2
    assert october["net"] == 400

    expenses = (await authed_dev_client.get("/transactions", params={"type": "expense"})).json()
    assert [t["category"] for t in expenses["items"]] == ["Hosting"]
    assert expenses["total_income"] == 0

    everything = (await authed_dev_client.get("/transactions", params={"type": "ALL", "category": "ALL"})).json()
    assert len(everything["items"]) == 3

    consulting = (await authed_dev_client.get("/transactions", params={"category": "Consulting"})).json()
    assert consulting["total_income"] == 1500


@pytest.mark.asyncio
async def test_amount_must_be_positive(authed_dev_client: AsyncClient):
    response = await authed_dev_client.post("/transactions", json={
        "type": "EXPENSE", "category": "Office", "amount": 0, "description": "Chairs",
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_categories_merge_defaults(authed_dev_client: AsyncClient):
    await _record(authed_dev_client, "INCOME", "Retainers", 900, "2026-10-02T10:00:00Z")
    categories = (await authed_dev_client.get("/transactions/categories")).json()
    assert "Retainers" in categories
    assert "Hosting" in categories
    assert categories == sorted(categories)


@pytest.mark.asyncio
async def test_delete_transaction(authed_dev_client: AsyncClient):
    transaction = await _record(authed_dev_client, "EXPENSE", "Software", 30, "2026-10-02T10:00:00Z")
    url = f"/transactions/{transaction['id']}"
    assert (await authed_dev_client.delete(url)).status_code == 204
    assert (await authed_dev_client.delete(url)).status_code == 404


@pytest.mark.asyncio
async def test_payout_notifies_member(authed_dev_client: AsyncClient, make_user, test_org, db):
    dev = make_user(test_org, Role.DEV, name="Dev")
    response = await authed_dev_client.post("/payouts", json={"user_id": str(dev.id), "amount": 800, "note": "Sept"})
    assert response.status_code == 201
    payout = response.json()
    assert payout["user_name"] == "Dev"
    assert payout["month"] == current_month()

    types = [n.type for n in db.query(Notification).filter(Notification.user_id == dev.id)]
    assert types == ["payout_created"]

    listed = (await authed_dev_client.get("/payouts", params={"user_id": str(dev.id)})).json()
    assert [p["id"] for p in listed] == [payout["id"]]


@pytest.mark.asyncio
async def test_payout_validation(authed_dev_client: AsyncClient, make_user, test_org):
    outsider = make_user(None, name="Outsider")
    not_member = await authed_dev_client.post("/payouts", json={"user_id": str(outsider.id), "amount": 10})
    assert not_member.status_code == 400

    dev = make_user(test_org, Role.DEV, name="Dev")
    bad_month = await authed_dev_client.post(
        "/payouts", json={"user_id": str(dev.id), "amount": 10, "month": "Sept 2026"}
    )
    assert bad_month.status_code == 422


@pytest.mark.asyncio
async def test_payouts_need_manager(dev_client: AsyncClient, make_user, test_org, headers_for):
    dev = make_user(test_org, Role.DEV, name="Dev")
    headers = headers_for(dev, test_org, Role.DEV)
    assert (await dev_client.get("/payouts", headers=headers)).status_code == 403
    created = await dev_client.post("/payouts", json={"user_id": str(dev.id), "amount": 10}, headers=headers)
    assert created.status_code == 403


def _log(db, org, user, project, start: datetime, hours: float, pay_rate: float, task=None, bill_rate: float = 0):
    db.add(TimeLog(
        organization_id=org.id,
        project_id=project.id,
        task_id=task.id if task else None,
        user_id=user.id,
        start=start,
        end=start + timedelta(hours=hours),
        pay_rate=pay_rate,
        bill_rate=bill_rate,
    ))
    db.commit()


@pytest.fixture
def worked(db, make_user, test_org):
    """A DEV with 3h at 20/h and 1.5h at 30/h logged across two projects, plus one running timer."""
    dev = make_user(test_org, Role.DEV, name="Dev")
    db.query(Membership).filter(Membership.user_id == dev.id).update({Membership.default_pay_rate: 20})
    web = Project(organization_id=test_org.id, name="Website")
    mobile = Project(organization_id=test_org.id, name="App")
    db.add_all([web, mobile])
    db.flush()
    login = Task(organization_id=test_org.id, project_id=web.id, title="Login")
    db.add(login)
    db.commit()

    _log(db, test_org, dev, web, datetime(2026, 9, 10, 9, tzinfo=timezone.utc), 3, 20, task=login, bill_rate=50)
    _log(db, test_org, dev, mobile, datetime(2026, 10, 2, 9, tzinfo=timezone.utc), 1.5, 30)
    db.add(TimeLog(organization_id=test_org.id, project_id=web.id, user_id=dev.id, start=utcnow(), pay_rate=20))
    db.commit()
    return dev


@pytest.mark.asyncio
async def test_team_summary_balances(authed_dev_client: AsyncClient, worked):
    await authed_dev_client.post("/payouts", json={"user_id": str(worked.id), "amount": 50, "month": "2026-09"})

    summary = (await authed_dev_client.get("/payouts/team-summary")).json()
    row = next(r for r in summary if r["user_id"] == str(worked.id))
    assert row["total_hours"] == 4.5
    assert row["total_debt"] == 105
    assert row["total_paid"] == 50
    assert row["balance"] == 55
    assert row["total_bill"] == 150
    assert row["project_count"] == 2
    assert row["default_pay_rate"] == 20


@pytest.mark.asyncio
async def test_user_balance_lists_payouts(authed_dev_client: AsyncClient, worked, make_user):
    payout = (await authed_dev_client.post("/payouts", json={"user_id": str(worked.id), "amount": 105})).json()

    balance = (await authed_dev_client.get(f"/payouts/user/{worked.id}/balance")).json()
    assert balance["balance"] == 0
    assert [p["id"] for p in balance["payouts"]] == [payout["id"]]

    outsider = make_user(None, name="Outsider")
    assert (await authed_dev_client.get(f"/payouts/user/{outsider.id}/balance")).status_code == 404


@pytest.mark.asyncio
async def test_earnings_details(authed_dev_client: AsyncClient, worked):
    rows = (await authed_dev_client.get(f"/payouts/team-summary/{worked.id}/details")).json()
    assert [r["date"] for r in rows] == ["2026-10-02", "2026-09-10"]
    september = rows[1]
    assert (september["project"], september["rate"], september["hours"], september["amount"]) == ("Website", 20, 3, 60)
    assert (september["task_count"], september["task_summary"]) == (1, "Login")

    october = (await authed_dev_client.get(
        f"/payouts/team-summary/{worked.id}/details", params={"month": "2026-10"}
    )).json()
    assert [r["project"] for r in october] == ["App"]

    bad_month = await authed_dev_client.get(f"/payouts/team-summary/{worked.id}/details", params={"month": "Oct"})
    assert bad_month.status_code == 422


@pytest.mark.asyncio
async def test_delete_payout(authed_dev_client: AsyncClient, worked, db):
    payout = (await authed_dev_client.post("/payouts", json={"user_id": str(worked.id), "amount": 10})).json()
    url = f"/payouts/{payout['id']}"
    assert (await authed_dev_client.delete(url)).status_code == 204
    assert db.query(Payout).count() == 0
    assert (await authed_dev_client.delete(url)).status_code == 404


@pytest.mark.asyncio
async def test_payout_delete_needs_admin(dev_client: AsyncClient, worked, make_user, test_org, headers_for, db):
    manager = make_user(test_org, Role.MANAGER, name="Manager")
    headers = headers_for(manager, test_org, Role.MANAGER)
    created = await dev_client.post("/payouts", json={"user_id": str(worked.id), "amount": 10}, headers=headers)
    assert created.status_code == 201
    response = await dev_client.delete(f"/payouts/{created.json()['id']}", headers=headers)
    assert response.status_code == 403
