"""Tests for timers and manual time entries."""

import pytest
from httpx import AsyncClient

from chronus.db.enums import Role


@pytest.fixture
async def task(authed_dev_client: AsyncClient, test_user) -> dict:
    project = (await authed_dev_client.post("/projects", json={"name": "Website", "budget": 5000})).json()
    await authed_dev_client.post(
        f"/projects/{project['id']}/members",
        json={"user_id": str(test_user.id), "role": "MANAGER", "pay_rate": 20, "bill_rate": 50},
    )
    response = await authed_dev_client.post("/tasks", json={"project_id": project["id"], "title": "Build login"})
    return response.json()


@pytest.mark.asyncio
async def test_manual_entry_copies_rates(authed_dev_client: AsyncClient, task):
    response = await authed_dev_client.post("/timelogs", json={
        "task_id": task["id"],
        "start": "2026-10-01T09:00:00Z",
        "end": "2026-10-01T11:30:00Z",
        "note": "Pairing",
    })
    assert response.status_code == 201
    log = response.json()
    assert log["hours"] == 2.5
    assert (log["pay_rate"], log["bill_rate"]) == (20, 50)
    assert log["pay_cost"] == 50
    assert log["bill_cost"] == 125
    assert log["task_title"] == "Build login"


@pytest.mark.asyncio
async def test_manual_entry_validation(authed_dev_client: AsyncClient, task):
    backwards = await authed_dev_client.post("/timelogs", json={
        "task_id": task["id"],
        "start": "2026-10-01T11:00:00Z",
        "end": "2026-10-01T09:00:00Z",
    })
    assert backwards.status_code == 400

    unknown = await authed_dev_client.post("/timelogs", json={
        "task_id": "00000000-0000-0000-0000-000000000001",
        "start": "2026-10-01T09:00:00Z",
        "end": "2026-10-01T10:00:00Z",
    })
    assert unknown.status_code == 404


@pytest.mark.asyncio
async def test_one_running_timer_per_user(authed_dev_client: AsyncClient, task):
    assert (await authed_dev_client.get("/timelogs/current")).json() is None

    started = await authed_dev_client.post("/timelogs/start", json={"task_id": task["id"]})
    assert started.status_code == 201
    assert started.json()["end"] is None

    second = await authed_dev_client.post("/timelogs/start", json={"task_id": task["id"]})
    assert second.status_code == 400

    current = (await authed_dev_client.get("/timelogs/current")).json()
    assert current["id"] == started.json()["id"]

    active = (await authed_dev_client.get("/timelogs/active")).json()
    assert [a["id"] for a in active] == [started.json()["id"]]


@pytest.mark.asyncio
async def test_start_takes_and_starts_task(authed_dev_client: AsyncClient, task, test_user):
    await authed_dev_client.post("/timelogs/start", json={"task_id": task["id"]})
    updated = (await authed_dev_client.get(f"/tasks/{task['id']}")).json()
    assert updated["status"] == "IN_PROGRESS"
    assert updated["assigned_to_user_id"] == str(test_user.id)


@pytest.mark.asyncio
async def test_stop_with_note_comments_on_task(authed_dev_client: AsyncClient, task):
    started = (await authed_dev_client.post("/timelogs/start", json={"task_id": task["id"]})).json()

    stopped = await authed_dev_client.post(
        "/timelogs/stop", json={"timelog_id": started["id"], "note": "Wired the form"}
    )
    assert stopped.status_code == 200
    assert stopped.json()["end"] is not None
    assert stopped.json()["note"] == "Wired the form"
    assert (await authed_dev_client.get("/timelogs/current")).json() is None

    comments = (await authed_dev_client.get(f"/tasks/{task['id']}/comments")).json()
    assert [c["content"] for c in comments] == ["Wired the form"]

    again = await authed_dev_client.post("/timelogs/stop", json={"timelog_id": started["id"]})
    assert again.status_code == 400


@pytest.mark.asyncio
async def test_cannot_stop_someone_elses_timer(
    authed_dev_client: AsyncClient, dev_client: AsyncClient, task, make_user, test_org, headers_for
):
    started = (await authed_dev_client.post("/timelogs/start", json={"task_id": task["id"]})).json()
    dev = make_user(test_org, Role.DEV, name="Dev")

    response = await dev_client.post(
        "/timelogs/stop", json={"timelog_id": started["id"]}, headers=headers_for(dev, test_org, Role.DEV)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_dev_lists_only_own_logs(
    authed_dev_client: AsyncClient, dev_client: AsyncClient, task, make_user, test_org, test_user, headers_for
):
    await authed_dev_client.post("/timelogs", json={
        "task_id": task["id"], "start": "2026-10-01T09:00:00Z", "end": "2026-10-01T10:00:00Z",
    })
    dev = make_user(test_org, Role.DEV, name="Dev")
    headers = headers_for(dev, test_org, Role.DEV)

    own = await dev_client.get("/timelogs", params={"user_id": str(test_user.id)}, headers=headers)
    assert own.json() == []

    everyone = (await authed_dev_client.get("/timelogs", params={"task_id": task["id"]})).json()
    assert len(everyone) == 1


@pytest.mark.asyncio
async def test_update_note(authed_dev_client: AsyncClient, task):
    log = (await authed_dev_client.post("/timelogs", json={
        "task_id": task["id"], "start": "2026-10-01T09:00:00Z", "end": "2026-10-01T10:00:00Z",
    })).json()
    response = await authed_dev_client.put(f"/timelogs/{log['id']}/note", json={"note": "Reviewed"})
    assert response.status_code == 200
    assert response.json()["note"] == "Reviewed"
