"""Tests for registration, login, logout and token checks."""

import pytest
from httpx import AsyncClient

from chronus.core.config import settings
from chronus.core.security import create_session_token
from chronus.db.enums import Role


@pytest.mark.asyncio
async def test_register_with_org_makes_admin(crm_client: AsyncClient):
    response = await crm_client.post("/auth/register", json={
        "email": "Owner@Example.com",
        "password": "hunter22",
        "name": "Owner",
        "organization_name": "Acme Support",
    })
    assert response.status_code == 201
    data = response.json()
    assert data["token"]
    assert data["user"]["email"] == "owner@example.com"
    assert data["role"] == Role.ADMIN.value
    assert data["org_id"] is not None

    me = await crm_client.get("/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.status_code == 200
    assert me.json()["org_name"] == "Acme Support"
    assert me.json()["role"] == "ADMIN"


@pytest.mark.asyncio
async def test_register_duplicate_email(crm_client: AsyncClient, test_user):
    response = await crm_client.post("/auth/register", json={
        "email": test_user.email,
        "password": "hunter22",
        "name": "Again",
    })
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_login_and_wrong_password(crm_client: AsyncClient, test_user, test_org, test_password):
    ok = await crm_client.post("/auth/login", json={"email": test_user.email, "password": test_password})
    assert ok.status_code == 200
    assert ok.json()["org_id"] == str(test_org.id)
    assert ok.json()["role"] == "ADMIN"

    bad = await crm_client.post("/auth/login", json={"email": test_user.email, "password": "nope-nope"})
    assert bad.status_code == 401

    unknown = await crm_client.post("/auth/login", json={"email": "ghost@test.com", "password": test_password})
    assert unknown.status_code == 401


@pytest.mark.asyncio
async def test_logout_revokes_token(crm_client: AsyncClient, test_user, test_password):
    login = await crm_client.post("/auth/login", json={"email": test_user.email, "password": test_password})
    headers = {"Authorization": f"Bearer {login.json()['token']}"}

    assert (await crm_client.get("/auth/me", headers=headers)).status_code == 200
    assert (await crm_client.post("/auth/logout", headers=headers)).status_code == 200
    assert (await crm_client.get("/auth/me", headers=headers)).status_code == 401


@pytest.mark.asyncio
async def test_missing_and_garbage_tokens(crm_client: AsyncClient):
    assert (await crm_client.get("/customers")).status_code == 401
    response = await crm_client.get("/customers", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_version_bump_revokes(crm_client: AsyncClient, test_auth, db):
    test_auth.user.token_version += 1
    db.commit()
    response = await crm_client.get("/auth/me", headers=test_auth.headers)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_is_shared_between_products(dev_client: AsyncClient, test_auth):
    """A CRM-issued token is accepted by ChronusDev (same secret, same users)."""
    response = await dev_client.get("/auth/me", headers=test_auth.headers)
    assert response.status_code == 200
    assert response.json()["email"] == test_auth.user.email


@pytest.mark.asyncio
async def test_user_without_membership_is_forbidden(crm_client: AsyncClient, make_user, headers_for):
    loner = make_user(None, name="Loner")
    headers = headers_for(loner, None, Role.DEV)
    response = await crm_client.get("/customers", headers=headers)
    assert response.status_code == 403


def _bearer(user) -> dict[str, str]:
    token, _, _ = create_session_token(
        user_id=user.id, org_id=None, role=Role.ADMIN.value, token_version=user.token_version,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_previous_secret_accepted_during_rotation(crm_client: AsyncClient, test_user, monkeypatch):
    monkeypatch.setattr(settings, "JWT_SECRET", "old-signing-secret")
    headers = _bearer(test_user)

    monkeypatch.setattr(settings, "JWT_SECRET", "new-signing-secret")
    monkeypatch.setattr(settings, "JWT_SECRET_PREVIOUS", "old-signing-secret")
    response = await crm_client.get("/auth/me", headers=headers)
    assert response.status_code == 200
    assert response.json()["email"] == test_user.email

    monkeypatch.setattr(settings, "JWT_SECRET_PREVIOUS", "")
    assert (await crm_client.get("/auth/me", headers=headers)).status_code == 401


@pytest.mark.asyncio
async def test_unknown_secret_rejected(crm_client: AsyncClient, test_user, monkeypatch):
    monkeypatch.setattr(settings, "JWT_SECRET", "attacker-secret")
    headers = _bearer(test_user)

    monkeypatch.setattr(settings, "JWT_SECRET", "new-signing-secret")
    monkeypatch.setattr(settings, "JWT_SECRET_PREVIOUS", "old-signing-secret")
    assert (await crm_client.get("/auth/me", headers=headers)).status_code == 401
