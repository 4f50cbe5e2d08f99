"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema created and dropped around each test
- JWT token minting for authenticated tests
- HTTPX AsyncClients for the CRM and Dev apps
"""
import os
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Callable, Generator

# Must be set before the app modules read settings
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["TESTING"] = "1"
os.environ["ENV"] = "test"

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from chronus.core.config import settings
from chronus.core.deps import get_db
from chronus.core.security import create_session_token, hash_password
from chronus.crm_main import app as crm_app
from chronus.db import models  # noqa: F401 - register tables
from chronus.db.base import Base
from chronus.db.enums import Role
from chronus.db.models import Membership, Organization, User
from chronus.db.session import SessionLocal, engine

SYNC_KEY = "test-sync-key"
TEST_PASSWORD = "secret-password"


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema per test; app code commits freely."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def test_org(db: Session) -> Organization:
    """Create a test organization."""
    org = Organization(
        id=uuid.uuid4(),
        name="Test Organization",
        slug=f"test-org-{uuid.uuid4().hex[:8]}",
    )
    db.add(org)
    db.commit()
    return org


@pytest.fixture(scope="function")
def make_user(db: Session) -> Callable[..., User]:
    """Factory: create a user with a membership in the given org."""
    def _make(org: Organization | None, role: Role = Role.DEV, name: str = "Member") -> User:
        user = User(
            id=uuid.uuid4(),
            email=f"{name.lower().replace(' ', '.')}-{uuid.uuid4().hex[:8]}@test.com",
            name=name,
            password_hash=hash_password(TEST_PASSWORD),
        )
        db.add(user)
        db.flush()
        if org is not None:
            db.add(Membership(user_id=user.id, organization_id=org.id, role=role.value))
        db.commit()
        return user
    return _make


@pytest.fixture(scope="function")
def test_user(make_user, test_org: Organization) -> User:
    """Create an ADMIN user in test_org."""
    return make_user(test_org, Role.ADMIN, name="Test User")


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    org: Organization
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


def token_for(user: User, org: Organization | None, role: Role) -> str:
    token, _, _ = create_session_token(
        user_id=user.id,
        org_id=org.id if org else None,
        role=role.value,
        token_version=user.token_version,
        email=user.email,
        name=user.name,
    )
    return token


@pytest.fixture(scope="function")
def test_auth(test_user: User, test_org: Organization) -> TestAuth:
    """Create JWT token for test user."""
    return TestAuth(user=test_user, org=test_org, token=token_for(test_user, test_org, Role.ADMIN))


@pytest.fixture(scope="function")
def sync_key(monkeypatch) -> str:
    """Configure the shared relay key and both relay targets."""
    monkeypatch.setattr(settings, "CRM_SYNC_KEY", SYNC_KEY)
    monkeypatch.setattr(settings, "CHRONUSDEV_API_URL", "http://chronusdev.test")
    monkeypatch.setattr(settings, "CRM_API_URL", "http://crm.test")
    return SYNC_KEY


# =============================================================================
# Client Fixtures
# =============================================================================

def _override_db(app, db: Session) -> None:
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db


def _dev_app():
    from chronus.dev_main import app
    return app


@pytest.fixture(scope="function")
async def crm_client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated client for the CRM app."""
    _override_db(crm_app, db)
    async with AsyncClient(transport=ASGITransport(app=crm_app), base_url="http://test") as c:
        yield c
    crm_app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def dev_client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated client for the ChronusDev app."""
    app = _dev_app()
    _override_db(app, db)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_crm_client(db: Session, test_auth: TestAuth) -> AsyncGenerator[AsyncClient, None]:
    """CRM client authenticated as the test ADMIN."""
    _override_db(crm_app, db)
    async with AsyncClient(
        transport=ASGITransport(app=crm_app),
        base_url="http://test",
        headers=test_auth.headers,
    ) as c:
        yield c
    crm_app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_dev_client(db: Session, test_auth: TestAuth) -> AsyncGenerator[AsyncClient, None]:
    """ChronusDev client authenticated as the test ADMIN."""
    app = _dev_app()
    _override_db(app, db)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers=test_auth.headers,
    ) as c:
        yield c
    app.dependency_overrides.clear()


# =============================================================================
# Relay Fixtures
# =============================================================================

class RelayRecorder:
    """Stand-in for the relay HTTP transport; records calls, replies with a fixed answer."""

    def __init__(self):
        self.calls: list[dict] = []
        self.status_code = 200
        self.body: dict = {"success": True}

    def reply(self, status_code: int, body: dict | None = None) -> None:
        self.status_code = status_code
        self.body = body or {}

    async def post_json(self, url, payload, *, headers=None, timeout=10.0, max_attempts=2):
        self.calls.append({"url": url, "payload": payload, "headers": headers or {}})
        return httpx.Response(self.status_code, json=self.body)

    def events(self) -> list[str]:
        return [c["url"].rsplit("/", 1)[-1] for c in self.calls]


@pytest.fixture(scope="function")
def relay(monkeypatch, sync_key) -> RelayRecorder:
    """Configured relays whose outbound POSTs are captured instead of sent."""
    from chronus.services import relay_service

    recorder = RelayRecorder()
    monkeypatch.setattr(relay_service, "post_json", recorder.post_json)
    return recorder


@pytest.fixture(scope="function")
def headers_for() -> Callable[..., dict[str, str]]:
    """Factory: Bearer headers for any user/org/role."""
    def _headers(user: User, org: Organization | None, role: Role = Role.DEV) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(user, org, role)}"}
    return _headers


@pytest.fixture(scope="function")
def test_password() -> str:
    return TEST_PASSWORD
