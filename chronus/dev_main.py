"""ChronusDev FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from chronus.core.app_setup import configure_app, init_sentry
from chronus.core.config import settings
from chronus.db.base import Base
from chronus.db.session import engine

logger = logging.getLogger(__name__)

init_sentry("chronus-dev")


@asynccontextmanager
async def lifespan(app: FastAPI):
    from chronus.db import models  # noqa: F401 - register tables

    Base.metadata.create_all(bind=engine)
    yield


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="ChronusDev API",
    description="Projects, tasks, time tracking and team finances",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
    lifespan=lifespan,
)

configure_app(app)

# ============================================================================
# Routers
# ============================================================================

from chronus.routers import (  # noqa: E402
    activity,
    auth,
    clients,
    crm_webhooks,
    dashboard,
    notifications,
    organizations,
    payouts,
    projects,
    search,
    standups,
    tasks,
    timelogs,
    transactions,
    users,
)
from chronus.routers import websocket as ws_router  # noqa: E402

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(organizations.router, prefix="/organizations", tags=["organizations"])
app.include_router(users.router, prefix="/users", tags=["users"])

# Work tracking
app.include_router(clients.router, prefix="/clients", tags=["clients"])
app.include_router(projects.router, prefix="/projects", tags=["projects"])
app.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
app.include_router(timelogs.router, prefix="/timelogs", tags=["timelogs"])
app.include_router(standups.router, prefix="/standups", tags=["standups"])
app.include_router(search.dev_router, prefix="/search", tags=["search"])
app.include_router(dashboard.dev_router, prefix="/dashboard", tags=["dashboard"])

# Team finances
app.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
app.include_router(payouts.router, prefix="/payouts", tags=["payouts"])

# Notifications and activity feed
app.include_router(notifications.router, tags=["notifications"])
app.include_router(activity.router, prefix="/activity", tags=["activity"])
app.include_router(ws_router.router)

# CRM relays (X-Sync-Key)
app.include_router(crm_webhooks.router, prefix="/webhooks/crm", tags=["webhooks"])
