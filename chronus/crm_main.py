"""ChronusCRM FastAPI application entry point."""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from chronus.core.app_setup import configure_app, init_sentry
from chronus.core.config import settings
from chronus.db.base import Base
from chronus.db.session import engine
from chronus.jobs.assistai_sync import run_sync_loop

logger = logging.getLogger(__name__)

init_sentry("chronus-crm")


@asynccontextmanager
async def lifespan(app: FastAPI):
    from chronus.db import models  # noqa: F401 - register tables

    Base.metadata.create_all(bind=engine)

    sync_task = None
    if settings.ASSISTAI_SYNC_ENABLED:
        sync_task = asyncio.create_task(run_sync_loop())
    yield
    if sync_task is not None:
        sync_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sync_task
        logger.info("AssistAI sync loop stopped")


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="ChronusCRM API",
    description="Multi-tenant CRM: customers, leads, tickets, invoices and AI conversations",
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
    api_keys,
    assistai,
    auth,
    billing,
    customers,
    dashboard,
    integrations,
    internal,
    invoices,
    leads,
    notifications,
    search,
    tickets,
    webhooks,
)
from chronus.routers import websocket as ws_router  # noqa: E402

app.include_router(auth.router, prefix="/auth", tags=["auth"])

# CRM resources
app.include_router(customers.router, prefix="/customers", tags=["customers"])
app.include_router(leads.router, prefix="/leads", tags=["leads"])
app.include_router(tickets.router, prefix="/tickets", tags=["tickets"])
app.include_router(invoices.router, prefix="/invoices", tags=["invoices"])
app.include_router(search.crm_router, prefix="/search", tags=["search"])
app.include_router(dashboard.crm_router, prefix="/dashboard", tags=["dashboard"])

# Organization settings
app.include_router(api_keys.router, prefix="/api-keys", tags=["api-keys"])
app.include_router(integrations.router, prefix="/integrations", tags=["integrations"])
app.include_router(billing.router, prefix="/billing", tags=["billing"])

# AssistAI conversations
app.include_router(assistai.router, prefix="/assistai", tags=["assistai"])

# Notifications and activity feed
app.include_router(notifications.router, tags=["notifications"])
app.include_router(activity.router, prefix="/activity", tags=["activity"])
app.include_router(ws_router.router)

# Incoming lead webhook and ChronusDev relays
app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])

# Internal endpoints (scheduled/cron jobs - protected by INTERNAL_SECRET)
app.include_router(internal.router)
