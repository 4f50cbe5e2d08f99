"""
Periodic AssistAI conversation sync.

Every ASSISTAI_SYNC_INTERVAL_SECONDS, pull recent conversations for each
active organization that has AssistAI credentials. A run that starts while
another is in flight is skipped.

Database reads and writes run in worker threads so the loop can share an
event loop with the CRM app. The standalone worker (`python -m chronus.worker`)
is still the recommended way to run it in production.
"""

import asyncio
import logging
from uuid import UUID

import anyio
from sqlalchemy.orm import Session

from chronus.core.config import settings
from chronus.db.session import SessionLocal
from chronus.services import assistai_service, org_service

logger = logging.getLogger(__name__)

SYNC_LIMIT = 20

_sync_running = False


def is_running() -> bool:
    return _sync_running


def _active_org_ids(db: Session) -> list[UUID]:
    return [org.id for org in org_service.list_active_orgs(db)]


async def sync_for_organization(db: Session, org_id: UUID) -> int | None:
    """Sync one organization. Returns the synced count, or None without config."""
    config = await anyio.to_thread.run_sync(assistai_service.resolve_config, db, org_id)
    if config is None:
        return None
    result = await assistai_service.sync_recent_conversations(db, config, org_id, limit=SYNC_LIMIT)
    if result["synced_count"]:
        logger.info("AssistAI sync: %s conversations for org %s", result["synced_count"], org_id)
    return result["synced_count"]


async def run_assistai_sync(session_factory=SessionLocal) -> dict:
    """
    One sync pass over all active organizations.

    Returns:
        {"skipped": bool, "organizations": int, "synced": int}
    """
    global _sync_running
    if _sync_running:
        logger.info("AssistAI sync already running, skipping")
        return {"skipped": True, "organizations": 0, "synced": 0}

    _sync_running = True
    organizations = 0
    synced = 0
    try:
        with session_factory() as db:
            for org_id in await anyio.to_thread.run_sync(_active_org_ids, db):
                try:
                    count = await sync_for_organization(db, org_id)
                except Exception:
                    db.rollback()
                    logger.exception("AssistAI sync failed for org %s", org_id)
                    continue
                if count is None:
                    continue
                organizations += 1
                synced += count
    finally:
        _sync_running = False

    return {"skipped": False, "organizations": organizations, "synced": synced}


async def run_sync_loop() -> None:
    """Run the sync forever at the configured interval."""
    interval = settings.ASSISTAI_SYNC_INTERVAL_SECONDS
    logger.info("AssistAI sync loop starting (interval: %ss)", interval)
    while True:
        try:
            await run_assistai_sync()
        except Exception:
            logger.exception("Error in AssistAI sync loop")
        await asyncio.sleep(interval)
