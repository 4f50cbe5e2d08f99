"""
Internal endpoints for scheduled/cron operations.

Protected by X-Internal-Secret header.
Call from an external cron when the in-process sync loop is disabled.
"""

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel

from chronus.core.async_utils import run_async
from chronus.core.config import settings
from chronus.core.security import constant_time_equals
from chronus.jobs.assistai_sync import run_assistai_sync

router = APIRouter(prefix="/internal/scheduled", tags=["internal"])


def verify_internal_secret(x_internal_secret: str = Header(...)):
    """Verify the internal secret header."""
    if not settings.INTERNAL_SECRET:
        raise HTTPException(status_code=501, detail="INTERNAL_SECRET not configured")
    if not constant_time_equals(x_internal_secret, settings.INTERNAL_SECRET):
        raise HTTPException(status_code=403, detail="Invalid internal secret")


class SyncRunResponse(BaseModel):
    skipped: bool
    organizations: int
    synced: int


@router.post("/assistai-sync", response_model=SyncRunResponse, dependencies=[Depends(verify_internal_secret)])
def assistai_sync():
    """Run one AssistAI sync pass over all active organizations."""
    return run_async(run_assistai_sync())
