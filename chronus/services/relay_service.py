"""
Webhook relays between ChronusCRM and ChronusDev.

Every relay is a JSON POST carrying the shared X-Sync-Key:
- CRM -> Dev:  {CHRONUSDEV_API_URL}/webhooks/crm/{event}
- Dev -> CRM:  {CRM_API_URL}/webhooks/chronusdev/{event}

`send_*` raises RelayError for callers that depend on the answer;
`notify_*` is fire-and-forget and only logs failures.
"""

from __future__ import annotations

import logging

import httpx

from chronus.core.async_utils import run_async
from chronus.core.config import settings
from chronus.core.deps import SYNC_KEY_HEADER
from chronus.services.http_service import post_json

logger = logging.getLogger(__name__)


class RelayError(Exception):
    """Relay target not configured, unreachable, or answered non-2xx."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RelayNotConfigured(RelayError):
    pass


def _target_url(base_url: str, path: str, event: str) -> str:
    if not base_url or not settings.CRM_SYNC_KEY:
        raise RelayNotConfigured("Relay target or CRM_SYNC_KEY not configured")
    return f"{base_url.rstrip('/')}/{path}/{event}"


async def _post(url: str, payload: dict) -> dict:
    try:
        response = await post_json(
            url,
            payload,
            headers={SYNC_KEY_HEADER: settings.CRM_SYNC_KEY},
            timeout=settings.RELAY_TIMEOUT_SECONDS,
        )
    except httpx.HTTPError as exc:
        raise RelayError(f"Relay to {url} failed: {exc}") from exc

    if response.status_code >= 400:
        raise RelayError(
            f"Relay to {url} returned {response.status_code}", status_code=response.status_code
        )
    try:
        return response.json()
    except ValueError:
        return {}


async def relay_to_chronusdev(event: str, payload: dict) -> dict:
    return await _post(_target_url(settings.CHRONUSDEV_API_URL, "webhooks/crm", event), payload)


async def relay_to_crm(event: str, payload: dict) -> dict:
    return await _post(_target_url(settings.CRM_API_URL, "webhooks/chronusdev", event), payload)


# =============================================================================
# Sync entry points (called from services running in request threads)
# =============================================================================


def send_to_chronusdev(event: str, payload: dict) -> dict:
    """Relay to ChronusDev and return its JSON answer. Raises RelayError."""
    return run_async(relay_to_chronusdev(event, payload), timeout=settings.RELAY_TIMEOUT_SECONDS * 3)


def notify_chronusdev(event: str, payload: dict) -> dict | None:
    """Best-effort relay to ChronusDev. Returns the answer or None."""
    try:
        return send_to_chronusdev(event, payload)
    except RelayNotConfigured:
        logger.debug("ChronusDev relay not configured, skipping %s", event)
    except Exception:
        logger.warning("ChronusDev relay %s failed", event, exc_info=True)
    return None


def notify_crm(event: str, payload: dict) -> bool:
    """Best-effort relay to the CRM. Returns True when delivered."""
    try:
        run_async(relay_to_crm(event, payload), timeout=settings.RELAY_TIMEOUT_SECONDS * 3)
        return True
    except RelayNotConfigured:
        logger.debug("CRM relay not configured, skipping %s", event)
    except Exception:
        logger.warning("CRM relay %s failed", event, exc_info=True)
    return False
