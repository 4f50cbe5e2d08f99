"""
Background worker for the AssistAI conversation sync.

Usage:
    python -m chronus.worker

Runs the sync loop in its own process, for deployments that keep
ASSISTAI_SYNC_ENABLED off in the CRM app.
"""

import asyncio
import logging

from chronus.core.app_setup import init_sentry
from chronus.jobs.assistai_sync import run_sync_loop

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Entry point for the worker."""
    init_sentry("chronus-worker")
    try:
        asyncio.run(run_sync_loop())
    except KeyboardInterrupt:
        logger.info("Worker shutting down")
    except Exception:
        logger.exception("Worker crashed")
        raise


if __name__ == "__main__":
    main()
