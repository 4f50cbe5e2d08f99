"""Setup shared by the ChronusCRM and ChronusDev FastAPI apps."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from chronus.core.config import settings
from chronus.core.rate_limit import limiter
from chronus.db.session import engine

logger = logging.getLogger(__name__)


# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

def init_sentry(service_name: str) -> bool:
    """Initialise Sentry when a DSN is configured outside dev. Returns True when enabled."""
    if not settings.SENTRY_DSN or settings.ENV == "dev":
        return False

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        server_name=service_name,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,  # 10% of requests for performance monitoring
        send_default_pii=False,  # Don't send PII to Sentry
    )
    logger.info("Sentry initialized for %s", service_name)
    return True


# ============================================================================
# Middleware, rate limiting and health
# ============================================================================

def configure_app(app: FastAPI) -> None:
    """Attach the rate limiter, CORS and the /health endpoint."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS middleware - must be added before routers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key", "X-Sync-Key", "X-Requested-With"],
    )

    @app.get("/health", tags=["health"])
    def health():
        """
        Health check endpoint.

        Verifies database connectivity and returns environment info.
        """
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
