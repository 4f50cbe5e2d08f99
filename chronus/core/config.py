"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Database (each product deployment points at its own database)
    DATABASE_URL: str = "sqlite:///./chronus.db"

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 168

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Internal scheduled endpoints (cron jobs)
    INTERNAL_SECRET: str = ""  # Secret for /internal/scheduled/* endpoints

    # CRM <-> ChronusDev relays
    CRM_SYNC_KEY: str = ""  # Shared X-Sync-Key between the two backends
    CHRONUSDEV_API_URL: str = ""  # Used by the CRM to reach ChronusDev
    CRM_API_URL: str = ""  # Used by ChronusDev to reach the CRM
    RELAY_TIMEOUT_SECONDS: float = 10.0

    # AssistAI (env fallback when no Integration row exists)
    ASSISTAI_API_URL: str = "https://public.assistai.lat"
    ASSISTAI_API_TOKEN: str = ""
    ASSISTAI_TENANT_DOMAIN: str = ""
    ASSISTAI_ORG_CODE: str = ""
    ASSISTAI_SYNC_INTERVAL_SECONDS: int = 60
    ASSISTAI_SYNC_ENABLED: bool = False  # Run the sync loop inside the CRM app process

    # Integration credential encryption (Fernet key, optional)
    INTEGRATION_ENCRYPTION_KEY: str = ""

    # ChronusDev: provision unknown users from CRM-issued tokens
    JIT_PROVISIONING_ENABLED: bool = True

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute)
    RATE_LIMIT_AUTH: int = 5  # Login attempts
    RATE_LIMIT_API: int = 60  # General API

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets

    @property
    def assistai_env_configured(self) -> bool:
        return bool(
            self.ASSISTAI_API_TOKEN
            and self.ASSISTAI_TENANT_DOMAIN
            and self.ASSISTAI_ORG_CODE
        )


settings = Settings()
