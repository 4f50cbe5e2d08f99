"""Integration service - per-org third-party credentials with masked reads."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from chronus.core.encryption import decrypt_credentials, encrypt_credentials
from chronus.db.enums import IntegrationProvider
from chronus.db.models import Integration
from chronus.schemas.integration import IntegrationUpsert
from chronus.utils.normalization import normalize_enum_value

logger = logging.getLogger(__name__)

SECRET_MARKERS = ("token", "secret", "key", "password")


def mask_value(value) -> str:
    """Return masked version of a secret for display: ****abcd."""
    text = str(value or "")
    if len(text) <= 4:
        return "****"
    return f"****{text[-4:]}"


def mask_credentials(credentials: dict) -> dict:
    masked = {}
    for name, value in credentials.items():
        if any(marker in name.lower() for marker in SECRET_MARKERS):
            masked[name] = mask_value(value)
        else:
            masked[name] = value
    return masked


def parse_provider(provider: str) -> str:
    value = normalize_enum_value(provider)
    if not IntegrationProvider.has_value(value):
        raise ValueError(f"Unknown provider: {provider}")
    return value


def get_credentials(integration: Integration) -> dict:
    return decrypt_credentials(integration.credentials_encrypted)


def serialize_integration(integration: Integration) -> dict:
    try:
        credentials = mask_credentials(get_credentials(integration))
    except ValueError:
        logger.warning("Unreadable credentials for integration %s", integration.id)
        credentials = {}
    return {
        "id": integration.id,
        "provider": integration.provider,
        "is_enabled": integration.is_enabled,
        "credentials": credentials,
        "metadata": integration.metadata_,
        "updated_at": integration.updated_at,
    }


def list_integrations(db: Session, org_id: UUID) -> list[Integration]:
    return db.query(Integration).filter(
        Integration.organization_id == org_id,
        Integration.user_id.is_(None),
    ).order_by(Integration.provider).all()


def get_integration(db: Session, org_id: UUID | None, provider: str) -> Integration | None:
    """Org-level integration, or the global one when org_id is None."""
    query = db.query(Integration).filter(
        Integration.provider == provider,
        Integration.user_id.is_(None),
    )
    if org_id is None:
        query = query.filter(Integration.organization_id.is_(None))
    else:
        query = query.filter(Integration.organization_id == org_id)
    return query.first()


def upsert_integration(db: Session, org_id: UUID, provider: str, data: IntegrationUpsert) -> Integration:
    provider = parse_provider(provider)
    integration = get_integration(db, org_id, provider)
    if integration is None:
        integration = Integration(organization_id=org_id, provider=provider)
        db.add(integration)

    integration.credentials_encrypted = encrypt_credentials(data.credentials)
    integration.is_enabled = data.is_enabled
    if data.metadata is not None:
        integration.metadata_ = data.metadata
    db.commit()
    db.refresh(integration)
    logger.info("Integration %s saved for org %s", provider, org_id)
    return integration


def delete_integration(db: Session, org_id: UUID, provider: str) -> bool:
    integration = get_integration(db, org_id, parse_provider(provider))
    if not integration:
        return False
    db.delete(integration)
    db.commit()
    return True


def get_enabled_credentials(db: Session, org_id: UUID | None, provider: str) -> dict | None:
    """Decrypted credentials of an enabled integration, None when absent or disabled."""
    integration = get_integration(db, org_id, provider)
    if integration is None or not integration.is_enabled:
        return None
    return get_credentials(integration)
