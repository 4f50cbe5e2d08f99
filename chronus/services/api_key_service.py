"""API key service - issue, list, revoke and authenticate organization keys."""

from uuid import UUID

from sqlalchemy.orm import Session

from chronus.core.security import (
    API_KEY_PREFIX, api_key_display_prefix, generate_api_key, hash_api_key,
)
from chronus.db.models import ApiKey, User
from chronus.utils.datetime_utils import utcnow


def create_api_key(db: Session, org_id: UUID, user_id: UUID, name: str) -> tuple[ApiKey, str]:
    """Create a key. Returns (row, raw_key); the raw key is not stored."""
    raw_key = generate_api_key()
    api_key = ApiKey(
        organization_id=org_id,
        name=name.strip(),
        key_hash=hash_api_key(raw_key),
        key_prefix=api_key_display_prefix(raw_key),
        created_by_user_id=user_id,
    )
    db.add(api_key)
    db.commit()
    db.refresh(api_key)
    return api_key, raw_key


def list_api_keys(db: Session, org_id: UUID) -> list[ApiKey]:
    return db.query(ApiKey).filter(
        ApiKey.organization_id == org_id
    ).order_by(ApiKey.created_at.desc()).all()


def delete_api_key(db: Session, key_id: UUID, org_id: UUID) -> bool:
    api_key = db.query(ApiKey).filter(
        ApiKey.id == key_id,
        ApiKey.organization_id == org_id,
    ).first()
    if not api_key:
        return False
    db.delete(api_key)
    db.commit()
    return True


def authenticate(db: Session, raw_key: str | None) -> ApiKey | None:
    """Resolve a raw key by hash and stamp last_used_at."""
    if not raw_key or not raw_key.startswith(API_KEY_PREFIX):
        return None
    api_key = db.query(ApiKey).filter(ApiKey.key_hash == hash_api_key(raw_key)).first()
    if api_key:
        api_key.last_used_at = utcnow()
        db.commit()
    return api_key


def get_key_owner(db: Session, api_key: ApiKey) -> User | None:
    return db.query(User).filter(User.id == api_key.created_by_user_id).first()
