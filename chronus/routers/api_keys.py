"""API keys router - org keys for the public API and lead webhooks (ADMIN only)."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from chronus.core.deps import get_db, require_roles
from chronus.db.enums import Role
from chronus.schemas.api_key import ApiKeyCreate, ApiKeyCreated, ApiKeyRead
from chronus.schemas.auth import UserSession
from chronus.services import api_key_service

router = APIRouter()


@router.get("", response_model=list[ApiKeyRead])
def list_api_keys(
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    return api_key_service.list_api_keys(db, session.org_id)


@router.post("", response_model=ApiKeyCreated, status_code=201)
def create_api_key(
    data: ApiKeyCreate,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    """Create a key. The raw key is only returned here."""
    api_key, raw_key = api_key_service.create_api_key(db, session.org_id, session.user_id, data.name)
    return ApiKeyCreated(
        id=api_key.id,
        name=api_key.name,
        key_prefix=api_key.key_prefix,
        last_used_at=api_key.last_used_at,
        created_at=api_key.created_at,
        key=raw_key,
    )


@router.delete("/{key_id}", status_code=204)
def delete_api_key(
    key_id: UUID,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    if not api_key_service.delete_api_key(db, key_id, session.org_id):
        raise HTTPException(status_code=404, detail="API key not found")
