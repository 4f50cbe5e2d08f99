"""Integrations router - per-org provider credentials (masked on read)."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from chronus.core.deps import get_current_session, get_db, require_roles
from chronus.db.enums import Role
from chronus.schemas.auth import UserSession
from chronus.schemas.integration import IntegrationRead, IntegrationUpsert
from chronus.services import integration_service

router = APIRouter()


@router.get("", response_model=list[IntegrationRead])
def list_integrations(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """List integrations. Secret-looking credential values are masked."""
    return [
        integration_service.serialize_integration(i)
        for i in integration_service.list_integrations(db, session.org_id)
    ]


@router.put("/{provider}", response_model=IntegrationRead)
def upsert_integration(
    provider: str,
    data: IntegrationUpsert,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    try:
        provider = integration_service.parse_provider(provider)
        integration = integration_service.upsert_integration(db, session.org_id, provider, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return integration_service.serialize_integration(integration)


@router.delete("/{provider}", status_code=204)
def delete_integration(
    provider: str,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    try:
        provider = integration_service.parse_provider(provider)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not integration_service.delete_integration(db, session.org_id, provider):
        raise HTTPException(status_code=404, detail="Integration not found")
