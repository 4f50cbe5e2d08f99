"""Clients router - ChronusDev clients."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from chronus.core.deps import get_current_session, get_db
from chronus.schemas.auth import UserSession
from chronus.schemas.client import ClientCreate, ClientRead, ClientUpdate
from chronus.services import client_service

router = APIRouter()


@router.get("", response_model=list[ClientRead])
def list_clients(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return client_service.list_clients(db, session.org_id)


@router.post("", response_model=ClientRead, status_code=201)
def create_client(
    data: ClientCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return client_service.create_client(db, session.org_id, session.user_id, data)


@router.get("/{client_id}", response_model=ClientRead)
def get_client(
    client_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    client = client_service.get_client(db, client_id, session.org_id)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


@router.put("/{client_id}", response_model=ClientRead)
def update_client(
    client_id: UUID,
    data: ClientUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    client = client_service.get_client(db, client_id, session.org_id)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    return client_service.update_client(db, client, data)


@router.delete("/{client_id}", status_code=204)
def delete_client(
    client_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    client = client_service.get_client(db, client_id, session.org_id)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    client_service.delete_client(db, client)
