"""Client service - ChronusDev clients and their sync from CRM customers."""

import logging
import uuid
from uuid import UUID

from sqlalchemy.orm import Session

from chronus.db.enums import ActivityType
from chronus.db.models import Client
from chronus.schemas.client import ClientCreate, ClientUpdate
from chronus.services import activity_service
from chronus.utils.normalization import normalize_email, normalize_phone

logger = logging.getLogger(__name__)

PLACEHOLDER_DOMAIN = "crm.local"


def list_clients(db: Session, org_id: UUID) -> list[Client]:
    return db.query(Client).filter(Client.organization_id == org_id).order_by(Client.name).all()


def get_client(db: Session, client_id: UUID, org_id: UUID) -> Client | None:
    return db.query(Client).filter(Client.id == client_id, Client.organization_id == org_id).first()


def create_client(db: Session, org_id: UUID, user_id: UUID | None, data: ClientCreate) -> Client:
    client_id = uuid.uuid4()
    client = Client(
        id=client_id,
        organization_id=org_id,
        name=data.name.strip(),
        email=normalize_email(data.email) or f"{client_id}@{PLACEHOLDER_DOMAIN}",
        phone=normalize_phone(data.phone),
        contact_name=data.contact_name,
    )
    db.add(client)
    db.flush()
    activity_service.log_activity(
        db,
        organization_id=org_id,
        activity_type=ActivityType.CREATED,
        description=f"Client {client.name} created",
        actor_user_id=user_id,
        entity_type="client",
        entity_id=client.id,
    )
    db.commit()
    db.refresh(client)
    return client


def update_client(db: Session, client: Client, data: ClientUpdate) -> Client:
    updates = data.model_dump(exclude_unset=True)
    if "email" in updates:
        updates["email"] = normalize_email(updates["email"]) or f"{client.id}@{PLACEHOLDER_DOMAIN}"
    if "phone" in updates:
        updates["phone"] = normalize_phone(updates["phone"])
    for field, value in updates.items():
        if value is None and field == "name":
            continue
        setattr(client, field, value)
    db.commit()
    db.refresh(client)
    return client


def delete_client(db: Session, client: Client) -> None:
    db.delete(client)
    db.commit()


def sync_client_from_crm(db: Session, org_id: UUID, customer: dict, commit: bool = True) -> Client:
    """
    Upsert the local mirror of a CRM customer.

    Lookup order: crm_customer_id inside the org, then in any org (the
    client is moved into this org), else a new client is created.
    """
    crm_id = str(customer.get("id") or "")
    if not crm_id:
        raise ValueError("Customer id is required")
    name = customer.get("name") or "CRM customer"

    client = db.query(Client).filter(
        Client.crm_customer_id == crm_id,
        Client.organization_id == org_id,
    ).first()
    moved_from = None
    if client is None:
        client = db.query(Client).filter(Client.crm_customer_id == crm_id).first()
        if client is not None:
            moved_from = client.organization_id
            logger.info("Client %s moved from org %s to %s", client.id, moved_from, org_id)

    if client is None:
        client = Client(
            organization_id=org_id,
            name=name,
            email=normalize_email(customer.get("email")) or f"{crm_id}@{PLACEHOLDER_DOMAIN}",
            phone=normalize_phone(customer.get("phone")),
            contact_name=name,
            crm_customer_id=crm_id,
        )
        db.add(client)
        description = f"Client {name} synced from CRM"
    else:
        client.organization_id = org_id
        client.name = name
        client.email = normalize_email(customer.get("email")) or client.email
        client.phone = normalize_phone(customer.get("phone"))
        client.contact_name = name
        description = f"Client {name} updated from CRM"
    db.flush()

    activity_service.log_activity(
        db,
        organization_id=org_id,
        activity_type=ActivityType.CLIENT_SYNCED,
        description=description,
        entity_type="client",
        entity_id=client.id,
        details={
            "crm_customer_id": crm_id,
            "moved_from": str(moved_from) if moved_from else None,
        },
    )
    if commit:
        db.commit()
        db.refresh(client)
    return client
