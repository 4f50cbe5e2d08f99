from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class ActivityRead(BaseModel):
    id: UUID
    type: str
    description: str
    user_id: UUID | None
    user_name: str | None = None
    entity_type: str | None
    entity_id: UUID | None
    details: dict | None
    created_at: datetime
