"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel, Field

from chronus.db.enums import Role


class UserSession(BaseModel):
    """
    Full session context for authenticated requests.

    This is returned by get_current_session dependency
    and contains all information needed for authorization.
    """
    user_id: UUID
    org_id: UUID
    role: Role  # Validated enum
    email: str
    name: str
    via_api_key: bool = False
    jti: str | None = None


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)
    organization_name: str | None = Field(None, max_length=255)


class LoginRequest(BaseModel):
    email: str
    password: str
    organization_id: UUID | None = None  # pick an org when the user has several


class UserRead(BaseModel):
    id: UUID
    email: str
    name: str
    avatar_url: str | None = None

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Token plus the authenticated user."""
    token: str
    user: UserRead
    org_id: UUID | None
    role: Role | None


class MeResponse(BaseModel):
    """Response schema for GET /auth/me endpoint."""
    user_id: UUID
    email: str
    name: str
    avatar_url: str | None
    org_id: UUID
    org_name: str
    org_slug: str
    org_plan: str
    role: Role
