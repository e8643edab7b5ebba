"""Authentication-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from tracker.db.enums import Role


class UserSession(BaseModel):
    """
    Full session context for authenticated requests.

    Returned by the get_current_session dependency; carries everything
    service-level permission checks need.
    """
    user_id: UUID
    church_id: UUID
    role: Role
    email: str
    display_name: str


class RegisterRequest(BaseModel):
    """Create a church together with its first (SUPER_ADMIN) user."""
    church_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str | None = None


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserCreate(BaseModel):
    """Invite a staff user into the caller's church."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str | None = None
    role: Role = Role.VOLUNTEER


class UserRead(BaseModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    phone: str | None
    role: Role
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class MeResponse(BaseModel):
    """Response schema for GET /api/auth/me."""
    user_id: UUID
    email: str
    display_name: str
    role: Role
    church_id: UUID
    church_name: str
    church_slug: str
    church_timezone: str
    permissions: list[str]


class UserUpdate(BaseModel):
    """Admin-side changes to a staff account."""
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    phone: str | None = None
    role: Role | None = None
    is_active: bool | None = None
