"""Church settings schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class ChurchRead(BaseModel):
    id: UUID
    name: str
    slug: str
    email: str | None
    phone: str | None
    website: str | None
    address: str | None
    timezone: str
    auto_welcome: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ChurchUpdate(BaseModel):
    """Partial settings update. The slug is fixed at registration."""
    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    website: str | None = Field(None, max_length=255)
    address: str | None = None
    timezone: str | None = Field(None, min_length=1, max_length=50)
    auto_welcome: bool | None = None
