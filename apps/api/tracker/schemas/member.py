"""Pydantic schemas for members and their history records.

MemberRead is also the in-memory record the automation engine and pipeline
advance operate on; it round-trips through JSON unchanged.
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from tracker.db.enums import (
    MemberStatus,
    MessageChannel,
    MessageDirection,
    NoteKind,
    Pathway,
    ResourceType,
)


class NoteRead(BaseModel):
    id: UUID
    timestamp: datetime
    author_id: UUID | None = None
    text: str
    kind: NoteKind

    model_config = {"from_attributes": True}


class MessageRead(BaseModel):
    id: UUID
    channel: MessageChannel
    direction: MessageDirection
    timestamp: datetime
    content: str
    sent_by: str

    model_config = {"from_attributes": True}


class ResourceRead(BaseModel):
    id: UUID
    title: str
    url: str
    type: ResourceType
    date_added: datetime

    model_config = {"from_attributes": True}


class MemberRead(BaseModel):
    """Full member record."""
    id: UUID
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    photo_url: str | None = None
    pathway: Pathway
    current_stage_id: UUID
    status: MemberStatus
    joined_date: date
    last_stage_change_date: datetime | None = None
    assigned_to_id: UUID | None = None
    tags: list[str] = Field(default_factory=list)
    notes: list[NoteRead] = Field(default_factory=list)
    message_log: list[MessageRead] = Field(default_factory=list)
    resources: list[ResourceRead] = Field(default_factory=list)

    date_of_birth: date | None = None
    gender: str | None = None
    marital_status: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None

    model_config = {"from_attributes": True}


class MemberListResponse(BaseModel):
    members: list[MemberRead]
    total: int


class MemberCreate(BaseModel):
    """Request to create a member. current_stage_id defaults to the pathway's first stage."""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field("", max_length=100)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    photo_url: str | None = None
    pathway: Pathway
    current_stage_id: UUID | None = None
    assigned_to_id: UUID | None = None
    tags: list[str] = Field(default_factory=list)
    date_of_birth: date | None = None
    gender: str | None = None
    marital_status: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None


class MemberUpdate(BaseModel):
    """Partial member update. A current_stage_id change runs stage automation."""
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    photo_url: str | None = None
    current_stage_id: UUID | None = None
    status: MemberStatus | None = None
    tags: list[str] | None = None
    date_of_birth: date | None = None
    gender: str | None = None
    marital_status: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None


class NoteCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=10000)


class MemberAssign(BaseModel):
    assigned_to_id: UUID | None


class ResourceCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1)
    type: ResourceType = ResourceType.LINK


class MessageCreate(BaseModel):
    """Log an outbound message. Delivery happens outside the tracker."""
    channel: MessageChannel
    content: str = Field(..., min_length=1, max_length=5000)
