"""Pydantic schemas for intake forms."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from tracker.db.enums import FormFieldType, MemberField, Pathway


class FormField(BaseModel):
    id: str = Field(..., min_length=1, max_length=100)
    label: str = Field(..., min_length=1, max_length=255)
    type: FormFieldType
    required: bool = False
    placeholder: str | None = None
    options: list[str] | None = None
    map_to: MemberField | None = None


class FormRead(BaseModel):
    id: UUID
    name: str
    description: str | None = None
    slug: str
    fields: list[FormField]
    is_active: bool
    target_pathway: Pathway | None = None
    target_stage_id: UUID | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class FormCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=2000)
    fields: list[FormField] = Field(default_factory=list)
    is_active: bool = True
    target_pathway: Pathway | None = None
    target_stage_id: UUID | None = None


class FormUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=2000)
    fields: list[FormField] | None = None
    is_active: bool | None = None
    target_pathway: Pathway | None = None
    target_stage_id: UUID | None = None


class PublicFormRead(BaseModel):
    """Form schema as shown to the public (no targeting details)."""
    name: str
    description: str | None = None
    slug: str
    fields: list[FormField]
    church_name: str


class FormSubmitRequest(BaseModel):
    data: dict[str, Any] = Field(default_factory=dict)


class FormSubmissionRead(BaseModel):
    id: UUID
    form_id: UUID
    data: dict[str, Any]
    member_id: UUID | None = None
    submitted_at: datetime

    model_config = {"from_attributes": True}


class FormSubmitResponse(BaseModel):
    submission_id: UUID
    member_created: bool
