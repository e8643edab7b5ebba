"""Pydantic schemas for sheet integrations."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from tracker.db.enums import IntegrationStatus, Pathway


class IntegrationRead(BaseModel):
    id: UUID
    source_name: str
    sheet_url: str
    target_pathway: Pathway
    target_stage_id: UUID
    auto_create_task: bool
    task_description: str
    auto_welcome: bool
    last_sync: datetime | None = None
    status: IntegrationStatus
    last_error: str | None = None

    model_config = {"from_attributes": True}


class IntegrationCreate(BaseModel):
    source_name: str = Field(..., min_length=1, max_length=255)
    sheet_url: str = Field(..., min_length=1)
    target_pathway: Pathway
    target_stage_id: UUID
    auto_create_task: bool = False
    task_description: str = Field("", max_length=2000)
    auto_welcome: bool | None = None  # None takes the church default


class IntegrationUpdate(BaseModel):
    source_name: str | None = Field(None, min_length=1, max_length=255)
    sheet_url: str | None = Field(None, min_length=1)
    target_pathway: Pathway | None = None
    target_stage_id: UUID | None = None
    auto_create_task: bool | None = None
    task_description: str | None = Field(None, max_length=2000)
    auto_welcome: bool | None = None
    status: IntegrationStatus | None = None


class SyncResult(BaseModel):
    integration: IntegrationRead
    rows_parsed: int
    members_created: int
    duplicates_skipped: int
    tasks_created: int
