"""Pydantic schemas for stage automation rules."""

from uuid import UUID

from pydantic import BaseModel, Field

from tracker.db.enums import TaskPriority


class AutomationRuleRead(BaseModel):
    id: UUID
    stage_id: UUID
    task_description: str
    days_due: int
    priority: TaskPriority
    enabled: bool

    model_config = {"from_attributes": True}


class AutomationRuleCreate(BaseModel):
    stage_id: UUID
    task_description: str = Field(..., min_length=1, max_length=2000)
    days_due: int = Field(0, ge=0, le=365)
    priority: TaskPriority = TaskPriority.MEDIUM
    enabled: bool = True


class AutomationRuleUpdate(BaseModel):
    task_description: str | None = Field(None, min_length=1, max_length=2000)
    days_due: int | None = Field(None, ge=0, le=365)
    priority: TaskPriority | None = None
    enabled: bool | None = None
