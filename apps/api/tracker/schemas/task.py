"""Pydantic schemas for tasks."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field

from tracker.db.enums import TaskPriority
from tracker.schemas.member import MemberRead


class TaskRead(BaseModel):
    id: UUID
    member_id: UUID
    description: str
    due_date: date
    completed: bool = False
    priority: TaskPriority
    assigned_to_id: UUID | None = None

    model_config = {"from_attributes": True}


class TaskListResponse(BaseModel):
    items: list[TaskRead]
    total: int


class TaskCreate(BaseModel):
    """Request to create a task. assigned_to_id defaults to the caller."""
    member_id: UUID
    description: str = Field(..., min_length=1, max_length=2000)
    due_date: date
    priority: TaskPriority = TaskPriority.MEDIUM
    assigned_to_id: UUID | None = None


class TaskUpdate(BaseModel):
    description: str | None = Field(None, min_length=1, max_length=2000)
    due_date: date | None = None
    priority: TaskPriority | None = None
    assigned_to_id: UUID | None = None
    completed: bool | None = None


class MemberTransitionResponse(BaseModel):
    """Member after an update or advance, plus tasks the move spawned."""
    member: MemberRead
    tasks_created: list[TaskRead] = Field(default_factory=list)
