"""Follow-up tasks."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from tracker.db.base import Base
from tracker.db.enums import TaskPriority
from tracker.db.types import new_id, utcnow


class Task(Base):
    """
    Follow-up item for a member.

    member_id and assigned_to_id are plain references: tasks outlive
    deleted members and deactivated users.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_church_assignee", "church_id", "assigned_to_id", "completed"),
        Index("idx_tasks_member", "member_id"),
        Index("idx_tasks_due", "church_id", "due_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    church_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("churches.id", ondelete="CASCADE"), nullable=False
    )
    member_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column()
    priority: Mapped[str] = mapped_column(
        String(10), default=TaskPriority.MEDIUM.value, nullable=False
    )
    assigned_to_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
