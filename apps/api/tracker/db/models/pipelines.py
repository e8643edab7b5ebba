"""Pathway stages and stage automation rules."""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from tracker.db.base import Base
from tracker.db.enums import TaskPriority
from tracker.db.types import new_id


class Stage(Base):
    """
    One step of a pathway.

    order is a dense 1..N ranking within (church_id, pathway).
    auto_advance_type/value describe an optional auto-advance rule:
    - TASK_COMPLETED: value is a keyword matched against completed task descriptions
    - TIME_IN_STAGE: value is a number of days
    """

    __tablename__ = "stages"
    __table_args__ = (Index("idx_stages_church_pathway", "church_id", "pathway", "order"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    church_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("churches.id", ondelete="CASCADE"), nullable=False
    )
    pathway: Mapped[str] = mapped_column(String(30), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    auto_advance_type: Mapped[str | None] = mapped_column(String(30))
    auto_advance_value: Mapped[str | None] = mapped_column(String(255))


class AutomationRule(Base):
    """Task template fired when a member enters stage_id."""

    __tablename__ = "automation_rules"
    __table_args__ = (Index("idx_automation_rules_stage", "church_id", "stage_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    church_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("churches.id", ondelete="CASCADE"), nullable=False
    )
    stage_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("stages.id", ondelete="CASCADE"), nullable=False
    )
    task_description: Mapped[str] = mapped_column(Text, nullable=False)
    days_due: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    priority: Mapped[str] = mapped_column(
        String(10), default=TaskPriority.MEDIUM.value, nullable=False
    )
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
