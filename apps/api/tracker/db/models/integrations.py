"""Google Sheet ingestion sources."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from tracker.db.base import Base
from tracker.db.enums import IntegrationStatus
from tracker.db.types import new_id, utcnow


class IntegrationConfig(Base):
    """A published sheet whose rows become members of target_pathway at target_stage_id."""

    __tablename__ = "integration_configs"
    __table_args__ = (Index("idx_integrations_church", "church_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    church_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("churches.id", ondelete="CASCADE"), nullable=False
    )
    source_name: Mapped[str] = mapped_column(String(255), nullable=False)
    sheet_url: Mapped[str] = mapped_column(Text, nullable=False)
    target_pathway: Mapped[str] = mapped_column(String(30), nullable=False)
    target_stage_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("stages.id"), nullable=False
    )
    auto_create_task: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    task_description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    auto_welcome: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_sync: Mapped[datetime | None] = mapped_column()
    status: Mapped[str] = mapped_column(
        String(10), default=IntegrationStatus.ACTIVE.value, nullable=False
    )
    last_error: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
