"""Public intake forms and their submissions."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from tracker.db.base import Base
from tracker.db.types import new_id, utcnow


class Form(Base):
    """
    Staff-built form published at /api/public/forms/{slug}.

    fields is a JSON list of FormField dicts (id, label, type, required,
    placeholder, options, map_to).
    """

    __tablename__ = "forms"
    __table_args__ = (Index("idx_forms_church", "church_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    church_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("churches.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    slug: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    fields: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    target_pathway: Mapped[str | None] = mapped_column(String(30))
    target_stage_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("stages.id"))
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class FormSubmission(Base):
    __tablename__ = "form_submissions"
    __table_args__ = (Index("idx_form_submissions_form", "form_id", "submitted_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    form_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False
    )
    data: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    member_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    submitted_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
