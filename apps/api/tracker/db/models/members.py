"""Member records and their append-only history (notes, messages, resources)."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import JSON, Date, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tracker.db.base import Base
from tracker.db.enums import MemberStatus, NoteKind
from tracker.db.types import new_id, utcnow


class Member(Base):
    """A person moving through a pathway."""

    __tablename__ = "members"
    __table_args__ = (
        Index("idx_members_church_pathway", "church_id", "pathway", "status"),
        Index("idx_members_church_email", "church_id", "email"),
        Index("idx_members_assigned", "church_id", "assigned_to_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    church_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("churches.id", ondelete="CASCADE"), nullable=False
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(50))
    photo_url: Mapped[str | None] = mapped_column(Text)
    pathway: Mapped[str] = mapped_column(String(30), nullable=False)
    current_stage_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("stages.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=MemberStatus.ACTIVE.value, nullable=False
    )
    joined_date: Mapped[date] = mapped_column(Date, default=date.today, nullable=False)
    last_stage_change_date: Mapped[datetime | None] = mapped_column()
    assigned_to_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    tags: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    # Profile fields populated by forms
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    gender: Mapped[str | None] = mapped_column(String(20))
    marital_status: Mapped[str | None] = mapped_column(String(20))
    address: Mapped[str | None] = mapped_column(Text)
    city: Mapped[str | None] = mapped_column(String(100))
    state: Mapped[str | None] = mapped_column(String(50))
    zip_code: Mapped[str | None] = mapped_column(String(20))

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    notes: Mapped[list["MemberNote"]] = relationship(
        cascade="all, delete-orphan",
        order_by="MemberNote.timestamp",
        lazy="selectin",
    )
    message_log: Mapped[list["MessageLog"]] = relationship(
        cascade="all, delete-orphan",
        order_by="MessageLog.timestamp",
        lazy="selectin",
    )
    resources: Mapped[list["MemberResource"]] = relationship(
        cascade="all, delete-orphan",
        order_by="MemberResource.date_added",
        lazy="selectin",
    )


class MemberNote(Base):
    """Append-only timeline entry on a member."""

    __tablename__ = "member_notes"
    __table_args__ = (Index("idx_member_notes_member", "member_id", "timestamp"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="CASCADE"), nullable=False
    )
    timestamp: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    author_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    kind: Mapped[str] = mapped_column(String(10), default=NoteKind.USER.value, nullable=False)


class MessageLog(Base):
    __tablename__ = "message_logs"
    __table_args__ = (Index("idx_message_logs_member", "member_id", "timestamp"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="CASCADE"), nullable=False
    )
    channel: Mapped[str] = mapped_column(String(10), nullable=False)
    direction: Mapped[str] = mapped_column(String(10), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    sent_by: Mapped[str] = mapped_column(String(255), nullable=False)


class MemberResource(Base):
    __tablename__ = "member_resources"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(10), nullable=False)
    date_added: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
