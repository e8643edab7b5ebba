"""Volunteer training: tracks, video modules, quizzes and per-user progress."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tracker.db.base import Base
from tracker.db.enums import ModuleStatus, ProgressStatus
from tracker.db.types import new_id, utcnow


class Track(Base):
    __tablename__ = "academy_tracks"
    __table_args__ = (Index("idx_academy_tracks_church", "church_id", "order"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    church_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("churches.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    modules: Mapped[list["Module"]] = relationship(
        back_populates="track",
        cascade="all, delete-orphan",
        order_by="Module.order",
        lazy="selectin",
    )


class Module(Base):
    """
    Video lesson within a track.

    required_module_id names the module that must be COMPLETED before this
    one unlocks.
    """

    __tablename__ = "academy_modules"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    track_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("academy_tracks.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    video_url: Mapped[str | None] = mapped_column(Text)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[str] = mapped_column(
        String(10), default=ModuleStatus.DRAFT.value, nullable=False
    )
    required_module_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    track: Mapped[Track] = relationship(back_populates="modules")
    quiz: Mapped["Quiz | None"] = relationship(
        back_populates="module",
        cascade="all, delete-orphan",
        uselist=False,
        lazy="selectin",
    )


class Quiz(Base):
    __tablename__ = "academy_quizzes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    module_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("academy_modules.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    passing_score: Mapped[int] = mapped_column(Integer, default=70, nullable=False)

    module: Mapped[Module] = relationship(back_populates="quiz")
    questions: Mapped[list["QuizQuestion"]] = relationship(
        cascade="all, delete-orphan",
        order_by="QuizQuestion.order",
        lazy="selectin",
    )


class QuizQuestion(Base):
    """options is a JSON list of {id, text}."""

    __tablename__ = "academy_quiz_questions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    quiz_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("academy_quizzes.id", ondelete="CASCADE"), nullable=False
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    correct_option_id: Mapped[str] = mapped_column(String(50), nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class Enrollment(Base):
    __tablename__ = "academy_enrollments"
    __table_args__ = (UniqueConstraint("user_id", "track_id", name="uq_enrollment_user_track"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    track_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("academy_tracks.id", ondelete="CASCADE"), nullable=False
    )
    enrolled_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column()


class ModuleProgress(Base):
    __tablename__ = "academy_module_progress"
    __table_args__ = (UniqueConstraint("user_id", "module_id", name="uq_progress_user_module"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    module_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("academy_modules.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(10), default=ProgressStatus.LOCKED.value, nullable=False
    )
    video_watched: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    quiz_score: Mapped[int | None] = mapped_column(Integer)
    quiz_passed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column()
    completed_at: Mapped[datetime | None] = mapped_column()
