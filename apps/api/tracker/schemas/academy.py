"""Pydantic schemas for the training academy."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from tracker.db.enums import ModuleStatus, ProgressStatus


class QuizOption(BaseModel):
    id: str = Field(..., min_length=1, max_length=50)
    text: str = Field(..., min_length=1)


class QuizQuestionIn(BaseModel):
    text: str = Field(..., min_length=1)
    options: list[QuizOption] = Field(..., min_length=2)
    correct_option_id: str
    order: int = 0


class QuizQuestionRead(BaseModel):
    """correct_option_id is None for callers who cannot manage quizzes."""
    id: UUID
    text: str
    options: list[QuizOption]
    correct_option_id: str | None = None
    order: int

    model_config = {"from_attributes": True}


class QuizUpsert(BaseModel):
    passing_score: int = Field(70, ge=0, le=100)
    questions: list[QuizQuestionIn] = Field(..., min_length=1)


class QuizRead(BaseModel):
    id: UUID
    module_id: UUID
    passing_score: int
    questions: list[QuizQuestionRead]

    model_config = {"from_attributes": True}


class ModuleCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    video_url: str | None = None
    order: int = 0
    status: ModuleStatus = ModuleStatus.DRAFT
    required_module_id: UUID | None = None


class ModuleUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    video_url: str | None = None
    order: int | None = None
    status: ModuleStatus | None = None
    required_module_id: UUID | None = None


class ModuleRead(BaseModel):
    id: UUID
    track_id: UUID
    title: str
    description: str | None = None
    video_url: str | None = None
    order: int
    status: ModuleStatus
    required_module_id: UUID | None = None

    model_config = {"from_attributes": True}


class TrackCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    order: int = 0
    is_published: bool = False


class TrackUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    order: int | None = None
    is_published: bool | None = None


class TrackRead(BaseModel):
    id: UUID
    title: str
    description: str | None = None
    order: int
    is_published: bool
    modules: list[ModuleRead] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class EnrollmentRead(BaseModel):
    id: UUID
    user_id: UUID
    track_id: UUID
    enrolled_at: datetime
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class ModuleProgressRead(BaseModel):
    module_id: UUID
    status: ProgressStatus
    video_watched: bool
    quiz_score: int | None = None
    quiz_passed: bool
    attempts: int
    started_at: datetime | None = None
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class QuizSubmission(BaseModel):
    """question_id (as string) -> chosen option id."""
    answers: dict[str, str]


class QuizResult(BaseModel):
    score: int
    passed: bool
    passing_score: int
    correct: int
    total: int
    track_completed: bool = False


class TrackProgress(BaseModel):
    track_id: UUID
    title: str
    enrolled_at: datetime
    completed_at: datetime | None = None
    total_modules: int
    completed_modules: int
    percent_complete: int
    modules: list[ModuleProgressRead]


class NextStep(BaseModel):
    """The module the user should work on next, or None when nothing is open."""
    track_id: UUID | None = None
    module: ModuleRead | None = None
    video_watched: bool = False
