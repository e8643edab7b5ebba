"""SQLAlchemy ORM models."""

from tracker.db.models.academy import (
    Enrollment,
    Module,
    ModuleProgress,
    Quiz,
    QuizQuestion,
    Track,
)
from tracker.db.models.auth import Church, User
from tracker.db.models.forms import Form, FormSubmission
from tracker.db.models.integrations import IntegrationConfig
from tracker.db.models.members import Member, MemberNote, MemberResource, MessageLog
from tracker.db.models.pipelines import AutomationRule, Stage
from tracker.db.models.tasks import Task

__all__ = [
    "AutomationRule",
    "Church",
    "Enrollment",
    "Form",
    "FormSubmission",
    "IntegrationConfig",
    "Member",
    "MemberNote",
    "MemberResource",
    "MessageLog",
    "Module",
    "ModuleProgress",
    "Quiz",
    "QuizQuestion",
    "Stage",
    "Task",
    "Track",
    "User",
]
