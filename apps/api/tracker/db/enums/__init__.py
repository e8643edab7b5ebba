"""Enum definitions for application constants."""

from tracker.db.enums.academy import ModuleStatus, ProgressStatus
from tracker.db.enums.auth import Role
from tracker.db.enums.forms import FormFieldType, MemberField
from tracker.db.enums.integrations import IntegrationStatus
from tracker.db.enums.members import (
    MemberStatus,
    MessageChannel,
    MessageDirection,
    NoteKind,
    Pathway,
    ResourceType,
)
from tracker.db.enums.tasks import AutoAdvanceType, TaskPriority

__all__ = [
    "AutoAdvanceType",
    "FormFieldType",
    "IntegrationStatus",
    "MemberField",
    "MemberStatus",
    "MessageChannel",
    "MessageDirection",
    "ModuleStatus",
    "NoteKind",
    "Pathway",
    "ProgressStatus",
    "ResourceType",
    "Role",
    "TaskPriority",
]
