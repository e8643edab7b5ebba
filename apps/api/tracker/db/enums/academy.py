"""Academy (volunteer training) enums."""

from enum import Enum


class ModuleStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class ProgressStatus(str, Enum):
    """
    Per-user module state.

    LOCKED -> STARTED (enrolled, or prerequisite completed) -> COMPLETED (quiz passed)
    """

    LOCKED = "LOCKED"
    STARTED = "STARTED"
    COMPLETED = "COMPLETED"
