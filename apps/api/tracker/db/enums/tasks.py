"""Task and automation enums."""

from enum import Enum


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class AutoAdvanceType(str, Enum):
    """
    Conditions that move a member to the next stage without staff input.

    - TASK_COMPLETED: a completed task's description contains the rule keyword
    - TIME_IN_STAGE: the member has sat in the stage for N days
    """

    TASK_COMPLETED = "TASK_COMPLETED"
    TIME_IN_STAGE = "TIME_IN_STAGE"
