"""Integration enums."""

from enum import Enum


class IntegrationStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ERROR = "ERROR"  # Last sync failed, see last_error
    PAUSED = "PAUSED"
