"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    Staff roles with decreasing privilege levels.

    - SUPER_ADMIN: Church owner, every permission including user administration
    - ADMIN: Pastoral staff, full ministry configuration
    - TEAM_LEADER: Oversees volunteers, sees every member and task
    - VOLUNTEER: Works their own assigned members and tasks
    """

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    TEAM_LEADER = "TEAM_LEADER"
    VOLUNTEER = "VOLUNTEER"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_
