"""Permission registry and the static role -> permission table.

Every capability in the API is a Permission. Roles map to fixed permission
sets; there are no per-user overrides. Checks are pure and total: an unknown
role simply holds no permissions.
"""

from dataclasses import dataclass
from enum import Enum

from tracker.db.enums import Role


class Permission(str, Enum):
    """Capability keys, formatted as '<resource>:<action>'."""

    # Users
    USER_VIEW = "user:view"
    USER_CREATE = "user:create"
    USER_UPDATE = "user:update"
    USER_DELETE = "user:delete"
    USER_MANAGE_ROLES = "user:manage_roles"

    # Members
    MEMBER_VIEW = "member:view"
    MEMBER_VIEW_ALL = "member:view_all"
    MEMBER_CREATE = "member:create"
    MEMBER_UPDATE = "member:update"
    MEMBER_DELETE = "member:delete"
    MEMBER_ASSIGN = "member:assign"
    MEMBER_EXPORT = "member:export"

    # Tasks
    TASK_VIEW = "task:view"
    TASK_VIEW_ALL = "task:view_all"
    TASK_CREATE = "task:create"
    TASK_UPDATE = "task:update"
    TASK_DELETE = "task:delete"
    TASK_ASSIGN = "task:assign"

    # Stages
    STAGE_VIEW = "stage:view"
    STAGE_CREATE = "stage:create"
    STAGE_UPDATE = "stage:update"
    STAGE_DELETE = "stage:delete"
    STAGE_REORDER = "stage:reorder"

    # Automation rules
    AUTOMATION_VIEW = "automation:view"
    AUTOMATION_CREATE = "automation:create"
    AUTOMATION_UPDATE = "automation:update"
    AUTOMATION_DELETE = "automation:delete"

    # Communications
    COMMUNICATION_SEND_EMAIL = "communication:send_email"
    COMMUNICATION_SEND_SMS = "communication:send_sms"
    COMMUNICATION_VIEW_HISTORY = "communication:view_history"
    COMMUNICATION_USE_AI = "communication:use_ai"

    # Church settings
    SETTINGS_VIEW = "settings:view"
    SETTINGS_UPDATE = "settings:update"

    # Integrations (sheet ingestion)
    INTEGRATION_VIEW = "integration:view"
    INTEGRATION_CREATE = "integration:create"
    INTEGRATION_UPDATE = "integration:update"
    INTEGRATION_DELETE = "integration:delete"
    INTEGRATION_SYNC = "integration:sync"

    # Analytics
    ANALYTICS_VIEW = "analytics:view"
    ANALYTICS_EXPORT = "analytics:export"

    # Forms
    FORM_VIEW = "form:view"
    FORM_CREATE = "form:create"
    FORM_UPDATE = "form:update"
    FORM_DELETE = "form:delete"
    FORM_VIEW_SUBMISSIONS = "form:view_submissions"

    # Academy
    ACADEMY_VIEW = "academy:view"
    ACADEMY_ENROLL = "academy:enroll"
    ACADEMY_SUBMIT_QUIZ = "academy:submit_quiz"
    ACADEMY_VIEW_PROGRESS = "academy:view_progress"
    ACADEMY_VIEW_ALL_PROGRESS = "academy:view_all_progress"
    ACADEMY_MANAGE_TRACKS = "academy:manage_tracks"
    ACADEMY_MANAGE_MODULES = "academy:manage_modules"
    ACADEMY_MANAGE_QUIZZES = "academy:manage_quizzes"

    # Church administration
    ADMIN_MANAGE_CHURCH = "admin:manage_church"
    ADMIN_VIEW_AUDIT = "admin:view_audit"


class PermissionCategory(str, Enum):
    """Permission categories for UI grouping."""
    USERS = "Users"
    MEMBERS = "Members"
    TASKS = "Tasks"
    PIPELINE = "Pipeline"
    COMMUNICATION = "Communication"
    SETTINGS = "Settings"
    FORMS = "Forms"
    ACADEMY = "Academy"
    ADMIN = "Administration"


@dataclass(frozen=True)
class PermissionDef:
    """Permission definition with metadata."""
    key: Permission
    category: PermissionCategory

    @property
    def label(self) -> str:
        resource, action = self.key.value.split(":", 1)
        return f"{action.replace('_', ' ').title()} {resource.title()}"


_CATEGORY_BY_RESOURCE: dict[str, PermissionCategory] = {
    "user": PermissionCategory.USERS,
    "member": PermissionCategory.MEMBERS,
    "task": PermissionCategory.TASKS,
    "stage": PermissionCategory.PIPELINE,
    "automation": PermissionCategory.PIPELINE,
    "communication": PermissionCategory.COMMUNICATION,
    "settings": PermissionCategory.SETTINGS,
    "integration": PermissionCategory.SETTINGS,
    "analytics": PermissionCategory.SETTINGS,
    "form": PermissionCategory.FORMS,
    "academy": PermissionCategory.ACADEMY,
    "admin": PermissionCategory.ADMIN,
}

PERMISSION_REGISTRY: dict[str, PermissionDef] = {
    p.value: PermissionDef(p, _CATEGORY_BY_RESOURCE[p.value.split(":", 1)[0]])
    for p in Permission
}


# =============================================================================
# Role table
# =============================================================================

P = Permission

ALL_PERMISSIONS: frozenset[Permission] = frozenset(Permission)

ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.SUPER_ADMIN: ALL_PERMISSIONS,
    # Everything except church administration
    Role.ADMIN: frozenset(p for p in Permission if not p.value.startswith("admin:")),
    Role.TEAM_LEADER: frozenset({
        P.USER_VIEW,
        P.MEMBER_VIEW, P.MEMBER_VIEW_ALL, P.MEMBER_CREATE, P.MEMBER_UPDATE, P.MEMBER_ASSIGN,
        P.TASK_VIEW, P.TASK_VIEW_ALL, P.TASK_CREATE, P.TASK_UPDATE, P.TASK_ASSIGN,
        P.STAGE_VIEW,
        P.AUTOMATION_VIEW,
        P.COMMUNICATION_SEND_EMAIL, P.COMMUNICATION_SEND_SMS,
        P.COMMUNICATION_VIEW_HISTORY, P.COMMUNICATION_USE_AI,
        P.SETTINGS_VIEW,
        P.INTEGRATION_VIEW,
        P.ANALYTICS_VIEW,
        P.FORM_VIEW,
        P.ACADEMY_VIEW, P.ACADEMY_ENROLL, P.ACADEMY_SUBMIT_QUIZ,
        P.ACADEMY_VIEW_PROGRESS, P.ACADEMY_VIEW_ALL_PROGRESS,
    }),
    Role.VOLUNTEER: frozenset({
        P.MEMBER_VIEW, P.MEMBER_CREATE, P.MEMBER_UPDATE,
        P.TASK_VIEW, P.TASK_CREATE, P.TASK_UPDATE,
        P.STAGE_VIEW,
        P.COMMUNICATION_SEND_EMAIL, P.COMMUNICATION_SEND_SMS,
        P.COMMUNICATION_VIEW_HISTORY, P.COMMUNICATION_USE_AI,
        P.SETTINGS_VIEW,
        P.ACADEMY_VIEW, P.ACADEMY_ENROLL, P.ACADEMY_SUBMIT_QUIZ, P.ACADEMY_VIEW_PROGRESS,
    }),
}


class PermissionDenied(Exception):
    """Raised when the acting principal lacks a required permission."""

    def __init__(self, permission: Permission | None = None):
        self.permission = permission
        super().__init__("You do not have permission to perform this action")


def _coerce_role(role: Role | str | None) -> Role | None:
    if isinstance(role, Role):
        return role
    if isinstance(role, str) and Role.has_value(role):
        return Role(role)
    return None


def get_role_permissions(role: Role | str | None) -> frozenset[Permission]:
    """Permission set for a role; empty for unknown roles."""
    resolved = _coerce_role(role)
    if resolved is None:
        return frozenset()
    return ROLE_PERMISSIONS.get(resolved, frozenset())


def has_permission(role: Role | str | None, permission: Permission) -> bool:
    return permission in get_role_permissions(role)


def has_any_permission(role: Role | str | None, permissions) -> bool:
    granted = get_role_permissions(role)
    return any(p in granted for p in permissions)


def has_all_permissions(role: Role | str | None, permissions) -> bool:
    granted = get_role_permissions(role)
    return all(p in granted for p in permissions)


def ensure_permission(role: Role | str | None, permission: Permission) -> None:
    """
    Fail-closed guard for service-level commands.

    Raises:
        PermissionDenied: role does not hold the permission
    """
    if not has_permission(role, permission):
        raise PermissionDenied(permission)


def is_valid_permission(key: str) -> bool:
    """Check if permission key exists."""
    return key in PERMISSION_REGISTRY


def get_permissions_by_category() -> dict[str, list[PermissionDef]]:
    """Group permissions by category for UI."""
    result: dict[str, list[PermissionDef]] = {}
    for perm in PERMISSION_REGISTRY.values():
        result.setdefault(perm.category.value, []).append(perm)
    return result
