"""Centralized RBAC policies for API resources."""

from dataclasses import dataclass

from tracker.core.permissions import Permission as P


@dataclass(frozen=True)
class ResourcePolicy:
    """Default permission + per-action overrides for a resource."""

    default: P | None
    actions: dict[str, P]


POLICIES: dict[str, ResourcePolicy] = {
    "members": ResourcePolicy(
        default=P.MEMBER_VIEW,
        actions={
            "view_all": P.MEMBER_VIEW_ALL,
            "create": P.MEMBER_CREATE,
            "edit": P.MEMBER_UPDATE,
            "delete": P.MEMBER_DELETE,
            "assign": P.MEMBER_ASSIGN,
        },
    ),
    "tasks": ResourcePolicy(
        default=P.TASK_VIEW,
        actions={
            "view_all": P.TASK_VIEW_ALL,
            "create": P.TASK_CREATE,
            "edit": P.TASK_UPDATE,
            "delete": P.TASK_DELETE,
            "assign": P.TASK_ASSIGN,
        },
    ),
    "stages": ResourcePolicy(
        default=P.STAGE_VIEW,
        actions={
            "create": P.STAGE_CREATE,
            "edit": P.STAGE_UPDATE,
            "delete": P.STAGE_DELETE,
            "reorder": P.STAGE_REORDER,
        },
    ),
    "automation": ResourcePolicy(
        default=P.AUTOMATION_VIEW,
        actions={
            "create": P.AUTOMATION_CREATE,
            "edit": P.AUTOMATION_UPDATE,
            "delete": P.AUTOMATION_DELETE,
        },
    ),
    "communications": ResourcePolicy(
        default=P.COMMUNICATION_VIEW_HISTORY,
        actions={
            "email": P.COMMUNICATION_SEND_EMAIL,
            "sms": P.COMMUNICATION_SEND_SMS,
            "ai": P.COMMUNICATION_USE_AI,
        },
    ),
    "integrations": ResourcePolicy(
        default=P.INTEGRATION_VIEW,
        actions={
            "create": P.INTEGRATION_CREATE,
            "edit": P.INTEGRATION_UPDATE,
            "delete": P.INTEGRATION_DELETE,
            "sync": P.INTEGRATION_SYNC,
        },
    ),
    "forms": ResourcePolicy(
        default=P.FORM_VIEW,
        actions={
            "create": P.FORM_CREATE,
            "edit": P.FORM_UPDATE,
            "delete": P.FORM_DELETE,
            "submissions": P.FORM_VIEW_SUBMISSIONS,
        },
    ),
    "academy": ResourcePolicy(
        default=P.ACADEMY_VIEW,
        actions={
            "enroll": P.ACADEMY_ENROLL,
            "submit_quiz": P.ACADEMY_SUBMIT_QUIZ,
            "view_all_progress": P.ACADEMY_VIEW_ALL_PROGRESS,
            "manage_tracks": P.ACADEMY_MANAGE_TRACKS,
            "manage_modules": P.ACADEMY_MANAGE_MODULES,
            "manage_quizzes": P.ACADEMY_MANAGE_QUIZZES,
        },
    ),
    "users": ResourcePolicy(
        default=P.USER_VIEW,
        actions={"create": P.USER_CREATE, "manage_roles": P.USER_MANAGE_ROLES},
    ),
    "church_settings": ResourcePolicy(
        default=P.SETTINGS_VIEW,
        actions={"edit": P.SETTINGS_UPDATE},
    ),
}
