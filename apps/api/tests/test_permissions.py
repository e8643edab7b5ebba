"""Tests for the static role permission table."""
import pytest

from tracker.core.permissions import (
    ALL_PERMISSIONS,
    PERMISSION_REGISTRY,
    Permission as P,
    PermissionDenied,
    ensure_permission,
    get_permissions_by_category,
    get_role_permissions,
    has_all_permissions,
    has_any_permission,
    has_permission,
    is_valid_permission,
)
from tracker.core.structured_logging import build_log_context
from tracker.db.enums import Role


def test_super_admin_holds_everything():
    assert get_role_permissions(Role.SUPER_ADMIN) == ALL_PERMISSIONS


def test_admin_lacks_only_church_administration():
    granted = get_role_permissions(Role.ADMIN)
    assert P.STAGE_DELETE in granted
    assert P.ADMIN_MANAGE_CHURCH not in granted
    assert all(p in granted for p in ALL_PERMISSIONS if not p.value.startswith("admin:"))


def test_team_leader_sees_everyone_but_cannot_configure():
    assert has_all_permissions(Role.TEAM_LEADER, [P.MEMBER_VIEW_ALL, P.TASK_VIEW_ALL])
    assert not has_permission(Role.TEAM_LEADER, P.STAGE_UPDATE)
    assert not has_permission(Role.TEAM_LEADER, P.MEMBER_DELETE)


def test_volunteer_is_scoped_to_own_work():
    assert has_permission(Role.VOLUNTEER, P.MEMBER_UPDATE)
    assert not has_any_permission(
        Role.VOLUNTEER, [P.MEMBER_VIEW_ALL, P.TASK_VIEW_ALL, P.MEMBER_ASSIGN, P.MEMBER_DELETE]
    )


@pytest.mark.parametrize("role", ["UNKNOWN", "", None, "admin"])
def test_unknown_roles_hold_nothing(role):
    assert get_role_permissions(role) == frozenset()
    assert not has_permission(role, P.MEMBER_VIEW)


def test_string_roles_resolve():
    assert has_permission("ADMIN", P.FORM_CREATE)


def test_ensure_permission_raises_with_the_missing_key():
    ensure_permission(Role.ADMIN, P.MEMBER_DELETE)
    with pytest.raises(PermissionDenied) as exc:
        ensure_permission(Role.VOLUNTEER, P.MEMBER_DELETE)
    assert exc.value.permission == P.MEMBER_DELETE


def test_registry_labels_and_categories():
    assert PERMISSION_REGISTRY["member:view_all"].label == "View All Member"
    assert is_valid_permission("stage:reorder")
    assert not is_valid_permission("stage:explode")

    grouped = get_permissions_by_category()
    assert P.AUTOMATION_CREATE in [d.key for d in grouped["Pipeline"]]
    assert sum(len(v) for v in grouped.values()) == len(P)


def test_log_context_keeps_only_identifiers():
    context = build_log_context(user_id="u1", church_id="c1", route="/api/members", method=None)
    assert context == {"user_id": "u1", "church_id": "c1", "route": "/api/members"}
