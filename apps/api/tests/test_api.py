"""HTTP-level tests: auth flows, CSRF, permissions and the main endpoints."""
from datetime import date, timedelta

import pytest
from httpx import AsyncClient

from tracker.core.deps import COOKIE_NAME
from tracker.db.enums import Pathway, Role
from tracker.schemas.form import FormCreate, FormField
from tracker.schemas.member import MemberCreate
from tracker.services import ai_service, form_service, member_service


PASSWORD = "correct-horse-battery"
CSRF = {"X-Requested-With": "XMLHttpRequest"}


# =============================================================================
# Auth
# =============================================================================

@pytest.mark.asyncio
async def test_unauthenticated_request_is_rejected(client: AsyncClient):
    response = await client.get("/api/members")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_register_then_use_bearer_token(client: AsyncClient):
    response = await client.post(
        "/api/auth/register",
        json={
            "church_name": "Hope Chapel",
            "email": "Pastor@HopeChapel.org",
            "password": PASSWORD,
            "first_name": "Grace",
            "last_name": "Owens",
        },
    )
    assert response.status_code == 201
    tokens = response.json()
    assert COOKIE_NAME in response.cookies

    headers = {"Authorization": f"Bearer {tokens['access_token']}"}
    me = await client.get("/api/auth/me", headers=headers)
    assert me.status_code == 200
    body = me.json()
    assert body["email"] == "pastor@hopechapel.org"
    assert body["role"] == Role.SUPER_ADMIN.value
    assert body["church_name"] == "Hope Chapel"
    assert body["church_slug"] == "hope-chapel"
    assert "member:delete" in body["permissions"]

    stages = await client.get("/api/pathways/NEWCOMER/stages", headers=headers)
    assert stages.status_code == 200
    assert [s["order"] for s in stages.json()] == list(range(1, 8))


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, make_user):
    make_user(Role.ADMIN, email="taken@gracechurch.org")
    response = await client.post(
        "/api/auth/register",
        json={
            "church_name": "Another Church",
            "email": "taken@gracechurch.org",
            "password": PASSWORD,
            "first_name": "Sam",
            "last_name": "Lee",
        },
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_login_refresh_and_logout(client: AsyncClient, make_user):
    make_user(Role.VOLUNTEER, email="vol@gracechurch.org", password=PASSWORD)

    bad = await client.post(
        "/api/auth/login", json={"email": "vol@gracechurch.org", "password": "wrong-password"}
    )
    assert bad.status_code == 401

    login = await client.post(
        "/api/auth/login", json={"email": "VOL@gracechurch.org", "password": PASSWORD}
    )
    assert login.status_code == 200
    tokens = login.json()

    refreshed = await client.post(
        "/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
    )
    assert refreshed.status_code == 200
    access = refreshed.json()["access_token"]
    headers = {"Authorization": f"Bearer {access}"}

    logout = await client.post("/api/auth/logout", headers=headers)
    assert logout.status_code == 200

    revoked = await client.get("/api/auth/me", headers=headers)
    assert revoked.status_code == 401

    stale_refresh = await client.post(
        "/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
    )
    assert stale_refresh.status_code == 401


@pytest.mark.asyncio
async def test_cookie_mutation_requires_csrf_header(client: AsyncClient, admin_auth, church):
    client.cookies.set(COOKIE_NAME, admin_auth.token)
    response = await client.post(
        "/api/members", json={"first_name": "Sarah", "pathway": "NEWCOMER"}
    )
    assert response.status_code == 403
    assert "CSRF" in response.json()["detail"]


@pytest.mark.asyncio
async def test_volunteer_cannot_delete_member(client: AsyncClient, db, admin, volunteer_auth):
    member = member_service.create_member(
        db, admin, MemberCreate(first_name="Sarah", pathway=Pathway.NEWCOMER)
    )
    response = await client.delete(f"/api/members/{member.id}", headers=volunteer_auth.bearer)
    assert response.status_code == 403


# =============================================================================
# Members and stages
# =============================================================================

@pytest.mark.asyncio
async def test_member_stage_move_returns_created_tasks(authed_client: AsyncClient, newcomer_stages):
    created = await authed_client.post(
        "/api/members", json={"first_name": "Sarah", "last_name": "Jenkins", "pathway": "NEWCOMER"}
    )
    assert created.status_code == 201
    member = created.json()
    assert member["current_stage_id"] == str(newcomer_stages[0].id)

    lunch = newcomer_stages[2]
    response = await authed_client.patch(
        f"/api/members/{member['id']}", json={"current_stage_id": str(lunch.id)}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["member"]["current_stage_id"] == str(lunch.id)
    [task] = body["tasks_created"]
    assert task["description"] == "Call to confirm Lunch attendance"
    assert task["due_date"] == (date.today() + timedelta(days=2)).isoformat()

    toggled = await authed_client.post(f"/api/tasks/{task['id']}/toggle")
    assert toggled.status_code == 200
    assert toggled.json()["completed"] is True

    refreshed = await authed_client.get(f"/api/members/{member['id']}")
    assert refreshed.json()["current_stage_id"] == str(newcomer_stages[3].id)


@pytest.mark.asyncio
async def test_deleting_stage_in_use_conflicts(authed_client: AsyncClient, db, admin, newcomer_stages):
    tent = newcomer_stages[1]
    member_service.create_member(
        db, admin,
        MemberCreate(first_name="Ann", pathway=Pathway.NEWCOMER, current_stage_id=tent.id),
    )

    response = await authed_client.delete(f"/api/pathways/NEWCOMER/stages/{tent.id}")
    assert response.status_code == 409
    assert response.json()["detail"]["usage"]["members"] == 1

    migrated = await authed_client.delete(
        f"/api/pathways/NEWCOMER/stages/{tent.id}",
        params={"migrate_to_stage_id": str(newcomer_stages[0].id)},
    )
    assert migrated.status_code == 200
    assert migrated.json() == {"deleted": True, "migrated_members": 1}


@pytest.mark.asyncio
async def test_stage_from_other_pathway_is_not_found(authed_client: AsyncClient, believer_stages):
    response = await authed_client.delete(f"/api/pathways/NEWCOMER/stages/{believer_stages[0].id}")
    assert response.status_code == 404


# =============================================================================
# Public forms
# =============================================================================

@pytest.mark.asyncio
async def test_public_form_round_trip(client: AsyncClient, db, admin, newcomer_stages):
    form = form_service.create_form(
        db,
        admin,
        FormCreate(
            name="Connect Card",
            fields=[
                FormField(id="f", label="First Name", type="text", required=True, map_to="first_name"),
                FormField(id="l", label="Last Name", type="text", required=True, map_to="last_name"),
            ],
            target_pathway=Pathway.NEWCOMER,
            target_stage_id=newcomer_stages[0].id,
        ),
    )

    shown = await client.get(f"/api/public/forms/{form.slug}")
    assert shown.status_code == 200
    assert shown.json()["church_name"] == "Grace Church"
    assert "target_stage_id" not in shown.json()

    invalid = await client.post(f"/api/public/forms/{form.slug}/submit", json={"data": {"f": "Ana"}})
    assert invalid.status_code == 400
    assert invalid.json()["detail"]["errors"] == ["Last Name is required"]

    submitted = await client.post(
        f"/api/public/forms/{form.slug}/submit", json={"data": {"f": "Ana", "l": "Ruiz"}}
    )
    assert submitted.status_code == 201
    assert submitted.json()["member_created"] is True


@pytest.mark.asyncio
async def test_unknown_public_form(client: AsyncClient):
    response = await client.get("/api/public/forms/does-not-exist")
    assert response.status_code == 404


# =============================================================================
# AI, analytics, health
# =============================================================================

@pytest.mark.asyncio
async def test_ai_endpoints_fall_back_without_provider(authed_client: AsyncClient, db, admin, church):
    member = member_service.create_member(
        db, admin, MemberCreate(first_name="Mike", pathway=Pathway.NEW_BELIEVER)
    )

    drafted = await authed_client.post(f"/api/ai/members/{member.id}/follow-up")
    assert drafted.status_code == 200
    assert drafted.json()["message"] == ai_service.MISSING_KEY_MESSAGE

    journey = await authed_client.get(f"/api/ai/members/{member.id}/journey")
    assert journey.status_code == 200
    assert journey.json() == ai_service.NOT_CONFIGURED_ANALYSIS.model_dump(mode="json")


@pytest.mark.asyncio
async def test_analytics_overview_and_funnel(authed_client: AsyncClient, db, admin, newcomer_stages):
    member_service.create_member(
        db, admin, MemberCreate(first_name="Sarah", pathway=Pathway.NEWCOMER)
    )

    overview = await authed_client.get("/api/analytics/overview")
    assert overview.status_code == 200
    members = overview.json()["members"]
    assert members["total"] == 1
    assert members["by_pathway"] == {"NEWCOMER": 1, "NEW_BELIEVER": 0}

    funnel = await authed_client.get("/api/analytics/funnel/NEWCOMER")
    counts = [row["members"] for row in funnel.json()]
    assert counts == [1, 0, 0, 0, 0, 0, 0]


@pytest.mark.asyncio
async def test_volunteer_cannot_view_analytics(client: AsyncClient, volunteer_auth):
    response = await client.get("/api/analytics/overview", headers=volunteer_auth.bearer)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
