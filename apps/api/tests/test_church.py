"""Tests for church settings."""
import pytest
from httpx import AsyncClient

from tracker.core.permissions import PermissionDenied
from tracker.db.enums import Pathway
from tracker.schemas.church import ChurchUpdate
from tracker.schemas.integration import IntegrationCreate
from tracker.services import church_service, integration_service


def test_admin_updates_settings(db, admin, church):
    updated = church_service.update_church(
        db,
        admin,
        ChurchUpdate(
            name="Grace Community Church",
            email="Office@GraceCommunity.org",
            timezone="America/Chicago",
            auto_welcome=False,
        ),
    )

    assert updated.name == "Grace Community Church"
    assert updated.email == "office@gracecommunity.org"
    assert updated.timezone == "America/Chicago"
    assert updated.auto_welcome is False
    assert updated.slug == "grace-church"


def test_unknown_timezone_is_rejected(db, admin, church):
    with pytest.raises(church_service.ChurchServiceError, match="Unknown timezone"):
        church_service.update_church(db, admin, ChurchUpdate(timezone="Mars/Olympus"))
    db.refresh(church)
    assert church.timezone == "America/New_York"


def test_null_clears_contact_but_not_name(db, admin, church):
    updated = church_service.update_church(
        db, admin, ChurchUpdate.model_validate({"name": None, "email": None})
    )
    assert updated.name == "Grace Church"
    assert updated.email is None


def test_volunteer_cannot_update_settings(db, volunteer, church):
    with pytest.raises(PermissionDenied):
        church_service.update_church(db, volunteer, ChurchUpdate(name="Renamed"))


def test_new_integration_takes_church_welcome_default(db, admin, church, newcomer_stages):
    church_service.update_church(db, admin, ChurchUpdate(auto_welcome=False))

    def _create(**fields):
        return integration_service.create_integration(
            db,
            admin,
            IntegrationCreate(
                source_name="Connect Card",
                sheet_url="https://example.com/sheet.csv",
                target_pathway=Pathway.NEWCOMER,
                target_stage_id=newcomer_stages[0].id,
                **fields,
            ),
        )

    assert _create().auto_welcome is False
    assert _create(auto_welcome=True).auto_welcome is True


# =============================================================================
# HTTP
# =============================================================================

@pytest.mark.asyncio
async def test_volunteer_reads_but_cannot_edit(client: AsyncClient, volunteer_auth, church):
    shown = await client.get("/api/church", headers=volunteer_auth.bearer)
    assert shown.status_code == 200
    body = shown.json()
    assert body["name"] == "Grace Church"
    assert body["timezone"] == "America/New_York"
    assert body["auto_welcome"] is True

    edited = await client.patch(
        "/api/church", json={"name": "Renamed"}, headers=volunteer_auth.bearer
    )
    assert edited.status_code == 403


@pytest.mark.asyncio
async def test_admin_patch_settings(authed_client: AsyncClient, church):
    response = await authed_client.patch(
        "/api/church", json={"phone": "555-0199", "timezone": "Europe/London"}
    )
    assert response.status_code == 200
    assert response.json()["phone"] == "555-0199"
    assert response.json()["timezone"] == "Europe/London"

    bad = await authed_client.patch("/api/church", json={"timezone": "Nowhere/Town"})
    assert bad.status_code == 400
