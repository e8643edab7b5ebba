"""Tests for sheet ingestion: CSV parsing, record synthesis, fetching and sync."""
import uuid
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import httpx
import pytest

from tracker.db.enums import IntegrationStatus, MessageChannel, Pathway, TaskPriority
from tracker.db.models import Member, Task
from tracker.schemas.integration import IntegrationCreate, IntegrationUpdate
from tracker.schemas.member import MemberCreate
from tracker.services import ingestion_service, integration_service, member_service
from tracker.services.ingestion_service import SheetFetchError


NOW = datetime(2024, 6, 2, 14, 5, tzinfo=timezone.utc)
TODAY = date(2024, 6, 2)


def _config(**overrides):
    fields = dict(
        source_name="Connect Card",
        target_pathway="NEWCOMER",
        target_stage_id=uuid.uuid4(),
        auto_create_task=False,
        task_description="",
        auto_welcome=False,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


# =============================================================================
# parse_csv
# =============================================================================

def test_parse_split_name_columns():
    text = "First Name,Last Name,Email,Phone,Pathway\nJohn,Doe,john@x.com,555-1,NEWCOMER\n"

    rows = ingestion_service.parse_csv(text, now=NOW)

    assert len(rows) == 1
    row = rows[0]
    assert (row.first_name, row.last_name, row.email, row.phone) == (
        "John", "Doe", "john@x.com", "555-1",
    )
    assert row.pathway_raw == "NEWCOMER"
    assert row.timestamp == NOW


def test_parse_full_name_column_is_split_on_first_space():
    rows = ingestion_service.parse_csv("Name,E-mail\nJane Mary Smith,jane@x.com\n")
    assert rows[0].first_name == "Jane"
    assert rows[0].last_name == "Mary Smith"
    assert rows[0].email == "jane@x.com"


def test_parse_falls_back_to_email_local_part():
    rows = ingestion_service.parse_csv("Email,Mobile\nsam.lee@x.com,555-2\n")
    assert rows[0].first_name == "sam.lee"
    assert rows[0].last_name == ""


def test_parse_handles_quoted_cells_and_skips_empty_rows():
    text = (
        '"Full Name","Email Address"\n'
        '"Lee, Sam",sam@x.com\n'
        ",\n"
        "\n"
        "Ana Ruiz,\n"
    )
    rows = ingestion_service.parse_csv(text)
    assert [(r.first_name, r.last_name) for r in rows] == [("Lee,", "Sam"), ("Ana", "Ruiz")]


def test_parse_header_only_returns_nothing():
    assert ingestion_service.parse_csv("Name,Email\n") == []
    assert ingestion_service.parse_csv("") == []


# =============================================================================
# process_ingestion
# =============================================================================

def _rows(*entries):
    return [
        ingestion_service.ParsedRow(
            first_name=first, last_name=last, email=email, phone="", pathway_raw="", timestamp=NOW
        )
        for first, last, email in entries
    ]


def test_duplicates_skipped_case_insensitively_including_within_batch():
    rows = _rows(
        ("John", "Doe", "JOHN@x.com"),
        ("Jane", "Smith", "jane@x.com"),
        ("Janet", "Smith", "Jane@X.com"),
        ("Pat", "NoEmail", ""),
        ("Pat", "AlsoNoEmail", ""),
    )

    result = ingestion_service.process_ingestion(
        rows, _config(), ["john@x.com"], today=TODAY, now=NOW
    )

    assert [m.first_name for m in result.new_members] == ["Jane", "Pat", "Pat"]
    assert result.duplicates_skipped == 2
    assert result.new_members[0].email == "jane@x.com"


def test_members_land_on_configured_stage_with_import_note():
    config = _config(source_name="Easter Signups")

    result = ingestion_service.process_ingestion(
        _rows(("Jane", "Smith", "jane@x.com")), config, [], today=TODAY, now=NOW
    )

    member = result.new_members[0]
    assert member.pathway == Pathway.NEWCOMER
    assert member.current_stage_id == config.target_stage_id
    assert member.joined_date == TODAY
    assert member.tags == ["Sheet Import", "Easter Signups"]
    assert member.assigned_to_id is None
    assert member.notes[0].text == 'Imported from "Easter Signups" Google Sheet on 2024-06-02 14:05 UTC'
    assert "Jane+Smith" in member.photo_url
    assert result.new_tasks == []


def test_auto_task_and_welcome():
    actor = uuid.uuid4()
    config = _config(auto_create_task=True, task_description="Call [Member Name]", auto_welcome=True)

    result = ingestion_service.process_ingestion(
        _rows(("Jane", "Smith", "jane@x.com"), ("Pat", "Lee", "")),
        config,
        [],
        actor,
        today=TODAY,
        now=NOW,
    )

    task = result.new_tasks[0]
    assert task.description == "Call Jane Smith"
    assert task.due_date == TODAY + timedelta(days=1)
    assert task.priority == TaskPriority.HIGH
    assert task.assigned_to_id == actor
    assert task.member_id == result.new_members[0].id
    assert len(result.new_tasks) == 2

    jane, pat = result.new_members
    assert len(jane.message_log) == 1
    assert jane.message_log[0].channel == MessageChannel.EMAIL
    assert jane.message_log[0].content.startswith("Hi Jane, thanks for signing up for Connect Card!")
    assert jane.notes[-1].text == "Auto-Welcome Email Sent"
    # No email, no welcome
    assert pat.message_log == []


def test_ingest_parses_and_dedupes_against_member_records():
    existing = [SimpleNamespace(email="Jane@X.com"), SimpleNamespace(email=None)]
    text = "Name,Email\nJane Smith,jane@x.com\nSam Lee,sam@x.com\n"

    result = ingestion_service.ingest(text, _config(), existing)

    assert [m.first_name for m in result.new_members] == ["Sam"]
    assert result.duplicates_skipped == 1


def test_blank_task_template_falls_back():
    assert ingestion_service.build_task_description("  ", "Jane", "Smith") == "Follow up with Jane"


def test_task_template_fills_first_placeholder_only():
    description = ingestion_service.build_task_description(
        "[Member Name] / [Member Name]", "Jane", "Smith"
    )
    assert description == "Jane Smith / [Member Name]"


# =============================================================================
# Fetching
# =============================================================================

def test_resolve_sheet_url():
    edit = "https://docs.google.com/spreadsheets/d/abc_123-XYZ/edit#gid=0"
    assert ingestion_service.resolve_sheet_url(edit) == (
        "https://docs.google.com/spreadsheets/d/abc_123-XYZ/export?format=csv"
    )
    published = "https://docs.google.com/spreadsheets/d/e/2PACX/pub?output=csv"
    assert ingestion_service.resolve_sheet_url(published) == published


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_fetch_returns_csv_text():
    def handler(request):
        assert request.url.path.endswith("/export")
        return httpx.Response(200, text="Name\nJane\n", headers={"content-type": "text/csv"})

    text = ingestion_service.fetch_sheet_csv(
        "https://docs.google.com/spreadsheets/d/abc/edit", client=_client(handler)
    )
    assert text == "Name\nJane\n"


def test_fetch_http_error():
    client = _client(lambda request: httpx.Response(404))
    with pytest.raises(SheetFetchError, match="HTTP Error 404"):
        ingestion_service.fetch_sheet_csv("https://example.com/sheet.csv", client=client)


def test_fetch_json_body_is_rejected():
    client = _client(lambda request: httpx.Response(200, json={"error": "nope"}))
    with pytest.raises(SheetFetchError, match="returned JSON"):
        ingestion_service.fetch_sheet_csv("https://example.com/sheet.csv", client=client)


def test_fetch_network_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SheetFetchError, match="Publish to web"):
        ingestion_service.fetch_sheet_csv("https://example.com/sheet.csv", client=_client(handler))


# =============================================================================
# Integration sync
# =============================================================================

SHEET_CSV = (
    "Timestamp,Full Name,Email,Phone\n"
    "2024-06-01,Jane Smith,jane@x.com,555-3\n"
    "2024-06-01,Existing Person,EXISTING@x.com,\n"
)


@pytest.fixture
def integration(db, admin, newcomer_stages):
    return integration_service.create_integration(
        db,
        admin,
        IntegrationCreate(
            source_name="Connect Card",
            sheet_url="https://docs.google.com/spreadsheets/d/abc/edit",
            target_pathway=Pathway.NEWCOMER,
            target_stage_id=newcomer_stages[1].id,
            auto_create_task=True,
            task_description="Welcome call for [Member Name]",
            auto_welcome=True,
        ),
    )


def test_sync_creates_members_and_tasks(db, admin, integration, newcomer_stages):
    member_service.create_member(
        db,
        admin,
        MemberCreate(first_name="Existing", pathway=Pathway.NEWCOMER, email="existing@x.com"),
    )
    client = _client(lambda request: httpx.Response(200, text=SHEET_CSV))

    result = integration_service.sync_integration(db, admin, integration.id, client=client)

    assert result.rows_parsed == 2
    assert result.members_created == 1
    assert result.duplicates_skipped == 1
    assert result.tasks_created == 1
    assert result.integration.status == IntegrationStatus.ACTIVE
    assert result.integration.last_sync is not None

    jane = db.query(Member).filter(Member.email == "jane@x.com").one()
    assert jane.current_stage_id == newcomer_stages[1].id
    assert jane.assigned_to_id is None
    assert len(jane.message_log) == 1
    assert "Auto-Welcome Email Sent" in [n.text for n in jane.notes]

    task = db.query(Task).filter(Task.member_id == jane.id).one()
    assert task.description == "Welcome call for Jane Smith"
    assert task.assigned_to_id == admin.user_id


def test_sync_failure_marks_integration_error(db, admin, integration):
    client = _client(lambda request: httpx.Response(403))

    with pytest.raises(SheetFetchError):
        integration_service.sync_integration(db, admin, integration.id, client=client)

    db.refresh(integration)
    assert integration.status == IntegrationStatus.ERROR.value
    assert "HTTP Error 403" in integration.last_error


def test_paused_integration_is_not_synced(db, admin, integration):
    integration_service.update_integration(
        db, admin, integration.id, IntegrationUpdate(status=IntegrationStatus.PAUSED)
    )
    with pytest.raises(integration_service.IntegrationPausedError):
        integration_service.sync_integration(db, admin, integration.id)


def test_integration_target_must_match_pathway(db, admin, believer_stages):
    with pytest.raises(integration_service.IntegrationServiceError):
        integration_service.create_integration(
            db,
            admin,
            IntegrationCreate(
                source_name="Bad",
                sheet_url="https://example.com/a.csv",
                target_pathway=Pathway.NEWCOMER,
                target_stage_id=believer_stages[0].id,
            ),
        )
