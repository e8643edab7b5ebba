"""Ingestion service - turn sheet CSV exports into members and follow-up tasks.

parse_csv and process_ingestion are pure. fetch_sheet_csv is the only I/O
and is kept separate so the sync flow can be exercised without a network.

Ingested members do not pass through stage automation; the only task
created is the integration's own follow-up task.
"""

import csv
import io
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable
from urllib.parse import quote_plus

import httpx

from tracker.core.config import settings
from tracker.db.enums import MemberStatus, MessageChannel, MessageDirection, Pathway, TaskPriority
from tracker.db.types import utcnow
from tracker.schemas.member import MemberRead, MessageRead
from tracker.schemas.task import TaskRead
from tracker.services.note_service import system_note

logger = logging.getLogger(__name__)

# Column roles, resolved in this order; each takes the first header containing any term
FIRST_NAME_TERMS = ("first name", "firstname", "given name", "f_name")
LAST_NAME_TERMS = ("last name", "lastname", "surname", "family name", "l_name")
FULL_NAME_TERMS = ("name", "full name", "fullname", "who")
EMAIL_TERMS = ("email", "e-mail", "mail", "address")
PHONE_TERMS = ("phone", "mobile", "cell", "contact")
PATHWAY_TERMS = ("pathway", "path", "type", "track")

MEMBER_NAME_PLACEHOLDER = "[Member Name]"
IMPORT_TAG = "Sheet Import"
WELCOME_SENDER = "System (Auto-Welcome)"
WELCOME_TEMPLATE = "Hi {first}, thanks for signing up for {source}! We're excited to see you."
AVATAR_URL = "https://ui-avatars.com/api/?name={first}+{last}&background=random"

SHEET_ID_RE = re.compile(r"/d/([a-zA-Z0-9-_]+)")
SHEET_EXPORT_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv"
PUBLISH_HELP = (
    "In Google Sheets go to: File > Share > Publish to web > Link > "
    "'Comma-separated values (.csv)' and use that URL."
)


class SheetFetchError(Exception):
    """Sheet could not be downloaded; message is safe to show to staff."""


@dataclass
class ParsedRow:
    first_name: str
    last_name: str
    email: str
    phone: str
    pathway_raw: str
    timestamp: datetime


@dataclass
class IngestionResult:
    new_members: list[MemberRead] = field(default_factory=list)
    new_tasks: list[TaskRead] = field(default_factory=list)
    duplicates_skipped: int = 0


# =============================================================================
# Parsing
# =============================================================================

def _clean_header(cell: str) -> str:
    return cell.strip().lower().replace('"', "").replace("'", "")


def _find_col(headers: list[str], terms: Iterable[str]) -> int:
    for i, header in enumerate(headers):
        if any(term in header for term in terms):
            return i
    return -1


def _cell(values: list[str], index: int) -> str:
    if index < 0 or index >= len(values):
        return ""
    return values[index]


def parse_csv(text: str, now: datetime | None = None) -> list[ParsedRow]:
    """
    Parse CSV text into rows, guessing which columns hold names and contacts.

    Rows with no name, email or phone are dropped. Returns [] when there is
    no data row after the header.
    """
    now = now or utcnow()
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    lines = [row for row in reader if any(cell.strip() for cell in row)]
    if len(lines) < 2:
        return []

    headers = [_clean_header(h) for h in lines[0]]
    idx_first = _find_col(headers, FIRST_NAME_TERMS)
    idx_last = _find_col(headers, LAST_NAME_TERMS)
    idx_full = _find_col(headers, FULL_NAME_TERMS)
    idx_email = _find_col(headers, EMAIL_TERMS)
    idx_phone = _find_col(headers, PHONE_TERMS)
    idx_pathway = _find_col(headers, PATHWAY_TERMS)

    rows: list[ParsedRow] = []
    for raw in lines[1:]:
        values = [v.strip() for v in raw]
        email = _cell(values, idx_email)
        phone = _cell(values, idx_phone)

        first_name = ""
        last_name = ""
        if _cell(values, idx_first):
            first_name = _cell(values, idx_first)
            last_name = _cell(values, idx_last)
        elif _cell(values, idx_full):
            parts = _cell(values, idx_full).split(" ")
            first_name = parts[0]
            last_name = " ".join(parts[1:])

        if not first_name and email:
            first_name = email.split("@")[0]

        if not first_name and not email and not phone:
            continue

        rows.append(
            ParsedRow(
                first_name=first_name or "Unknown",
                last_name=last_name or "",
                email=email,
                phone=phone,
                pathway_raw=_cell(values, idx_pathway),
                timestamp=now,
            )
        )
    return rows


# =============================================================================
# Record synthesis
# =============================================================================

def _email_key(value) -> str:
    email = value if isinstance(value, str) else getattr(value, "email", None)
    return (email or "").strip().lower()


def build_task_description(template: str, first_name: str, last_name: str) -> str:
    description = (template or "").replace(MEMBER_NAME_PLACEHOLDER, f"{first_name} {last_name}", 1)
    if not description.strip():
        return f"Follow up with {first_name}"
    return description


def process_ingestion(
    rows: Iterable[ParsedRow],
    config,
    existing_members: Iterable,
    acting_user_id: uuid.UUID | None = None,
    *,
    today: date | None = None,
    now: datetime | None = None,
) -> IngestionResult:
    """
    Build member and task records for parsed rows.

    existing_members may hold member records or bare email strings; a row
    whose email matches one of them (or an earlier row of the same batch),
    ignoring case, is skipped.
    """
    today = today or date.today()
    now = now or utcnow()
    source = config.source_name
    seen = {key for key in (_email_key(m) for m in existing_members) if key}
    result = IngestionResult()

    for row in rows:
        key = _email_key(row.email)
        if key and key in seen:
            result.duplicates_skipped += 1
            continue
        if key:
            seen.add(key)

        notes = [system_note(f'Imported from "{source}" Google Sheet on {now:%Y-%m-%d %H:%M} UTC', at=now)]
        messages: list[MessageRead] = []
        if config.auto_welcome and row.email:
            messages.append(
                MessageRead(
                    id=uuid.uuid4(),
                    channel=MessageChannel.EMAIL,
                    direction=MessageDirection.OUTBOUND,
                    timestamp=now,
                    content=WELCOME_TEMPLATE.format(first=row.first_name, source=source),
                    sent_by=WELCOME_SENDER,
                )
            )
            notes.append(system_note("Auto-Welcome Email Sent", at=now))

        member = MemberRead(
            id=uuid.uuid4(),
            first_name=row.first_name,
            last_name=row.last_name,
            email=key or None,
            phone=row.phone or None,
            photo_url=AVATAR_URL.format(
                first=quote_plus(row.first_name), last=quote_plus(row.last_name)
            ),
            pathway=Pathway(config.target_pathway),
            current_stage_id=config.target_stage_id,
            status=MemberStatus.ACTIVE,
            joined_date=today,
            last_stage_change_date=now,
            tags=[IMPORT_TAG, source],
            notes=notes,
            message_log=messages,
        )
        result.new_members.append(member)

        if config.auto_create_task:
            result.new_tasks.append(
                TaskRead(
                    id=uuid.uuid4(),
                    member_id=member.id,
                    description=build_task_description(
                        config.task_description, row.first_name, row.last_name
                    ),
                    due_date=today + timedelta(days=1),
                    completed=False,
                    priority=TaskPriority.HIGH,
                    assigned_to_id=acting_user_id,
                )
            )

    return result


def ingest(
    raw_csv_text: str,
    config,
    existing_members: Iterable,
    acting_user_id: uuid.UUID | None = None,
) -> IngestionResult:
    """parse_csv followed by process_ingestion."""
    return process_ingestion(parse_csv(raw_csv_text), config, existing_members, acting_user_id)


# =============================================================================
# Fetch
# =============================================================================

def resolve_sheet_url(url: str) -> str:
    """Rewrite a sheet edit link to its CSV export link; published/CSV links pass through."""
    match = SHEET_ID_RE.search(url)
    if match and "/pub" not in url and "output=csv" not in url:
        return SHEET_EXPORT_URL.format(sheet_id=match.group(1))
    return url


def fetch_sheet_csv(url: str, client: httpx.Client | None = None) -> str:
    """
    Download a sheet as CSV text.

    Raises:
        SheetFetchError: non-2xx response, JSON body, or network failure
    """
    fetch_url = resolve_sheet_url(url)
    owns_client = client is None
    client = client or httpx.Client(timeout=settings.SHEET_FETCH_TIMEOUT, follow_redirects=True)
    try:
        response = client.get(fetch_url)
    except httpx.RequestError as e:
        logger.warning(f"Sheet fetch failed: {e}")
        raise SheetFetchError(f"Could not reach the sheet. {PUBLISH_HELP}") from e
    finally:
        if owns_client:
            client.close()

    if not response.is_success:
        raise SheetFetchError(
            f'HTTP Error {response.status_code}: Ensure the sheet is "Published to Web".'
        )
    if "application/json" in response.headers.get("content-type", ""):
        raise SheetFetchError("Invalid content. The URL returned JSON, expected CSV.")
    return response.text
