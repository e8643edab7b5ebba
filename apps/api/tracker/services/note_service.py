"""Note construction and sanitization.

Notes are structured records (timestamp, author, kind, text). The same
record type carries staff-written notes and system audit entries.
"""

import uuid
from datetime import datetime

import nh3

from tracker.db.enums import NoteKind
from tracker.db.models import MemberNote
from tracker.db.types import utcnow
from tracker.schemas.member import NoteRead


def sanitize_text(text: str) -> str:
    """Strip any markup from staff-entered note text."""
    return nh3.clean(text, tags=set()).strip()


def build_note(
    text: str,
    kind: NoteKind = NoteKind.SYSTEM,
    author_id: uuid.UUID | None = None,
    at: datetime | None = None,
) -> NoteRead:
    return NoteRead(
        id=uuid.uuid4(),
        timestamp=at or utcnow(),
        author_id=author_id,
        text=text,
        kind=kind,
    )


def system_note(text: str, at: datetime | None = None) -> NoteRead:
    return build_note(text, NoteKind.SYSTEM, at=at)


def to_model(note: NoteRead, member_id: uuid.UUID) -> MemberNote:
    return MemberNote(
        id=note.id,
        member_id=member_id,
        timestamp=note.timestamp,
        author_id=note.author_id,
        text=note.text,
        kind=note.kind.value,
    )
