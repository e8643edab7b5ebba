"""Member service - member CRUD, notes, assignment and stage transitions.

Every stage change goes through commit_transition, which runs the
automation engine and persists the member, its new notes and the spawned
tasks in a single commit.
"""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from tracker.core.permissions import Permission as P, ensure_permission, has_permission
from tracker.core.structured_logging import build_log_context
from tracker.db.enums import AutoAdvanceType, MemberStatus, NoteKind, Pathway
from tracker.db.models import AutomationRule, Member, Stage, Task, User
from tracker.db.types import utcnow
from tracker.schemas.auth import UserSession
from tracker.schemas.member import (
    MemberCreate,
    MemberRead,
    MemberUpdate,
    ResourceCreate,
)
from tracker.services import automation_engine, note_service, pipeline_service, task_service

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 200

# Scalar columns mirrored between MemberRead and Member
_RECORD_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "photo_url",
    "current_stage_id",
    "last_stage_change_date",
    "assigned_to_id",
    "date_of_birth",
    "gender",
    "marital_status",
    "address",
    "city",
    "state",
    "zip_code",
)


class MemberServiceError(ValueError):
    pass


class MemberNotFoundError(MemberServiceError):
    pass


class InvalidStageError(MemberServiceError):
    pass


# =============================================================================
# Queries
# =============================================================================

def _visible_query(db: Session, actor: UserSession):
    """Members the caller may see: all of the church, or only their own."""
    query = db.query(Member).filter(Member.church_id == actor.church_id)
    if not has_permission(actor.role, P.MEMBER_VIEW_ALL):
        query = query.filter(Member.assigned_to_id == actor.user_id)
    return query


def list_members(
    db: Session,
    actor: UserSession,
    pathway: Pathway | None = None,
    status: MemberStatus | None = None,
    stage_id: UUID | None = None,
    search: str | None = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> tuple[list[Member], int]:
    ensure_permission(actor.role, P.MEMBER_VIEW)
    query = _visible_query(db, actor)
    if pathway:
        query = query.filter(Member.pathway == pathway.value)
    if status:
        query = query.filter(Member.status == status.value)
    if stage_id:
        query = query.filter(Member.current_stage_id == stage_id)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Member.first_name.ilike(term),
                Member.last_name.ilike(term),
                Member.email.ilike(term),
                Member.phone.ilike(term),
            )
        )

    total = query.count()
    limit = max(1, min(limit, MAX_LIMIT))
    members = (
        query.order_by(Member.created_at.desc()).offset(offset).limit(limit).all()
    )
    return members, total


def get_member(db: Session, actor: UserSession, member_id: UUID) -> Member | None:
    ensure_permission(actor.role, P.MEMBER_VIEW)
    return _visible_query(db, actor).filter(Member.id == member_id).first()


def get_member_in_church(db: Session, church_id: UUID, member_id: UUID) -> Member | None:
    """Unscoped-by-assignee lookup for system flows."""
    return (
        db.query(Member)
        .filter(Member.church_id == church_id, Member.id == member_id)
        .first()
    )


def find_emails(db: Session, church_id: UUID) -> set[str]:
    """Lower-cased emails of every member in the church."""
    rows = (
        db.query(Member.email)
        .filter(Member.church_id == church_id, Member.email.isnot(None))
        .all()
    )
    return {email.strip().lower() for (email,) in rows if email}


def _require_member(db: Session, actor: UserSession, member_id: UUID) -> Member:
    member = _visible_query(db, actor).filter(Member.id == member_id).first()
    if not member:
        raise MemberNotFoundError("Member not found")
    return member


def _require_stage(db: Session, church_id: UUID, stage_id: UUID, pathway: str) -> Stage:
    stage = pipeline_service.get_stage(db, church_id, stage_id)
    if not stage or stage.pathway != pathway:
        raise InvalidStageError("Stage does not belong to the member's pathway")
    return stage


# =============================================================================
# Record <-> row
# =============================================================================

def to_record(member: Member) -> MemberRead:
    return MemberRead.model_validate(member)


def new_member_from_record(record: MemberRead, church_id: UUID) -> Member:
    """ORM row (with history) for a member record built outside the database."""
    member = Member(
        id=record.id,
        church_id=church_id,
        pathway=record.pathway.value,
        status=record.status.value,
        joined_date=record.joined_date,
        tags=list(record.tags),
        notes=[],
        message_log=[],
        resources=[],
    )
    write_record(member, record)
    return member


def write_record(member: Member, record: MemberRead) -> None:
    """Copy record fields onto the row and append history entries it lacks."""
    from tracker.db.models import MessageLog

    for name in _RECORD_FIELDS:
        setattr(member, name, getattr(record, name))
    member.status = record.status.value
    member.tags = list(record.tags)

    known_notes = {n.id for n in member.notes}
    for note in record.notes:
        if note.id not in known_notes:
            member.notes.append(note_service.to_model(note, member.id))

    known_messages = {m.id for m in member.message_log}
    for message in record.message_log:
        if message.id not in known_messages:
            member.message_log.append(
                MessageLog(
                    id=message.id,
                    member_id=member.id,
                    channel=message.channel.value,
                    direction=message.direction.value,
                    timestamp=message.timestamp,
                    content=message.content,
                    sent_by=message.sent_by,
                )
            )


def commit_transition(
    db: Session,
    member: Member,
    old: MemberRead,
    new: MemberRead,
    acting_user_id: UUID | None,
) -> tuple[Member, list[Task]]:
    """Run stage automation for old -> new and persist everything in one commit."""
    rules = (
        db.query(AutomationRule)
        .filter(
            AutomationRule.church_id == member.church_id,
            AutomationRule.stage_id == new.current_stage_id,
        )
        .all()
    )
    result = automation_engine.on_member_update(old, new, rules, acting_user_id)

    write_record(member, result.member)
    tasks = [task_service.to_model(t, member.church_id) for t in result.new_tasks]
    db.add_all(tasks)
    db.commit()
    db.refresh(member)

    if tasks:
        context = build_log_context(
            user_id=str(acting_user_id) if acting_user_id else None,
            church_id=str(member.church_id),
            member_id=str(member.id),
        )
        logger.info(f"Stage automation created {len(tasks)} task(s)", extra=context)
    return member, tasks


# =============================================================================
# Commands
# =============================================================================

def create_member(db: Session, actor: UserSession, data: MemberCreate) -> Member:
    """Create a member at the given (or first) stage of its pathway."""
    ensure_permission(actor.role, P.MEMBER_CREATE)
    if data.current_stage_id:
        stage = _require_stage(db, actor.church_id, data.current_stage_id, data.pathway.value)
    else:
        stage = pipeline_service.first_stage(db, actor.church_id, data.pathway)
        if not stage:
            raise InvalidStageError(f"Pathway {data.pathway.value} has no stages")

    assignee = data.assigned_to_id or actor.user_id
    if assignee != actor.user_id:
        ensure_permission(actor.role, P.MEMBER_ASSIGN)

    fields = data.model_dump(exclude={"pathway", "current_stage_id", "assigned_to_id", "tags"})
    if fields.get("email"):
        fields["email"] = fields["email"].strip().lower()
    member = Member(
        church_id=actor.church_id,
        pathway=data.pathway.value,
        current_stage_id=stage.id,
        status=MemberStatus.ACTIVE.value,
        assigned_to_id=assignee,
        tags=list(data.tags),
        last_stage_change_date=utcnow(),
        **fields,
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


def update_member(
    db: Session,
    actor: UserSession,
    member_id: UUID,
    data: MemberUpdate,
) -> tuple[Member, list[Task]]:
    """
    Apply a partial update. A change of current_stage_id fires the
    destination stage's automation rules.
    """
    ensure_permission(actor.role, P.MEMBER_UPDATE)
    member = _require_member(db, actor, member_id)

    changes = data.model_dump(exclude_unset=True)
    for key in ("first_name", "last_name", "current_stage_id", "status", "tags"):
        if key in changes and changes[key] is None:
            changes.pop(key)
    if changes.get("email"):
        changes["email"] = changes["email"].strip().lower()
    if changes.get("current_stage_id"):
        _require_stage(db, actor.church_id, changes["current_stage_id"], member.pathway)

    old = to_record(member)
    new = old.model_copy(update=changes)
    return commit_transition(db, member, old, new, actor.user_id)


def advance(db: Session, actor: UserSession, member_id: UUID) -> tuple[Member, list[Task]]:
    """Move the member to the next stage, or mark INTEGRATED at the last one."""
    ensure_permission(actor.role, P.MEMBER_UPDATE)
    member = _require_member(db, actor, member_id)
    stages = pipeline_service.list_stages(db, actor.church_id, member.pathway)
    old = to_record(member)
    new = pipeline_service.advance_member(old, stages)
    return commit_transition(db, member, old, new, actor.user_id)


def auto_advance(
    db: Session,
    member: Member,
    target: Stage,
    note_text: str,
    acting_user_id: UUID | None,
) -> tuple[Member, list[Task]]:
    """System-initiated move to `target` with an explanatory note."""
    old = to_record(member)
    new = old.model_copy(
        update={
            "current_stage_id": target.id,
            "notes": [*old.notes, note_service.system_note(note_text)],
        }
    )
    return commit_transition(db, member, old, new, acting_user_id)


def advance_stale_members(db: Session, church_id: UUID, now: datetime | None = None) -> int:
    """
    Advance members that have sat in a TIME_IN_STAGE stage for its day count.

    Returns the number of members advanced.
    """
    now = now or utcnow()
    advanced = 0
    for pathway in Pathway:
        stages = pipeline_service.list_stages(db, church_id, pathway)
        for stage in stages:
            if stage.auto_advance_type != AutoAdvanceType.TIME_IN_STAGE.value:
                continue
            target = pipeline_service.next_stage(stages, stage.id)
            if target is None:
                continue
            days = int(stage.auto_advance_value or 0)
            if days < 1:
                continue
            cutoff = now - timedelta(days=days)
            candidates = (
                db.query(Member)
                .filter(
                    Member.church_id == church_id,
                    Member.current_stage_id == stage.id,
                    Member.status == MemberStatus.ACTIVE.value,
                )
                .all()
            )
            for member in candidates:
                entered = member.last_stage_change_date or member.created_at
                if entered > cutoff:
                    continue
                note = f"Auto-advanced to {target.name} after {days} days in {stage.name}"
                auto_advance(db, member, target, note, acting_user_id=member.assigned_to_id)
                advanced += 1
    if advanced:
        logger.info(f"Time-in-stage sweep advanced {advanced} member(s) in church {church_id}")
    return advanced


def add_note(db: Session, actor: UserSession, member_id: UUID, text: str) -> Member:
    ensure_permission(actor.role, P.MEMBER_UPDATE)
    member = _require_member(db, actor, member_id)
    clean = note_service.sanitize_text(text)
    if not clean:
        raise MemberServiceError("Note text is empty")
    note = note_service.build_note(clean, NoteKind.USER, author_id=actor.user_id)
    member.notes.append(note_service.to_model(note, member.id))
    db.commit()
    db.refresh(member)
    return member


def add_resource(db: Session, actor: UserSession, member_id: UUID, data: ResourceCreate) -> Member:
    from tracker.db.models import MemberResource

    ensure_permission(actor.role, P.MEMBER_UPDATE)
    member = _require_member(db, actor, member_id)
    member.resources.append(
        MemberResource(member_id=member.id, title=data.title, url=data.url, type=data.type.value)
    )
    db.commit()
    db.refresh(member)
    return member


def assign_member(
    db: Session,
    actor: UserSession,
    member_id: UUID,
    assigned_to_id: UUID | None,
) -> Member:
    ensure_permission(actor.role, P.MEMBER_ASSIGN)
    member = _require_member(db, actor, member_id)
    if assigned_to_id is not None:
        assignee = (
            db.query(User)
            .filter(User.church_id == actor.church_id, User.id == assigned_to_id)
            .first()
        )
        if not assignee or not assignee.is_active:
            raise MemberServiceError("Assignee not found")
        note_text = f"Assigned to {assignee.display_name}"
    else:
        note_text = "Unassigned"
    member.assigned_to_id = assigned_to_id
    member.notes.append(
        note_service.to_model(note_service.system_note(note_text), member.id)
    )
    db.commit()
    db.refresh(member)
    return member


def delete_member(db: Session, actor: UserSession, member_id: UUID) -> None:
    ensure_permission(actor.role, P.MEMBER_DELETE)
    member = _require_member(db, actor, member_id)
    db.delete(member)
    db.commit()
