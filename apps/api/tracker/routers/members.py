"""Members router - member CRUD, timeline notes, assignment and stage moves."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from tracker.core.deps import get_current_session, get_db, require_csrf_header, require_permission
from tracker.core.policies import POLICIES
from tracker.db.enums import MemberStatus, Pathway
from tracker.schemas.auth import UserSession
from tracker.schemas.member import (
    MemberAssign,
    MemberCreate,
    MemberListResponse,
    MemberRead,
    MemberUpdate,
    MessageCreate,
    MessageRead,
    NoteCreate,
    ResourceCreate,
)
from tracker.schemas.task import MemberTransitionResponse, TaskRead
from tracker.services import communication_service, member_service

router = APIRouter(
    dependencies=[Depends(require_permission(POLICIES["members"].default))]
)


def _raise_for(e: member_service.MemberServiceError | communication_service.CommunicationError):
    if isinstance(e, member_service.MemberNotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


def _transition_response(member, tasks) -> MemberTransitionResponse:
    return MemberTransitionResponse(
        member=MemberRead.model_validate(member),
        tasks_created=[TaskRead.model_validate(t) for t in tasks],
    )


@router.get("", response_model=MemberListResponse)
def list_members(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    pathway: Pathway | None = None,
    status: MemberStatus | None = None,
    stage_id: UUID | None = None,
    q: str | None = Query(None, description="Search name, email or phone"),
    limit: int = Query(member_service.DEFAULT_LIMIT, ge=1, le=member_service.MAX_LIMIT),
    offset: int = Query(0, ge=0),
):
    """
    List members.

    Roles without member:view_all only see members assigned to them.
    """
    members, total = member_service.list_members(
        db,
        session,
        pathway=pathway,
        status=status,
        stage_id=stage_id,
        search=q,
        limit=limit,
        offset=offset,
    )
    return MemberListResponse(
        members=[MemberRead.model_validate(m) for m in members], total=total
    )


@router.post(
    "",
    response_model=MemberRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_member(
    data: MemberCreate,
    session: UserSession = Depends(require_permission(POLICIES["members"].actions["create"])),
    db: Session = Depends(get_db),
):
    try:
        return member_service.create_member(db, session, data)
    except member_service.MemberServiceError as e:
        _raise_for(e)


@router.get("/{member_id}", response_model=MemberRead)
def get_member(
    member_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    member = member_service.get_member(db, session, member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    return member


@router.patch(
    "/{member_id}",
    response_model=MemberTransitionResponse,
    dependencies=[Depends(require_csrf_header)],
)
def update_member(
    member_id: UUID,
    data: MemberUpdate,
    session: UserSession = Depends(require_permission(POLICIES["members"].actions["edit"])),
    db: Session = Depends(get_db),
):
    """Update member fields. Moving to another stage fires that stage's automation rules."""
    try:
        member, tasks = member_service.update_member(db, session, member_id, data)
    except member_service.MemberServiceError as e:
        _raise_for(e)
    return _transition_response(member, tasks)


@router.post(
    "/{member_id}/advance",
    response_model=MemberTransitionResponse,
    dependencies=[Depends(require_csrf_header)],
)
def advance_member(
    member_id: UUID,
    session: UserSession = Depends(require_permission(POLICIES["members"].actions["edit"])),
    db: Session = Depends(get_db),
):
    """Move to the next stage; at the last stage the member becomes INTEGRATED."""
    try:
        member, tasks = member_service.advance(db, session, member_id)
    except member_service.MemberServiceError as e:
        _raise_for(e)
    return _transition_response(member, tasks)


@router.delete(
    "/{member_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_member(
    member_id: UUID,
    session: UserSession = Depends(require_permission(POLICIES["members"].actions["delete"])),
    db: Session = Depends(get_db),
):
    try:
        member_service.delete_member(db, session, member_id)
    except member_service.MemberServiceError as e:
        _raise_for(e)


@router.post(
    "/{member_id}/notes",
    response_model=MemberRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def add_note(
    member_id: UUID,
    data: NoteCreate,
    session: UserSession = Depends(require_permission(POLICIES["members"].actions["edit"])),
    db: Session = Depends(get_db),
):
    try:
        return member_service.add_note(db, session, member_id, data.text)
    except member_service.MemberServiceError as e:
        _raise_for(e)


@router.post(
    "/{member_id}/resources",
    response_model=MemberRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def add_resource(
    member_id: UUID,
    data: ResourceCreate,
    session: UserSession = Depends(require_permission(POLICIES["members"].actions["edit"])),
    db: Session = Depends(get_db),
):
    try:
        return member_service.add_resource(db, session, member_id, data)
    except member_service.MemberServiceError as e:
        _raise_for(e)


@router.post(
    "/{member_id}/assign",
    response_model=MemberRead,
    dependencies=[Depends(require_csrf_header)],
)
def assign_member(
    member_id: UUID,
    data: MemberAssign,
    session: UserSession = Depends(require_permission(POLICIES["members"].actions["assign"])),
    db: Session = Depends(get_db),
):
    try:
        return member_service.assign_member(db, session, member_id, data.assigned_to_id)
    except member_service.MemberServiceError as e:
        _raise_for(e)


@router.get("/{member_id}/messages", response_model=list[MessageRead])
def list_messages(
    member_id: UUID,
    session: UserSession = Depends(
        require_permission(POLICIES["communications"].default)
    ),
    db: Session = Depends(get_db),
):
    try:
        return communication_service.list_messages(db, session, member_id)
    except member_service.MemberServiceError as e:
        _raise_for(e)


@router.post(
    "/{member_id}/messages",
    response_model=MemberRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def send_message(
    member_id: UUID,
    data: MessageCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Log an outbound email or SMS against the member."""
    try:
        return communication_service.log_outbound_message(db, session, member_id, data)
    except (member_service.MemberServiceError, communication_service.CommunicationError) as e:
        _raise_for(e)
