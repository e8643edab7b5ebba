"""Academy router - training tracks, modules, quizzes and progress."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from tracker.core.deps import get_current_session, get_db, require_csrf_header, require_permission
from tracker.core.permissions import Permission as P, has_permission
from tracker.core.policies import POLICIES
from tracker.schemas.academy import (
    EnrollmentRead,
    ModuleCreate,
    ModuleProgressRead,
    ModuleRead,
    ModuleUpdate,
    NextStep,
    QuizRead,
    QuizResult,
    QuizSubmission,
    QuizUpsert,
    TrackCreate,
    TrackProgress,
    TrackRead,
    TrackUpdate,
)
from tracker.schemas.auth import UserSession
from tracker.services import academy_service

router = APIRouter(
    prefix="/academy",
    tags=["academy"],
    dependencies=[Depends(require_permission(POLICIES["academy"].default))],
)

manage_tracks = require_permission(POLICIES["academy"].actions["manage_tracks"])
manage_modules = require_permission(POLICIES["academy"].actions["manage_modules"])
manage_quizzes = require_permission(POLICIES["academy"].actions["manage_quizzes"])


def _raise_for(e: academy_service.AcademyError):
    raise HTTPException(status_code=e.status_code, detail=str(e))


# =============================================================================
# Tracks
# =============================================================================

@router.get("/tracks", response_model=list[TrackRead])
def list_tracks(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Published tracks; track managers also see drafts."""
    include_unpublished = has_permission(session.role, P.ACADEMY_MANAGE_TRACKS)
    return academy_service.list_tracks(db, session.church_id, include_unpublished)


@router.get("/tracks/{track_id}", response_model=TrackRead)
def get_track(
    track_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    track = academy_service.get_track(db, session.church_id, track_id)
    if not track or (
        not track.is_published and not has_permission(session.role, P.ACADEMY_MANAGE_TRACKS)
    ):
        raise HTTPException(status_code=404, detail="Track not found")
    return track


@router.post(
    "/tracks",
    response_model=TrackRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_track(
    data: TrackCreate,
    session: UserSession = Depends(manage_tracks),
    db: Session = Depends(get_db),
):
    try:
        return academy_service.create_track(db, session, data)
    except academy_service.AcademyError as e:
        _raise_for(e)


@router.patch(
    "/tracks/{track_id}",
    response_model=TrackRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_track(
    track_id: UUID,
    data: TrackUpdate,
    session: UserSession = Depends(manage_tracks),
    db: Session = Depends(get_db),
):
    try:
        return academy_service.update_track(db, session, track_id, data)
    except academy_service.AcademyError as e:
        _raise_for(e)


@router.delete("/tracks/{track_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_track(
    track_id: UUID,
    session: UserSession = Depends(manage_tracks),
    db: Session = Depends(get_db),
):
    try:
        academy_service.delete_track(db, session, track_id)
    except academy_service.AcademyError as e:
        _raise_for(e)


@router.get("/tracks/{track_id}/stats")
def track_stats(
    track_id: UUID,
    session: UserSession = Depends(
        require_permission(POLICIES["academy"].actions["view_all_progress"])
    ),
    db: Session = Depends(get_db),
):
    try:
        return academy_service.get_track_stats(db, session, track_id)
    except academy_service.AcademyError as e:
        _raise_for(e)


@router.post(
    "/tracks/{track_id}/enroll",
    response_model=EnrollmentRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def enroll(
    track_id: UUID,
    session: UserSession = Depends(require_permission(POLICIES["academy"].actions["enroll"])),
    db: Session = Depends(get_db),
):
    try:
        return academy_service.enroll(db, session, track_id)
    except academy_service.AcademyError as e:
        _raise_for(e)


# =============================================================================
# Modules and quizzes
# =============================================================================

@router.post(
    "/tracks/{track_id}/modules",
    response_model=ModuleRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_module(
    track_id: UUID,
    data: ModuleCreate,
    session: UserSession = Depends(manage_modules),
    db: Session = Depends(get_db),
):
    try:
        return academy_service.create_module(db, session, track_id, data)
    except academy_service.AcademyError as e:
        _raise_for(e)


@router.patch(
    "/modules/{module_id}",
    response_model=ModuleRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_module(
    module_id: UUID,
    data: ModuleUpdate,
    session: UserSession = Depends(manage_modules),
    db: Session = Depends(get_db),
):
    try:
        return academy_service.update_module(db, session, module_id, data)
    except academy_service.AcademyError as e:
        _raise_for(e)


@router.delete("/modules/{module_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_module(
    module_id: UUID,
    session: UserSession = Depends(manage_modules),
    db: Session = Depends(get_db),
):
    try:
        academy_service.delete_module(db, session, module_id)
    except academy_service.AcademyError as e:
        _raise_for(e)


@router.put(
    "/modules/{module_id}/quiz",
    response_model=QuizRead,
    dependencies=[Depends(require_csrf_header)],
)
def upsert_quiz(
    module_id: UUID,
    data: QuizUpsert,
    session: UserSession = Depends(manage_quizzes),
    db: Session = Depends(get_db),
):
    try:
        return academy_service.upsert_quiz(db, session, module_id, data)
    except academy_service.AcademyError as e:
        _raise_for(e)


@router.get("/modules/{module_id}/quiz", response_model=QuizRead)
def get_quiz(
    module_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Quiz for a module. Answers are only included for quiz managers."""
    try:
        quiz = academy_service.get_quiz(db, session.church_id, module_id)
    except academy_service.AcademyError as e:
        _raise_for(e)
    result = QuizRead.model_validate(quiz)
    if not has_permission(session.role, P.ACADEMY_MANAGE_QUIZZES):
        for question in result.questions:
            question.correct_option_id = None
    return result


# =============================================================================
# Learner progress
# =============================================================================

@router.post(
    "/modules/{module_id}/video-watched",
    response_model=ModuleProgressRead,
    dependencies=[Depends(require_csrf_header)],
)
def mark_video_watched(
    module_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return academy_service.mark_video_watched(db, session, module_id)
    except academy_service.AcademyError as e:
        _raise_for(e)


@router.post(
    "/modules/{module_id}/quiz/submit",
    response_model=QuizResult,
    dependencies=[Depends(require_csrf_header)],
)
def submit_quiz(
    module_id: UUID,
    data: QuizSubmission,
    session: UserSession = Depends(
        require_permission(POLICIES["academy"].actions["submit_quiz"])
    ),
    db: Session = Depends(get_db),
):
    try:
        return academy_service.submit_quiz(db, session, module_id, data.answers)
    except academy_service.AcademyError as e:
        _raise_for(e)


@router.get("/progress", response_model=list[TrackProgress])
def my_progress(
    user_id: UUID | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Caller's progress per enrolled track; user_id needs academy:view_all_progress."""
    return academy_service.get_my_progress(db, session, user_id)


@router.get("/next-step", response_model=NextStep)
def next_step(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return academy_service.get_next_step(db, session)
