"""Academy service - volunteer training tracks, modules, quizzes and progress.

Progress per module moves LOCKED -> STARTED -> COMPLETED. Enrolling starts
the first module; passing a module's quiz completes it and starts the
module that names it as prerequisite.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from tracker.core.permissions import Permission as P, ensure_permission
from tracker.db.enums import ModuleStatus, ProgressStatus
from tracker.db.models import Enrollment, Module, ModuleProgress, Quiz, QuizQuestion, Track
from tracker.db.types import utcnow
from tracker.schemas.academy import (
    ModuleCreate,
    ModuleUpdate,
    QuizUpsert,
    TrackCreate,
    TrackUpdate,
)
from tracker.schemas.auth import UserSession

logger = logging.getLogger(__name__)


class AcademyError(ValueError):
    """Base academy error; status_code is the HTTP status routers should use."""

    status_code = 400


class AcademyNotFoundError(AcademyError):
    status_code = 404


class AlreadyEnrolledError(AcademyError):
    status_code = 409


class InvalidProgressStateError(AcademyError):
    status_code = 400


class DuplicateTrackError(AcademyError):
    status_code = 409


@dataclass
class GradeResult:
    correct: int
    total: int
    score: int
    passed: bool


def grade_quiz(questions, answers: dict[str, str], passing_score: int) -> GradeResult:
    """
    Score answers (question id -> option id) against the questions.

    score = round(correct / total * 100); a quiz with no questions scores 0.
    """
    total = len(questions)
    correct = sum(
        1 for q in questions if answers.get(str(q.id)) == q.correct_option_id
    )
    score = round(correct / total * 100) if total else 0
    return GradeResult(correct=correct, total=total, score=score, passed=score >= passing_score)


# =============================================================================
# Tracks and modules
# =============================================================================

def list_tracks(db: Session, church_id: UUID, include_unpublished: bool = False) -> list[Track]:
    query = db.query(Track).filter(Track.church_id == church_id)
    if not include_unpublished:
        query = query.filter(Track.is_published.is_(True))
    return query.order_by(Track.order, Track.created_at).all()


def get_track(db: Session, church_id: UUID, track_id: UUID) -> Track | None:
    return db.query(Track).filter(Track.church_id == church_id, Track.id == track_id).first()


def _require_track(db: Session, church_id: UUID, track_id: UUID) -> Track:
    track = get_track(db, church_id, track_id)
    if not track:
        raise AcademyNotFoundError("Track not found")
    return track


def create_track(db: Session, actor: UserSession, data: TrackCreate) -> Track:
    ensure_permission(actor.role, P.ACADEMY_MANAGE_TRACKS)
    exists = (
        db.query(Track.id)
        .filter(Track.church_id == actor.church_id, Track.title == data.title)
        .first()
    )
    if exists:
        raise DuplicateTrackError(f"A track titled '{data.title}' already exists")
    track = Track(church_id=actor.church_id, **data.model_dump())
    db.add(track)
    db.commit()
    db.refresh(track)
    return track


def update_track(db: Session, actor: UserSession, track_id: UUID, data: TrackUpdate) -> Track:
    ensure_permission(actor.role, P.ACADEMY_MANAGE_TRACKS)
    track = _require_track(db, actor.church_id, track_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        if value is not None or key == "description":
            setattr(track, key, value)
    db.commit()
    db.refresh(track)
    return track


def delete_track(db: Session, actor: UserSession, track_id: UUID) -> None:
    ensure_permission(actor.role, P.ACADEMY_MANAGE_TRACKS)
    track = _require_track(db, actor.church_id, track_id)
    module_ids = [m.id for m in track.modules]
    if module_ids:
        db.query(ModuleProgress).filter(ModuleProgress.module_id.in_(module_ids)).delete(
            synchronize_session=False
        )
    db.query(Enrollment).filter(Enrollment.track_id == track.id).delete(synchronize_session=False)
    db.delete(track)
    db.commit()


def get_module(db: Session, church_id: UUID, module_id: UUID) -> Module | None:
    return (
        db.query(Module)
        .join(Track, Module.track_id == Track.id)
        .filter(Track.church_id == church_id, Module.id == module_id)
        .first()
    )


def _require_module(db: Session, church_id: UUID, module_id: UUID) -> Module:
    module = get_module(db, church_id, module_id)
    if not module:
        raise AcademyNotFoundError("Module not found")
    return module


def _check_prerequisite(db: Session, track_id: UUID, module_id: UUID | None, required_id: UUID | None) -> None:
    if required_id is None:
        return
    if module_id is not None and required_id == module_id:
        raise AcademyError("A module cannot be its own prerequisite")
    exists = (
        db.query(Module.id)
        .filter(Module.track_id == track_id, Module.id == required_id)
        .first()
    )
    if not exists:
        raise AcademyNotFoundError("Prerequisite module not found in this track")


def create_module(db: Session, actor: UserSession, track_id: UUID, data: ModuleCreate) -> Module:
    ensure_permission(actor.role, P.ACADEMY_MANAGE_MODULES)
    track = _require_track(db, actor.church_id, track_id)
    _check_prerequisite(db, track.id, None, data.required_module_id)
    fields = data.model_dump()
    fields["status"] = data.status.value
    module = Module(track_id=track.id, **fields)
    db.add(module)
    db.commit()
    db.refresh(module)
    return module


def update_module(db: Session, actor: UserSession, module_id: UUID, data: ModuleUpdate) -> Module:
    ensure_permission(actor.role, P.ACADEMY_MANAGE_MODULES)
    module = _require_module(db, actor.church_id, module_id)
    changes = data.model_dump(exclude_unset=True)
    if "required_module_id" in changes:
        _check_prerequisite(db, module.track_id, module.id, changes["required_module_id"])
    for key, value in changes.items():
        setattr(module, key, getattr(value, "value", value))
    db.commit()
    db.refresh(module)
    return module


def delete_module(db: Session, actor: UserSession, module_id: UUID) -> None:
    ensure_permission(actor.role, P.ACADEMY_MANAGE_MODULES)
    module = _require_module(db, actor.church_id, module_id)
    db.query(Module).filter(Module.required_module_id == module.id).update(
        {Module.required_module_id: None}, synchronize_session=False
    )
    db.query(ModuleProgress).filter(ModuleProgress.module_id == module.id).delete(
        synchronize_session=False
    )
    db.delete(module)
    db.commit()


# =============================================================================
# Quizzes
# =============================================================================

def upsert_quiz(db: Session, actor: UserSession, module_id: UUID, data: QuizUpsert) -> Quiz:
    """Create or replace the module's quiz; existing questions are discarded."""
    ensure_permission(actor.role, P.ACADEMY_MANAGE_QUIZZES)
    module = _require_module(db, actor.church_id, module_id)
    for question in data.questions:
        option_ids = {o.id for o in question.options}
        if question.correct_option_id not in option_ids:
            raise AcademyError(f"Correct option for '{question.text}' is not one of its options")

    quiz = module.quiz
    if quiz is None:
        quiz = Quiz(module_id=module.id, passing_score=data.passing_score, questions=[])
        db.add(quiz)
    else:
        quiz.passing_score = data.passing_score
        quiz.questions.clear()
    db.flush()

    for i, question in enumerate(data.questions):
        quiz.questions.append(
            QuizQuestion(
                quiz_id=quiz.id,
                text=question.text,
                options=[o.model_dump() for o in question.options],
                correct_option_id=question.correct_option_id,
                order=question.order or i + 1,
            )
        )
    db.commit()
    db.refresh(quiz)
    return quiz


def get_quiz(db: Session, church_id: UUID, module_id: UUID) -> Quiz:
    module = _require_module(db, church_id, module_id)
    if module.quiz is None:
        raise AcademyNotFoundError("Quiz not found for this module")
    return module.quiz


# =============================================================================
# Enrollment and progress
# =============================================================================

def _published_modules(track: Track) -> list[Module]:
    return [m for m in track.modules if m.status == ModuleStatus.PUBLISHED.value]


def _get_progress(db: Session, user_id: UUID, module_id: UUID) -> ModuleProgress | None:
    return (
        db.query(ModuleProgress)
        .filter(ModuleProgress.user_id == user_id, ModuleProgress.module_id == module_id)
        .first()
    )


def enroll(db: Session, actor: UserSession, track_id: UUID) -> Enrollment:
    """
    Enroll the caller in a published track.

    Raises:
        AcademyNotFoundError: no published track with that id
        AcademyError: track has no published modules
        AlreadyEnrolledError: caller already enrolled
    """
    ensure_permission(actor.role, P.ACADEMY_ENROLL)
    track = get_track(db, actor.church_id, track_id)
    if not track or not track.is_published:
        raise AcademyNotFoundError("Published track not found")
    modules = _published_modules(track)
    if not modules:
        raise AcademyError("Track has no published modules")

    existing = (
        db.query(Enrollment)
        .filter(Enrollment.user_id == actor.user_id, Enrollment.track_id == track.id)
        .first()
    )
    if existing:
        raise AlreadyEnrolledError("User is already enrolled in this track")

    first = next((m for m in modules if not m.required_module_id), modules[0])
    now = utcnow()
    enrollment = Enrollment(user_id=actor.user_id, track_id=track.id, enrolled_at=now)
    db.add(enrollment)
    for module in modules:
        existing_progress = _get_progress(db, actor.user_id, module.id)
        if existing_progress:
            continue
        started = module.id == first.id
        db.add(
            ModuleProgress(
                user_id=actor.user_id,
                module_id=module.id,
                status=(ProgressStatus.STARTED if started else ProgressStatus.LOCKED).value,
                started_at=now if started else None,
            )
        )
    db.commit()
    db.refresh(enrollment)
    logger.info(f"User {actor.user_id} enrolled in track {track.id}")
    return enrollment


def mark_video_watched(db: Session, actor: UserSession, module_id: UUID) -> ModuleProgress:
    _require_module(db, actor.church_id, module_id)
    progress = _get_progress(db, actor.user_id, module_id)
    if not progress:
        raise AcademyNotFoundError("Progress record not found")
    if progress.status != ProgressStatus.STARTED.value:
        raise InvalidProgressStateError("Module is not in progress")
    progress.video_watched = True
    db.commit()
    db.refresh(progress)
    return progress


def submit_quiz(
    db: Session,
    actor: UserSession,
    module_id: UUID,
    answers: dict[str, str],
) -> dict:
    """Grade an attempt; a pass completes the module and may complete the track."""
    ensure_permission(actor.role, P.ACADEMY_SUBMIT_QUIZ)
    module = _require_module(db, actor.church_id, module_id)
    progress = _get_progress(db, actor.user_id, module_id)
    if not progress:
        raise AcademyNotFoundError("Progress record not found")
    if progress.status != ProgressStatus.STARTED.value:
        raise InvalidProgressStateError("Module is not in progress")
    if not progress.video_watched:
        raise InvalidProgressStateError("Must watch the video before taking the quiz")
    if module.quiz is None:
        raise AcademyNotFoundError("Quiz not found")

    quiz = module.quiz
    grade = grade_quiz(quiz.questions, answers, quiz.passing_score)
    now = utcnow()
    progress.quiz_score = grade.score
    progress.attempts += 1

    track_completed = False
    if grade.passed:
        progress.quiz_passed = True
        progress.status = ProgressStatus.COMPLETED.value
        progress.completed_at = now
        db.flush()
        _unlock_dependents(db, actor.user_id, module, now)
        track_completed = _complete_track_if_done(db, actor.user_id, module.track, now)

    db.commit()
    return {
        "score": grade.score,
        "passed": grade.passed,
        "passing_score": quiz.passing_score,
        "correct": grade.correct,
        "total": grade.total,
        "track_completed": track_completed,
    }


def _unlock_dependents(db: Session, user_id: UUID, module: Module, now) -> None:
    dependents = (
        db.query(Module)
        .filter(
            Module.track_id == module.track_id,
            Module.required_module_id == module.id,
            Module.status == ModuleStatus.PUBLISHED.value,
        )
        .all()
    )
    for dependent in dependents:
        progress = _get_progress(db, user_id, dependent.id)
        if progress and progress.status == ProgressStatus.LOCKED.value:
            progress.status = ProgressStatus.STARTED.value
            progress.started_at = now


def _complete_track_if_done(db: Session, user_id: UUID, track: Track, now) -> bool:
    module_ids = [m.id for m in _published_modules(track)]
    completed = (
        db.query(ModuleProgress)
        .filter(
            ModuleProgress.user_id == user_id,
            ModuleProgress.module_id.in_(module_ids),
            ModuleProgress.status == ProgressStatus.COMPLETED.value,
        )
        .count()
    )
    if completed != len(module_ids):
        return False
    enrollment = (
        db.query(Enrollment)
        .filter(Enrollment.user_id == user_id, Enrollment.track_id == track.id)
        .first()
    )
    if enrollment and enrollment.completed_at is None:
        enrollment.completed_at = now
        logger.info(f"User {user_id} completed track {track.id}")
    return True


def get_my_progress(db: Session, actor: UserSession, user_id: UUID | None = None) -> list[dict]:
    """Per-track progress for the caller, or for user_id when the caller may view everyone's."""
    ensure_permission(actor.role, P.ACADEMY_VIEW_PROGRESS)
    target_user = user_id or actor.user_id
    if target_user != actor.user_id:
        ensure_permission(actor.role, P.ACADEMY_VIEW_ALL_PROGRESS)

    enrollments = (
        db.query(Enrollment)
        .join(Track, Enrollment.track_id == Track.id)
        .filter(Enrollment.user_id == target_user, Track.church_id == actor.church_id)
        .order_by(Enrollment.enrolled_at.desc())
        .all()
    )
    results = []
    for enrollment in enrollments:
        track = get_track(db, actor.church_id, enrollment.track_id)
        modules = _published_modules(track)
        rows = {
            p.module_id: p
            for p in db.query(ModuleProgress).filter(
                ModuleProgress.user_id == target_user,
                ModuleProgress.module_id.in_([m.id for m in modules]),
            )
        }
        progress = [rows[m.id] for m in modules if m.id in rows]
        completed = sum(1 for p in progress if p.status == ProgressStatus.COMPLETED.value)
        results.append(
            {
                "track_id": track.id,
                "title": track.title,
                "enrolled_at": enrollment.enrolled_at,
                "completed_at": enrollment.completed_at,
                "total_modules": len(modules),
                "completed_modules": completed,
                "percent_complete": round(completed / len(modules) * 100) if modules else 0,
                "modules": progress,
            }
        )
    return results


def get_next_step(db: Session, actor: UserSession) -> dict:
    """Lowest-ordered STARTED module across the caller's tracks."""
    row = (
        db.query(ModuleProgress, Module)
        .join(Module, ModuleProgress.module_id == Module.id)
        .join(Track, Module.track_id == Track.id)
        .filter(
            ModuleProgress.user_id == actor.user_id,
            ModuleProgress.status == ProgressStatus.STARTED.value,
            Track.church_id == actor.church_id,
        )
        .order_by(Track.order, Module.order)
        .first()
    )
    if not row:
        return {"track_id": None, "module": None, "video_watched": False}
    progress, module = row
    return {"track_id": module.track_id, "module": module, "video_watched": progress.video_watched}


def get_track_stats(db: Session, actor: UserSession, track_id: UUID) -> dict:
    """Enrollment totals and per-module started/completed counts."""
    ensure_permission(actor.role, P.ACADEMY_VIEW_ALL_PROGRESS)
    track = _require_track(db, actor.church_id, track_id)
    enrollments = db.query(Enrollment).filter(Enrollment.track_id == track.id)
    breakdown = []
    for module in _published_modules(track):
        counts = {
            status: db.query(ModuleProgress)
            .filter(ModuleProgress.module_id == module.id, ModuleProgress.status == status.value)
            .count()
            for status in (ProgressStatus.STARTED, ProgressStatus.COMPLETED)
        }
        breakdown.append(
            {
                "module_id": module.id,
                "title": module.title,
                "order": module.order,
                "in_progress": counts[ProgressStatus.STARTED],
                "completed": counts[ProgressStatus.COMPLETED],
            }
        )
    return {
        "track_id": track.id,
        "title": track.title,
        "total_enrolled": enrollments.count(),
        "completed": enrollments.filter(Enrollment.completed_at.isnot(None)).count(),
        "modules": breakdown,
    }
