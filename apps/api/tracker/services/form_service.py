"""Form service - intake form builder and public submissions."""

import logging
import math
import re
import secrets
from datetime import date
from typing import Any
from urllib.parse import quote
from uuid import UUID

from sqlalchemy.orm import Session

from tracker.core.permissions import Permission as P, ensure_permission
from tracker.db.enums import FormFieldType, MemberField, MemberStatus
from tracker.db.models import Church, Form, FormSubmission, Member
from tracker.db.types import utcnow
from tracker.schemas.auth import UserSession
from tracker.schemas.form import FormCreate, FormField, FormUpdate
from tracker.services import note_service, pipeline_service

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
UPPERCASE_FIELDS = {MemberField.GENDER, MemberField.MARITAL_STATUS}


class FormServiceError(ValueError):
    pass


class FormNotFoundError(FormServiceError):
    pass


class FormInactiveError(FormServiceError):
    def __init__(self):
        super().__init__("This form is no longer accepting submissions")


class FormTargetMissingError(FormServiceError):
    def __init__(self):
        super().__init__(
            "This form is not configured with a pathway and stage. "
            "Please contact the administrator."
        )


class FormValidationError(FormServiceError):
    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("Submission validation failed")


# =============================================================================
# Validation and mapping (pure)
# =============================================================================

def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def validate_submission(fields: list[FormField], data: dict[str, Any]) -> list[str]:
    """Return one message per invalid field, in field order."""
    errors: list[str] = []
    for field in fields:
        value = data.get(field.id)
        if _is_blank(value):
            if field.required:
                errors.append(f"{field.label} is required")
            continue

        if field.type == FormFieldType.EMAIL:
            if not EMAIL_RE.match(str(value)):
                errors.append(f"{field.label} must be a valid email")
        elif field.type == FormFieldType.NUMBER:
            try:
                number = float(str(value))
            except ValueError:
                number = math.nan
            if not math.isfinite(number):
                errors.append(f"{field.label} must be a number")
        elif field.type == FormFieldType.SELECT:
            if field.options and str(value) not in field.options:
                errors.append(f"{field.label} has an invalid selection")
        elif field.type == FormFieldType.DATE:
            try:
                date.fromisoformat(str(value))
            except ValueError:
                errors.append(f"{field.label} must be a valid date")
    return errors


def map_member_fields(fields: list[FormField], data: dict[str, Any]) -> dict[str, Any]:
    """Member attributes taken from mapped form fields."""
    mapped: dict[str, Any] = {}
    for field in fields:
        if not field.map_to:
            continue
        value = data.get(field.id)
        if _is_blank(value):
            continue
        if field.map_to == MemberField.EMAIL:
            mapped["email"] = str(value).strip().lower()
        elif field.map_to == MemberField.DATE_OF_BIRTH:
            try:
                mapped["date_of_birth"] = date.fromisoformat(str(value))
            except ValueError:
                continue
        elif field.map_to in UPPERCASE_FIELDS:
            mapped[field.map_to.value] = str(value).upper()
        else:
            mapped[field.map_to.value] = str(value).strip()
    return mapped


# =============================================================================
# Staff CRUD
# =============================================================================

def generate_slug() -> str:
    return secrets.token_urlsafe(9)


def _parse_fields(form: Form) -> list[FormField]:
    return [FormField.model_validate(f) for f in form.fields or []]


def _check_target(db: Session, church_id: UUID, pathway, stage_id: UUID | None) -> None:
    if stage_id is None:
        return
    stage = pipeline_service.get_stage(db, church_id, stage_id)
    if not stage or (pathway and stage.pathway != getattr(pathway, "value", pathway)):
        raise FormServiceError("Target stage does not belong to the target pathway")


def list_forms(db: Session, church_id: UUID) -> list[Form]:
    return db.query(Form).filter(Form.church_id == church_id).order_by(Form.created_at.desc()).all()


def get_form(db: Session, church_id: UUID, form_id: UUID) -> Form | None:
    return db.query(Form).filter(Form.church_id == church_id, Form.id == form_id).first()


def create_form(db: Session, actor: UserSession, data: FormCreate) -> Form:
    ensure_permission(actor.role, P.FORM_CREATE)
    _check_target(db, actor.church_id, data.target_pathway, data.target_stage_id)
    form = Form(
        church_id=actor.church_id,
        name=data.name,
        description=data.description,
        slug=generate_slug(),
        fields=[f.model_dump(mode="json") for f in data.fields],
        is_active=data.is_active,
        target_pathway=data.target_pathway.value if data.target_pathway else None,
        target_stage_id=data.target_stage_id,
    )
    db.add(form)
    db.commit()
    db.refresh(form)
    return form


def update_form(db: Session, actor: UserSession, form_id: UUID, data: FormUpdate) -> Form:
    ensure_permission(actor.role, P.FORM_UPDATE)
    form = get_form(db, actor.church_id, form_id)
    if not form:
        raise FormNotFoundError("Form not found")

    changes = data.model_dump(exclude_unset=True)
    if "fields" in changes and data.fields is not None:
        form.fields = [f.model_dump(mode="json") for f in data.fields]
    for key in ("name", "description", "is_active", "target_stage_id"):
        if key in changes:
            setattr(form, key, changes[key])
    if "target_pathway" in changes:
        form.target_pathway = data.target_pathway.value if data.target_pathway else None
    _check_target(db, actor.church_id, form.target_pathway, form.target_stage_id)
    db.commit()
    db.refresh(form)
    return form


def delete_form(db: Session, actor: UserSession, form_id: UUID) -> None:
    ensure_permission(actor.role, P.FORM_DELETE)
    form = get_form(db, actor.church_id, form_id)
    if not form:
        raise FormNotFoundError("Form not found")
    db.query(FormSubmission).filter(FormSubmission.form_id == form.id).delete(
        synchronize_session=False
    )
    db.delete(form)
    db.commit()


def list_submissions(db: Session, actor: UserSession, form_id: UUID) -> list[FormSubmission]:
    ensure_permission(actor.role, P.FORM_VIEW_SUBMISSIONS)
    form = get_form(db, actor.church_id, form_id)
    if not form:
        raise FormNotFoundError("Form not found")
    return (
        db.query(FormSubmission)
        .filter(FormSubmission.form_id == form.id)
        .order_by(FormSubmission.submitted_at.desc())
        .all()
    )


# =============================================================================
# Public
# =============================================================================

def get_public_form(db: Session, slug: str) -> tuple[Form, Church]:
    """
    Raises:
        FormNotFoundError: unknown slug
        FormInactiveError: form switched off
    """
    form = db.query(Form).filter(Form.slug == slug).first()
    if not form:
        raise FormNotFoundError("Form not found")
    if not form.is_active:
        raise FormInactiveError()
    church = db.query(Church).filter(Church.id == form.church_id).first()
    return form, church


def submit_form(db: Session, slug: str, data: dict[str, Any]) -> FormSubmission:
    """
    Validate and store a public submission.

    A member is created at the form's target stage when both first and last
    name are mapped; otherwise only the submission is stored.
    """
    form, _ = get_public_form(db, slug)
    fields = _parse_fields(form)

    errors = validate_submission(fields, data)
    if errors:
        raise FormValidationError(errors)
    if not form.target_pathway or not form.target_stage_id:
        raise FormTargetMissingError()

    submission = FormSubmission(form_id=form.id, data=data)
    db.add(submission)

    member_fields = map_member_fields(fields, data)
    if not member_fields.get("first_name") or not member_fields.get("last_name"):
        db.commit()
        db.refresh(submission)
        logger.warning(
            f"Form {form.id} submission missing first/last name; member creation skipped"
        )
        return submission

    member = Member(
        church_id=form.church_id,
        pathway=form.target_pathway,
        current_stage_id=form.target_stage_id,
        status=MemberStatus.ACTIVE.value,
        last_stage_change_date=utcnow(),
        photo_url=(
            "https://ui-avatars.com/api/?name="
            f"{quote(member_fields['first_name'] + ' ' + member_fields['last_name'])}"
            "&background=random"
        ),
        tags=[],
        **member_fields,
    )
    db.add(member)
    db.flush()
    member.notes.append(
        note_service.to_model(
            note_service.system_note(f'Member created via form submission: "{form.name}"'),
            member.id,
        )
    )
    submission.member_id = member.id
    db.commit()
    db.refresh(submission)

    logger.info(f"Form submission {submission.id} created member {member.id} for form {form.id}")
    return submission
