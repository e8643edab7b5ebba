"""Tests for intake forms: validation, field mapping and public submissions."""
from datetime import date

import pytest

from tracker.core.permissions import PermissionDenied
from tracker.db.enums import FormFieldType, MemberField, Pathway
from tracker.db.models import FormSubmission, Member
from tracker.schemas.form import FormCreate, FormField, FormUpdate
from tracker.services import form_service


FIELDS = [
    FormField(id="first", label="First Name", type=FormFieldType.TEXT, required=True,
              map_to=MemberField.FIRST_NAME),
    FormField(id="last", label="Last Name", type=FormFieldType.TEXT, map_to=MemberField.LAST_NAME),
    FormField(id="email", label="Email", type=FormFieldType.EMAIL, map_to=MemberField.EMAIL),
    FormField(id="kids", label="Children", type=FormFieldType.NUMBER),
    FormField(id="service", label="Service", type=FormFieldType.SELECT, options=["9am", "11am"]),
    FormField(id="dob", label="Birthday", type=FormFieldType.DATE, map_to=MemberField.DATE_OF_BIRTH),
    FormField(id="gender", label="Gender", type=FormFieldType.SELECT, map_to=MemberField.GENDER),
]


# =============================================================================
# Pure validation and mapping
# =============================================================================

def test_validate_submission_reports_each_bad_field():
    errors = form_service.validate_submission(
        FIELDS,
        {"email": "not-an-email", "kids": "two", "service": "noon", "dob": "31/12/1990"},
    )

    assert errors == [
        "First Name is required",
        "Email must be a valid email",
        "Children must be a number",
        "Service has an invalid selection",
        "Birthday must be a valid date",
    ]


def test_validate_submission_accepts_valid_data():
    data = {"first": "Ana", "email": "ana@x.com", "kids": "2", "service": "9am", "dob": "1990-12-31"}
    assert form_service.validate_submission(FIELDS, data) == []


@pytest.mark.parametrize("kids", ["nan", "inf", "-Infinity"])
def test_validate_submission_rejects_non_finite_numbers(kids):
    data = {"first": "Ana", "kids": kids}
    assert form_service.validate_submission(FIELDS, data) == ["Children must be a number"]


def test_map_member_fields_normalizes_values():
    mapped = form_service.map_member_fields(
        FIELDS,
        {
            "first": " Ana ",
            "last": "Ruiz",
            "email": " Ana@X.COM ",
            "dob": "1990-12-31",
            "gender": "female",
            "kids": "2",
        },
    )

    assert mapped == {
        "first_name": "Ana",
        "last_name": "Ruiz",
        "email": "ana@x.com",
        "date_of_birth": date(1990, 12, 31),
        "gender": "FEMALE",
    }


# =============================================================================
# Submissions
# =============================================================================

@pytest.fixture
def form(db, admin, newcomer_stages):
    return form_service.create_form(
        db,
        admin,
        FormCreate(
            name="Connect Card",
            fields=FIELDS,
            target_pathway=Pathway.NEWCOMER,
            target_stage_id=newcomer_stages[0].id,
        ),
    )


def test_submission_creates_member_with_note(db, form, newcomer_stages):
    submission = form_service.submit_form(
        db, form.slug, {"first": "Ana", "last": "Ruiz", "email": "ana@x.com"}
    )

    assert submission.member_id is not None
    member = db.get(Member, submission.member_id)
    assert member.current_stage_id == newcomer_stages[0].id
    assert member.pathway == Pathway.NEWCOMER.value
    assert member.assigned_to_id is None
    assert member.notes[0].text == 'Member created via form submission: "Connect Card"'


def test_submission_without_last_name_stores_data_only(db, form):
    submission = form_service.submit_form(db, form.slug, {"first": "Ana"})

    assert submission.member_id is None
    assert db.query(FormSubmission).count() == 1
    assert db.query(Member).count() == 0


def test_invalid_submission_is_rejected(db, form):
    with pytest.raises(form_service.FormValidationError) as exc:
        form_service.submit_form(db, form.slug, {"last": "Ruiz"})
    assert exc.value.errors == ["First Name is required"]
    assert db.query(FormSubmission).count() == 0


def test_inactive_form_rejects_submissions(db, admin, form):
    form_service.update_form(db, admin, form.id, FormUpdate(is_active=False))
    with pytest.raises(form_service.FormInactiveError):
        form_service.submit_form(db, form.slug, {"first": "Ana", "last": "Ruiz"})


def test_form_without_target_rejects_submissions(db, admin):
    untargeted = form_service.create_form(db, admin, FormCreate(name="Survey", fields=FIELDS))
    with pytest.raises(form_service.FormTargetMissingError):
        form_service.submit_form(db, untargeted.slug, {"first": "Ana", "last": "Ruiz"})


def test_unknown_slug(db):
    with pytest.raises(form_service.FormNotFoundError):
        form_service.get_public_form(db, "nope")


def test_volunteer_cannot_create_forms(db, volunteer):
    with pytest.raises(PermissionDenied):
        form_service.create_form(db, volunteer, FormCreate(name="Mine"))
