"""Forms router - staff-side intake form builder."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from tracker.core.deps import get_current_session, get_db, require_csrf_header, require_permission
from tracker.core.policies import POLICIES
from tracker.schemas.auth import UserSession
from tracker.schemas.form import FormCreate, FormRead, FormSubmissionRead, FormUpdate
from tracker.services import form_service

router = APIRouter(
    prefix="/forms",
    tags=["forms"],
    dependencies=[Depends(require_permission(POLICIES["forms"].default))],
)


def _raise_for(e: form_service.FormServiceError):
    if isinstance(e, form_service.FormNotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=list[FormRead])
def list_forms(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return form_service.list_forms(db, session.church_id)


@router.post(
    "",
    response_model=FormRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_form(
    data: FormCreate,
    session: UserSession = Depends(require_permission(POLICIES["forms"].actions["create"])),
    db: Session = Depends(get_db),
):
    try:
        return form_service.create_form(db, session, data)
    except form_service.FormServiceError as e:
        _raise_for(e)


@router.get("/{form_id}", response_model=FormRead)
def get_form(
    form_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    form = form_service.get_form(db, session.church_id, form_id)
    if not form:
        raise HTTPException(status_code=404, detail="Form not found")
    return form


@router.patch(
    "/{form_id}",
    response_model=FormRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_form(
    form_id: UUID,
    data: FormUpdate,
    session: UserSession = Depends(require_permission(POLICIES["forms"].actions["edit"])),
    db: Session = Depends(get_db),
):
    try:
        return form_service.update_form(db, session, form_id, data)
    except form_service.FormServiceError as e:
        _raise_for(e)


@router.delete("/{form_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_form(
    form_id: UUID,
    session: UserSession = Depends(require_permission(POLICIES["forms"].actions["delete"])),
    db: Session = Depends(get_db),
):
    try:
        form_service.delete_form(db, session, form_id)
    except form_service.FormServiceError as e:
        _raise_for(e)


@router.get("/{form_id}/submissions", response_model=list[FormSubmissionRead])
def list_submissions(
    form_id: UUID,
    session: UserSession = Depends(
        require_permission(POLICIES["forms"].actions["submissions"])
    ),
    db: Session = Depends(get_db),
):
    try:
        return form_service.list_submissions(db, session, form_id)
    except form_service.FormServiceError as e:
        _raise_for(e)
