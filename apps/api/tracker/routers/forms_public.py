"""Public form endpoints for visitors filling in intake forms."""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from tracker.core.config import settings
from tracker.core.deps import get_db
from tracker.core.rate_limit import limiter
from tracker.schemas.form import FormSubmitRequest, FormSubmitResponse, PublicFormRead
from tracker.services import form_service

router = APIRouter(prefix="/public/forms", tags=["forms-public"])


def _raise_for(e: form_service.FormServiceError):
    if isinstance(e, form_service.FormNotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, form_service.FormInactiveError):
        raise HTTPException(status_code=410, detail=str(e))
    if isinstance(e, form_service.FormValidationError):
        raise HTTPException(status_code=400, detail={"message": str(e), "errors": e.errors})
    raise HTTPException(status_code=400, detail=str(e))


@router.get("/{slug}", response_model=PublicFormRead)
@limiter.limit(f"{settings.RATE_LIMIT_PUBLIC_FORMS * 3}/minute")
def get_public_form(request: Request, slug: str, db: Session = Depends(get_db)):
    try:
        form, church = form_service.get_public_form(db, slug)
    except form_service.FormServiceError as e:
        _raise_for(e)
    return PublicFormRead(
        name=form.name,
        description=form.description,
        slug=form.slug,
        fields=form.fields or [],
        church_name=church.name if church else "",
    )


@router.post("/{slug}/submit", response_model=FormSubmitResponse, status_code=201)
@limiter.limit(f"{settings.RATE_LIMIT_PUBLIC_FORMS}/minute")
def submit_form(
    request: Request,
    slug: str,
    data: FormSubmitRequest,
    db: Session = Depends(get_db),
):
    """Validate and store a submission; mapped name fields create a member."""
    try:
        submission = form_service.submit_form(db, slug, data.data)
    except form_service.FormServiceError as e:
        _raise_for(e)
    return FormSubmitResponse(
        submission_id=submission.id,
        member_created=submission.member_id is not None,
    )
