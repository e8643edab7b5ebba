"""Church router - settings for the caller's church."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from tracker.core.deps import get_db, require_csrf_header, require_permission
from tracker.core.policies import POLICIES
from tracker.schemas.auth import UserSession
from tracker.schemas.church import ChurchRead, ChurchUpdate
from tracker.services import church_service

router = APIRouter(prefix="/church", tags=["church"])


@router.get("", response_model=ChurchRead)
def get_church(
    session: UserSession = Depends(require_permission(POLICIES["church_settings"].default)),
    db: Session = Depends(get_db),
):
    church = church_service.get_church(db, session.church_id)
    if not church:
        raise HTTPException(status_code=404, detail="Church not found")
    return church


@router.patch(
    "",
    response_model=ChurchRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_church(
    data: ChurchUpdate,
    session: UserSession = Depends(
        require_permission(POLICIES["church_settings"].actions["edit"])
    ),
    db: Session = Depends(get_db),
):
    try:
        return church_service.update_church(db, session, data)
    except church_service.ChurchNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except church_service.ChurchServiceError as e:
        raise HTTPException(status_code=400, detail=str(e))
