"""Users router - staff accounts within the caller's church."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from tracker.core.deps import get_current_session, get_db, require_csrf_header, require_permission
from tracker.core.policies import POLICIES
from tracker.schemas.auth import UserCreate, UserRead, UserSession, UserUpdate
from tracker.services import user_service

router = APIRouter(
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(require_permission(POLICIES["users"].default))],
)


@router.get("", response_model=list[UserRead])
def list_users(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return user_service.list_users(db, session.church_id)


@router.post(
    "",
    response_model=UserRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_user(
    data: UserCreate,
    session: UserSession = Depends(require_permission(POLICIES["users"].actions["create"])),
    db: Session = Depends(get_db),
):
    try:
        return user_service.create_user(db, session, data)
    except user_service.EmailTakenError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except user_service.UserServiceError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch(
    "/{user_id}",
    response_model=UserRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_user(
    user_id: UUID,
    data: UserUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return user_service.update_user(db, session, user_id, data)
    except user_service.UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except user_service.UserServiceError as e:
        raise HTTPException(status_code=400, detail=str(e))
