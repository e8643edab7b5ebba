"""Integrations router - Google Sheet sources and manual sync."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from tracker.core.deps import get_current_session, get_db, require_csrf_header, require_permission
from tracker.core.policies import POLICIES
from tracker.schemas.auth import UserSession
from tracker.schemas.integration import (
    IntegrationCreate,
    IntegrationRead,
    IntegrationUpdate,
    SyncResult,
)
from tracker.services import integration_service
from tracker.services.ingestion_service import SheetFetchError

router = APIRouter(
    prefix="/integrations",
    tags=["integrations"],
    dependencies=[Depends(require_permission(POLICIES["integrations"].default))],
)


def _raise_for(e: integration_service.IntegrationServiceError):
    if isinstance(e, integration_service.IntegrationNotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, integration_service.IntegrationPausedError):
        raise HTTPException(status_code=409, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=list[IntegrationRead])
def list_integrations(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return integration_service.list_integrations(db, session.church_id)


@router.post(
    "",
    response_model=IntegrationRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_integration(
    data: IntegrationCreate,
    session: UserSession = Depends(require_permission(POLICIES["integrations"].actions["create"])),
    db: Session = Depends(get_db),
):
    try:
        return integration_service.create_integration(db, session, data)
    except integration_service.IntegrationServiceError as e:
        _raise_for(e)


@router.patch(
    "/{integration_id}",
    response_model=IntegrationRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_integration(
    integration_id: UUID,
    data: IntegrationUpdate,
    session: UserSession = Depends(require_permission(POLICIES["integrations"].actions["edit"])),
    db: Session = Depends(get_db),
):
    try:
        return integration_service.update_integration(db, session, integration_id, data)
    except integration_service.IntegrationServiceError as e:
        _raise_for(e)


@router.delete(
    "/{integration_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_integration(
    integration_id: UUID,
    session: UserSession = Depends(require_permission(POLICIES["integrations"].actions["delete"])),
    db: Session = Depends(get_db),
):
    try:
        integration_service.delete_integration(db, session, integration_id)
    except integration_service.IntegrationServiceError as e:
        _raise_for(e)


@router.post(
    "/{integration_id}/sync",
    response_model=SyncResult,
    dependencies=[Depends(require_csrf_header)],
)
def sync_integration(
    integration_id: UUID,
    session: UserSession = Depends(require_permission(POLICIES["integrations"].actions["sync"])),
    db: Session = Depends(get_db),
):
    """
    Pull the sheet now and import new rows.

    A sheet that cannot be fetched returns 502 with a remediation message;
    the integration is left in ERROR status.
    """
    try:
        return integration_service.sync_integration(db, session, integration_id)
    except integration_service.IntegrationServiceError as e:
        _raise_for(e)
    except SheetFetchError as e:
        raise HTTPException(status_code=502, detail=str(e))
