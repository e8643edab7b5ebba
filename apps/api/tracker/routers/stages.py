"""Stages router - per-pathway stage configuration."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from tracker.core.deps import get_current_session, get_db, require_csrf_header, require_permission
from tracker.core.policies import POLICIES
from tracker.db.enums import Pathway
from tracker.schemas.auth import UserSession
from tracker.schemas.stage import StageCreate, StageRead, StageReorder, StageUpdate
from tracker.services import pipeline_service

router = APIRouter(
    prefix="/pathways/{pathway}/stages",
    tags=["stages"],
    dependencies=[Depends(require_permission(POLICIES["stages"].default))],
)


def _raise_for(e: pipeline_service.StageServiceError):
    if isinstance(e, pipeline_service.StageNotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, pipeline_service.StageInUseError):
        raise HTTPException(status_code=409, detail={"message": str(e), "usage": e.usage})
    raise HTTPException(status_code=400, detail=str(e))


def _check_pathway(db: Session, session: UserSession, pathway: Pathway, stage_id: UUID):
    stage = pipeline_service.get_stage(db, session.church_id, stage_id)
    if not stage or stage.pathway != pathway.value:
        raise HTTPException(status_code=404, detail="Stage not found")


@router.get("", response_model=list[StageRead])
def list_stages(
    pathway: Pathway,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Stages of a pathway in order."""
    return pipeline_service.list_stages(db, session.church_id, pathway)


@router.post(
    "",
    response_model=StageRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_stage(
    pathway: Pathway,
    data: StageCreate,
    session: UserSession = Depends(require_permission(POLICIES["stages"].actions["create"])),
    db: Session = Depends(get_db),
):
    return pipeline_service.create_stage(db, session, pathway, data)


@router.put(
    "/order",
    response_model=list[StageRead],
    dependencies=[Depends(require_csrf_header)],
)
def reorder_stages(
    pathway: Pathway,
    data: StageReorder,
    session: UserSession = Depends(require_permission(POLICIES["stages"].actions["reorder"])),
    db: Session = Depends(get_db),
):
    """Reorder with the complete list of the pathway's stage ids."""
    try:
        return pipeline_service.reorder_stages(db, session, pathway, data.stage_ids)
    except pipeline_service.StageServiceError as e:
        _raise_for(e)


@router.patch(
    "/{stage_id}",
    response_model=StageRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_stage(
    pathway: Pathway,
    stage_id: UUID,
    data: StageUpdate,
    session: UserSession = Depends(require_permission(POLICIES["stages"].actions["edit"])),
    db: Session = Depends(get_db),
):
    _check_pathway(db, session, pathway, stage_id)
    try:
        return pipeline_service.update_stage(db, session, stage_id, data)
    except pipeline_service.StageServiceError as e:
        _raise_for(e)


@router.delete("/{stage_id}", dependencies=[Depends(require_csrf_header)])
def delete_stage(
    pathway: Pathway,
    stage_id: UUID,
    migrate_to_stage_id: UUID | None = Query(None),
    session: UserSession = Depends(require_permission(POLICIES["stages"].actions["delete"])),
    db: Session = Depends(get_db),
):
    """
    Delete a stage.

    Returns 409 while members, rules, integrations or forms still point at
    it, unless migrate_to_stage_id names another stage of the pathway.
    """
    _check_pathway(db, session, pathway, stage_id)
    try:
        migrated = pipeline_service.delete_stage(db, session, stage_id, migrate_to_stage_id)
    except pipeline_service.StageServiceError as e:
        _raise_for(e)
    return {"deleted": True, "migrated_members": migrated}
