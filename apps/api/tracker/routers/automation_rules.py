"""Automation rules router."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from tracker.core.deps import get_current_session, get_db, require_csrf_header, require_permission
from tracker.core.policies import POLICIES
from tracker.schemas.auth import UserSession
from tracker.schemas.automation import (
    AutomationRuleCreate,
    AutomationRuleRead,
    AutomationRuleUpdate,
)
from tracker.services import automation_rule_service

router = APIRouter(
    prefix="/automation-rules",
    tags=["automation"],
    dependencies=[Depends(require_permission(POLICIES["automation"].default))],
)


@router.get("", response_model=list[AutomationRuleRead])
def list_rules(
    stage_id: UUID | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return automation_rule_service.list_rules(db, session.church_id, stage_id)


@router.post(
    "",
    response_model=AutomationRuleRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_rule(
    data: AutomationRuleCreate,
    session: UserSession = Depends(require_permission(POLICIES["automation"].actions["create"])),
    db: Session = Depends(get_db),
):
    try:
        return automation_rule_service.create_rule(db, session, data)
    except automation_rule_service.AutomationRuleError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch(
    "/{rule_id}",
    response_model=AutomationRuleRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_rule(
    rule_id: UUID,
    data: AutomationRuleUpdate,
    session: UserSession = Depends(require_permission(POLICIES["automation"].actions["edit"])),
    db: Session = Depends(get_db),
):
    try:
        return automation_rule_service.update_rule(db, session, rule_id, data)
    except automation_rule_service.AutomationRuleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{rule_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_rule(
    rule_id: UUID,
    session: UserSession = Depends(require_permission(POLICIES["automation"].actions["delete"])),
    db: Session = Depends(get_db),
):
    try:
        automation_rule_service.delete_rule(db, session, rule_id)
    except automation_rule_service.AutomationRuleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
