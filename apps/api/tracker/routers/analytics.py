"""Analytics router - dashboard counts and stage funnels."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tracker.core.deps import get_db, require_permission
from tracker.core.permissions import Permission as P
from tracker.db.enums import Pathway
from tracker.schemas.auth import UserSession
from tracker.services import analytics_service

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/overview")
def overview(
    session: UserSession = Depends(require_permission(P.ANALYTICS_VIEW)),
    db: Session = Depends(get_db),
):
    return analytics_service.get_overview(db, session.church_id)


@router.get("/funnel/{pathway}")
def stage_funnel(
    pathway: Pathway,
    session: UserSession = Depends(require_permission(P.ANALYTICS_VIEW)),
    db: Session = Depends(get_db),
):
    """Active members per stage of a pathway."""
    return analytics_service.get_stage_funnel(db, session.church_id, pathway)
