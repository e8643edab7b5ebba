"""AI router - follow-up drafting and journey analysis for a member."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from tracker.core.deps import get_ai_provider, get_db, require_csrf_header, require_permission
from tracker.core.policies import POLICIES
from tracker.db.models import Church
from tracker.schemas.ai import FollowUpRequest, FollowUpResponse, JourneyAnalysis
from tracker.schemas.auth import UserSession
from tracker.services import ai_service, member_service, pipeline_service

router = APIRouter(prefix="/ai", tags=["ai"])

require_ai = require_permission(POLICIES["communications"].actions["ai"])


def _member_context(db: Session, session: UserSession, member_id: UUID):
    member = member_service.get_member(db, session, member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    stage = pipeline_service.get_stage(db, session.church_id, member.current_stage_id)
    return member, stage.name if stage else "Unknown"


@router.post(
    "/members/{member_id}/follow-up",
    response_model=FollowUpResponse,
    dependencies=[Depends(require_csrf_header)],
)
async def draft_follow_up(
    member_id: UUID,
    data: FollowUpRequest | None = None,
    session: UserSession = Depends(require_ai),
    db: Session = Depends(get_db),
    provider=Depends(get_ai_provider),
):
    """Draft a short follow-up SMS. Always returns a message, falling back on failure."""
    member, stage_name = _member_context(db, session, member_id)
    church = db.query(Church).filter(Church.id == session.church_id).first()
    message = await ai_service.generate_follow_up(
        provider,
        member,
        stage_name,
        church.name if church else "our church",
        context=data.context if data else None,
    )
    return FollowUpResponse(message=message)


@router.get("/members/{member_id}/journey", response_model=JourneyAnalysis)
async def analyze_journey(
    member_id: UUID,
    session: UserSession = Depends(require_ai),
    db: Session = Depends(get_db),
    provider=Depends(get_ai_provider),
):
    member, stage_name = _member_context(db, session, member_id)
    return await ai_service.analyze_journey(provider, member, stage_name)
