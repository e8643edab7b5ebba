"""Communication service - outbound message log.

Messages are recorded against the member; delivery through an SMS or email
provider happens outside the tracker.
"""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from tracker.core.permissions import Permission as P, ensure_permission
from tracker.db.enums import MessageChannel, MessageDirection
from tracker.db.models import Member, MessageLog
from tracker.schemas.auth import UserSession
from tracker.schemas.member import MessageCreate
from tracker.services import member_service, note_service

logger = logging.getLogger(__name__)

CHANNEL_PERMISSIONS = {
    MessageChannel.EMAIL: P.COMMUNICATION_SEND_EMAIL,
    MessageChannel.SMS: P.COMMUNICATION_SEND_SMS,
}


class CommunicationError(ValueError):
    pass


def log_outbound_message(
    db: Session,
    actor: UserSession,
    member_id: UUID,
    data: MessageCreate,
) -> Member:
    """
    Record an outbound message and a matching timeline note.

    Raises:
        CommunicationError: member has no address for the channel
    """
    ensure_permission(actor.role, CHANNEL_PERMISSIONS[data.channel])
    member = member_service.get_member(db, actor, member_id)
    if not member:
        raise member_service.MemberNotFoundError("Member not found")
    if data.channel == MessageChannel.EMAIL and not member.email:
        raise CommunicationError("Member has no email address")
    if data.channel == MessageChannel.SMS and not member.phone:
        raise CommunicationError("Member has no phone number")

    member.message_log.append(
        MessageLog(
            member_id=member.id,
            channel=data.channel.value,
            direction=MessageDirection.OUTBOUND.value,
            content=data.content,
            sent_by=actor.display_name,
        )
    )
    note = note_service.system_note(f"{data.channel.value} sent by {actor.display_name}")
    member.notes.append(note_service.to_model(note, member.id))
    db.commit()
    db.refresh(member)

    logger.info(f"Logged outbound {data.channel.value} for member {member.id}")
    return member


def list_messages(db: Session, actor: UserSession, member_id: UUID) -> list[MessageLog]:
    ensure_permission(actor.role, P.COMMUNICATION_VIEW_HISTORY)
    member = member_service.get_member(db, actor, member_id)
    if not member:
        raise member_service.MemberNotFoundError("Member not found")
    return list(member.message_log)
