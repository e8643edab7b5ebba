"""Church service - settings for the caller's church."""

import logging
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from tracker.core.permissions import Permission as P, ensure_permission
from tracker.core.structured_logging import build_log_context
from tracker.db.models import Church
from tracker.schemas.auth import UserSession
from tracker.schemas.church import ChurchUpdate

logger = logging.getLogger(__name__)

# Nullable contact columns; a null in the update clears them.
CLEARABLE_FIELDS = ("email", "phone", "website", "address")


class ChurchServiceError(ValueError):
    pass


class ChurchNotFoundError(ChurchServiceError):
    pass


def get_church(db: Session, church_id: UUID) -> Church | None:
    return db.query(Church).filter(Church.id == church_id).first()


def _validate_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ChurchServiceError(f"Unknown timezone: {name}")
    return name


def update_church(db: Session, actor: UserSession, data: ChurchUpdate) -> Church:
    """
    Apply a partial settings update.

    Nulls are ignored for name, timezone and auto_welcome. The contact
    fields accept null to clear a stored value.
    """
    ensure_permission(actor.role, P.SETTINGS_UPDATE)
    church = get_church(db, actor.church_id)
    if not church:
        raise ChurchNotFoundError("Church not found")

    changes = data.model_dump(exclude_unset=True)
    for key, value in changes.items():
        if value is None and key not in CLEARABLE_FIELDS:
            continue
        if key == "email" and value:
            value = value.strip().lower()
        elif key == "timezone":
            value = _validate_timezone(value)
        setattr(church, key, value)

    db.commit()
    db.refresh(church)
    logger.info(
        "church_settings_updated fields=%s",
        ",".join(sorted(changes)),
        extra=build_log_context(church_id=str(church.id), user_id=str(actor.user_id)),
    )
    return church
