"""Integration service - sheet integration CRUD and sync."""

import logging
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from tracker.core.permissions import Permission as P, ensure_permission
from tracker.db.enums import IntegrationStatus
from tracker.db.models import IntegrationConfig
from tracker.db.types import utcnow
from tracker.schemas.auth import UserSession
from tracker.schemas.integration import (
    IntegrationCreate,
    IntegrationRead,
    IntegrationUpdate,
    SyncResult,
)
from tracker.services import (
    church_service,
    ingestion_service,
    member_service,
    pipeline_service,
    task_service,
)
from tracker.services.ingestion_service import SheetFetchError

logger = logging.getLogger(__name__)


class IntegrationServiceError(ValueError):
    pass


class IntegrationNotFoundError(IntegrationServiceError):
    pass


class IntegrationPausedError(IntegrationServiceError):
    pass


def list_integrations(db: Session, church_id: UUID) -> list[IntegrationConfig]:
    return (
        db.query(IntegrationConfig)
        .filter(IntegrationConfig.church_id == church_id)
        .order_by(IntegrationConfig.created_at)
        .all()
    )


def get_integration(db: Session, church_id: UUID, integration_id: UUID) -> IntegrationConfig | None:
    return (
        db.query(IntegrationConfig)
        .filter(
            IntegrationConfig.church_id == church_id,
            IntegrationConfig.id == integration_id,
        )
        .first()
    )


def _check_target(db: Session, church_id: UUID, pathway: str, stage_id: UUID) -> None:
    stage = pipeline_service.get_stage(db, church_id, stage_id)
    if not stage or stage.pathway != pathway:
        raise IntegrationServiceError("Target stage does not belong to the target pathway")


def create_integration(db: Session, actor: UserSession, data: IntegrationCreate) -> IntegrationConfig:
    ensure_permission(actor.role, P.INTEGRATION_CREATE)
    _check_target(db, actor.church_id, data.target_pathway.value, data.target_stage_id)
    auto_welcome = data.auto_welcome
    if auto_welcome is None:
        church = church_service.get_church(db, actor.church_id)
        auto_welcome = bool(church and church.auto_welcome)
    integration = IntegrationConfig(
        church_id=actor.church_id,
        source_name=data.source_name,
        sheet_url=data.sheet_url.strip(),
        target_pathway=data.target_pathway.value,
        target_stage_id=data.target_stage_id,
        auto_create_task=data.auto_create_task,
        task_description=data.task_description,
        auto_welcome=auto_welcome,
        status=IntegrationStatus.ACTIVE.value,
    )
    db.add(integration)
    db.commit()
    db.refresh(integration)
    return integration


def update_integration(
    db: Session,
    actor: UserSession,
    integration_id: UUID,
    data: IntegrationUpdate,
) -> IntegrationConfig:
    ensure_permission(actor.role, P.INTEGRATION_UPDATE)
    integration = get_integration(db, actor.church_id, integration_id)
    if not integration:
        raise IntegrationNotFoundError("Integration not found")

    for key, value in data.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        setattr(integration, key, getattr(value, "value", value))
    _check_target(db, actor.church_id, integration.target_pathway, integration.target_stage_id)
    db.commit()
    db.refresh(integration)
    return integration


def delete_integration(db: Session, actor: UserSession, integration_id: UUID) -> None:
    ensure_permission(actor.role, P.INTEGRATION_DELETE)
    integration = get_integration(db, actor.church_id, integration_id)
    if not integration:
        raise IntegrationNotFoundError("Integration not found")
    db.delete(integration)
    db.commit()


def run_sync(
    db: Session,
    integration: IntegrationConfig,
    acting_user_id: UUID | None,
    client: httpx.Client | None = None,
) -> SyncResult:
    """
    Fetch the sheet and ingest new rows.

    On fetch failure the integration is marked ERROR with the message and
    SheetFetchError propagates. On success last_sync is stamped and the
    status returns to ACTIVE.
    """
    try:
        text = ingestion_service.fetch_sheet_csv(integration.sheet_url, client=client)
    except SheetFetchError as e:
        integration.status = IntegrationStatus.ERROR.value
        integration.last_error = str(e)
        db.commit()
        logger.warning(f"Sync failed for integration {integration.id}: {e}")
        raise

    rows = ingestion_service.parse_csv(text)
    existing = member_service.find_emails(db, integration.church_id)
    result = ingestion_service.process_ingestion(
        rows, IntegrationRead.model_validate(integration), existing, acting_user_id
    )

    for record in result.new_members:
        db.add(member_service.new_member_from_record(record, integration.church_id))
    db.flush()
    for task in result.new_tasks:
        db.add(task_service.to_model(task, integration.church_id))

    integration.last_sync = utcnow()
    integration.status = IntegrationStatus.ACTIVE.value
    integration.last_error = None
    db.commit()
    db.refresh(integration)

    logger.info(
        f"Integration {integration.id} synced: {len(result.new_members)} new, "
        f"{result.duplicates_skipped} duplicates"
    )
    return SyncResult(
        integration=IntegrationRead.model_validate(integration),
        rows_parsed=len(rows),
        members_created=len(result.new_members),
        duplicates_skipped=result.duplicates_skipped,
        tasks_created=len(result.new_tasks),
    )


def sync_integration(
    db: Session,
    actor: UserSession,
    integration_id: UUID,
    client: httpx.Client | None = None,
) -> SyncResult:
    ensure_permission(actor.role, P.INTEGRATION_SYNC)
    integration = get_integration(db, actor.church_id, integration_id)
    if not integration:
        raise IntegrationNotFoundError("Integration not found")
    if integration.status == IntegrationStatus.PAUSED.value:
        raise IntegrationPausedError("Integration is paused")
    return run_sync(db, integration, actor.user_id, client=client)
