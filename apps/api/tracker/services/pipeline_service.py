"""Pipeline service - pathway stage configuration and stage advancement."""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from tracker.core.permissions import Permission as P, ensure_permission
from tracker.core.stage_definitions import DEFAULT_AUTOMATION_RULES, get_default_stage_defs
from tracker.db.enums import MemberStatus, Pathway
from tracker.db.models import AutomationRule, Form, IntegrationConfig, Member, Stage
from tracker.schemas.auth import UserSession
from tracker.schemas.member import MemberRead
from tracker.schemas.stage import StageCreate, StageUpdate
from tracker.services.note_service import system_note

logger = logging.getLogger(__name__)

MOVED_NOTE = "Moved to stage: {name}"
COMPLETED_NOTE = "Completed pathway: {pathway}"


class StageServiceError(ValueError):
    """Base error for stage configuration."""


class StageNotFoundError(StageServiceError):
    pass


class StageInUseError(StageServiceError):
    """Stage still referenced and no migration target was given."""

    def __init__(self, usage: dict[str, int]):
        self.usage = usage
        parts = ", ".join(f"{count} {name}" for name, count in usage.items() if count)
        super().__init__(f"Stage is in use ({parts}); supply migrate_to_stage_id to delete it")


# =============================================================================
# Pure helpers
# =============================================================================

def sort_stages(stages) -> list:
    return sorted(stages, key=lambda s: s.order)


def advance_member(
    member: MemberRead,
    stages,
    *,
    now: datetime | None = None,
) -> MemberRead:
    """
    Move a member one stage forward.

    At the last stage the member is marked INTEGRATED and keeps its stage.
    A member whose stage is not in `stages` is returned unchanged.
    """
    ordered = sort_stages(stages)
    index = next(
        (i for i, s in enumerate(ordered) if s.id == member.current_stage_id), None
    )
    if index is None:
        return member

    if index == len(ordered) - 1:
        note = system_note(COMPLETED_NOTE.format(pathway=member.pathway.value), at=now)
        return member.model_copy(
            update={"status": MemberStatus.INTEGRATED, "notes": [*member.notes, note]}
        )

    target = ordered[index + 1]
    note = system_note(MOVED_NOTE.format(name=target.name), at=now)
    return member.model_copy(
        update={"current_stage_id": target.id, "notes": [*member.notes, note]}
    )


def next_stage(stages, stage_id: UUID):
    """Stage after stage_id, or None at the end (or when stage_id is unknown)."""
    ordered = sort_stages(stages)
    for i, stage in enumerate(ordered[:-1]):
        if stage.id == stage_id:
            return ordered[i + 1]
    return None


# =============================================================================
# Queries
# =============================================================================

def list_stages(db: Session, church_id: UUID, pathway: Pathway | str) -> list[Stage]:
    return (
        db.query(Stage)
        .filter(Stage.church_id == church_id, Stage.pathway == Pathway(pathway).value)
        .order_by(Stage.order)
        .all()
    )


def get_stage(db: Session, church_id: UUID, stage_id: UUID) -> Stage | None:
    return (
        db.query(Stage)
        .filter(Stage.church_id == church_id, Stage.id == stage_id)
        .first()
    )


def first_stage(db: Session, church_id: UUID, pathway: Pathway | str) -> Stage | None:
    stages = list_stages(db, church_id, pathway)
    return stages[0] if stages else None


def stage_usage(db: Session, stage: Stage) -> dict[str, int]:
    """Count records referencing a stage."""
    def _count(model, column) -> int:
        return db.query(func.count(model.id)).filter(column == stage.id).scalar() or 0

    return {
        "members": _count(Member, Member.current_stage_id),
        "automation rules": _count(AutomationRule, AutomationRule.stage_id),
        "integrations": _count(IntegrationConfig, IntegrationConfig.target_stage_id),
        "forms": _count(Form, Form.target_stage_id),
    }


# =============================================================================
# Seeding
# =============================================================================

def seed_default_pathways(db: Session, church_id: UUID) -> list[Stage]:
    """
    Create the default stages and automation rules for a church.

    Pathways that already have stages are left alone. Flushes, does not commit.
    """
    created: list[Stage] = []
    by_key: dict[str, Stage] = {}
    for pathway in Pathway:
        if list_stages(db, church_id, pathway):
            continue
        for stage_def in get_default_stage_defs(pathway):
            key = stage_def.pop("key")
            stage = Stage(church_id=church_id, pathway=pathway.value, **stage_def)
            db.add(stage)
            by_key[key] = stage
            created.append(stage)
    db.flush()

    for key, description, days_due, priority in DEFAULT_AUTOMATION_RULES:
        stage = by_key.get(key)
        if stage is None:
            continue
        db.add(
            AutomationRule(
                church_id=church_id,
                stage_id=stage.id,
                task_description=description,
                days_due=days_due,
                priority=priority.value,
                enabled=True,
            )
        )
    db.flush()
    if created:
        logger.info(f"Seeded {len(created)} default stages for church {church_id}")
    return created


# =============================================================================
# Commands
# =============================================================================

def _apply_rule(stage: Stage, rule) -> None:
    stage.auto_advance_type = rule.type.value if rule else None
    stage.auto_advance_value = rule.value if rule else None


def create_stage(
    db: Session,
    actor: UserSession,
    pathway: Pathway,
    data: StageCreate,
) -> Stage:
    """Append a stage at the end of the pathway."""
    ensure_permission(actor.role, P.STAGE_CREATE)
    current_max = (
        db.query(func.max(Stage.order))
        .filter(Stage.church_id == actor.church_id, Stage.pathway == pathway.value)
        .scalar()
    )
    stage = Stage(
        church_id=actor.church_id,
        pathway=pathway.value,
        name=data.name,
        description=data.description,
        order=(current_max or 0) + 1,
    )
    _apply_rule(stage, data.auto_advance_rule)
    db.add(stage)
    db.commit()
    db.refresh(stage)
    return stage


def update_stage(
    db: Session,
    actor: UserSession,
    stage_id: UUID,
    data: StageUpdate,
) -> Stage:
    ensure_permission(actor.role, P.STAGE_UPDATE)
    stage = get_stage(db, actor.church_id, stage_id)
    if not stage:
        raise StageNotFoundError("Stage not found")

    fields = data.model_dump(exclude_unset=True)
    if "name" in fields and data.name is not None:
        stage.name = data.name
    if "description" in fields:
        stage.description = data.description
    if "auto_advance_rule" in fields:
        _apply_rule(stage, data.auto_advance_rule)
    db.commit()
    db.refresh(stage)
    return stage


def reorder_stages(
    db: Session,
    actor: UserSession,
    pathway: Pathway,
    ordered_stage_ids: list[UUID],
) -> list[Stage]:
    """
    Reorder a pathway's stages.

    Normalizes order values to 1, 2, 3...
    """
    ensure_permission(actor.role, P.STAGE_REORDER)
    stages = list_stages(db, actor.church_id, pathway)
    stage_map = {s.id: s for s in stages}
    ordered_ids = list(dict.fromkeys(ordered_stage_ids))
    if len(ordered_ids) != len(ordered_stage_ids) or set(ordered_ids) != set(stage_map):
        raise StageServiceError("stage_ids must include every stage of the pathway exactly once")

    for i, stage_id in enumerate(ordered_ids):
        stage_map[stage_id].order = i + 1
    db.commit()
    return list_stages(db, actor.church_id, pathway)


def delete_stage(
    db: Session,
    actor: UserSession,
    stage_id: UUID,
    migrate_to_stage_id: UUID | None = None,
) -> int:
    """
    Delete a stage.

    A referenced stage can only be deleted with a migration target in the
    same pathway: members, integrations and forms move there, and rules
    attached to the deleted stage are removed with it.

    Returns the number of members migrated.
    """
    ensure_permission(actor.role, P.STAGE_DELETE)
    stage = get_stage(db, actor.church_id, stage_id)
    if not stage:
        raise StageNotFoundError("Stage not found")

    usage = stage_usage(db, stage)
    if any(usage.values()) and migrate_to_stage_id is None:
        raise StageInUseError(usage)

    migrated = 0
    if migrate_to_stage_id is not None:
        if migrate_to_stage_id == stage.id:
            raise StageServiceError("Cannot migrate members to the same stage")
        target = get_stage(db, actor.church_id, migrate_to_stage_id)
        if not target:
            raise StageServiceError("Target stage not found")
        if target.pathway != stage.pathway:
            raise StageServiceError("Target stage must be in the same pathway")

        migrated = (
            db.query(Member)
            .filter(Member.current_stage_id == stage.id)
            .update({Member.current_stage_id: target.id}, synchronize_session=False)
        )
        db.query(IntegrationConfig).filter(
            IntegrationConfig.target_stage_id == stage.id
        ).update({IntegrationConfig.target_stage_id: target.id}, synchronize_session=False)
        db.query(Form).filter(Form.target_stage_id == stage.id).update(
            {Form.target_stage_id: target.id}, synchronize_session=False
        )
        db.query(AutomationRule).filter(AutomationRule.stage_id == stage.id).delete(
            synchronize_session=False
        )

    pathway = stage.pathway
    db.delete(stage)
    db.flush()

    # Close the gap left in the ordering
    for i, remaining in enumerate(list_stages(db, actor.church_id, pathway)):
        remaining.order = i + 1
    db.commit()
    db.expire_all()

    logger.info(f"Deleted stage {stage_id}, migrated {migrated} members")
    return migrated
