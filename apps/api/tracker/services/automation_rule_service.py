"""Automation rule CRUD. The rules themselves are applied by automation_engine."""

from uuid import UUID

from sqlalchemy.orm import Session

from tracker.core.permissions import Permission as P, ensure_permission
from tracker.db.models import AutomationRule, Stage
from tracker.schemas.auth import UserSession
from tracker.schemas.automation import AutomationRuleCreate, AutomationRuleUpdate
from tracker.services import pipeline_service


class AutomationRuleError(ValueError):
    pass


class AutomationRuleNotFoundError(AutomationRuleError):
    pass


def list_rules(
    db: Session,
    church_id: UUID,
    stage_id: UUID | None = None,
) -> list[AutomationRule]:
    query = (
        db.query(AutomationRule)
        .join(Stage, AutomationRule.stage_id == Stage.id)
        .filter(AutomationRule.church_id == church_id)
    )
    if stage_id:
        query = query.filter(AutomationRule.stage_id == stage_id)
    return query.order_by(Stage.pathway, Stage.order, AutomationRule.days_due).all()


def get_rule(db: Session, church_id: UUID, rule_id: UUID) -> AutomationRule | None:
    return (
        db.query(AutomationRule)
        .filter(AutomationRule.church_id == church_id, AutomationRule.id == rule_id)
        .first()
    )


def create_rule(db: Session, actor: UserSession, data: AutomationRuleCreate) -> AutomationRule:
    ensure_permission(actor.role, P.AUTOMATION_CREATE)
    if not pipeline_service.get_stage(db, actor.church_id, data.stage_id):
        raise AutomationRuleError("Stage not found")
    rule = AutomationRule(
        church_id=actor.church_id,
        stage_id=data.stage_id,
        task_description=data.task_description,
        days_due=data.days_due,
        priority=data.priority.value,
        enabled=data.enabled,
    )
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


def update_rule(
    db: Session,
    actor: UserSession,
    rule_id: UUID,
    data: AutomationRuleUpdate,
) -> AutomationRule:
    ensure_permission(actor.role, P.AUTOMATION_UPDATE)
    rule = get_rule(db, actor.church_id, rule_id)
    if not rule:
        raise AutomationRuleNotFoundError("Automation rule not found")
    for key, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(rule, key, getattr(value, "value", value))
    db.commit()
    db.refresh(rule)
    return rule


def delete_rule(db: Session, actor: UserSession, rule_id: UUID) -> None:
    ensure_permission(actor.role, P.AUTOMATION_DELETE)
    rule = get_rule(db, actor.church_id, rule_id)
    if not rule:
        raise AutomationRuleNotFoundError("Automation rule not found")
    db.delete(rule)
    db.commit()
