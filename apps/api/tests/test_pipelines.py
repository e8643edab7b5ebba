"""Tests for pathway stages: advancement, seeding and configuration."""
import uuid
from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from tracker.core.permissions import PermissionDenied
from tracker.db.enums import MemberStatus, Pathway
from tracker.db.models import AutomationRule, Member, Stage
from tracker.schemas.member import MemberCreate, MemberRead
from tracker.schemas.stage import AutoAdvanceRule, StageCreate, StageRead
from tracker.services import member_service, pipeline_service


NOW = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


def _stages(*names):
    return [SimpleNamespace(id=uuid.uuid4(), name=n, order=i + 1) for i, n in enumerate(names)]


def _record(stage_id) -> MemberRead:
    return MemberRead(
        id=uuid.uuid4(),
        first_name="Mike",
        last_name="Ross",
        pathway=Pathway.NEWCOMER,
        current_stage_id=stage_id,
        status=MemberStatus.ACTIVE,
        joined_date=date(2024, 4, 1),
    )


# =============================================================================
# Pure advancement
# =============================================================================

def test_advance_moves_to_next_stage_with_note():
    stages = _stages("Sunday Exp", "Tent", "Lunch")
    member = _record(stages[0].id)

    advanced = pipeline_service.advance_member(member, list(reversed(stages)), now=NOW)

    assert advanced.current_stage_id == stages[1].id
    assert advanced.status == MemberStatus.ACTIVE
    assert advanced.notes[-1].text == "Moved to stage: Tent"
    assert advanced.notes[-1].timestamp == NOW


def test_advance_at_last_stage_marks_integrated():
    stages = _stages("Sunday Exp", "Serve")
    member = _record(stages[-1].id)

    advanced = pipeline_service.advance_member(member, stages, now=NOW)

    assert advanced.current_stage_id == stages[-1].id
    assert advanced.status == MemberStatus.INTEGRATED
    assert advanced.notes[-1].text == "Completed pathway: NEWCOMER"


def test_advance_with_unknown_stage_is_a_no_op():
    member = _record(uuid.uuid4())
    assert pipeline_service.advance_member(member, _stages("A", "B")) == member


def test_next_stage():
    stages = _stages("A", "B", "C")
    assert pipeline_service.next_stage(stages, stages[0].id) is stages[1]
    assert pipeline_service.next_stage(stages, stages[2].id) is None
    assert pipeline_service.next_stage(stages, uuid.uuid4()) is None


# =============================================================================
# Seeding
# =============================================================================

def test_seed_creates_both_pathways_with_rules(db, church, newcomer_stages, believer_stages):
    assert [s.name for s in newcomer_stages] == [
        "Sunday Exp", "Tent", "Lunch", "Social", "Connect Grp", "Growth Track", "Serve",
    ]
    assert [s.order for s in believer_stages] == list(range(1, 8))

    lunch = newcomer_stages[2]
    assert lunch.auto_advance_type == "TASK_COMPLETED"
    assert lunch.auto_advance_value == "Lunch"

    rules = db.query(AutomationRule).filter(AutomationRule.church_id == church.id).all()
    assert len(rules) == 4
    assert {r.task_description for r in rules if r.stage_id == lunch.id} == {
        "Call to confirm Lunch attendance"
    }


def test_seed_is_idempotent(db, church):
    assert pipeline_service.seed_default_pathways(db, church.id) == []
    assert db.query(Stage).filter(Stage.church_id == church.id).count() == 14


def test_stage_read_folds_auto_advance_columns(newcomer_stages):
    lunch = StageRead.model_validate(newcomer_stages[2])
    assert lunch.auto_advance_rule is not None
    assert lunch.auto_advance_rule.value == "Lunch"
    assert StageRead.model_validate(newcomer_stages[0]).auto_advance_rule is None


def test_time_in_stage_rule_requires_whole_days():
    with pytest.raises(ValueError):
        AutoAdvanceRule(type="TIME_IN_STAGE", value="soon")
    assert AutoAdvanceRule(type="TIME_IN_STAGE", value="14").value == "14"


# =============================================================================
# Stage configuration
# =============================================================================

def test_create_stage_appends_to_end(db, admin, newcomer_stages):
    stage = pipeline_service.create_stage(
        db, admin, Pathway.NEWCOMER, StageCreate(name="Membership")
    )
    assert stage.order == len(newcomer_stages) + 1


def test_volunteer_cannot_create_stage(db, volunteer, church):
    with pytest.raises(PermissionDenied):
        pipeline_service.create_stage(db, volunteer, Pathway.NEWCOMER, StageCreate(name="Nope"))


def test_reorder_requires_every_stage(db, admin, newcomer_stages):
    ids = [s.id for s in newcomer_stages]
    with pytest.raises(pipeline_service.StageServiceError):
        pipeline_service.reorder_stages(db, admin, Pathway.NEWCOMER, ids[:-1])

    reordered = pipeline_service.reorder_stages(db, admin, Pathway.NEWCOMER, list(reversed(ids)))
    assert [s.id for s in reordered] == list(reversed(ids))
    assert [s.order for s in reordered] == list(range(1, 8))


def test_delete_unused_stage_renumbers_remaining(db, admin, newcomer_stages):
    social = newcomer_stages[3]

    migrated = pipeline_service.delete_stage(db, admin, social.id)

    assert migrated == 0
    remaining = pipeline_service.list_stages(db, admin.church_id, Pathway.NEWCOMER)
    assert "Social" not in [s.name for s in remaining]
    assert [s.order for s in remaining] == list(range(1, 7))


def test_delete_stage_in_use_requires_migration(db, admin, newcomer_stages):
    tent, lunch = newcomer_stages[1], newcomer_stages[2]
    member = member_service.create_member(
        db,
        admin,
        MemberCreate(first_name="Ann", pathway=Pathway.NEWCOMER, current_stage_id=tent.id),
    )

    with pytest.raises(pipeline_service.StageInUseError) as exc:
        pipeline_service.delete_stage(db, admin, tent.id)
    assert exc.value.usage["members"] == 1

    migrated = pipeline_service.delete_stage(db, admin, tent.id, migrate_to_stage_id=lunch.id)

    assert migrated == 1
    assert db.get(Member, member.id).current_stage_id == lunch.id


def test_delete_stage_with_rules_counts_rules_as_usage(db, admin, newcomer_stages):
    lunch, social = newcomer_stages[2], newcomer_stages[3]

    with pytest.raises(pipeline_service.StageInUseError) as exc:
        pipeline_service.delete_stage(db, admin, lunch.id)
    assert exc.value.usage["automation rules"] == 1

    pipeline_service.delete_stage(db, admin, lunch.id, migrate_to_stage_id=social.id)
    assert db.query(AutomationRule).filter(AutomationRule.stage_id == lunch.id).count() == 0


def test_migration_target_must_share_pathway(db, admin, newcomer_stages, believer_stages):
    lunch = newcomer_stages[2]
    with pytest.raises(pipeline_service.StageServiceError):
        pipeline_service.delete_stage(
            db, admin, lunch.id, migrate_to_stage_id=believer_stages[0].id
        )
