"""Tests for stage transition automation (pure, no database)."""
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

import pytest

from tracker.db.enums import MemberStatus, NoteKind, Pathway, TaskPriority
from tracker.schemas.member import MemberRead
from tracker.services import automation_engine


TODAY = date(2024, 3, 10)
NOW = datetime(2024, 3, 10, 15, 30, tzinfo=timezone.utc)
STAGE_A = uuid.uuid4()
STAGE_B = uuid.uuid4()


@dataclass
class Rule:
    stage_id: uuid.UUID
    task_description: str
    days_due: int = 0
    priority: str = "MEDIUM"
    enabled: bool = True


def _member(stage_id: uuid.UUID = STAGE_A, **overrides) -> MemberRead:
    fields = dict(
        id=uuid.uuid4(),
        first_name="Sarah",
        last_name="Jenkins",
        email="sarah@example.com",
        pathway=Pathway.NEWCOMER,
        current_stage_id=stage_id,
        status=MemberStatus.ACTIVE,
        joined_date=date(2024, 3, 1),
    )
    fields.update(overrides)
    return MemberRead(**fields)


def test_unchanged_stage_creates_nothing():
    old = _member()
    new = old.model_copy(update={"phone": "555-0100"})
    rules = [Rule(STAGE_A, "Welcome call")]

    result = automation_engine.on_member_update(old, new, rules, uuid.uuid4(), today=TODAY, now=NOW)

    assert result.new_tasks == []
    assert result.member == new


def test_status_change_alone_does_not_fire_rules():
    old = _member()
    new = old.model_copy(update={"status": MemberStatus.INACTIVE})

    result = automation_engine.on_member_update(
        old, new, [Rule(STAGE_A, "Welcome call")], None, today=TODAY, now=NOW
    )

    assert result.new_tasks == []


def test_stage_change_creates_one_task_per_enabled_rule_of_destination():
    actor = uuid.uuid4()
    old = _member(STAGE_A)
    new = old.model_copy(update={"current_stage_id": STAGE_B})
    rules = [
        Rule(STAGE_B, "Call to confirm Lunch attendance", days_due=2),
        Rule(STAGE_B, "Send lunch map", days_due=0, priority="HIGH"),
        Rule(STAGE_B, "Disabled rule", enabled=False),
        Rule(STAGE_A, "Rule for the stage being left"),
    ]

    result = automation_engine.on_member_update(old, new, rules, actor, today=TODAY, now=NOW)

    assert [t.description for t in result.new_tasks] == [
        "Call to confirm Lunch attendance",
        "Send lunch map",
    ]
    first, second = result.new_tasks
    assert first.due_date == TODAY + timedelta(days=2)
    assert first.priority == TaskPriority.MEDIUM
    assert second.due_date == TODAY
    assert second.priority == TaskPriority.HIGH
    assert all(t.member_id == old.id for t in result.new_tasks)
    assert all(t.assigned_to_id == actor for t in result.new_tasks)
    assert all(t.completed is False for t in result.new_tasks)


def test_stage_change_appends_system_notes_and_stamps_change_date():
    old = _member(STAGE_A)
    new = old.model_copy(update={"current_stage_id": STAGE_B})

    result = automation_engine.on_member_update(
        old, new, [Rule(STAGE_B, "Schedule Baptism Interview", days_due=5)], None,
        today=TODAY, now=NOW,
    )

    notes = result.member.notes
    assert len(notes) == 1
    assert notes[0].kind == NoteKind.SYSTEM
    assert notes[0].text == 'Auto-created task: "Schedule Baptism Interview"'
    assert notes[0].timestamp == NOW
    assert result.member.last_stage_change_date == NOW


def test_stage_change_without_rules_still_stamps_change_date():
    old = _member(STAGE_A)
    new = old.model_copy(update={"current_stage_id": STAGE_B})

    result = automation_engine.on_member_update(old, new, [], None, today=TODAY, now=NOW)

    assert result.new_tasks == []
    assert result.member.notes == []
    assert result.member.last_stage_change_date == NOW


def test_different_members_are_rejected():
    with pytest.raises(ValueError):
        automation_engine.on_member_update(_member(), _member(STAGE_B), [], None)


def test_rules_for_stage_preserves_input_order():
    rules = [Rule(STAGE_B, "one"), Rule(STAGE_A, "skip"), Rule(STAGE_B, "two")]
    assert [r.task_description for r in automation_engine.rules_for_stage(rules, STAGE_B)] == [
        "one",
        "two",
    ]


def test_member_record_survives_json_round_trip():
    member = _member(tags=["Visitor"], phone="555-0100")
    restored = MemberRead.model_validate_json(member.model_dump_json())
    assert restored == member
