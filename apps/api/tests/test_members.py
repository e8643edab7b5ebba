"""Tests for member service: CRUD, visibility, stage transitions and task side effects."""
from datetime import date, timedelta

import pytest

from tracker.core.permissions import PermissionDenied
from tracker.db.enums import MemberStatus, NoteKind, Pathway, Role
from tracker.db.models import Task
from tracker.db.types import utcnow
from tracker.schemas.member import MemberCreate, MemberUpdate
from tracker.schemas.task import TaskCreate, TaskUpdate
from tracker.services import member_service, task_service


def _create(db, actor, **fields):
    data = {"first_name": "Sarah", "last_name": "Jenkins", "pathway": Pathway.NEWCOMER}
    data.update(fields)
    return member_service.create_member(db, actor, MemberCreate(**data))


# =============================================================================
# CRUD and visibility
# =============================================================================

def test_create_defaults_to_first_stage_and_caller(db, admin, newcomer_stages):
    member = _create(db, admin, email="  Sarah@Example.COM ")

    assert member.current_stage_id == newcomer_stages[0].id
    assert member.assigned_to_id == admin.user_id
    assert member.status == MemberStatus.ACTIVE.value
    assert member.email == "sarah@example.com"
    assert member.joined_date == date.today()


def test_create_rejects_stage_from_other_pathway(db, admin, believer_stages):
    with pytest.raises(member_service.InvalidStageError):
        _create(db, admin, current_stage_id=believer_stages[0].id)


def test_volunteer_cannot_assign_on_create(db, volunteer, admin):
    with pytest.raises(PermissionDenied):
        _create(db, volunteer, assigned_to_id=admin.user_id)


def test_volunteer_sees_only_assigned_members(db, admin, volunteer, church):
    mine = _create(db, volunteer, first_name="Mine")
    _create(db, admin, first_name="Theirs")

    members, total = member_service.list_members(db, volunteer)
    assert total == 1
    assert [m.id for m in members] == [mine.id]

    _, admin_total = member_service.list_members(db, admin)
    assert admin_total == 2


def test_list_search_and_filters(db, admin, newcomer_stages):
    _create(db, admin, first_name="Jessica", email="jess@example.com")
    _create(db, admin, first_name="David", pathway=Pathway.NEW_BELIEVER)

    members, total = member_service.list_members(db, admin, search="JESS")
    assert total == 1 and members[0].first_name == "Jessica"

    _, believers = member_service.list_members(db, admin, pathway=Pathway.NEW_BELIEVER)
    assert believers == 1


def test_volunteer_cannot_delete(db, volunteer):
    member = _create(db, volunteer)
    with pytest.raises(PermissionDenied):
        member_service.delete_member(db, volunteer, member.id)


def test_add_note_strips_markup(db, admin, church):
    member = _create(db, admin)

    member = member_service.add_note(db, admin, member.id, "<b>Called</b> and left voicemail")

    note = member.notes[-1]
    assert note.text == "Called and left voicemail"
    assert note.kind == NoteKind.USER.value
    assert note.author_id == admin.user_id


def test_assign_member_logs_system_note(db, admin, make_user):
    member = _create(db, admin)
    helper = make_user(Role.VOLUNTEER)

    member = member_service.assign_member(db, admin, member.id, helper.id)

    assert member.assigned_to_id == helper.id
    assert member.notes[-1].text == f"Assigned to {helper.display_name}"
    assert member.notes[-1].kind == NoteKind.SYSTEM.value


# =============================================================================
# Stage transitions
# =============================================================================

def test_moving_to_stage_with_rule_creates_task_atomically(db, admin, newcomer_stages):
    lunch = newcomer_stages[2]
    member = _create(db, admin)

    member, tasks = member_service.update_member(
        db, admin, member.id, MemberUpdate(current_stage_id=lunch.id)
    )

    assert member.current_stage_id == lunch.id
    assert len(tasks) == 1
    task = db.get(Task, tasks[0].id)
    assert task.description == "Call to confirm Lunch attendance"
    assert task.due_date == date.today() + timedelta(days=2)
    assert task.assigned_to_id == admin.user_id
    assert task.member_id == member.id
    assert member.notes[-1].text == 'Auto-created task: "Call to confirm Lunch attendance"'


def test_non_stage_update_creates_no_tasks(db, admin, newcomer_stages):
    member = _create(db, admin)

    member, tasks = member_service.update_member(
        db, admin, member.id, MemberUpdate(phone="555-0100")
    )

    assert tasks == []
    assert member.phone == "555-0100"
    assert db.query(Task).count() == 0


def test_null_required_fields_are_ignored_on_update(db, admin, newcomer_stages):
    member = _create(db, admin, tags=["Guest"])

    member, tasks = member_service.update_member(
        db,
        admin,
        member.id,
        MemberUpdate.model_validate({"last_name": None, "tags": None, "city": "Austin"}),
    )

    assert tasks == []
    assert member.last_name == "Jenkins"
    assert member.tags == ["Guest"]
    assert member.city == "Austin"


def test_advance_walks_pathway_then_integrates(db, admin, newcomer_stages):
    member = _create(db, admin, current_stage_id=newcomer_stages[-2].id)

    member, _ = member_service.advance(db, admin, member.id)
    assert member.current_stage_id == newcomer_stages[-1].id
    assert member.notes[-1].text == "Moved to stage: Serve"

    member, tasks = member_service.advance(db, admin, member.id)
    assert member.status == MemberStatus.INTEGRATED.value
    assert member.current_stage_id == newcomer_stages[-1].id
    assert member.notes[-1].text == "Completed pathway: NEWCOMER"
    assert tasks == []


def test_advance_into_ruled_stage_fires_automation(db, admin, believer_stages):
    member = _create(db, admin, pathway=Pathway.NEW_BELIEVER, current_stage_id=believer_stages[1].id)

    member, tasks = member_service.advance(db, admin, member.id)

    assert member.current_stage_id == believer_stages[2].id
    assert [t.description for t in tasks] == ['Deliver "Next Steps" Bible Guide']
    texts = [n.text for n in member.notes]
    assert "Moved to stage: Next Steps" in texts
    assert 'Auto-created task: "Deliver "Next Steps" Bible Guide"' in texts


def test_completing_keyword_task_auto_advances(db, admin, newcomer_stages):
    lunch, social = newcomer_stages[2], newcomer_stages[3]
    member = _create(db, admin)
    member, tasks = member_service.update_member(
        db, admin, member.id, MemberUpdate(current_stage_id=lunch.id)
    )

    task = task_service.toggle_task(db, admin, tasks[0].id)

    assert task.completed is True
    assert task.completed_at is not None
    db.refresh(member)
    assert member.current_stage_id == social.id
    assert any(
        n.text == 'Auto-advanced to Social upon completing task: "Call to confirm Lunch attendance"'
        for n in member.notes
    )


def test_completing_unrelated_task_does_not_advance(db, admin, newcomer_stages):
    lunch = newcomer_stages[2]
    member = _create(db, admin, current_stage_id=lunch.id)
    task = task_service.create_task(
        db,
        admin,
        TaskCreate(member_id=member.id, description="Send welcome card", due_date=date.today()),
    )

    task_service.update_task(db, admin, task.id, TaskUpdate(completed=True))

    db.refresh(member)
    assert member.current_stage_id == lunch.id


def test_time_in_stage_sweep(db, admin, church, newcomer_stages):
    tent, lunch = newcomer_stages[1], newcomer_stages[2]
    tent.auto_advance_type = "TIME_IN_STAGE"
    tent.auto_advance_value = "3"
    db.commit()

    stale = _create(db, admin, first_name="Stale", current_stage_id=tent.id)
    fresh = _create(db, admin, first_name="Fresh", current_stage_id=tent.id)
    stale.last_stage_change_date = utcnow() - timedelta(days=4)
    db.commit()

    assert member_service.advance_stale_members(db, church.id) == 1

    db.refresh(stale)
    db.refresh(fresh)
    assert stale.current_stage_id == lunch.id
    assert fresh.current_stage_id == tent.id
    texts = [n.text for n in stale.notes]
    assert "Auto-advanced to Lunch after 3 days in Tent" in texts
    assert 'Auto-created task: "Call to confirm Lunch attendance"' in texts
    assert db.query(Task).filter(Task.member_id == stale.id).count() == 1


# =============================================================================
# Tasks
# =============================================================================

def test_volunteer_sees_only_own_tasks(db, admin, volunteer):
    member = _create(db, admin)
    task_service.create_task(
        db, admin, TaskCreate(member_id=member.id, description="Admin task", due_date=date.today())
    )
    own = task_service.create_task(
        db,
        volunteer,
        TaskCreate(member_id=member.id, description="Volunteer task", due_date=date.today()),
    )

    tasks, total = task_service.list_tasks(db, volunteer)
    assert total == 1
    assert tasks[0].id == own.id


def test_tasks_ordered_incomplete_first_then_due(db, admin):
    member = _create(db, admin)
    later = task_service.create_task(
        db, admin,
        TaskCreate(member_id=member.id, description="Later", due_date=date.today() + timedelta(days=5)),
    )
    sooner = task_service.create_task(
        db, admin, TaskCreate(member_id=member.id, description="Sooner", due_date=date.today())
    )
    done = task_service.create_task(
        db, admin,
        TaskCreate(member_id=member.id, description="Done", due_date=date.today() - timedelta(days=3)),
    )
    task_service.toggle_task(db, admin, done.id)

    tasks, _ = task_service.list_tasks(db, admin)
    assert [t.id for t in tasks] == [sooner.id, later.id, done.id]

    overdue_or_today, _ = task_service.list_tasks(db, admin, completed=False, due_before=date.today())
    assert [t.id for t in overdue_or_today] == [sooner.id]


def test_volunteer_cannot_reassign_task(db, volunteer, admin):
    member = _create(db, volunteer)
    task = task_service.create_task(
        db, volunteer, TaskCreate(member_id=member.id, description="Call", due_date=date.today())
    )
    with pytest.raises(PermissionDenied):
        task_service.update_task(db, volunteer, task.id, TaskUpdate(assigned_to_id=admin.user_id))
