"""Stage transition automation.

Pure functions: given a member before and after an edit, decide which
follow-up tasks to spawn and which audit notes to append. Nothing here
touches the database; member_service persists the result.

Rules are matched against the member's destination stage. Every enabled
rule for that stage fires independently.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Protocol

from tracker.db.enums import TaskPriority
from tracker.db.types import utcnow
from tracker.schemas.member import MemberRead
from tracker.schemas.task import TaskRead
from tracker.services.note_service import system_note

AUTO_TASK_NOTE = 'Auto-created task: "{description}"'


class RuleLike(Protocol):
    stage_id: uuid.UUID
    task_description: str
    days_due: int
    priority: str
    enabled: bool


@dataclass
class TransitionResult:
    member: MemberRead
    new_tasks: list[TaskRead] = field(default_factory=list)


def rules_for_stage(rules: Iterable[RuleLike], stage_id: uuid.UUID) -> list[RuleLike]:
    """Enabled rules attached to stage_id, in input order."""
    return [r for r in rules if r.enabled and r.stage_id == stage_id]


def build_task(
    rule: RuleLike,
    member_id: uuid.UUID,
    acting_user_id: uuid.UUID | None,
    today: date,
) -> TaskRead:
    return TaskRead(
        id=uuid.uuid4(),
        member_id=member_id,
        description=rule.task_description,
        due_date=today + timedelta(days=rule.days_due),
        completed=False,
        priority=TaskPriority(rule.priority),
        assigned_to_id=acting_user_id,
    )


def on_member_update(
    old_member: MemberRead,
    new_member: MemberRead,
    rules: Iterable[RuleLike],
    acting_user_id: uuid.UUID | None,
    *,
    today: date | None = None,
    now: datetime | None = None,
) -> TransitionResult:
    """
    Evaluate stage automation for one member edit.

    Only a change of current_stage_id fires rules; status changes alone
    do not. Notes are appended after whatever notes new_member already
    carries (for example the caller's "Moved to stage" entry).

    Raises:
        ValueError: old_member and new_member are different members
    """
    if old_member.id != new_member.id:
        raise ValueError("Stage automation requires two versions of the same member")

    if old_member.current_stage_id == new_member.current_stage_id:
        return TransitionResult(member=new_member)

    today = today or date.today()
    now = now or utcnow()

    tasks: list[TaskRead] = []
    notes = list(new_member.notes)
    for rule in rules_for_stage(rules, new_member.current_stage_id):
        task = build_task(rule, new_member.id, acting_user_id, today)
        tasks.append(task)
        notes.append(system_note(AUTO_TASK_NOTE.format(description=task.description), at=now))

    member = new_member.model_copy(update={"notes": notes, "last_stage_change_date": now})
    return TransitionResult(member=member, new_tasks=tasks)
