"""Task service - follow-up task CRUD and completion side effects."""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from tracker.core.permissions import Permission as P, ensure_permission, has_permission
from tracker.db.enums import AutoAdvanceType
from tracker.db.models import Member, Task
from tracker.db.types import utcnow
from tracker.schemas.auth import UserSession
from tracker.schemas.task import TaskCreate, TaskRead, TaskUpdate

logger = logging.getLogger(__name__)


class TaskServiceError(ValueError):
    pass


class TaskNotFoundError(TaskServiceError):
    pass


def to_model(task: TaskRead, church_id: UUID) -> Task:
    """ORM row for a task record produced by automation or ingestion."""
    return Task(
        id=task.id,
        church_id=church_id,
        member_id=task.member_id,
        description=task.description,
        due_date=task.due_date,
        completed=task.completed,
        priority=task.priority.value,
        assigned_to_id=task.assigned_to_id,
    )


def _scoped_query(db: Session, actor: UserSession):
    query = db.query(Task).filter(Task.church_id == actor.church_id)
    if not has_permission(actor.role, P.TASK_VIEW_ALL):
        query = query.filter(Task.assigned_to_id == actor.user_id)
    return query


def list_tasks(
    db: Session,
    actor: UserSession,
    member_id: UUID | None = None,
    completed: bool | None = None,
    assigned_to_id: UUID | None = None,
    due_before: date | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Task], int]:
    """
    List tasks visible to the caller.

    Callers without task:view_all only see tasks assigned to them.
    Ordered by due date, incomplete first.
    """
    ensure_permission(actor.role, P.TASK_VIEW)
    query = _scoped_query(db, actor)
    if member_id:
        query = query.filter(Task.member_id == member_id)
    if completed is not None:
        query = query.filter(Task.completed == completed)
    if assigned_to_id:
        query = query.filter(Task.assigned_to_id == assigned_to_id)
    if due_before:
        query = query.filter(Task.due_date <= due_before)

    total = query.count()
    tasks = (
        query.order_by(Task.completed, Task.due_date, Task.created_at)
        .offset(offset)
        .limit(limit)
        .all()
    )
    return tasks, total


def get_task(db: Session, actor: UserSession, task_id: UUID) -> Task | None:
    return _scoped_query(db, actor).filter(Task.id == task_id).first()


def create_task(db: Session, actor: UserSession, data: TaskCreate) -> Task:
    ensure_permission(actor.role, P.TASK_CREATE)
    assignee = data.assigned_to_id or actor.user_id
    if assignee != actor.user_id:
        ensure_permission(actor.role, P.TASK_ASSIGN)

    member = (
        db.query(Member)
        .filter(Member.church_id == actor.church_id, Member.id == data.member_id)
        .first()
    )
    if not member:
        raise TaskServiceError("Member not found")

    task = Task(
        church_id=actor.church_id,
        member_id=data.member_id,
        description=data.description,
        due_date=data.due_date,
        priority=data.priority.value,
        assigned_to_id=assignee,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


def update_task(
    db: Session,
    actor: UserSession,
    task_id: UUID,
    data: TaskUpdate,
) -> Task:
    """
    Update a task. Completing a task may auto-advance its member when the
    member's current stage has a TASK_COMPLETED rule whose keyword appears
    in the task description.
    """
    ensure_permission(actor.role, P.TASK_UPDATE)
    task = get_task(db, actor, task_id)
    if not task:
        raise TaskNotFoundError("Task not found")

    fields = data.model_dump(exclude_unset=True)
    if "assigned_to_id" in fields and data.assigned_to_id != task.assigned_to_id:
        ensure_permission(actor.role, P.TASK_ASSIGN)
        task.assigned_to_id = data.assigned_to_id
    if data.description is not None:
        task.description = data.description
    if data.due_date is not None:
        task.due_date = data.due_date
    if data.priority is not None:
        task.priority = data.priority.value

    newly_completed = False
    if data.completed is not None and data.completed != task.completed:
        task.completed = data.completed
        task.completed_at = utcnow() if data.completed else None
        newly_completed = data.completed

    db.commit()
    db.refresh(task)

    if newly_completed:
        _auto_advance_on_completion(db, actor, task)
    return task


def toggle_task(db: Session, actor: UserSession, task_id: UUID) -> Task:
    """Flip a task's completed flag."""
    task = get_task(db, actor, task_id)
    if not task:
        raise TaskNotFoundError("Task not found")
    return update_task(db, actor, task_id, TaskUpdate(completed=not task.completed))


def delete_task(db: Session, actor: UserSession, task_id: UUID) -> None:
    ensure_permission(actor.role, P.TASK_DELETE)
    task = get_task(db, actor, task_id)
    if not task:
        raise TaskNotFoundError("Task not found")
    db.delete(task)
    db.commit()


def _auto_advance_on_completion(db: Session, actor: UserSession, task: Task) -> None:
    from tracker.services import member_service, pipeline_service

    member = member_service.get_member_in_church(db, actor.church_id, task.member_id)
    if not member:
        return
    stage = pipeline_service.get_stage(db, actor.church_id, member.current_stage_id)
    if not stage or stage.auto_advance_type != AutoAdvanceType.TASK_COMPLETED.value:
        return
    keyword = (stage.auto_advance_value or "").strip().lower()
    if not keyword or keyword not in task.description.lower():
        return

    stages = pipeline_service.list_stages(db, actor.church_id, member.pathway)
    target = pipeline_service.next_stage(stages, stage.id)
    if target is None:
        return

    note = (
        f'Auto-advanced to {target.name} upon completing task: "{task.description}"'
    )
    member_service.auto_advance(db, member, target, note, acting_user_id=actor.user_id)
    logger.info(f"Task {task.id} completion advanced member {member.id} to stage {target.id}")
