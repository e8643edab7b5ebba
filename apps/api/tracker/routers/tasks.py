"""Tasks router - API endpoints for follow-up tasks."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from tracker.core.deps import get_current_session, get_db, require_csrf_header, require_permission
from tracker.core.policies import POLICIES
from tracker.schemas.auth import UserSession
from tracker.schemas.task import TaskCreate, TaskListResponse, TaskRead, TaskUpdate
from tracker.services import task_service

router = APIRouter(
    dependencies=[Depends(require_permission(POLICIES["tasks"].default))]
)


def _raise_for(e: task_service.TaskServiceError):
    if isinstance(e, task_service.TaskNotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=TaskListResponse)
def list_tasks(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    member_id: UUID | None = None,
    completed: bool | None = None,
    assigned_to_id: UUID | None = None,
    due_before: date | None = Query(None, description="Due on or before (YYYY-MM-DD)"),
    my_tasks: bool = False,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    """
    List tasks.

    - my_tasks=true: only tasks assigned to the caller
    - Roles without task:view_all only ever see their own tasks
    """
    tasks, total = task_service.list_tasks(
        db,
        session,
        member_id=member_id,
        completed=completed,
        assigned_to_id=session.user_id if my_tasks else assigned_to_id,
        due_before=due_before,
        limit=limit,
        offset=offset,
    )
    return TaskListResponse(items=[TaskRead.model_validate(t) for t in tasks], total=total)


@router.post(
    "",
    response_model=TaskRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_task(
    data: TaskCreate,
    session: UserSession = Depends(require_permission(POLICIES["tasks"].actions["create"])),
    db: Session = Depends(get_db),
):
    try:
        return task_service.create_task(db, session, data)
    except task_service.TaskServiceError as e:
        _raise_for(e)


@router.get("/{task_id}", response_model=TaskRead)
def get_task(
    task_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    task = task_service.get_task(db, session, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.patch(
    "/{task_id}",
    response_model=TaskRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_task(
    task_id: UUID,
    data: TaskUpdate,
    session: UserSession = Depends(require_permission(POLICIES["tasks"].actions["edit"])),
    db: Session = Depends(get_db),
):
    """Update a task. Completing it may auto-advance the member."""
    try:
        return task_service.update_task(db, session, task_id, data)
    except task_service.TaskServiceError as e:
        _raise_for(e)


@router.post(
    "/{task_id}/toggle",
    response_model=TaskRead,
    dependencies=[Depends(require_csrf_header)],
)
def toggle_task(
    task_id: UUID,
    session: UserSession = Depends(require_permission(POLICIES["tasks"].actions["edit"])),
    db: Session = Depends(get_db),
):
    try:
        return task_service.toggle_task(db, session, task_id)
    except task_service.TaskServiceError as e:
        _raise_for(e)


@router.delete("/{task_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_task(
    task_id: UUID,
    session: UserSession = Depends(require_permission(POLICIES["tasks"].actions["delete"])),
    db: Session = Depends(get_db),
):
    try:
        task_service.delete_task(db, session, task_id)
    except task_service.TaskServiceError as e:
        _raise_for(e)
