"""Analytics service - dashboard counts."""

from datetime import date
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from tracker.db.enums import MemberStatus, Pathway
from tracker.db.models import Member, Task, User
from tracker.services import pipeline_service


def get_overview(db: Session, church_id: UUID, today: date | None = None) -> dict:
    """Member, task and user counts for the dashboard."""
    today = today or date.today()

    status_counts = dict(
        db.query(Member.status, func.count(Member.id))
        .filter(Member.church_id == church_id)
        .group_by(Member.status)
        .all()
    )
    pathway_counts = dict(
        db.query(Member.pathway, func.count(Member.id))
        .filter(Member.church_id == church_id)
        .group_by(Member.pathway)
        .all()
    )

    tasks = db.query(Task).filter(Task.church_id == church_id)
    total_tasks = tasks.count()
    completed_tasks = tasks.filter(Task.completed.is_(True)).count()
    overdue_tasks = tasks.filter(Task.completed.is_(False), Task.due_date < today).count()

    return {
        "members": {
            "total": sum(status_counts.values()),
            "by_status": {s.value: status_counts.get(s.value, 0) for s in MemberStatus},
            "by_pathway": {p.value: pathway_counts.get(p.value, 0) for p in Pathway},
        },
        "tasks": {
            "total": total_tasks,
            "pending": total_tasks - completed_tasks,
            "overdue": overdue_tasks,
            "completed": completed_tasks,
            "completion_rate": round(completed_tasks / total_tasks * 100, 1) if total_tasks else 0.0,
        },
        "users": {
            "total": db.query(func.count(User.id)).filter(User.church_id == church_id).scalar() or 0,
        },
    }


def get_stage_funnel(db: Session, church_id: UUID, pathway: Pathway) -> list[dict]:
    """Active member count per stage, in stage order."""
    counts = dict(
        db.query(Member.current_stage_id, func.count(Member.id))
        .filter(
            Member.church_id == church_id,
            Member.pathway == pathway.value,
            Member.status == MemberStatus.ACTIVE.value,
        )
        .group_by(Member.current_stage_id)
        .all()
    )
    return [
        {"stage_id": stage.id, "name": stage.name, "order": stage.order, "members": counts.get(stage.id, 0)}
        for stage in pipeline_service.list_stages(db, church_id, pathway)
    ]
