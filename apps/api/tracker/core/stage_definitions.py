"""Default pathway stages and automation rules seeded for every new church."""

from __future__ import annotations

from tracker.db.enums import AutoAdvanceType, Pathway, TaskPriority


# (key, name, description, auto-advance rule or None)
NEWCOMER_STAGES = [
    ("nc1", "Sunday Exp", "First time visit or contact card filled out.", None),
    ("nc2", "Tent", "Visited the welcome tent or info desk.", None),
    (
        "nc3",
        "Lunch",
        "Attended Newcomers Lunch to meet pastors.",
        (AutoAdvanceType.TASK_COMPLETED, "Lunch"),
    ),
    ("nc4", "Social", "Attended a church social event.", None),
    ("nc5", "Connect Grp", "Joined a small group or bible study.", None),
    ("nc6", "Growth Track", "Completed membership class.", None),
    ("nc7", "Serve", "Joined a serving team.", None),
]

NEW_BELIEVER_STAGES = [
    ("nb1", "Sunday Exp", "Attended service and heard the Gospel.", None),
    ("nb2", "Salvation", "Made a decision for Christ.", None),
    ("nb3", "Next Steps", "Received Bible and starter guide.", None),
    ("nb4", "Baptism", "Scheduled or completed water baptism.", None),
    ("nb5", "Connect Grp", "Plugged into community for discipleship.", None),
    ("nb6", "Growth Track", "Learning spiritual gifts and purpose.", None),
    ("nb7", "Serve", "Actively serving in ministry.", None),
]

DEFAULT_STAGES: dict[Pathway, list] = {
    Pathway.NEWCOMER: NEWCOMER_STAGES,
    Pathway.NEW_BELIEVER: NEW_BELIEVER_STAGES,
}

# (stage key, task description, days due, priority)
DEFAULT_AUTOMATION_RULES = [
    ("nc3", "Call to confirm Lunch attendance", 2, TaskPriority.MEDIUM),
    ("nc5", "Connect Group Introduction Email", 3, TaskPriority.HIGH),
    ("nb3", 'Deliver "Next Steps" Bible Guide', 1, TaskPriority.HIGH),
    ("nb4", "Schedule Baptism Interview", 5, TaskPriority.HIGH),
]


def get_default_stage_defs(pathway: Pathway) -> list[dict]:
    """Stage dicts for a pathway in display order."""
    defs = []
    for order, (key, name, description, rule) in enumerate(DEFAULT_STAGES[pathway], start=1):
        defs.append(
            {
                "key": key,
                "name": name,
                "order": order,
                "description": description,
                "auto_advance_type": rule[0].value if rule else None,
                "auto_advance_value": rule[1] if rule else None,
            }
        )
    return defs
