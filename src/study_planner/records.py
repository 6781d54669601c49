"""Builders and lifecycle transitions for planner records."""
from dataclasses import replace
from datetime import datetime

from study_planner.formatting import generate_id, now_iso
from study_planner.models import Assignment, StudyGoal, Subject


def new_assignment(title: str, subject: str, due_date: str, now: datetime | None = None, **attrs) -> Assignment:
    """Create an assignment with a fresh id and creation timestamps."""
    stamp = now_iso(now)
    return Assignment(
        id=generate_id(), title=title.strip(), subject=subject.strip(), due_date=due_date,
        created_at=stamp, updated_at=stamp, **attrs,
    )


def new_subject(name: str, teacher: str, credits: int = 3, now: datetime | None = None, **attrs) -> Subject:
    return Subject(
        id=generate_id(), name=name.strip(), teacher=teacher.strip(), credits=credits,
        created_at=now_iso(now), **attrs,
    )


def new_study_goal(title: str, target_value: float, now: datetime | None = None, **attrs) -> StudyGoal:
    return StudyGoal(
        id=generate_id(), title=title.strip(), target_value=target_value,
        created_at=now_iso(now), **attrs,
    )


def toggle_status(assignment: Assignment, now: datetime | None = None) -> Assignment:
    """Flip between completed and pending, stamping or clearing ``completed_at``.

    Editing ``status`` directly leaves ``completed_at`` alone; only this
    transition keeps the two in step.
    """
    if assignment.status == "completed":
        return replace(assignment, status="pending", completed_at=None)
    return replace(assignment, status="completed", completed_at=now_iso(now))


def add_tag(assignment: Assignment, tag: str) -> Assignment:
    tag = tag.strip()
    if not tag or tag in assignment.tags:
        return assignment
    return replace(assignment, tags=[*assignment.tags, tag])


def remove_tag(assignment: Assignment, tag: str) -> Assignment:
    return replace(assignment, tags=[t for t in assignment.tags if t != tag])


def record_goal_progress(goal: StudyGoal, value: float) -> StudyGoal:
    """Set a goal's current value, marking it complete once the target is met."""
    return replace(goal, current_value=value, is_completed=value >= goal.target_value)
