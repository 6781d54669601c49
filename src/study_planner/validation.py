"""Form-level validation for records entered by the user."""
from datetime import datetime

from study_planner.formatting import parse_timestamp
from study_planner.models import Assignment, StudyGoal, Subject


class ValidationError(ValueError):
    """Raised when a record fails validation; ``errors`` maps field to message."""

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(errors.values()))


def assignment_errors(assignment: Assignment, now: datetime | None = None) -> dict[str, str]:
    errors = {}
    if not (assignment.title or "").strip():
        errors["title"] = "Title is required"
    if not (assignment.subject or "").strip():
        errors["subject"] = "Subject is required"
    if not assignment.due_date:
        errors["due_date"] = "Due date is required"
    else:
        today = (now or datetime.now()).replace(hour=0, minute=0, second=0, microsecond=0)
        try:
            if parse_timestamp(assignment.due_date) < today:
                errors["due_date"] = "Due date cannot be in the past"
        except ValueError:
            errors["due_date"] = "Due date is not a valid date"
    if not assignment.estimated_time or assignment.estimated_time < 1:
        errors["estimated_time"] = "Estimated time must be at least 1 minute"
    return errors


def subject_errors(subject: Subject) -> dict[str, str]:
    errors = {}
    if not (subject.name or "").strip():
        errors["name"] = "Subject name is required"
    if not (subject.teacher or "").strip():
        errors["teacher"] = "Teacher name is required"
    if not subject.credits or not 1 <= subject.credits <= 6:
        errors["credits"] = "Credits must be between 1 and 6"
    if subject.current_grade is not None and not 0 <= subject.current_grade <= 100:
        errors["current_grade"] = "Current grade must be between 0 and 100"
    if subject.target_grade is not None and not 0 <= subject.target_grade <= 100:
        errors["target_grade"] = "Target grade must be between 0 and 100"
    return errors


def goal_errors(goal: StudyGoal) -> dict[str, str]:
    errors = {}
    if not (goal.title or "").strip():
        errors["title"] = "Title is required"
    if goal.target_value is None or goal.target_value <= 0:
        errors["target_value"] = "Target value must be greater than 0"
    return errors


def validate_assignment(assignment: Assignment, now: datetime | None = None) -> None:
    errors = assignment_errors(assignment, now)
    if errors:
        raise ValidationError(errors)


def validate_subject(subject: Subject) -> None:
    errors = subject_errors(subject)
    if errors:
        raise ValidationError(errors)


def validate_goal(goal: StudyGoal) -> None:
    errors = goal_errors(goal)
    if errors:
        raise ValidationError(errors)
