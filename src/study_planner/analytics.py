"""Derived statistics over assignment, subject and study session snapshots.

Everything here is a pure function of the lists passed in; callers
recompute from a fresh snapshot on every read.
"""
import math
from datetime import date, datetime, timedelta

from study_planner.formatting import is_same_day, parse_timestamp
from study_planner.models import Assignment, StudySession, Subject

PRIORITY_ORDER = {"high": 3, "medium": 2, "low": 1}

# (lower bound, grade points), checked top-down
GPA_SCALE = [
    (97, 4.0),
    (93, 3.7),
    (90, 3.3),
    (87, 3.0),
    (83, 2.7),
    (80, 2.3),
    (77, 2.0),
    (73, 1.7),
    (70, 1.3),
    (67, 1.0),
    (65, 0.7),
]

SORT_KEYS = {
    "title": lambda a: a.title.lower(),
    "dueDate": lambda a: parse_timestamp(a.due_date),
    "priority": lambda a: PRIORITY_ORDER.get(a.priority, 0),
    "subject": lambda a: a.subject.lower(),
}


def completion_rate(assignments: list[Assignment]) -> int:
    if not assignments:
        return 0
    completed = sum(1 for a in assignments if a.status == "completed")
    # Halves round up: 1 of 8 is 13%.
    return math.floor(completed * 100 / len(assignments) + 0.5)


def grade_to_gpa(grade: float) -> float:
    for lower_bound, points in GPA_SCALE:
        if grade >= lower_bound:
            return points
    return 0.0


def calculate_gpa(subjects: list[Subject]) -> float:
    """Credit-weighted grade point average over subjects that have a grade."""
    graded = [s for s in subjects if s.current_grade is not None]
    total_credits = sum(s.credits for s in graded)
    if not graded or total_credits <= 0:
        return 0
    total_points = sum(grade_to_gpa(s.current_grade) * s.credits for s in graded)
    return total_points / total_credits


def average_grade(assignments: list[Assignment]) -> float:
    grades = [a.grade for a in assignments if a.grade]
    if not grades:
        return 0
    return sum(grades) / len(grades)


def filter_assignments(
    assignments: list[Assignment],
    query: str = "",
    subject: str = "all",
    status: str = "all",
    priority: str = "all",
) -> list[Assignment]:
    needle = query.lower()
    results = []
    for a in assignments:
        if needle and not (
            needle in a.title.lower() or needle in a.subject.lower() or needle in a.description.lower()
        ):
            continue
        if subject != "all" and a.subject != subject:
            continue
        if status != "all" and a.status != status:
            continue
        if priority != "all" and a.priority != priority:
            continue
        results.append(a)
    return results


def sort_assignments(
    assignments: list[Assignment], sort_by: str = "dueDate", descending: bool = False
) -> list[Assignment]:
    """Stable sort by title, dueDate, priority or subject; unknown keys keep input order."""
    key = SORT_KEYS.get(sort_by)
    if key is None:
        return list(assignments)
    return sorted(assignments, key=key, reverse=descending)


def overdue_count(assignments: list[Assignment], now: datetime | None = None) -> int:
    now = now or datetime.now()
    return sum(
        1 for a in assignments
        if a.status != "completed" and parse_timestamp(a.due_date) < now
    )


def upcoming_assignments(assignments: list[Assignment], limit: int = 5) -> list[Assignment]:
    pending = [a for a in assignments if a.status != "completed"]
    return sort_assignments(pending, "dueDate")[:limit]


def assignments_due_on(assignments: list[Assignment], day: date) -> list[Assignment]:
    return [a for a in assignments if is_same_day(a.due_date, day)]


def subject_assignments(assignments: list[Assignment], subject: Subject) -> list[Assignment]:
    """Assignments joined to ``subject`` by name (renamed subjects orphan theirs)."""
    return [a for a in assignments if a.subject == subject.name]


def subject_completion_rate(assignments: list[Assignment], subject: Subject) -> int:
    return completion_rate(subject_assignments(assignments, subject))


def subject_study_time(
    sessions: list[StudySession], assignments: list[Assignment], subject: Subject
) -> int:
    """Seconds studied for ``subject``.

    A session belongs to a subject through its linked assignment, whose
    subject is matched by name. Unlinked sessions, and sessions whose
    assignment is gone, count toward no subject.
    """
    linked = {a.id for a in subject_assignments(assignments, subject)}
    return sum(s.duration for s in sessions if s.assignment_id in linked)


def todays_sessions(sessions: list[StudySession], now: datetime | None = None) -> list[StudySession]:
    now = now or datetime.now()
    return [s for s in sessions if is_same_day(s.date, now)]


def todays_study_time(sessions: list[StudySession], now: datetime | None = None) -> int:
    """Seconds studied on the current local calendar day."""
    return sum(s.duration for s in todays_sessions(sessions, now))


def total_study_time(sessions: list[StudySession]) -> int:
    return sum(s.duration for s in sessions)


def average_session_length(sessions: list[StudySession]) -> int:
    if not sessions:
        return 0
    return total_study_time(sessions) // len(sessions)


def daily_goal_progress(seconds: int, target_hours: float = 4) -> float:
    """Percentage of a daily study target reached, capped at 100."""
    return min(seconds / (target_hours * 3600) * 100, 100)


def study_streak(sessions: list[StudySession], now: datetime | None = None) -> int:
    """Consecutive days with at least one session, ending today or yesterday."""
    days = {parse_timestamp(s.date).date() for s in sessions}
    day = (now or datetime.now()).date()
    if day not in days:
        day -= timedelta(days=1)
    streak = 0
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak
