"""Data classes for the planner domain model.

Records are kept with snake_case attributes and ISO-8601 timestamp strings.
The persisted and exported form uses camelCase keys, so ``to_dict`` and
``from_dict`` translate between the two.
"""
from dataclasses import dataclass, field, fields
from typing import Optional

PRIORITIES = ("low", "medium", "high")
STATUSES = ("pending", "in-progress", "completed")
GOAL_TYPES = ("daily", "weekly", "monthly", "custom")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _dump(value):
    if isinstance(value, Record):
        return value.to_dict()
    if isinstance(value, list):
        return [_dump(v) for v in value]
    return value


class Record:
    """Mixin giving dataclasses camelCase dict (de)serialization."""

    # field name -> nested Record class (applied to each item of list values)
    _nested: dict = {}

    def to_dict(self) -> dict:
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            data[_camel(f.name)] = _dump(value)
        return data

    @classmethod
    def from_dict(cls, data: dict):
        kwargs = {}
        for f in fields(cls):
            key = _camel(f.name)
            if key not in data:
                continue
            value = data[key]
            nested = cls._nested.get(f.name)
            if nested is not None and value is not None:
                if isinstance(value, list):
                    value = [nested.from_dict(v) for v in value]
                else:
                    value = nested.from_dict(value)
            kwargs[f.name] = value
        return cls(**kwargs)


@dataclass
class FileAttachment(Record):
    id: str
    name: str
    size: int = 0
    type: str = ""
    url: str = ""
    uploaded_at: str = ""


@dataclass
class Assignment(Record):
    id: str
    title: str
    subject: str
    due_date: str
    priority: str = "medium"
    status: str = "pending"
    description: str = ""
    estimated_time: int = 60
    actual_time: Optional[int] = None
    grade: Optional[float] = None
    attachments: list = field(default_factory=list)
    tags: list = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""
    completed_at: Optional[str] = None
    notes: str = ""
    dependencies: Optional[list] = None
    reminder_set: bool = False
    reminder_time: Optional[str] = None

    _nested = {"attachments": FileAttachment}


@dataclass
class ClassSchedule(Record):
    day: str
    start_time: str
    end_time: str
    location: Optional[str] = None


@dataclass
class Subject(Record):
    id: str
    name: str
    color: str = "blue"
    teacher: str = ""
    credits: int = 3
    current_grade: Optional[float] = None
    target_grade: Optional[float] = None
    room: Optional[str] = None
    schedule: list = field(default_factory=list)
    syllabus: Optional[str] = None
    created_at: str = ""

    _nested = {"schedule": ClassSchedule}


@dataclass
class StudySession(Record):
    id: str
    date: str
    assignment_id: Optional[str] = None
    subject_id: Optional[str] = None
    duration: int = 0  # seconds
    notes: str = ""
    type: str = "focused"
    productivity: int = 5
    distractions: int = 0


@dataclass
class StudyGoal(Record):
    id: str
    title: str
    target_value: float
    description: str = ""
    current_value: float = 0
    unit: str = ""
    deadline: str = ""
    type: str = "custom"
    is_completed: bool = False
    created_at: str = ""


@dataclass
class NotificationSettings(Record):
    assignments: bool = True
    study_reminders: bool = True
    goals: bool = True
    email: bool = False
    push: bool = False


@dataclass
class StudyPreferences(Record):
    pomodoro_length: int = 25
    short_break_length: int = 5
    long_break_length: int = 15
    auto_start_breaks: bool = False
    auto_start_pomodoros: bool = False


@dataclass
class UserSettings(Record):
    theme: str = "dark"
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    study_preferences: StudyPreferences = field(default_factory=StudyPreferences)
    default_view: str = "dashboard"
    time_format: str = "12h"
    week_starts_on: int = 0  # 0 = Sunday
    language: str = "en"

    _nested = {"notifications": NotificationSettings, "study_preferences": StudyPreferences}
