"""Persistence manager for planner collections.

Each collection lives under one key of the ``kv_store`` table as a JSON
array, and every mutation rewrites the whole array. Storage is best-effort:
read failures yield an empty collection and write failures are logged and
recorded in ``EntityStore.last_error`` instead of being raised.
"""
import json
import logging
import sqlite3
from dataclasses import replace

from study_planner.db import DEFAULT_DB_PATH, delete_value, get_value, init_db, set_value
from study_planner.formatting import now_iso
from study_planner.models import Assignment, StudyGoal, StudySession, Subject, UserSettings

logger = logging.getLogger(__name__)

KEY_PREFIX = "studyplanner_"

ASSIGNMENTS = "assignments"
SUBJECTS = "subjects"
STUDY_SESSIONS = "studySessions"
STUDY_GOALS = "studyGoals"
SETTINGS = "settings"

COLLECTIONS = {
    ASSIGNMENTS: Assignment,
    SUBJECTS: Subject,
    STUDY_SESSIONS: StudySession,
    STUDY_GOALS: StudyGoal,
}
ALL_KEYS = (ASSIGNMENTS, SUBJECTS, STUDY_SESSIONS, STUDY_GOALS, SETTINGS)

# Errors a malformed stored value can raise while being decoded into records.
_PARSE_ERRORS = (ValueError, TypeError, KeyError, AttributeError)


def storage_key(name: str) -> str:
    return f"{KEY_PREFIX}{name}"


class EntityStore:
    """CRUD, import and export for every planner collection."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path
        self.last_error: Exception | None = None
        init_db(db_path)

    # -- substrate -----------------------------------------------------

    def _read(self, name: str):
        try:
            raw = get_value(self.db_path, storage_key(name))
        except sqlite3.Error as e:
            logger.error("Error loading %s: %s", name, e)
            self.last_error = e
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.error("Error loading %s: %s", name, e)
            self.last_error = e
            return None

    def _write(self, name: str, payload) -> None:
        try:
            set_value(self.db_path, storage_key(name), json.dumps(payload))
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.exception("Error saving %s", name)
            self.last_error = e
        else:
            self.last_error = None

    def _load(self, name: str) -> list:
        data = self._read(name)
        if data is None:
            return []
        record_cls = COLLECTIONS[name]
        try:
            return [record_cls.from_dict(item) for item in data]
        except _PARSE_ERRORS as e:
            logger.error("Error loading %s: %s", name, e)
            self.last_error = e
            return []

    def _store(self, name: str, records: list) -> None:
        self._write(name, [r.to_dict() for r in records])

    def _upsert(self, name: str, record, stamp: bool = False) -> None:
        records = self._load(name)
        for i, existing in enumerate(records):
            if existing.id == record.id:
                records[i] = replace(record, updated_at=now_iso()) if stamp else record
                break
        else:
            records.append(record)
        self._store(name, records)

    def _delete(self, name: str, record_id: str) -> None:
        records = [r for r in self._load(name) if r.id != record_id]
        self._store(name, records)

    # -- assignments ---------------------------------------------------

    def get_assignments(self) -> list[Assignment]:
        return self._load(ASSIGNMENTS)

    def get_assignment(self, assignment_id: str) -> Assignment | None:
        return next((a for a in self.get_assignments() if a.id == assignment_id), None)

    def save_assignment(self, assignment: Assignment) -> None:
        """Upsert by id; replacing an existing record refreshes ``updated_at``."""
        self._upsert(ASSIGNMENTS, assignment, stamp=True)
        logger.debug("Saved assignment %s", assignment.id)

    def delete_assignment(self, assignment_id: str) -> None:
        self._delete(ASSIGNMENTS, assignment_id)

    # -- subjects ------------------------------------------------------

    def get_subjects(self) -> list[Subject]:
        return self._load(SUBJECTS)

    def save_subject(self, subject: Subject) -> None:
        self._upsert(SUBJECTS, subject)

    def delete_subject(self, subject_id: str) -> None:
        # Assignments keep the subject name and are not touched.
        self._delete(SUBJECTS, subject_id)

    # -- study sessions ------------------------------------------------

    def get_study_sessions(self) -> list[StudySession]:
        return self._load(STUDY_SESSIONS)

    def save_study_session(self, session: StudySession) -> None:
        """Append a finished session; sessions are never revised."""
        sessions = self._load(STUDY_SESSIONS)
        sessions.append(session)
        self._store(STUDY_SESSIONS, sessions)
        logger.debug("Recorded study session %s (%ss)", session.id, session.duration)

    # -- study goals ---------------------------------------------------

    def get_study_goals(self) -> list[StudyGoal]:
        return self._load(STUDY_GOALS)

    def save_study_goal(self, goal: StudyGoal) -> None:
        self._upsert(STUDY_GOALS, goal)

    def delete_study_goal(self, goal_id: str) -> None:
        self._delete(STUDY_GOALS, goal_id)

    # -- settings ------------------------------------------------------

    def get_settings(self) -> UserSettings:
        data = self._read(SETTINGS)
        if data is None:
            return UserSettings()
        try:
            return UserSettings.from_dict(data)
        except _PARSE_ERRORS as e:
            logger.error("Error loading settings: %s", e)
            self.last_error = e
            return UserSettings()

    def save_settings(self, settings: UserSettings) -> None:
        self._write(SETTINGS, settings.to_dict())

    # -- bulk ----------------------------------------------------------

    def export_snapshot(self) -> str:
        """Serialize every collection plus settings as pretty-printed JSON."""
        data = {
            ASSIGNMENTS: [a.to_dict() for a in self.get_assignments()],
            SUBJECTS: [s.to_dict() for s in self.get_subjects()],
            STUDY_SESSIONS: [s.to_dict() for s in self.get_study_sessions()],
            STUDY_GOALS: [g.to_dict() for g in self.get_study_goals()],
            SETTINGS: self.get_settings().to_dict(),
            "exportedAt": now_iso(),
        }
        return json.dumps(data, indent=2)

    def import_snapshot(self, text: str) -> bool:
        """Replace each collection present in an exported bundle.

        Returns False without writing anything when the text does not parse
        as a JSON object. Keys missing from the bundle are left untouched.
        """
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as e:
            logger.error("Import failed: %s", e)
            self.last_error = e
            return False
        if not isinstance(data, dict):
            logger.error("Import failed: expected an object, got %s", type(data).__name__)
            return False
        for name in ALL_KEYS:
            if data.get(name) is not None:
                self._write(name, data[name])
        logger.info("Imported %s", ", ".join(k for k in ALL_KEYS if data.get(k) is not None) or "nothing")
        return True

    def clear(self) -> None:
        """Remove every collection and the settings."""
        for name in ALL_KEYS:
            try:
                delete_value(self.db_path, storage_key(name))
            except sqlite3.Error as e:
                logger.exception("Error clearing %s", name)
                self.last_error = e
