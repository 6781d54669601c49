"""Deadline reminders delivered through a host notifier.

Pending reminders live only in memory; they are lost if the process exits
before they fire.
"""
import logging
import threading
from datetime import datetime, timedelta

from rich.console import Console

from study_planner.formatting import parse_timestamp
from study_planner.models import Assignment

logger = logging.getLogger(__name__)

GRANTED = "granted"
DENIED = "denied"
DEFAULT = "default"

DEFAULT_LEAD = timedelta(hours=24)


class Notifier:
    """Host notification capability."""

    def request_permission(self) -> str:
        raise NotImplementedError

    def notify(self, title: str, body: str, tag: str) -> None:
        raise NotImplementedError


class NullNotifier(Notifier):
    """For hosts without notifications: permission is denied, notify does nothing."""

    def request_permission(self) -> str:
        return DENIED

    def notify(self, title: str, body: str, tag: str) -> None:
        pass


class ConsoleNotifier(Notifier):
    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def request_permission(self) -> str:
        return GRANTED

    def notify(self, title: str, body: str, tag: str) -> None:
        self.console.print(f"\n[bold yellow]{title}:[/bold yellow] {body}")


def fire_time(assignment: Assignment, lead: timedelta = DEFAULT_LEAD) -> datetime:
    return parse_timestamp(assignment.due_date) - lead


def reminder_tag(assignment_id: str) -> str:
    return f"assignment-{assignment_id}"


class ReminderScheduler:
    def __init__(self, notifier: Notifier, lead: timedelta = DEFAULT_LEAD):
        self.notifier = notifier
        self.lead = lead
        self.permission = DEFAULT
        self._pending: dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def request_permission(self) -> bool:
        self.permission = self.notifier.request_permission()
        return self.permission == GRANTED

    def schedule(self, assignment: Assignment, now: datetime | None = None) -> datetime | None:
        """Arm a one-shot reminder ``lead`` before the due date.

        Returns the fire time, or None when permission is missing or the
        fire time has already passed.
        """
        if self.permission != GRANTED:
            return None
        when = fire_time(assignment, self.lead)
        delay = (when - (now or datetime.now())).total_seconds()
        if delay <= 0:
            return None
        tag = reminder_tag(assignment.id)
        self.cancel(assignment.id)
        timer = threading.Timer(
            delay,
            self._fire,
            args=(tag, "Assignment Due Tomorrow", f"{assignment.title} is due tomorrow in {assignment.subject}"),
        )
        timer.daemon = True
        with self._lock:
            self._pending[tag] = timer
        timer.start()
        logger.debug("Reminder %s scheduled for %s", tag, when.isoformat())
        return when

    def cancel(self, assignment_id: str) -> None:
        with self._lock:
            timer = self._pending.pop(reminder_tag(assignment_id), None)
        if timer is not None:
            timer.cancel()

    def cancel_all(self) -> None:
        with self._lock:
            timers = list(self._pending.values())
            self._pending.clear()
        for timer in timers:
            timer.cancel()

    @property
    def pending(self) -> list[str]:
        with self._lock:
            return list(self._pending)

    def _fire(self, tag: str, title: str, body: str) -> None:
        with self._lock:
            # A superseded timer that fires late must not drop its replacement.
            if self._pending.get(tag) is threading.current_thread():
                del self._pending[tag]
        self.notifier.notify(title, body, tag)
