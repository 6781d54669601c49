"""Study timer that records focus sessions into the store."""
import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Optional

from study_planner.formatting import format_elapsed, generate_id, now_iso
from study_planner.models import StudySession

logger = logging.getLogger(__name__)

IDLE = "idle"
RUNNING = "running"
PAUSED = "paused"


class StudyTimer:
    """Idle -> running <-> paused -> idle state machine over one in-flight session.

    While running, a daemon ticker thread calls ``tick()`` once per
    ``tick_interval`` seconds. The ticker is stopped whenever the running
    state is left. Pass ``autostart_ticker=False`` to drive ``tick()`` by hand.
    """

    def __init__(self, store, autostart_ticker: bool = True, tick_interval: float = 1.0):
        self.store = store
        self.autostart_ticker = autostart_ticker
        self.tick_interval = tick_interval
        self.state = IDLE
        self.elapsed = 0
        self.session: Optional[StudySession] = None
        self._lock = threading.Lock()
        self._stop: Optional[threading.Event] = None

    @property
    def display(self) -> str:
        return format_elapsed(self.elapsed)

    def start(self, assignment_id: str | None = None, now: datetime | None = None) -> StudySession:
        with self._lock:
            if self.session is None:
                self.session = StudySession(
                    id=generate_id(),
                    assignment_id=assignment_id or None,
                    date=now_iso(now),
                )
            self.state = RUNNING
        if self.autostart_ticker:
            self._start_ticker()
        return self.session

    def pause(self) -> None:
        self._stop_ticker()
        with self._lock:
            if self.state == RUNNING:
                self.state = PAUSED

    def reset(self) -> StudySession | None:
        """Commit the in-flight session with the elapsed seconds and go idle."""
        self._stop_ticker()
        with self._lock:
            elapsed, self.elapsed = self.elapsed, 0
            session, self.session = self.session, None
            self.state = IDLE
        if session is None:
            return None
        committed = replace(session, duration=elapsed)
        self.store.save_study_session(committed)
        logger.info("Committed study session %s (%s)", committed.id, format_elapsed(elapsed))
        return committed

    def preload(self, minutes: int) -> None:
        """Set the counter to a preset length without starting the timer."""
        with self._lock:
            self.elapsed = minutes * 60

    def tick(self) -> None:
        self._advance()

    def close(self) -> None:
        """Stop ticking without committing; used on teardown."""
        self._stop_ticker()

    def _start_ticker(self) -> None:
        self._stop_ticker()
        stop = threading.Event()
        self._stop = stop
        threading.Thread(target=self._run, args=(stop,), daemon=True).start()

    def _stop_ticker(self) -> None:
        if self._stop is not None:
            self._stop.set()
            self._stop = None

    def _run(self, stop: threading.Event) -> None:
        while not stop.wait(self.tick_interval):
            self._advance(stop)

    def _advance(self, stop: threading.Event | None = None) -> None:
        with self._lock:
            # A ticker stopped by pause/reset must not count into the next run.
            if stop is not None and stop.is_set():
                return
            if self.state == RUNNING:
                self.elapsed += 1
