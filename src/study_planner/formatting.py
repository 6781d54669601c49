"""Formatting helpers for durations, deadlines, timestamps and CSV output."""
import json
import uuid
from datetime import date, datetime, timedelta


def generate_id() -> str:
    return uuid.uuid4().hex[:12]


def now_iso(now: datetime | None = None) -> str:
    return (now or datetime.now()).isoformat()


def parse_timestamp(value) -> datetime:
    """Parse an ISO-8601 string (or pass a datetime through) as naive local time.

    Accepts the trailing ``Z`` that JavaScript's ``toISOString`` writes.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def format_elapsed(seconds: int) -> str:
    """Render seconds as zero-padded HH:MM:SS (hours are not capped at 24)."""
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_duration(minutes: int) -> str:
    hours, mins = divmod(int(minutes), 60)
    if hours == 0:
        return f"{mins}m"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def time_until_due(due_date, now: datetime | None = None) -> str:
    """Label the time left before a deadline using its coarsest non-zero unit."""
    now = now or datetime.now()
    diff = parse_timestamp(due_date) - now
    if diff < timedelta(0):
        return "Overdue"
    total_minutes = int(diff.total_seconds() // 60)
    days, rest = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(rest, 60)
    if days > 0:
        return _plural(days, "day")
    if hours > 0:
        return _plural(hours, "hour")
    return _plural(minutes, "minute")


def is_same_day(a, b) -> bool:
    return parse_timestamp(a).date() == parse_timestamp(b).date()


def week_dates(day: date, week_starts_on: int = 0) -> list[date]:
    """The seven dates of the week containing ``day``; 0 = Sunday start."""
    offset = (day.isoweekday() % 7 - week_starts_on) % 7
    start = day - timedelta(days=offset)
    return [start + timedelta(days=i) for i in range(7)]


def _csv_value(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, dict)):
        value = json.dumps(value)
    if isinstance(value, str):
        # Only comma-bearing strings are quoted; embedded quotes and newlines pass through.
        return f'"{value}"' if "," in value else value
    return str(value)


def to_csv(records: list[dict]) -> str:
    """Render records as CSV text, with headers taken from the first record."""
    if not records:
        return ""
    headers = list(records[0].keys())
    lines = [",".join(headers)]
    for row in records:
        lines.append(",".join(_csv_value(row.get(h)) for h in headers))
    return "\n".join(lines)
