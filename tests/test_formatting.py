# tests/test_formatting.py
from datetime import date, datetime, timedelta, timezone

import pytest

from study_planner.formatting import (
    format_duration, format_elapsed, generate_id, is_same_day, parse_timestamp,
    time_until_due, to_csv, week_dates,
)

NOW = datetime(2030, 5, 15, 12, 0, 0)


def test_format_elapsed():
    assert format_elapsed(0) == "00:00:00"
    assert format_elapsed(3) == "00:00:03"
    assert format_elapsed(25 * 60) == "00:25:00"
    assert format_elapsed(3661) == "01:01:01"


def test_format_elapsed_hours_not_capped():
    assert format_elapsed(100 * 3600 + 5) == "100:00:05"


@pytest.mark.parametrize("minutes,expected", [
    (0, "0m"),
    (45, "45m"),
    (60, "1h"),
    (120, "2h"),
    (90, "1h 30m"),
])
def test_format_duration(minutes, expected):
    assert format_duration(minutes) == expected


def test_time_until_due_days():
    assert time_until_due(NOW + timedelta(hours=25), NOW) == "1 day"
    assert time_until_due(NOW + timedelta(days=3, hours=5), NOW) == "3 days"


def test_time_until_due_hours():
    assert time_until_due(NOW + timedelta(minutes=90), NOW) == "1 hour"
    assert time_until_due(NOW + timedelta(hours=5, minutes=59), NOW) == "5 hours"


def test_time_until_due_minutes():
    assert time_until_due(NOW + timedelta(minutes=10), NOW) == "10 minutes"
    assert time_until_due(NOW + timedelta(minutes=1, seconds=30), NOW) == "1 minute"


def test_time_until_due_overdue():
    assert time_until_due(NOW - timedelta(seconds=1), NOW) == "Overdue"
    assert time_until_due("2000-01-01T00:00:00", NOW) == "Overdue"


def test_time_until_due_accepts_iso_strings():
    assert time_until_due((NOW + timedelta(days=2)).isoformat(), NOW) == "2 days"


def test_parse_timestamp_handles_zulu_suffix():
    parsed = parse_timestamp("2030-05-15T12:00:00.000Z")
    expected = datetime(2030, 5, 15, 12, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
    assert parsed == expected
    assert parsed.tzinfo is None


def test_parse_timestamp_date_only():
    assert parse_timestamp("2030-05-15") == datetime(2030, 5, 15)
    assert parse_timestamp(date(2030, 5, 15)) == datetime(2030, 5, 15)


def test_is_same_day():
    assert is_same_day("2030-05-15T00:01:00", "2030-05-15T23:59:00")
    assert not is_same_day("2030-05-15T23:59:00", "2030-05-16T00:00:00")


def test_week_dates_sunday_start():
    days = week_dates(date(2030, 5, 15))  # a Wednesday
    assert len(days) == 7
    assert days[0] == date(2030, 5, 12)
    assert days[0].isoweekday() == 7
    assert days[-1] == date(2030, 5, 18)


def test_week_dates_monday_start():
    days = week_dates(date(2030, 5, 12), week_starts_on=1)  # a Sunday
    assert days[0] == date(2030, 5, 6)
    assert days[-1] == date(2030, 5, 12)


def test_generate_id_is_unique():
    ids = {generate_id() for _ in range(200)}
    assert len(ids) == 200


def test_to_csv_headers_from_first_record():
    rows = [
        {"title": "Essay", "estimatedTime": 60, "reminderSet": False},
        {"title": "Lab", "estimatedTime": 30, "reminderSet": True},
    ]
    assert to_csv(rows) == "title,estimatedTime,reminderSet\nEssay,60,false\nLab,30,true"


def test_to_csv_quotes_only_values_with_commas():
    rows = [{"title": "Read ch. 1, 2", "notes": 'say "hi"'}]
    lines = to_csv(rows).split("\n")
    assert lines[1] == '"Read ch. 1, 2",say "hi"'


def test_to_csv_missing_fields_and_lists():
    rows = [{"title": "A", "tags": ["x", "y"], "grade": 90}, {"title": "B"}]
    lines = to_csv(rows).split("\n")
    assert lines[1] == 'A,"["x", "y"]",90'
    assert lines[2] == "B,,"


def test_to_csv_empty():
    assert to_csv([]) == ""
