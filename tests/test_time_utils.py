"""Tests for time utilities."""

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

import pytest

from adhanbell.utils.time_utils import (
    at_local,
    format_duration,
    format_time_until,
    next_month,
    parse_hhmm,
    seconds_since_midnight,
    to_local,
)


def test_parse_hhmm():
    """Test plain and annotated time strings."""
    assert parse_hhmm("05:40") == time(5, 40)
    assert parse_hhmm("5:40") == time(5, 40)
    assert parse_hhmm("05:40 (+08)") == time(5, 40)
    assert parse_hhmm("19:07 (SGT)") == time(19, 7)


def test_parse_hhmm_invalid():
    """Test rejection of garbage and out-of-range values."""
    for value in ["", "noon", "25:00", "12:60", "1240"]:
        with pytest.raises(ValueError):
            parse_hhmm(value)


def test_to_local():
    """Test timezone conversion to local time."""
    dt = datetime(2026, 3, 15, 0, 30, tzinfo=ZoneInfo("UTC"))
    local = to_local(dt, "Asia/Singapore")

    assert local.tzinfo == ZoneInfo("Asia/Singapore")
    assert local.hour == 8  # SGT is UTC+8


def test_to_local_naive():
    """Test naive datetimes are taken as local wall-clock time."""
    local = to_local(datetime(2026, 3, 15, 14, 0), "Asia/Singapore")

    assert local.hour == 14
    assert local.tzinfo == ZoneInfo("Asia/Singapore")


def test_at_local():
    """Test building an aware datetime for a prayer on a day."""
    dt = at_local(date(2026, 10, 19), time(13, 5), "Asia/Singapore")

    assert dt == datetime(2026, 10, 19, 5, 5, tzinfo=ZoneInfo("UTC"))


def test_seconds_since_midnight():
    """Test day offsets."""
    assert seconds_since_midnight(time(0, 0)) == 0
    assert seconds_since_midnight(time(13, 5, 30)) == 13 * 3600 + 5 * 60 + 30


def test_next_month():
    """Test month rollover, including December."""
    assert next_month(2026, 9) == (2026, 10)
    assert next_month(2026, 12) == (2027, 1)


def test_format_time_until():
    """Test countdown formatting."""
    assert format_time_until(timedelta(hours=2, minutes=20)) == "2 hr 20 min"
    assert format_time_until(timedelta(minutes=45, seconds=59)) == "0 hr 45 min"
    assert format_time_until(timedelta(seconds=-5)) == "0 hr 0 min"


def test_format_duration():
    """Test duration formatting."""
    assert format_duration(0) == "off"
    assert format_duration(1) == "1 minute"
    assert format_duration(15) == "15 minutes"
    assert format_duration(60) == "1 hour"
    assert format_duration(90) == "1.5 hours"
    assert format_duration(120) == "2 hours"
