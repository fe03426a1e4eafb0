"""Tests for horizon extraction."""

import calendar
from datetime import date

import pytest

from adhanbell.db.models import DailyPrayerTimes, MonthlyPrayerTimes
from adhanbell.engine.horizon import crosses_month, extract_next_days
from adhanbell.errors import MalformedScheduleError, PartialHorizonWarning

SAMPLE = {
    "Subuh": "05:10",
    "Syuruk": "06:30",
    "Zohor": "13:05",
    "Asar": "16:20",
    "Maghrib": "19:10",
    "Isyak": "20:25",
}


def _monthly(year: int, month: int) -> MonthlyPrayerTimes:
    days = calendar.monthrange(year, month)[1]
    return MonthlyPrayerTimes.from_mapping(year, month, {d: SAMPLE for d in range(1, days + 1)})


def test_extract_within_month():
    """Five days inside one month."""
    horizon = extract_next_days(_monthly(2026, 10), date(2026, 10, 1), 5)

    assert len(horizon) == 5
    assert horizon.dates() == [date(2026, 10, d) for d in range(1, 6)]
    assert horizon.warning is None
    assert not horizon.is_partial


def test_extract_is_ordered_without_duplicates():
    """Dates are strictly increasing."""
    horizon = extract_next_days(_monthly(2026, 10), date(2026, 10, 10), 7)
    dates = horizon.dates()

    assert dates == sorted(set(dates))
    assert len(dates) == 7


def test_extract_across_month_boundary():
    """Day 29 of a 30-day month, n=5, spills into the next month."""
    september = _monthly(2026, 9)
    october = _monthly(2026, 10)

    assert crosses_month(september, date(2026, 9, 29), 5)

    horizon = extract_next_days(september, date(2026, 9, 29), 5, following=october)

    assert horizon.dates() == [
        date(2026, 9, 29),
        date(2026, 9, 30),
        date(2026, 10, 1),
        date(2026, 10, 2),
        date(2026, 10, 3),
    ]
    assert horizon.warning is None


def test_extract_truncates_without_next_month():
    """Only the current month available: two days plus a warning."""
    horizon = extract_next_days(_monthly(2026, 9), date(2026, 9, 29), 5)

    assert horizon.dates() == [date(2026, 9, 29), date(2026, 9, 30)]
    assert isinstance(horizon.warning, PartialHorizonWarning)
    assert horizon.warning.requested == 5
    assert horizon.warning.available == 2
    assert horizon.warning.missing_month == (2026, 10)


def test_extract_across_year_boundary():
    """December rolls into January of the next year."""
    horizon = extract_next_days(
        _monthly(2026, 12), date(2026, 12, 30), 3, following=_monthly(2027, 1)
    )

    assert horizon.dates() == [date(2026, 12, 30), date(2026, 12, 31), date(2027, 1, 1)]


def test_extract_is_idempotent():
    """Same inputs, same output."""
    september = _monthly(2026, 9)
    october = _monthly(2026, 10)

    first = extract_next_days(september, date(2026, 9, 28), 5, following=october)
    second = extract_next_days(september, date(2026, 9, 28), 5, following=october)

    assert first == second


def test_extract_rejects_bad_arguments():
    """Non-positive n, foreign start days, and wrong following months."""
    october = _monthly(2026, 10)

    with pytest.raises(ValueError):
        extract_next_days(october, date(2026, 10, 1), 0)

    with pytest.raises(ValueError):
        extract_next_days(october, date(2026, 11, 1), 5)

    with pytest.raises(ValueError):
        extract_next_days(october, date(2026, 10, 30), 5, following=_monthly(2026, 12))


def test_monthly_ingestion_requires_every_day():
    """A gap in the day index is rejected at ingestion."""
    entries = {d: SAMPLE for d in range(1, 31) if d != 15}

    with pytest.raises(MalformedScheduleError):
        MonthlyPrayerTimes.from_mapping(2026, 9, entries)


def test_monthly_ingestion_accepts_string_keys():
    """JSON-decoded day keys are strings."""
    entries = {str(d): SAMPLE for d in range(1, 31)}
    monthly = MonthlyPrayerTimes.from_mapping(2026, 9, entries)

    assert monthly.last_day == 30
    assert monthly.day(30) == DailyPrayerTimes.from_strings(SAMPLE)
