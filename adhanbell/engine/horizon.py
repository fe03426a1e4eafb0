"""Rolling multi-day horizon extraction from monthly prayer tables."""

import logging
from datetime import date

from adhanbell.db.models import HorizonDay, HorizonResult, MonthlyPrayerTimes
from adhanbell.errors import PartialHorizonWarning

logger = logging.getLogger(__name__)


def crosses_month(monthly: MonthlyPrayerTimes, start_day: date, n: int) -> bool:
    """Whether an n-day horizon from start_day runs past the end of `monthly`."""
    return start_day.day + n - 1 > monthly.last_day


def extract_next_days(
    monthly: MonthlyPrayerTimes,
    start_day: date,
    n: int,
    following: MonthlyPrayerTimes | None = None,
) -> HorizonResult:
    """Extract the next `n` days of prayer times starting at `start_day`.

    Days past the end of `monthly` come from `following`, which the caller
    fetches. Without it the horizon is truncated at the month's last day and
    the result carries a PartialHorizonWarning; partial coverage beats none.

    Args:
        monthly: The month containing start_day
        start_day: First day of the horizon (inclusive)
        n: Horizon length in days
        following: The calendar month after `monthly`, if available

    Returns:
        HorizonResult with chronologically ordered, distinct days

    Raises:
        ValueError: on a non-positive n, a start_day outside `monthly`,
            or a `following` month that is not the next one
    """
    if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
        raise ValueError(f"Horizon length must be a positive integer, got {n!r}")

    if not monthly.contains(start_day):
        raise ValueError(
            f"{start_day.isoformat()} is not in {monthly.year}-{monthly.month:02d}"
        )

    if following is not None and (following.year, following.month) != monthly.following():
        raise ValueError(
            f"{following.year}-{following.month:02d} does not follow "
            f"{monthly.year}-{monthly.month:02d}"
        )

    days: list[HorizonDay] = []

    last_in_month = min(start_day.day + n - 1, monthly.last_day)
    for day in range(start_day.day, last_in_month + 1):
        days.append(HorizonDay(monthly.date_of(day), monthly.day(day)))

    remaining = n - len(days)
    if remaining == 0:
        return HorizonResult(tuple(days), requested=n)

    if following is None:
        warning = PartialHorizonWarning(n, len(days), monthly.following())
        logger.warning(str(warning))
        return HorizonResult(tuple(days), requested=n, warning=warning)

    # A horizon never spans more than two months unless n exceeds a month
    for day in range(1, min(remaining, following.last_day) + 1):
        days.append(HorizonDay(following.date_of(day), following.day(day)))

    if len(days) < n:
        warning = PartialHorizonWarning(n, len(days), following.following())
        logger.warning(str(warning))
        return HorizonResult(tuple(days), requested=n, warning=warning)

    return HorizonResult(tuple(days), requested=n)
