"""Current/next prayer window resolution."""

from datetime import datetime, timedelta
from typing import Mapping

from adhanbell.db.models import PRAYER_ORDER, DailyPrayerTimes, PrayerName, PrayerWindow
from adhanbell.utils.time_utils import seconds_since_midnight

DAY_SECONDS = 24 * 3600


def resolve(daily: DailyPrayerTimes | Mapping[str, str], now: datetime) -> PrayerWindow:
    """Determine the prayer window containing `now`.

    The six entries form a cycle: the current prayer is the latest entry at
    or before `now`, the next prayer is the one after it. Before Subuh the
    current prayer is the previous day's Isyak; after Isyak the next prayer
    is tomorrow's Subuh. Gaps across midnight are computed from day-relative
    offsets, so `daily` only ever needs to describe the day containing `now`.

    Args:
        daily: Today's prayer times, or a raw name -> "HH:MM" mapping
        now: Reference instant; its own wall clock is used

    Returns:
        PrayerWindow with current, next, and the time until next

    Raises:
        MalformedScheduleError: if `daily` is incomplete or out of order
    """
    if not isinstance(daily, DailyPrayerTimes):
        daily = DailyPrayerTimes.from_strings(daily)

    now_offset = seconds_since_midnight(now) + now.microsecond / 1_000_000
    offsets = [seconds_since_midnight(daily[p]) for p in PRAYER_ORDER]

    # Latest entry at or before now; -1 means before Subuh
    index = -1
    for i, offset in enumerate(offsets):
        if offset <= now_offset:
            index = i

    if index == -1:
        current = PrayerName.ISYAK
        next_prayer = PrayerName.SUBUH
        seconds_until = offsets[0] - now_offset
    elif index == len(PRAYER_ORDER) - 1:
        current = PrayerName.ISYAK
        next_prayer = PrayerName.SUBUH
        seconds_until = (DAY_SECONDS - now_offset) + offsets[0]
    else:
        current = PRAYER_ORDER[index]
        next_prayer = PRAYER_ORDER[index + 1]
        seconds_until = offsets[index + 1] - now_offset

    time_until_next = timedelta(seconds=seconds_until)
    return PrayerWindow(
        current=current,
        next=next_prayer,
        time_until_next=time_until_next,
        next_at=now + time_until_next,
    )
