"""Data models."""

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterable, Literal, Mapping

from adhanbell.errors import MalformedScheduleError, PartialHorizonWarning
from adhanbell.utils.constants import DEFAULT_ADHAN, DEFAULT_REMINDER_LEAD_MINUTES
from adhanbell.utils.time_utils import format_hhmm, next_month, parse_hhmm


class PrayerName(Enum):
    """Named prayer instants, declared in chronological order within a day."""

    SUBUH = "Subuh"
    SYURUK = "Syuruk"
    ZOHOR = "Zohor"
    ASAR = "Asar"
    MAGHRIB = "Maghrib"
    ISYAK = "Isyak"

    @classmethod
    def ordered(cls) -> list["PrayerName"]:
        return list(cls)

    @classmethod
    def parse(cls, value: "str | PrayerName") -> "PrayerName":
        """Look up a prayer by name, case-insensitively."""
        if isinstance(value, PrayerName):
            return value
        for prayer in cls:
            if prayer.value.lower() == str(value).strip().lower():
                return prayer
        raise ValueError(f"Unknown prayer: {value!r}")

    def __str__(self) -> str:
        return self.value


PRAYER_ORDER = PrayerName.ordered()


@dataclass(frozen=True)
class DailyPrayerTimes:
    """The six prayer wall-clock times of one civil day."""

    times: Mapping[PrayerName, time]

    def __post_init__(self) -> None:
        missing = [p.value for p in PRAYER_ORDER if p not in self.times]
        if missing:
            raise MalformedScheduleError(f"Missing prayer entries: {', '.join(missing)}")

        for earlier, later in zip(PRAYER_ORDER, PRAYER_ORDER[1:]):
            if self.times[earlier] > self.times[later]:
                raise MalformedScheduleError(
                    f"{earlier.value} ({format_hhmm(self.times[earlier])}) is after "
                    f"{later.value} ({format_hhmm(self.times[later])})"
                )

        # Freeze into canonical order
        object.__setattr__(self, "times", {p: self.times[p] for p in PRAYER_ORDER})

    @classmethod
    def from_strings(cls, entries: Mapping[str, str]) -> "DailyPrayerTimes":
        """Build from a name -> "HH:MM" mapping (names are case-insensitive)."""
        times: dict[PrayerName, time] = {}
        for name, value in entries.items():
            try:
                prayer = PrayerName.parse(name)
            except ValueError:
                continue  # extra keys such as "date" or "Midnight"
            try:
                times[prayer] = parse_hhmm(value)
            except ValueError as e:
                raise MalformedScheduleError(f"{prayer.value}: {e}") from e
        return cls(times)

    def __getitem__(self, prayer: PrayerName) -> time:
        return self.times[prayer]

    def items(self):
        return self.times.items()

    def to_strings(self) -> dict[str, str]:
        return {p.value: format_hhmm(t) for p, t in self.times.items()}


@dataclass(frozen=True)
class MonthlyPrayerTimes:
    """Prayer times for every day of one (year, month), ordered by day."""

    year: int
    month: int
    days: tuple[DailyPrayerTimes, ...]

    def __post_init__(self) -> None:
        expected = calendar.monthrange(self.year, self.month)[1]
        if len(self.days) != expected:
            raise MalformedScheduleError(
                f"{self.year}-{self.month:02d} has {expected} days, got {len(self.days)}"
            )

    @classmethod
    def from_mapping(
        cls, year: int, month: int, entries: Mapping[int, "DailyPrayerTimes | Mapping[str, str]"]
    ) -> "MonthlyPrayerTimes":
        """Ingest a day-of-month keyed mapping, checking every day is present."""
        expected = calendar.monthrange(year, month)[1]
        try:
            keyed = {int(day): value for day, value in entries.items()}
        except ValueError as e:
            raise MalformedScheduleError(f"{year}-{month:02d}: bad day key: {e}") from e

        missing = [d for d in range(1, expected + 1) if d not in keyed]
        extra = sorted(d for d in keyed if not 1 <= d <= expected)
        if missing or extra:
            raise MalformedScheduleError(
                f"{year}-{month:02d}: missing days {missing or '-'}, unexpected days {extra or '-'}"
            )

        days = []
        for day in range(1, expected + 1):
            value = keyed[day]
            if not isinstance(value, DailyPrayerTimes):
                if not isinstance(value, Mapping):
                    raise MalformedScheduleError(f"{year}-{month:02d}-{day:02d}: not a prayer mapping")
                try:
                    value = DailyPrayerTimes.from_strings(value)
                except MalformedScheduleError as e:
                    raise MalformedScheduleError(f"{year}-{month:02d}-{day:02d}: {e}") from e
            days.append(value)

        return cls(year, month, tuple(days))

    @property
    def last_day(self) -> int:
        return len(self.days)

    def day(self, day_of_month: int) -> DailyPrayerTimes:
        if not 1 <= day_of_month <= self.last_day:
            raise KeyError(day_of_month)
        return self.days[day_of_month - 1]

    def date_of(self, day_of_month: int) -> date:
        return date(self.year, self.month, day_of_month)

    def contains(self, day: date) -> bool:
        return day.year == self.year and day.month == self.month

    def following(self) -> tuple[int, int]:
        return next_month(self.year, self.month)

    def to_mapping(self) -> dict[str, dict[str, str]]:
        """JSON-friendly form used by the cache."""
        return {str(i): daily.to_strings() for i, daily in enumerate(self.days, start=1)}


@dataclass(frozen=True)
class NotificationPreferences:
    """The notification settings the coordinator tracks."""

    muted: frozenset[PrayerName] = frozenset()
    selected_adhan: str = DEFAULT_ADHAN
    reminder_lead_minutes: int = DEFAULT_REMINDER_LEAD_MINUTES

    def __post_init__(self) -> None:
        if self.reminder_lead_minutes < 0:
            raise ValueError("reminder_lead_minutes must be >= 0")

    @classmethod
    def create(
        cls,
        muted: "bool | Iterable[str | PrayerName]" = (),
        selected_adhan: str = DEFAULT_ADHAN,
        reminder_lead_minutes: int = DEFAULT_REMINDER_LEAD_MINUTES,
    ) -> "NotificationPreferences":
        """Build preferences; `muted=True` mutes every prayer."""
        if muted is True:
            muted_set = frozenset(PRAYER_ORDER)
        elif muted is False:
            muted_set = frozenset()
        else:
            muted_set = frozenset(PrayerName.parse(p) for p in muted)
        return cls(muted_set, selected_adhan, int(reminder_lead_minutes))

    @property
    def all_muted(self) -> bool:
        return self.muted >= frozenset(PRAYER_ORDER)

    def is_muted(self, prayer: PrayerName) -> bool:
        return prayer in self.muted

    def with_toggled(self, prayer: PrayerName) -> "NotificationPreferences":
        muted = self.muted - {prayer} if prayer in self.muted else self.muted | {prayer}
        return NotificationPreferences(muted, self.selected_adhan, self.reminder_lead_minutes)

    def muted_names(self) -> list[str]:
        """Muted prayers in canonical order."""
        return [p.value for p in PRAYER_ORDER if p in self.muted]


@dataclass(frozen=True)
class ScheduleRun:
    """The last successful schedule pass (in memory only)."""

    timestamp: datetime
    snapshot: NotificationPreferences


@dataclass(frozen=True)
class PrayerWindow:
    """Which prayer window `now` is in and how long until the next one."""

    current: PrayerName
    next: PrayerName
    time_until_next: timedelta
    next_at: datetime


@dataclass(frozen=True)
class HorizonDay:
    """One day of a horizon."""

    date: date
    times: DailyPrayerTimes


@dataclass(frozen=True)
class HorizonResult:
    """Output of the horizon extractor."""

    days: tuple[HorizonDay, ...]
    requested: int
    warning: PartialHorizonWarning | None = None

    @property
    def is_partial(self) -> bool:
        return self.warning is not None

    def __len__(self) -> int:
        return len(self.days)

    def __iter__(self):
        return iter(self.days)

    def dates(self) -> list[date]:
        return [d.date for d in self.days]


NotificationKind = Literal["reminder", "adhan"]


@dataclass(frozen=True)
class ScheduledNotification:
    """A single local notification derived from a (day, prayer) pair."""

    prayer: PrayerName
    day: date
    kind: NotificationKind
    fire_at: datetime
    title: str
    body: str
    adhan: str | None = None  # adhan name whose audio accompanies the message

    @property
    def id(self) -> str:
        """Stable identifier; re-submitting the same pair reuses it."""
        return f"{self.day.isoformat()}:{self.prayer.value}:{self.kind}"


@dataclass
class User:
    """A registered Telegram chat and its notification preferences."""

    telegram_id: int
    preferences: NotificationPreferences = field(default_factory=NotificationPreferences)
    created_at: datetime | None = None
    id: int | None = None
