"""Tests for the scheduling coordinator."""

import asyncio
import calendar
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from adhanbell.db.models import MonthlyPrayerTimes, NotificationPreferences, PrayerName
from adhanbell.engine.coordinator import (
    CoordinatorState,
    OutcomeStatus,
    SchedulingCoordinator,
    TriggerReason,
)
from adhanbell.errors import FetchError, SchedulingError

TZ = ZoneInfo("Asia/Singapore")

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


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeTimeSource:
    def __init__(self, *months: tuple[int, int]):
        self.months = {m: _monthly(*m) for m in months}
        self.requests: list[tuple[int, int]] = []

    async def fetch(self, year: int, month: int) -> MonthlyPrayerTimes:
        self.requests.append((year, month))
        if (year, month) not in self.months:
            raise FetchError(year, month, "offline")
        return self.months[(year, month)]


class FakeScheduler:
    def __init__(self):
        self.calls: list[tuple[list[date], int, NotificationPreferences]] = []
        self.fail = False

    async def schedule(self, horizon, lead_minutes, prefs) -> int:
        days = list(horizon)
        self.calls.append(([d.date for d in days], lead_minutes, prefs))
        if self.fail:
            raise SchedulingError("rejected")
        return len(days) * 6


def _coordinator(clock, time_source=None, scheduler=None):
    return SchedulingCoordinator(
        time_source=time_source or FakeTimeSource((2026, 10), (2026, 11)),
        scheduler=scheduler or FakeScheduler(),
        clock=clock,
    )


def test_first_trigger_schedules_five_days():
    """With no previous run, the first trigger always schedules."""
    clock = Clock(datetime(2026, 10, 19, 14, 0, tzinfo=TZ))
    scheduler = FakeScheduler()
    coordinator = _coordinator(clock, scheduler=scheduler)
    prefs = NotificationPreferences.create(reminder_lead_minutes=10)

    outcome = asyncio.run(coordinator.trigger(prefs, TriggerReason.STARTUP))

    assert outcome.status is OutcomeStatus.SCHEDULED
    assert outcome.count == 30
    assert scheduler.calls[0][0] == [date(2026, 10, d) for d in range(19, 24)]
    assert scheduler.calls[0][1] == 10
    assert coordinator.last_run.timestamp == clock.now
    assert coordinator.last_run.snapshot == prefs
    assert coordinator.state is CoordinatorState.IDLE


def test_second_trigger_within_cooldown_is_skipped():
    """Two triggers inside the cooldown, same prefs: one submission."""
    clock = Clock(datetime(2026, 10, 19, 14, 0, tzinfo=TZ))
    scheduler = FakeScheduler()
    coordinator = _coordinator(clock, scheduler=scheduler)
    prefs = NotificationPreferences()

    asyncio.run(coordinator.trigger(prefs))
    first_run = coordinator.last_run

    clock.advance(minutes=2)
    outcome = asyncio.run(coordinator.trigger(prefs))

    assert outcome.status is OutcomeStatus.SKIPPED
    assert len(scheduler.calls) == 1
    assert coordinator.last_run is first_run


def test_trigger_after_cooldown_runs_again():
    """Once the cooldown elapses a periodic trigger reschedules."""
    clock = Clock(datetime(2026, 10, 19, 14, 0, tzinfo=TZ))
    scheduler = FakeScheduler()
    coordinator = _coordinator(clock, scheduler=scheduler)
    prefs = NotificationPreferences()

    asyncio.run(coordinator.trigger(prefs))
    clock.advance(minutes=5)
    outcome = asyncio.run(coordinator.trigger(prefs))

    assert outcome.status is OutcomeStatus.SCHEDULED
    assert len(scheduler.calls) == 2


def test_settings_change_overrides_cooldown():
    """Muting a prayer inside the cooldown still reschedules at once."""
    clock = Clock(datetime(2026, 10, 19, 14, 0, tzinfo=TZ))
    scheduler = FakeScheduler()
    coordinator = _coordinator(clock, scheduler=scheduler)

    asyncio.run(coordinator.trigger(NotificationPreferences()))

    clock.advance(seconds=30)
    muted = NotificationPreferences.create(muted=["Zohor"])
    outcome = asyncio.run(coordinator.trigger(muted, TriggerReason.SETTINGS_CHANGED))

    assert outcome.status is OutcomeStatus.SCHEDULED
    assert len(scheduler.calls) == 2
    assert scheduler.calls[1][2].muted == frozenset({PrayerName.ZOHOR})
    assert coordinator.last_run.snapshot == muted


def test_adhan_and_lead_changes_override_cooldown():
    """Every tracked field counts as a settings change."""
    clock = Clock(datetime(2026, 10, 19, 14, 0, tzinfo=TZ))
    scheduler = FakeScheduler()
    coordinator = _coordinator(clock, scheduler=scheduler)

    asyncio.run(coordinator.trigger(NotificationPreferences()))
    asyncio.run(coordinator.trigger(NotificationPreferences(selected_adhan="Mishary Rashid Alafasy")))
    asyncio.run(
        coordinator.trigger(
            NotificationPreferences(selected_adhan="Mishary Rashid Alafasy", reminder_lead_minutes=15)
        )
    )

    assert len(scheduler.calls) == 3


def test_scheduler_failure_does_not_advance_last_run():
    """A rejected submission is retried by the very next trigger."""
    clock = Clock(datetime(2026, 10, 19, 14, 0, tzinfo=TZ))
    scheduler = FakeScheduler()
    scheduler.fail = True
    coordinator = _coordinator(clock, scheduler=scheduler)
    prefs = NotificationPreferences()

    outcome = asyncio.run(coordinator.trigger(prefs))

    assert outcome.status is OutcomeStatus.FAILED
    assert isinstance(outcome.error, SchedulingError)
    assert coordinator.last_run is None
    assert coordinator.state is CoordinatorState.IDLE

    scheduler.fail = False
    clock.advance(seconds=10)
    outcome = asyncio.run(coordinator.trigger(prefs))

    assert outcome.status is OutcomeStatus.SCHEDULED
    assert len(scheduler.calls) == 2


def test_failure_after_success_keeps_previous_run():
    """A failed pass leaves the last successful run untouched."""
    clock = Clock(datetime(2026, 10, 19, 14, 0, tzinfo=TZ))
    scheduler = FakeScheduler()
    coordinator = _coordinator(clock, scheduler=scheduler)

    asyncio.run(coordinator.trigger(NotificationPreferences()))
    first_run = coordinator.last_run

    scheduler.fail = True
    clock.advance(minutes=1)
    muted = NotificationPreferences.create(muted=["Asar"])
    outcome = asyncio.run(coordinator.trigger(muted))

    assert outcome.status is OutcomeStatus.FAILED
    assert coordinator.last_run is first_run

    # Same new prefs again inside the cooldown: still differs from last_run, so it retries
    scheduler.fail = False
    outcome = asyncio.run(coordinator.trigger(muted))
    assert outcome.status is OutcomeStatus.SCHEDULED


def test_current_month_unavailable_is_fetch_error():
    """No data for this month fails the pass without touching state."""
    clock = Clock(datetime(2026, 10, 19, 14, 0, tzinfo=TZ))
    scheduler = FakeScheduler()
    coordinator = _coordinator(clock, time_source=FakeTimeSource(), scheduler=scheduler)

    outcome = asyncio.run(coordinator.trigger(NotificationPreferences()))

    assert outcome.status is OutcomeStatus.FAILED
    assert isinstance(outcome.error, FetchError)
    assert scheduler.calls == []
    assert coordinator.last_run is None


def test_missing_next_month_schedules_partial_horizon():
    """Near the end of a month without next month's data, schedule what exists."""
    clock = Clock(datetime(2026, 9, 29, 9, 0, tzinfo=TZ))
    scheduler = FakeScheduler()
    time_source = FakeTimeSource((2026, 9))
    coordinator = _coordinator(clock, time_source=time_source, scheduler=scheduler)

    outcome = asyncio.run(coordinator.trigger(NotificationPreferences()))

    assert outcome.status is OutcomeStatus.SCHEDULED
    assert outcome.warning is not None
    assert outcome.warning.available == 2
    assert scheduler.calls[0][0] == [date(2026, 9, 29), date(2026, 9, 30)]
    assert time_source.requests == [(2026, 9), (2026, 10)]


def test_next_month_only_fetched_when_needed():
    """Mid-month passes never touch the following month."""
    clock = Clock(datetime(2026, 10, 10, 9, 0, tzinfo=TZ))
    time_source = FakeTimeSource((2026, 10))
    coordinator = _coordinator(clock, time_source=time_source)

    asyncio.run(coordinator.trigger(NotificationPreferences()))

    assert time_source.requests == [(2026, 10)]


class BlockingScheduler(FakeScheduler):
    def __init__(self):
        super().__init__()
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def schedule(self, horizon, lead_minutes, prefs) -> int:
        count = await super().schedule(horizon, lead_minutes, prefs)
        self.started.set()
        await self.release.wait()
        return count


def test_triggers_during_run_are_coalesced():
    """Triggers arriving mid-run collapse into one follow-up run with the latest prefs."""
    clock = Clock(datetime(2026, 10, 19, 14, 0, tzinfo=TZ))

    async def scenario():
        scheduler = BlockingScheduler()
        coordinator = _coordinator(clock, scheduler=scheduler)

        first = asyncio.create_task(coordinator.trigger(NotificationPreferences()))
        await scheduler.started.wait()
        assert coordinator.state is CoordinatorState.RUNNING

        second = await coordinator.trigger(NotificationPreferences.create(muted=["Zohor"]))
        third = await coordinator.trigger(NotificationPreferences.create(muted=["Asar"]))
        assert second.status is OutcomeStatus.QUEUED
        assert third.status is OutcomeStatus.QUEUED
        assert coordinator.has_pending

        scheduler.release.set()
        outcome = await first
        return scheduler, coordinator, outcome

    scheduler, coordinator, outcome = asyncio.run(scenario())

    assert outcome.status is OutcomeStatus.SCHEDULED
    assert len(scheduler.calls) == 2
    assert scheduler.calls[1][2].muted == frozenset({PrayerName.ASAR})
    assert coordinator.last_run.snapshot.muted == frozenset({PrayerName.ASAR})
    assert not coordinator.has_pending
    assert coordinator.state is CoordinatorState.IDLE


def test_coalesced_trigger_with_same_prefs_is_skipped():
    """A queued periodic trigger with unchanged prefs hits the cooldown."""
    clock = Clock(datetime(2026, 10, 19, 14, 0, tzinfo=TZ))

    async def scenario():
        scheduler = BlockingScheduler()
        coordinator = _coordinator(clock, scheduler=scheduler)
        prefs = NotificationPreferences()

        first = asyncio.create_task(coordinator.trigger(prefs))
        await scheduler.started.wait()
        await coordinator.trigger(prefs)
        await coordinator.trigger(prefs)

        scheduler.release.set()
        outcome = await first
        return scheduler, outcome

    scheduler, outcome = asyncio.run(scenario())

    assert len(scheduler.calls) == 1
    assert outcome.status is OutcomeStatus.SCHEDULED


def test_reset_forces_next_run():
    """After reset the cooldown no longer applies."""
    clock = Clock(datetime(2026, 10, 19, 14, 0, tzinfo=TZ))
    scheduler = FakeScheduler()
    coordinator = _coordinator(clock, scheduler=scheduler)
    prefs = NotificationPreferences()

    asyncio.run(coordinator.trigger(prefs))
    coordinator.reset()
    outcome = asyncio.run(coordinator.trigger(prefs, TriggerReason.DATA_REFRESHED))

    assert outcome.status is OutcomeStatus.SCHEDULED
    assert len(scheduler.calls) == 2
