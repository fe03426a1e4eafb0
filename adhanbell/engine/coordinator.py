"""Scheduling coordinator - decides when a schedule pass is due.

Every trigger goes through one decision rule:

1. Preferences differ from the last successful run (or there is none): run.
2. Otherwise, inside the cooldown since the last successful run: skip.
3. Otherwise: run.

A run fetches the current month (and the next one when the horizon crosses
it), extracts the horizon, and hands it to the notification scheduler. Only
a successful run updates `last_run`, so failures are retried by the next
trigger instead of being hidden behind the cooldown.

At most one run is in flight. Triggers that arrive meanwhile are coalesced
into a single pending slot and evaluated once the run finishes.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable

from adhanbell.db.models import HorizonResult, NotificationPreferences, ScheduleRun
from adhanbell.engine.horizon import crosses_month, extract_next_days
from adhanbell.engine.notifications import NotificationScheduler
from adhanbell.engine.time_source import MonthlyTimeSource
from adhanbell.errors import FetchError, PartialHorizonWarning, PrayerTimesError, SchedulingError
from adhanbell.utils.constants import DEFAULT_COOLDOWN_MINUTES, DEFAULT_HORIZON_DAYS

logger = logging.getLogger(__name__)


class CoordinatorState(Enum):
    IDLE = "idle"
    RUNNING = "running"


class TriggerReason(Enum):
    SETTINGS_CHANGED = "settings_changed"
    PERIODIC = "periodic"
    FOREGROUND = "foreground"
    STARTUP = "startup"
    DATA_REFRESHED = "data_refreshed"
    MANUAL = "manual"


class OutcomeStatus(Enum):
    SCHEDULED = "scheduled"
    SKIPPED = "skipped"
    QUEUED = "queued"
    FAILED = "failed"


@dataclass(frozen=True)
class ScheduleOutcome:
    """Result of one trigger."""

    status: OutcomeStatus
    count: int = 0
    warning: PartialHorizonWarning | None = None
    error: PrayerTimesError | None = None

    @property
    def ok(self) -> bool:
        return self.status is not OutcomeStatus.FAILED


class SchedulingCoordinator:
    """Gates schedule passes for one chat."""

    def __init__(
        self,
        time_source: MonthlyTimeSource,
        scheduler: NotificationScheduler,
        clock: Callable[[], datetime],
        cooldown: timedelta = timedelta(minutes=DEFAULT_COOLDOWN_MINUTES),
        horizon_days: int = DEFAULT_HORIZON_DAYS,
    ):
        self.time_source = time_source
        self.scheduler = scheduler
        self.clock = clock
        self.cooldown = cooldown
        self.horizon_days = horizon_days

        self._state = CoordinatorState.IDLE
        self._last_run: ScheduleRun | None = None
        self._pending: tuple[NotificationPreferences, TriggerReason] | None = None

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def last_run(self) -> ScheduleRun | None:
        return self._last_run

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def is_due(self, prefs: NotificationPreferences, now: datetime) -> bool:
        """Apply the decision rule without side effects."""
        if self._last_run is None or prefs != self._last_run.snapshot:
            return True
        return now - self._last_run.timestamp >= self.cooldown

    async def trigger(
        self,
        prefs: NotificationPreferences,
        reason: TriggerReason = TriggerReason.PERIODIC,
    ) -> ScheduleOutcome:
        """Handle a trigger; never raises for core failures.

        Returns QUEUED if a run is in progress; the latest queued trigger is
        evaluated by the caller that owns the run, once the run ends.
        """
        if self._state is CoordinatorState.RUNNING:
            self._pending = (prefs, reason)
            logger.debug(f"Run in progress, queued {reason.value} trigger")
            return ScheduleOutcome(OutcomeStatus.QUEUED)

        outcome = await self._evaluate(prefs, reason)

        while self._pending is not None:
            pending_prefs, pending_reason = self._pending
            self._pending = None
            await self._evaluate(pending_prefs, pending_reason)

        return outcome

    async def _evaluate(
        self, prefs: NotificationPreferences, reason: TriggerReason
    ) -> ScheduleOutcome:
        now = self.clock()

        if not self.is_due(prefs, now):
            logger.debug(f"Skipping {reason.value} trigger: within cooldown")
            return ScheduleOutcome(OutcomeStatus.SKIPPED)

        # No await between the check above and this transition
        self._state = CoordinatorState.RUNNING
        try:
            return await self._run(prefs, reason, now)
        finally:
            self._state = CoordinatorState.IDLE

    async def _run(
        self, prefs: NotificationPreferences, reason: TriggerReason, now: datetime
    ) -> ScheduleOutcome:
        logger.info(f"Schedule pass ({reason.value}) starting")

        try:
            horizon = await self._extract_horizon(now)
            count = await self.scheduler.schedule(
                horizon.days, prefs.reminder_lead_minutes, prefs
            )

        except PrayerTimesError as e:
            # FetchError, SchedulingError, or a malformed month
            logger.error(f"Schedule pass ({reason.value}) failed: {e}")
            return ScheduleOutcome(OutcomeStatus.FAILED, error=e)

        except Exception as e:
            logger.exception(f"Schedule pass ({reason.value}) crashed")
            return ScheduleOutcome(OutcomeStatus.FAILED, error=SchedulingError(str(e)))

        self._last_run = ScheduleRun(timestamp=now, snapshot=prefs)
        logger.info(f"Schedule pass ({reason.value}) done: {count} notifications")
        return ScheduleOutcome(OutcomeStatus.SCHEDULED, count=count, warning=horizon.warning)

    async def _extract_horizon(self, now: datetime) -> HorizonResult:
        today = now.date()
        monthly = await self.time_source.fetch(today.year, today.month)

        following = None
        if crosses_month(monthly, today, self.horizon_days):
            year, month = monthly.following()
            try:
                following = await self.time_source.fetch(year, month)
            except FetchError as e:
                logger.warning(f"Next month unavailable, horizon will be partial: {e}")

        return extract_next_days(monthly, today, self.horizon_days, following)

    def reset(self) -> None:
        """Forget the last run so the next trigger always runs."""
        self._last_run = None
