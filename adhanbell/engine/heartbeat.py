"""Heartbeat - the periodic tick that keeps windows and schedules fresh."""

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, MutableMapping

from telegram.ext import JobQueue

from adhanbell.config import Config
from adhanbell.db.models import PrayerWindow
from adhanbell.db.repository import Repository
from adhanbell.engine.coordinator import SchedulingCoordinator, TriggerReason
from adhanbell.engine.notifications import JobQueueScheduler
from adhanbell.engine.resolver import resolve
from adhanbell.engine.time_source import MonthlyTimeSource
from adhanbell.errors import FetchError, MalformedScheduleError
from adhanbell.utils.time_utils import local_now

logger = logging.getLogger(__name__)


def get_coordinator(
    bot_data: MutableMapping[str, Any], job_queue: JobQueue, telegram_id: int
) -> SchedulingCoordinator:
    """Get (or create) the coordinator owning a chat's notifications."""
    coordinators: dict[int, SchedulingCoordinator] = bot_data.setdefault("coordinators", {})

    if telegram_id not in coordinators:
        coordinators[telegram_id] = SchedulingCoordinator(
            time_source=bot_data["time_source"],
            scheduler=JobQueueScheduler(job_queue, telegram_id, Config.TIMEZONE),
            clock=lambda: local_now(Config.TIMEZONE),
            cooldown=timedelta(minutes=Config.SCHEDULE_COOLDOWN_MINUTES),
            horizon_days=Config.HORIZON_DAYS,
        )

    return coordinators[telegram_id]


def forget_chat(
    bot_data: MutableMapping[str, Any], job_queue: JobQueue, telegram_id: int
) -> int:
    """Drop a chat's coordinator and cancel its pending notifications.

    Returns:
        Number of notification jobs cancelled
    """
    bot_data.get("coordinators", {}).pop(telegram_id, None)
    return JobQueueScheduler(job_queue, telegram_id, Config.TIMEZONE).cancel_all()


def cached_window(bot_data: MutableMapping[str, Any], now: datetime) -> PrayerWindow | None:
    """The heartbeat's last window, with its countdown brought up to `now`.

    Returns None once the next prayer has started, since the window has
    moved on by then.
    """
    window: PrayerWindow | None = bot_data.get("current_window")
    if window is None or now >= window.next_at:
        return None
    return replace(window, time_until_next=window.next_at - now)


async def current_window(time_source: MonthlyTimeSource, now: datetime) -> PrayerWindow:
    """Resolve the prayer window for `now` from the month's table.

    Raises:
        FetchError: if the month is unavailable
        MalformedScheduleError: if today's entries are unusable
    """
    monthly = await time_source.fetch(now.year, now.month)
    return resolve(monthly.day(now.day), now)


async def heartbeat(
    bot_data: MutableMapping[str, Any], job_queue: JobQueue, repo: Repository
) -> None:
    """Tick job.

    Runs every TICK_INTERVAL seconds and:
    1. Re-resolves the current prayer window (shared display state)
    2. Sends a periodic trigger to every chat's coordinator; the cooldown
       turns most of these into no-ops
    """
    now = local_now(Config.TIMEZONE)
    time_source: MonthlyTimeSource = bot_data["time_source"]

    previous: PrayerWindow | None = bot_data.get("current_window")
    try:
        window = await current_window(time_source, now)
        if previous is None or previous.current is not window.current:
            logger.info(
                f"Prayer window is now {window.current.value}; "
                f"{window.next.value} at {window.next_at:%H:%M}"
            )
        bot_data["current_window"] = window
    except (FetchError, MalformedScheduleError) as e:
        logger.warning(f"Could not resolve current prayer window: {e}")
        bot_data["current_window"] = None

    try:
        users = await repo.get_all_users()
    except Exception as e:
        logger.error(f"Heartbeat error: {e}")
        return

    for user in users:
        coordinator = get_coordinator(bot_data, job_queue, user.telegram_id)
        await coordinator.trigger(user.preferences, TriggerReason.PERIODIC)


async def startup_recovery(
    bot_data: MutableMapping[str, Any], job_queue: JobQueue, repo: Repository
) -> None:
    """Schedule every registered chat once on startup.

    Scheduled jobs live in memory and are gone after a restart; so is
    `last_run`, so every coordinator runs a full pass here.
    """
    users = await repo.get_all_users()
    if not users:
        return

    logger.info(f"Startup recovery: scheduling notifications for {len(users)} chats")

    failed = 0
    for user in users:
        coordinator = get_coordinator(bot_data, job_queue, user.telegram_id)
        outcome = await coordinator.trigger(user.preferences, TriggerReason.STARTUP)
        if not outcome.ok:
            failed += 1

    if failed:
        logger.warning(f"Startup recovery: {failed} chats failed, will retry on next tick")
    else:
        logger.info("Startup recovery complete")
