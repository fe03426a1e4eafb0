"""Turning a horizon into notifications and handing them to the JobQueue."""

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Iterable, Protocol

from telegram.error import TelegramError
from telegram.ext import ContextTypes, JobQueue

from adhanbell.config import Config
from adhanbell.db.models import (
    HorizonDay,
    NotificationPreferences,
    PrayerName,
    ScheduledNotification,
)
from adhanbell.errors import SchedulingError
from adhanbell.utils.constants import ADHAN_OPTIONS, NOTIFICATION_JOB_PREFIX
from adhanbell.utils.time_utils import at_local, format_hhmm, local_now

logger = logging.getLogger(__name__)


class NotificationScheduler(Protocol):
    """What the coordinator needs from a notification backend.

    Implementations must be idempotent per (date, prayer): submitting the
    same horizon twice with unchanged preferences must not duplicate
    notifications.
    """

    async def schedule(
        self,
        horizon: Iterable[HorizonDay],
        lead_minutes: int,
        prefs: NotificationPreferences,
    ) -> int:
        """Submit notifications for a horizon; return how many are scheduled.

        Raises:
            SchedulingError: if the submission is rejected
        """
        ...


def _adhan_message(prayer: PrayerName) -> tuple[str, str]:
    if prayer is PrayerName.SYURUK:
        return (
            "🌅 A New Day Begins",
            "Bismillah! May your day be filled with barakah and goodness.",
        )
    return f"🕌 Time for {prayer.value}", f"It's time for {prayer.value} prayer."


def build_notifications(
    horizon: Iterable[HorizonDay],
    lead_minutes: int,
    prefs: NotificationPreferences,
    now: datetime,
    tz: str,
) -> list[ScheduledNotification]:
    """Derive the notifications for a horizon.

    Each unmuted (day, prayer) pair yields an adhan notification at the
    prayer instant and, when `lead_minutes` > 0, a reminder `lead_minutes`
    earlier. Muted prayers are left out entirely, and anything whose fire
    time is not in the future is dropped.

    Returns:
        Notifications ordered by fire time
    """
    if lead_minutes < 0:
        raise ValueError("lead_minutes must be >= 0")

    adhan = prefs.selected_adhan if prefs.selected_adhan in ADHAN_OPTIONS else None
    if adhan is not None and ADHAN_OPTIONS[adhan].filename is None:
        adhan = None

    notifications: list[ScheduledNotification] = []

    for horizon_day in horizon:
        for prayer, wall_time in horizon_day.times.items():
            if prefs.is_muted(prayer):
                continue

            prayer_at = at_local(horizon_day.date, wall_time, tz)

            if lead_minutes > 0:
                reminder_at = prayer_at - timedelta(minutes=lead_minutes)
                if reminder_at > now:
                    notifications.append(
                        ScheduledNotification(
                            prayer=prayer,
                            day=horizon_day.date,
                            kind="reminder",
                            fire_at=reminder_at,
                            title=f"⏳ Reminder: {prayer.value} Soon",
                            body=(
                                f"{prayer.value} is at {format_hhmm(wall_time)}, "
                                f"in {lead_minutes} minutes."
                            ),
                        )
                    )

            if prayer_at > now:
                title, body = _adhan_message(prayer)
                notifications.append(
                    ScheduledNotification(
                        prayer=prayer,
                        day=horizon_day.date,
                        kind="adhan",
                        fire_at=prayer_at,
                        title=title,
                        body=body,
                        adhan=None if prayer is PrayerName.SYURUK else adhan,
                    )
                )

    notifications.sort(key=lambda n: n.fire_at)
    return notifications


def job_name(chat_id: int, notification_id: str) -> str:
    """JobQueue name for one notification of one chat."""
    return f"{NOTIFICATION_JOB_PREFIX}:{chat_id}:{notification_id}"


class JobQueueScheduler:
    """Schedules a chat's prayer notifications as Telegram JobQueue jobs.

    Job names are derived from (chat, date, prayer, kind), so re-submitting a
    horizon leaves identical jobs alone, replaces changed ones, and removes
    jobs that are no longer wanted (for example a newly muted prayer).
    """

    def __init__(
        self,
        job_queue: JobQueue,
        chat_id: int,
        tz: str,
        clock: Callable[[], datetime] | None = None,
    ):
        self.job_queue = job_queue
        self.chat_id = chat_id
        self.tz = tz
        self.clock = clock or (lambda: local_now(tz))

    @property
    def prefix(self) -> str:
        return f"{NOTIFICATION_JOB_PREFIX}:{self.chat_id}:"

    def pending_jobs(self) -> list:
        """Live notification jobs of this chat."""
        return [
            job
            for job in self.job_queue.jobs()
            if job.name and job.name.startswith(self.prefix) and not job.removed
        ]

    async def schedule(
        self,
        horizon: Iterable[HorizonDay],
        lead_minutes: int,
        prefs: NotificationPreferences,
    ) -> int:
        """Submit the horizon's notifications; see NotificationScheduler."""
        notifications = build_notifications(horizon, lead_minutes, prefs, self.clock(), self.tz)
        wanted = {job_name(self.chat_id, n.id): n for n in notifications}

        try:
            removed = 0
            for job in self.pending_jobs():
                if job.name not in wanted:
                    job.schedule_removal()
                    removed += 1

            added = 0
            for name, notification in wanted.items():
                existing = [j for j in self.job_queue.get_jobs_by_name(name) if not j.removed]
                if len(existing) == 1 and existing[0].data == notification:
                    continue

                for job in existing:
                    job.schedule_removal()

                self.job_queue.run_once(
                    deliver_notification,
                    when=notification.fire_at,
                    data=notification,
                    name=name,
                    chat_id=self.chat_id,
                )
                added += 1

        except Exception as e:
            raise SchedulingError(f"JobQueue rejected notifications for chat {self.chat_id}: {e}") from e

        logger.info(
            f"Chat {self.chat_id}: {len(wanted)} notifications scheduled "
            f"({added} new, {removed} removed)"
        )
        return len(wanted)

    def cancel_all(self) -> int:
        """Remove every pending notification of this chat."""
        jobs = self.pending_jobs()
        for job in jobs:
            job.schedule_removal()
        return len(jobs)


def adhan_audio_path(adhan: str | None, audio_dir: Path) -> Path | None:
    """Local audio file for an adhan, if one is configured and present."""
    if adhan is None or adhan not in ADHAN_OPTIONS:
        return None
    filename = ADHAN_OPTIONS[adhan].filename
    if filename is None:
        return None
    path = audio_dir / filename
    return path if path.exists() else None


async def deliver_notification(context: ContextTypes.DEFAULT_TYPE) -> None:
    """JobQueue callback: send one prayer notification to its chat."""
    job = context.job
    notification: ScheduledNotification = job.data  # type: ignore

    try:
        await context.bot.send_message(
            chat_id=job.chat_id,  # type: ignore
            text=f"<b>{notification.title}</b>\n\n{notification.body}",
            parse_mode="HTML",
        )

        audio = adhan_audio_path(notification.adhan, Config.ADHAN_AUDIO_DIR)
        if audio is not None:
            await context.bot.send_audio(
                chat_id=job.chat_id,  # type: ignore
                audio=audio,
                title=f"Adhan ({notification.adhan})",
            )

        logger.info(f"Delivered {notification.id} to chat {job.chat_id}")

    except TelegramError as e:
        logger.error(f"Failed to deliver {notification.id} to chat {job.chat_id}: {e}")
