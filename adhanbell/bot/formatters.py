"""Message text formatters."""

from adhanbell.db.models import (
    PRAYER_ORDER,
    DailyPrayerTimes,
    HorizonResult,
    NotificationPreferences,
    PrayerWindow,
)
from adhanbell.engine.coordinator import OutcomeStatus, ScheduleOutcome
from adhanbell.utils.time_utils import format_duration, format_hhmm, format_time_until

PRAYER_EMOJI = {
    "Subuh": "🌄",
    "Syuruk": "🌅",
    "Zohor": "☀️",
    "Asar": "🌤",
    "Maghrib": "🌇",
    "Isyak": "🌙",
}


def format_window(window: PrayerWindow) -> str:
    """Format the current/next prayer status."""
    current = window.current.value
    upcoming = window.next.value
    return (
        f"{PRAYER_EMOJI.get(current, '')} Current: <b>{current}</b>\n"
        f"{PRAYER_EMOJI.get(upcoming, '')} Next: <b>{upcoming}</b> at "
        f"{window.next_at:%H:%M} (in {format_time_until(window.time_until_next)})"
    )


def format_window_unavailable() -> str:
    """Neutral fallback when the window cannot be resolved."""
    return "🕰 Prayer times are not available right now. Please try again shortly."


def format_daily_times(
    daily: DailyPrayerTimes,
    title: str,
    prefs: NotificationPreferences | None = None,
    window: PrayerWindow | None = None,
) -> str:
    """Format one day's prayer times, marking muted and current prayers."""
    lines = [f"<b>{title}</b>"]

    for prayer in PRAYER_ORDER:
        marker = "▶" if window is not None and window.current is prayer else "  "
        muted = " 🔕" if prefs is not None and prefs.is_muted(prayer) else ""
        lines.append(
            f"{marker} {PRAYER_EMOJI.get(prayer.value, '')} {prayer.value}: "
            f"<code>{format_hhmm(daily[prayer])}</code>{muted}"
        )

    return "\n".join(lines)


def format_horizon(horizon: HorizonResult, prefs: NotificationPreferences) -> str:
    """Format the upcoming days of prayer times."""
    if not horizon.days:
        return "No upcoming prayer times available."

    blocks = [
        format_daily_times(day.times, day.date.strftime("%a, %d %b %Y"), prefs)
        for day in horizon
    ]
    message = "\n\n".join(blocks)

    if horizon.is_partial:
        message += (
            f"\n\n⚠️ Only {len(horizon)} of {horizon.requested} days are available yet."
        )
    return message


def format_preferences(prefs: NotificationPreferences) -> str:
    """Format notification settings."""
    muted = ", ".join(prefs.muted_names()) or "none"
    return (
        "<b>Notification Settings</b>\n\n"
        f"🔊 Adhan: <b>{prefs.selected_adhan}</b>\n"
        f"⏳ Reminder before prayer: <b>{format_duration(prefs.reminder_lead_minutes)}</b>\n"
        f"🔕 Muted: {muted}\n\n"
        "<b>Commands to change:</b>\n"
        "• /adhan - choose the adhan\n"
        "• /reminder <code>10</code> - minutes before each prayer (0 = off)\n"
        "• /mute <code>Zohor</code> / /unmute <code>Zohor</code> (or <code>all</code>)"
    )


def format_outcome(outcome: ScheduleOutcome) -> str:
    """Format the result of a schedule trigger for the user."""
    if outcome.status is OutcomeStatus.SCHEDULED:
        text = f"✓ {outcome.count} notifications scheduled."
        if outcome.warning is not None:
            text += f"\n⚠️ Only {outcome.warning.available} days of prayer times are available yet."
        return text
    if outcome.status is OutcomeStatus.QUEUED:
        return "⏳ Notifications will be updated in a moment."
    if outcome.status is OutcomeStatus.SKIPPED:
        return "✓ Notifications are already up to date."
    if outcome.error is not None and not outcome.error.retryable:
        return "⚠️ Could not update notifications: the prayer times look broken. Try /refresh."
    return "⚠️ Could not update notifications right now. I'll retry automatically."


def format_welcome_message() -> str:
    """Format the welcome message for /start."""
    return """
<b>Assalamualaikum! Welcome to AdhanBell</b> 🕌

I'll send you a notification at every prayer time, with an optional reminder before it.

<b>Quick Start:</b>
• /now - Current and next prayer
• /today - Today's prayer times
• /settings - Adhan, reminders, and muting
• /help - Full command list
""".strip()


def format_help_message() -> str:
    """Format the help message."""
    return """
<b>AdhanBell Commands 🕌</b>

<b>Prayer Times:</b>
/now - Current prayer and time until the next
/today - Today's prayer times
/upcoming - The next few days

<b>Notifications:</b>
/settings - View notification settings
/adhan [name] - Choose the adhan sound
/reminder &lt;minutes&gt; - Reminder before each prayer (0 = off)
/mute &lt;prayer|all&gt; - Stop notifications for a prayer
/unmute &lt;prayer|all&gt; - Resume notifications for a prayer
/refresh - Re-download prayer times and reschedule
/stop - Stop all notifications and forget this chat

Prayers: Subuh, Syuruk, Zohor, Asar, Maghrib, Isyak
""".strip()
