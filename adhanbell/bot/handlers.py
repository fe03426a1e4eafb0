"""Command handlers."""

import logging

from telegram import Update
from telegram.ext import ContextTypes

from adhanbell.bot.formatters import (
    format_daily_times,
    format_help_message,
    format_horizon,
    format_outcome,
    format_preferences,
    format_welcome_message,
    format_window,
    format_window_unavailable,
)
from adhanbell.bot.keyboards import adhan_keyboard, mute_keyboard, reminder_keyboard
from adhanbell.config import Config
from adhanbell.db.models import PRAYER_ORDER, NotificationPreferences, PrayerName, User
from adhanbell.db.repository import Repository
from adhanbell.engine.coordinator import ScheduleOutcome, TriggerReason
from adhanbell.engine.heartbeat import cached_window, current_window, forget_chat, get_coordinator
from adhanbell.engine.horizon import crosses_month, extract_next_days
from adhanbell.engine.time_source import MonthlyTimeSource
from adhanbell.errors import FetchError, MalformedScheduleError
from adhanbell.utils.constants import ADHAN_OPTIONS, MAX_REMINDER_LEAD_MINUTES
from adhanbell.utils.time_utils import local_now

logger = logging.getLogger(__name__)


async def apply_preferences(
    context: ContextTypes.DEFAULT_TYPE, user: User, preferences: NotificationPreferences
) -> ScheduleOutcome:
    """Save new preferences and reschedule immediately."""
    repo: Repository = context.bot_data["repo"]
    await repo.update_preferences(user.id, preferences)  # type: ignore
    user.preferences = preferences

    coordinator = get_coordinator(context.bot_data, context.job_queue, user.telegram_id)  # type: ignore
    return await coordinator.trigger(preferences, TriggerReason.SETTINGS_CHANGED)


async def _get_user(update: Update, context: ContextTypes.DEFAULT_TYPE) -> User | None:
    repo: Repository = context.bot_data["repo"]
    user = await repo.get_user_by_telegram_id(update.effective_chat.id)  # type: ignore
    if user is None and update.message:
        await update.message.reply_text("Please /start the bot first.")
    return user


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command."""
    if not update.effective_chat or not update.message:
        return

    repo: Repository = context.bot_data["repo"]
    chat_id = update.effective_chat.id

    # Get or create user
    user = await repo.get_user_by_telegram_id(chat_id)
    if user is None:
        user = await repo.create_user(chat_id)
        logger.info(f"New user created: {chat_id}")

    await update.message.reply_html(format_welcome_message())

    coordinator = get_coordinator(context.bot_data, context.job_queue, chat_id)  # type: ignore
    outcome = await coordinator.trigger(user.preferences, TriggerReason.MANUAL)
    await update.message.reply_text(format_outcome(outcome))


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command."""
    if not update.message:
        return

    await update.message.reply_html(format_help_message())


async def now_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /now command - current prayer and countdown to the next."""
    if not update.message:
        return

    now = local_now(Config.TIMEZONE)
    window = cached_window(context.bot_data, now)
    if window is not None:
        await update.message.reply_html(format_window(window))
        return

    time_source: MonthlyTimeSource = context.bot_data["time_source"]
    try:
        window = await current_window(time_source, now)
    except (FetchError, MalformedScheduleError) as e:
        logger.warning(f"/now could not resolve window: {e}")
        await update.message.reply_text(format_window_unavailable())
        return

    await update.message.reply_html(format_window(window))


async def today_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /today command - today's prayer times."""
    if not update.message:
        return

    user = await _get_user(update, context)
    if not user:
        return

    now = local_now(Config.TIMEZONE)
    time_source: MonthlyTimeSource = context.bot_data["time_source"]
    try:
        monthly = await time_source.fetch(now.year, now.month)
        daily = monthly.day(now.day)
        window = await current_window(time_source, now)
    except (FetchError, MalformedScheduleError) as e:
        logger.warning(f"/today could not load prayer times: {e}")
        await update.message.reply_text(format_window_unavailable())
        return

    await update.message.reply_html(
        format_daily_times(daily, now.strftime("Today, %d %b %Y"), user.preferences, window)
    )

    # Usually a no-op inside the cooldown
    coordinator = get_coordinator(context.bot_data, context.job_queue, user.telegram_id)  # type: ignore
    await coordinator.trigger(user.preferences, TriggerReason.FOREGROUND)


async def upcoming_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /upcoming command - the scheduling horizon."""
    if not update.message:
        return

    user = await _get_user(update, context)
    if not user:
        return

    today = local_now(Config.TIMEZONE).date()
    time_source: MonthlyTimeSource = context.bot_data["time_source"]
    try:
        monthly = await time_source.fetch(today.year, today.month)
        following = None
        if crosses_month(monthly, today, Config.HORIZON_DAYS):
            try:
                following = await time_source.fetch(*monthly.following())
            except FetchError as e:
                logger.warning(f"/upcoming without next month: {e}")
        horizon = extract_next_days(monthly, today, Config.HORIZON_DAYS, following)
    except (FetchError, MalformedScheduleError) as e:
        logger.warning(f"/upcoming could not load prayer times: {e}")
        await update.message.reply_text(format_window_unavailable())
        return

    await update.message.reply_html(format_horizon(horizon, user.preferences))


async def settings_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /settings command - show notification settings."""
    if not update.message:
        return

    user = await _get_user(update, context)
    if not user:
        return

    await update.message.reply_html(
        format_preferences(user.preferences), reply_markup=mute_keyboard(user.preferences)
    )


def _parse_prayers(args: list[str]) -> list[PrayerName] | None:
    """Parse command args into prayers; "all" means every prayer."""
    if len(args) == 1 and args[0].lower() == "all":
        return list(PRAYER_ORDER)
    try:
        return [PrayerName.parse(arg) for arg in args]
    except ValueError:
        return None


async def mute_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /mute <prayer|all> command."""
    await _set_muted(update, context, mute=True)


async def unmute_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /unmute <prayer|all> command."""
    await _set_muted(update, context, mute=False)


async def _set_muted(update: Update, context: ContextTypes.DEFAULT_TYPE, mute: bool) -> None:
    if not update.message:
        return

    user = await _get_user(update, context)
    if not user:
        return

    command = "/mute" if mute else "/unmute"
    if not context.args:
        await update.message.reply_html(
            f"Usage: <code>{command} Zohor</code> or <code>{command} all</code>",
            reply_markup=mute_keyboard(user.preferences),
        )
        return

    prayers = _parse_prayers(context.args)
    if prayers is None:
        await update.message.reply_text(
            "Unknown prayer. Use one of: " + ", ".join(p.value for p in PRAYER_ORDER)
        )
        return

    prefs = user.preferences
    muted = prefs.muted | set(prayers) if mute else prefs.muted - set(prayers)
    new_prefs = NotificationPreferences(
        frozenset(muted), prefs.selected_adhan, prefs.reminder_lead_minutes
    )

    outcome = await apply_preferences(context, user, new_prefs)

    names = ", ".join(p.value for p in prayers)
    await update.message.reply_html(
        f"{'🔕 Muted' if mute else '🔔 Unmuted'}: <b>{names}</b>\n\n{format_outcome(outcome)}"
    )


async def adhan_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /adhan [name] command."""
    if not update.message:
        return

    user = await _get_user(update, context)
    if not user:
        return

    if not context.args:
        await update.message.reply_html(
            f"<b>Current adhan:</b> {user.preferences.selected_adhan}\n\nChoose one:",
            reply_markup=adhan_keyboard(user.preferences.selected_adhan),
        )
        return

    requested = " ".join(context.args).strip().lower()
    matches = [name for name in ADHAN_OPTIONS if name.lower() == requested]
    if not matches:
        await update.message.reply_html(
            "Unknown adhan. Choose one:",
            reply_markup=adhan_keyboard(user.preferences.selected_adhan),
        )
        return

    prefs = user.preferences
    outcome = await apply_preferences(
        context,
        user,
        NotificationPreferences(prefs.muted, matches[0], prefs.reminder_lead_minutes),
    )
    await update.message.reply_html(
        f"🔊 Adhan set to <b>{matches[0]}</b>\n\n{format_outcome(outcome)}"
    )


async def reminder_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /reminder <minutes> command."""
    if not update.message:
        return

    user = await _get_user(update, context)
    if not user:
        return

    if not context.args or len(context.args) != 1:
        await update.message.reply_html(
            "Usage: <code>/reminder 10</code> (minutes before each prayer, 0 = off)",
            reply_markup=reminder_keyboard(user.preferences.reminder_lead_minutes),
        )
        return

    try:
        minutes = int(context.args[0])
    except ValueError:
        await update.message.reply_text("Invalid number of minutes.")
        return

    if not 0 <= minutes <= MAX_REMINDER_LEAD_MINUTES:
        await update.message.reply_text(
            f"Reminder must be between 0 and {MAX_REMINDER_LEAD_MINUTES} minutes."
        )
        return

    prefs = user.preferences
    outcome = await apply_preferences(
        context, user, NotificationPreferences(prefs.muted, prefs.selected_adhan, minutes)
    )

    if minutes:
        text = f"⏳ I'll remind you <b>{minutes} minutes</b> before each prayer."
    else:
        text = "⏳ Pre-prayer reminders turned off."
    await update.message.reply_html(f"{text}\n\n{format_outcome(outcome)}")


async def refresh_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /refresh command - re-download this month and reschedule."""
    if not update.message:
        return

    user = await _get_user(update, context)
    if not user:
        return

    today = local_now(Config.TIMEZONE).date()
    time_source: MonthlyTimeSource = context.bot_data["time_source"]
    try:
        await time_source.refresh(today.year, today.month)
    except FetchError as e:
        logger.warning(f"/refresh download failed, keeping cached times: {e}")
        await update.message.reply_text(
            "🌐 Could not download fresh prayer times. Keeping the ones I already have."
        )
        return

    coordinator = get_coordinator(context.bot_data, context.job_queue, user.telegram_id)  # type: ignore
    coordinator.reset()
    outcome = await coordinator.trigger(user.preferences, TriggerReason.DATA_REFRESHED)

    await update.message.reply_text(format_outcome(outcome))


async def stop_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /stop command - cancel notifications and unregister the chat."""
    if not update.message:
        return

    user = await _get_user(update, context)
    if not user:
        return

    repo: Repository = context.bot_data["repo"]
    await repo.delete_user(user.id)  # type: ignore
    cancelled = forget_chat(context.bot_data, context.job_queue, user.telegram_id)  # type: ignore
    logger.info(f"User {user.telegram_id} stopped, {cancelled} notifications cancelled")

    await update.message.reply_text(
        "🔕 All prayer notifications stopped. Send /start to subscribe again."
    )
