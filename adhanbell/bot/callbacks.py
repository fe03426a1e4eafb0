"""Callback query handlers for inline buttons."""

import logging

from telegram import Update
from telegram.ext import ContextTypes

from adhanbell.bot.formatters import format_outcome, format_preferences
from adhanbell.bot.handlers import apply_preferences
from adhanbell.bot.keyboards import adhan_keyboard, mute_keyboard, reminder_keyboard
from adhanbell.db.models import NotificationPreferences, PrayerName
from adhanbell.db.repository import Repository
from adhanbell.utils.constants import ADHAN_OPTIONS, MAX_REMINDER_LEAD_MINUTES

logger = logging.getLogger(__name__)


async def callback_router(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Route inline button presses by their `action:value` data."""
    query = update.callback_query
    if not query or not query.data or not update.effective_chat:
        return

    action, _, value = query.data.partition(":")

    repo: Repository = context.bot_data["repo"]
    user = await repo.get_user_by_telegram_id(update.effective_chat.id)
    if not user:
        await query.answer("Please /start the bot first.")
        return

    prefs = user.preferences

    if action == "mute":
        try:
            prayer = PrayerName.parse(value)
        except ValueError:
            await query.answer("Unknown prayer.")
            return
        new_prefs = prefs.with_toggled(prayer)
        keyboard = mute_keyboard(new_prefs)
        note = f"{'🔕 Muted' if new_prefs.is_muted(prayer) else '🔔 Unmuted'} {prayer.value}"

    elif action == "adhan":
        if value not in ADHAN_OPTIONS:
            await query.answer("Unknown adhan.")
            return
        new_prefs = NotificationPreferences(prefs.muted, value, prefs.reminder_lead_minutes)
        keyboard = adhan_keyboard(value)
        note = f"🔊 Adhan: {value}"

    elif action == "lead":
        try:
            minutes = int(value)
        except ValueError:
            await query.answer("Invalid reminder.")
            return
        if not 0 <= minutes <= MAX_REMINDER_LEAD_MINUTES:
            await query.answer("Invalid reminder.")
            return
        new_prefs = NotificationPreferences(prefs.muted, prefs.selected_adhan, minutes)
        keyboard = reminder_keyboard(minutes)
        note = "⏳ Reminder updated"

    else:
        logger.warning(f"Unknown callback action: {query.data}")
        await query.answer()
        return

    outcome = await apply_preferences(context, user, new_prefs)

    if query.message:
        await query.message.edit_text(
            f"{format_preferences(new_prefs)}\n\n{format_outcome(outcome)}",
            parse_mode="HTML",
            reply_markup=keyboard,
        )
    await query.answer(note)
