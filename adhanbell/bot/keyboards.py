"""Inline keyboard builders."""

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from adhanbell.db.models import PRAYER_ORDER, NotificationPreferences
from adhanbell.utils.constants import ADHAN_OPTIONS, REMINDER_LEAD_CHOICES
from adhanbell.utils.time_utils import format_duration


def adhan_keyboard(selected: str) -> InlineKeyboardMarkup:
    """Keyboard for choosing the adhan."""
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton(
                    f"{'● ' if name == selected else ''}{name}",
                    callback_data=f"adhan:{name}",
                )
            ]
            for name in ADHAN_OPTIONS
        ]
    )


def mute_keyboard(prefs: NotificationPreferences) -> InlineKeyboardMarkup:
    """Keyboard with one mute toggle per prayer, two per row."""
    buttons = [
        InlineKeyboardButton(
            f"{'🔕' if prefs.is_muted(prayer) else '🔔'} {prayer.value}",
            callback_data=f"mute:{prayer.value}",
        )
        for prayer in PRAYER_ORDER
    ]
    return InlineKeyboardMarkup([buttons[i:i + 2] for i in range(0, len(buttons), 2)])


def reminder_keyboard(selected: int) -> InlineKeyboardMarkup:
    """Keyboard for the pre-prayer reminder lead time."""
    buttons = [
        InlineKeyboardButton(
            f"{'● ' if minutes == selected else ''}{format_duration(minutes)}",
            callback_data=f"lead:{minutes}",
        )
        for minutes in REMINDER_LEAD_CHOICES
    ]
    return InlineKeyboardMarkup([buttons[i:i + 3] for i in range(0, len(buttons), 3)])
