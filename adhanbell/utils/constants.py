"""Constants and default values."""

from dataclasses import dataclass


@dataclass
class AdhanOption:
    """A selectable adhan recording."""

    name: str
    filename: str | None  # None means no audio


# Selectable adhans (keyed by display name)
ADHAN_OPTIONS = {
    "Ahmad Al-Nafees": AdhanOption("Ahmad Al-Nafees", "ahmadAlNafees.mp3"),
    "Mishary Rashid Alafasy": AdhanOption("Mishary Rashid Alafasy", "mishary.mp3"),
    "None": AdhanOption("None", None),
}

DEFAULT_ADHAN = "None"

# Minutes before a prayer for the pre-prayer reminder (0 disables it)
DEFAULT_REMINDER_LEAD_MINUTES = 0
REMINDER_LEAD_CHOICES = [0, 5, 10, 15, 20, 30]
MAX_REMINDER_LEAD_MINUTES = 120

# Scheduling coordinator
DEFAULT_COOLDOWN_MINUTES = 5
DEFAULT_HORIZON_DAYS = 5

# Aladhan calendar API
ALADHAN_BASE_URL = "https://api.aladhan.com/v1"
CALCULATION_METHOD_SINGAPORE = 11
ASR_SCHOOL_SHAFI = 0

# Seconds a failed month download is remembered before retrying
DEFAULT_FETCH_FAILURE_TTL = 30

# Aladhan timing keys -> prayer names
ALADHAN_TIMING_KEYS = {
    "Fajr": "Subuh",
    "Sunrise": "Syuruk",
    "Dhuhr": "Zohor",
    "Asr": "Asar",
    "Maghrib": "Maghrib",
    "Isha": "Isyak",
}

# Default location (Singapore)
DEFAULT_LATITUDE = 1.3521
DEFAULT_LONGITUDE = 103.8198

# Default timezone
DEFAULT_TIMEZONE = "Asia/Singapore"

# Telegram job names for scheduled notifications start with this
NOTIFICATION_JOB_PREFIX = "prayer"
