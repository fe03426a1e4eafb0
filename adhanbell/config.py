"""Configuration management from environment variables."""

import os
from pathlib import Path
from zoneinfo import ZoneInfo

from adhanbell.utils.constants import (
    ALADHAN_BASE_URL,
    ASR_SCHOOL_SHAFI,
    CALCULATION_METHOD_SINGAPORE,
    DEFAULT_COOLDOWN_MINUTES,
    DEFAULT_FETCH_FAILURE_TTL,
    DEFAULT_HORIZON_DAYS,
    DEFAULT_LATITUDE,
    DEFAULT_LONGITUDE,
    DEFAULT_TIMEZONE,
)

# Load .env file if it exists
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass  # python-dotenv not installed, use system env vars


class Config:
    """Application configuration loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")

    # Database
    DATABASE_PATH: Path = Path(os.getenv("DATABASE_PATH", "./data/adhanbell.db"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Prayer times location
    TIMEZONE: str = os.getenv("TIMEZONE", DEFAULT_TIMEZONE)
    LATITUDE: float = float(os.getenv("LATITUDE", str(DEFAULT_LATITUDE)))
    LONGITUDE: float = float(os.getenv("LONGITUDE", str(DEFAULT_LONGITUDE)))
    CALCULATION_METHOD: int = int(os.getenv("CALCULATION_METHOD", str(CALCULATION_METHOD_SINGAPORE)))
    ASR_SCHOOL: int = int(os.getenv("ASR_SCHOOL", str(ASR_SCHOOL_SHAFI)))

    # Remote time source
    ALADHAN_BASE_URL: str = os.getenv("ALADHAN_BASE_URL", ALADHAN_BASE_URL)
    FETCH_RETRIES: int = int(os.getenv("FETCH_RETRIES", "3"))
    FETCH_TIMEOUT: float = float(os.getenv("FETCH_TIMEOUT", "15"))
    FETCH_FAILURE_TTL: float = float(
        os.getenv("FETCH_FAILURE_TTL", str(DEFAULT_FETCH_FAILURE_TTL))
    )

    # Engine
    TICK_INTERVAL: int = int(os.getenv("TICK_INTERVAL", "60"))
    SCHEDULE_COOLDOWN_MINUTES: float = float(
        os.getenv("SCHEDULE_COOLDOWN_MINUTES", str(DEFAULT_COOLDOWN_MINUTES))
    )
    HORIZON_DAYS: int = int(os.getenv("HORIZON_DAYS", str(DEFAULT_HORIZON_DAYS)))

    # Adhan audio files
    ADHAN_AUDIO_DIR: Path = Path(os.getenv("ADHAN_AUDIO_DIR", "./adhans"))

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration."""
        if not cls.TELEGRAM_BOT_TOKEN:
            raise ValueError("TELEGRAM_BOT_TOKEN environment variable is required")

        try:
            ZoneInfo(cls.TIMEZONE)
        except Exception:
            raise ValueError(f"Unknown TIMEZONE: {cls.TIMEZONE}")

        if cls.HORIZON_DAYS <= 0:
            raise ValueError("HORIZON_DAYS must be positive")

        if cls.SCHEDULE_COOLDOWN_MINUTES < 0:
            raise ValueError("SCHEDULE_COOLDOWN_MINUTES must not be negative")

        if cls.TICK_INTERVAL <= 0:
            raise ValueError("TICK_INTERVAL must be positive")

        # Ensure database directory exists
        cls.DATABASE_PATH.parent.mkdir(parents=True, exist_ok=True)
