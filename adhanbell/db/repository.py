"""Database repository - all SQL queries."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List

import aiosqlite

from adhanbell.db.models import MonthlyPrayerTimes, NotificationPreferences, User
from adhanbell.errors import MalformedScheduleError

logger = logging.getLogger(__name__)


class Repository:
    """Database access layer."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open database connection."""
        self._db = await aiosqlite.connect(self.db_path)
        self._db.row_factory = aiosqlite.Row
        logger.info(f"Connected to database at {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("Database connection closed")

    @property
    def db(self) -> aiosqlite.Connection:
        """Get the database connection."""
        if self._db is None:
            raise RuntimeError("Database not connected")
        return self._db

    # User operations

    async def get_user_by_telegram_id(self, telegram_id: int) -> User | None:
        """Get user by Telegram chat ID."""
        async with self.db.execute(
            "SELECT * FROM users WHERE telegram_id = ?", (telegram_id,)
        ) as cursor:
            row = await cursor.fetchone()
            if row:
                return self._row_to_user(row)
            return None

    async def get_all_users(self) -> List[User]:
        """Get every registered user."""
        async with self.db.execute("SELECT * FROM users ORDER BY id") as cursor:
            rows = await cursor.fetchall()
            return [self._row_to_user(row) for row in rows]

    async def create_user(self, telegram_id: int) -> User:
        """Register a chat with default preferences."""
        async with self.db.execute(
            "INSERT INTO users (telegram_id) VALUES (?) RETURNING *",
            (telegram_id,),
        ) as cursor:
            row = await cursor.fetchone()
            await self.db.commit()

        logger.info(f"Created user {telegram_id}")
        return self._row_to_user(row)

    async def update_preferences(
        self, user_id: int, preferences: NotificationPreferences
    ) -> None:
        """Persist a user's notification preferences."""
        await self.db.execute(
            """
            UPDATE users SET
                muted_prayers = ?,
                selected_adhan = ?,
                reminder_lead_minutes = ?
            WHERE id = ?
            """,
            (
                json.dumps(preferences.muted_names()),
                preferences.selected_adhan,
                preferences.reminder_lead_minutes,
                user_id,
            ),
        )
        await self.db.commit()

    async def delete_user(self, user_id: int) -> None:
        """Unregister a user."""
        await self.db.execute("DELETE FROM users WHERE id = ?", (user_id,))
        await self.db.commit()

    # Monthly prayer time cache

    async def get_monthly_times(self, year: int, month: int) -> MonthlyPrayerTimes | None:
        """Get a cached month, or None on a cache miss."""
        async with self.db.execute(
            "SELECT payload FROM monthly_prayer_times WHERE year = ? AND month = ?",
            (year, month),
        ) as cursor:
            row = await cursor.fetchone()
            if row is None:
                return None

        try:
            payload = json.loads(row["payload"])
        except json.JSONDecodeError as e:
            raise MalformedScheduleError(f"{year}-{month:02d}: cached payload is not JSON: {e}") from e

        if not isinstance(payload, dict):
            raise MalformedScheduleError(f"{year}-{month:02d}: cached payload is not a day mapping")

        return MonthlyPrayerTimes.from_mapping(year, month, payload)

    async def save_monthly_times(self, monthly: MonthlyPrayerTimes, source: str) -> None:
        """Cache a month, replacing any previous copy."""
        await self.db.execute(
            """
            INSERT INTO monthly_prayer_times (year, month, source, payload, fetched_at)
            VALUES (?, ?, ?, ?, datetime('now'))
            ON CONFLICT (year, month) DO UPDATE SET
                source = excluded.source,
                payload = excluded.payload,
                fetched_at = excluded.fetched_at
            """,
            (monthly.year, monthly.month, source, json.dumps(monthly.to_mapping())),
        )
        await self.db.commit()

    async def delete_monthly_times(self, year: int, month: int) -> None:
        """Drop a cached month."""
        await self.db.execute(
            "DELETE FROM monthly_prayer_times WHERE year = ? AND month = ?",
            (year, month),
        )
        await self.db.commit()

    # Helper methods

    def _row_to_user(self, row: aiosqlite.Row) -> User:
        """Convert a database row to a User object."""
        return User(
            id=row["id"],
            telegram_id=row["telegram_id"],
            preferences=NotificationPreferences.create(
                muted=json.loads(row["muted_prayers"]),
                selected_adhan=row["selected_adhan"],
                reminder_lead_minutes=row["reminder_lead_minutes"],
            ),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
