"""Database migration runner.

Migrations are numbered and tracked with SQLite's `user_version` pragma.
Version 1 is the base schema in schema.sql.
"""

import logging
from pathlib import Path
from typing import Awaitable, Callable

import aiosqlite

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schema.sql"


async def _apply_base_schema(db: aiosqlite.Connection) -> None:
    with open(SCHEMA_PATH) as f:
        await db.executescript(f.read())


MIGRATIONS: list[tuple[int, Callable[[aiosqlite.Connection], Awaitable[None]]]] = [
    (1, _apply_base_schema),
]


async def get_schema_version(db: aiosqlite.Connection) -> int:
    async with db.execute("PRAGMA user_version") as cursor:
        row = await cursor.fetchone()
        return row[0] if row else 0


async def run_migrations(db_path: Path) -> int:
    """Apply every migration newer than the database's version.

    Returns:
        The schema version after migrating
    """
    async with aiosqlite.connect(db_path) as db:
        version = await get_schema_version(db)

        for target, migrate in MIGRATIONS:
            if target <= version:
                continue
            await migrate(db)
            # PRAGMA does not take bound parameters
            await db.execute(f"PRAGMA user_version = {target}")
            await db.commit()
            logger.info(f"Applied migration {target}")
            version = target

        logger.info(f"Database at {db_path} is at schema version {version}")
        return version
