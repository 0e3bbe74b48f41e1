"""Database initialization and migrations."""

from __future__ import annotations

from pathlib import Path

import aiosqlite
import structlog

from odds_board.db.models import SCHEMA_SQL, SCHEMA_VERSION

log = structlog.get_logger()


async def init_db(db_path: str) -> aiosqlite.Connection:
    """Open the snapshot database, creating the schema on first use."""
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    db = await aiosqlite.connect(db_path)
    db.row_factory = aiosqlite.Row
    if db_path != ":memory:":
        # Readers keep seeing the last committed snapshot while a save runs.
        await db.execute("PRAGMA journal_mode=WAL")

    cursor = await db.execute("PRAGMA user_version")
    row = await cursor.fetchone()
    current = row[0] if row else 0
    await db.executescript(SCHEMA_SQL)
    if current < SCHEMA_VERSION:
        await db.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
    await db.commit()
    log.info("database_initialized", path=db_path, schema_version=SCHEMA_VERSION, previous=current)
    return db
