"""Snapshot persistence for merged records."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Sequence

import aiosqlite
import structlog
from pydantic import ValidationError

from odds_board.api.schemas import MergedRecord, RecordList
from odds_board.db.models import SNAPSHOT_KEY

log = structlog.get_logger()


class SnapshotRepository:
    """Load/save/clear of the full record snapshot.

    Failures never escape: a snapshot that cannot be read or decoded is
    reported as absent, and failed writes are only logged.
    """

    def __init__(self, db: aiosqlite.Connection, key: str = SNAPSHOT_KEY) -> None:
        self._db = db
        self._key = key

    async def load(self) -> list[MergedRecord] | None:
        try:
            cursor = await self._db.execute(
                "SELECT payload, saved_at FROM snapshots WHERE key = ?", (self._key,)
            )
            row = await cursor.fetchone()
        except sqlite3.Error:
            log.exception("snapshot_load_failed", key=self._key)
            return None

        if row is None:
            log.debug("snapshot_missing", key=self._key)
            return None

        try:
            records = RecordList.validate_json(row["payload"])
        except ValidationError as exc:
            log.warning("snapshot_decode_failed", key=self._key, errors=exc.error_count())
            return None

        log.info("snapshot_loaded", key=self._key, records=len(records), saved_at=row["saved_at"])
        return records

    async def save(self, records: Sequence[MergedRecord]) -> bool:
        """Replace the stored snapshot in one transaction. Returns True on success."""
        payload = RecordList.dump_json(list(records)).decode()
        now = datetime.now(timezone.utc).isoformat()
        sql = """
            INSERT OR REPLACE INTO snapshots (key, payload, record_count, saved_at)
            VALUES (?, ?, ?, ?)
        """
        try:
            await self._db.execute(sql, (self._key, payload, len(records), now))
            await self._db.commit()
        except sqlite3.Error:
            log.exception("snapshot_save_failed", key=self._key, records=len(records))
            return False
        log.debug("snapshot_saved", key=self._key, records=len(records))
        return True

    async def clear(self) -> None:
        try:
            await self._db.execute("DELETE FROM snapshots WHERE key = ?", (self._key,))
            await self._db.commit()
        except sqlite3.Error:
            log.exception("snapshot_clear_failed", key=self._key)
            return
        log.info("snapshot_cleared", key=self._key)

    async def info(self) -> dict[str, int | str] | None:
        """Row metadata for the stored snapshot, without decoding the payload."""
        cursor = await self._db.execute(
            "SELECT record_count, saved_at FROM snapshots WHERE key = ?", (self._key,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return {"records": row["record_count"], "saved_at": row["saved_at"]}
