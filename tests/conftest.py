"""Shared test fixtures."""

from __future__ import annotations

import pytest

from odds_board.config import Settings
from odds_board.db.migrations import init_db
from odds_board.db.repository import SnapshotRepository


@pytest.fixture
def settings() -> Settings:
    return Settings(
        db_path=":memory:",
        fetch_backoff_seconds=0,
        fetch_backoff_max_seconds=0,
        stream_interval_seconds=0,
        use_mock_feed=True,
    )


@pytest.fixture
async def db():
    conn = await init_db(":memory:")
    yield conn
    await conn.close()


@pytest.fixture
async def repo(db) -> SnapshotRepository:
    return SnapshotRepository(db)
