"""SQL schema definitions for odds_board."""

SCHEMA_VERSION = 1

SNAPSHOT_KEY = "cached_records"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS snapshots (
    key TEXT PRIMARY KEY,
    payload TEXT NOT NULL,
    record_count INTEGER NOT NULL,
    saved_at TEXT NOT NULL
);
"""
