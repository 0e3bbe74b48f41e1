"""CLI commands for odds-board (cache inspection, one-off fetch)."""

from __future__ import annotations

import argparse
import asyncio
import sys

from odds_board.api.schemas import MergedRecord
from odds_board.config import Settings
from odds_board.db.migrations import init_db
from odds_board.db.repository import SnapshotRepository
from odds_board.engine.reconcile import merge_bulk
from odds_board.errors import SyncError
from odds_board.main import build_client, configure_logging


def _format_record(record: MergedRecord) -> str:
    event, odds = record.event, record.odds
    return (
        f"  {event.id:>6}  {event.start_time:%Y-%m-%d %H:%M}  "
        f"{event.participant_a} vs {event.participant_b}  "
        f"{odds.odds_a:.2f} / {odds.odds_b:.2f}"
    )


async def run_cache_show(limit: int) -> None:
    settings = Settings()
    configure_logging(settings.log_level)

    db = await init_db(settings.db_path)
    repo = SnapshotRepository(db)

    info = await repo.info()
    records = await repo.load()
    if info is None or records is None:
        print("No cached snapshot.")
    else:
        print(f"Cached snapshot: {info['records']} records, saved {info['saved_at']}")
        for record in records[:limit]:
            print(_format_record(record))
        if len(records) > limit:
            print(f"  ... {len(records) - limit} more")

    await db.close()


async def run_cache_clear() -> None:
    settings = Settings()
    configure_logging(settings.log_level)

    db = await init_db(settings.db_path)
    await SnapshotRepository(db).clear()
    print("Cache cleared.")

    await db.close()


async def run_fetch(save: bool) -> int:
    settings = Settings()
    configure_logging(settings.log_level)

    client = build_client(settings)
    try:
        events, odds = await client.fetch_all()
    except SyncError as exc:
        print(f"Fetch failed: {exc}")
        return 1
    finally:
        await client.close()

    records = merge_bulk(events, odds)
    print(f"Fetched {len(events)} events, {len(odds)} odds -> {len(records)} records")

    if save:
        db = await init_db(settings.db_path)
        await SnapshotRepository(db).save(records)
        await db.close()
        print("Snapshot saved.")
    return 0


def cli() -> None:
    parser = argparse.ArgumentParser(prog="odds-board-tools", description="odds-board CLI tools")
    sub = parser.add_subparsers(dest="command")

    cache = sub.add_parser("cache", help="Inspect or clear the cached snapshot")
    cache_sub = cache.add_subparsers(dest="action")
    show = cache_sub.add_parser("show", help="Print the cached records")
    show.add_argument("--limit", type=int, default=20, help="Records to print")
    cache_sub.add_parser("clear", help="Delete the cached snapshot")

    fetch = sub.add_parser("fetch", help="Run one bulk fetch and print a summary")
    fetch.add_argument("--save", action="store_true", help="Store the result as the cached snapshot")

    args = parser.parse_args()

    if args.command == "cache" and args.action == "show":
        asyncio.run(run_cache_show(args.limit))
    elif args.command == "cache" and args.action == "clear":
        asyncio.run(run_cache_clear())
    elif args.command == "fetch":
        sys.exit(asyncio.run(run_fetch(args.save)))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    cli()
