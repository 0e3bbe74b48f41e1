"""Entry point for odds-board."""

from __future__ import annotations

import asyncio
import signal
import sys

import httpx
import structlog

from odds_board.api.client import BulkFetchClient
from odds_board.api.mock_feed import MockFeed
from odds_board.config import Settings
from odds_board.db.migrations import init_db
from odds_board.db.repository import SnapshotRepository
from odds_board.stream.channel import MockUpdateChannel
from odds_board.sync.checkpoint import CheckpointTimer, create_scheduler
from odds_board.sync.notifications import (
    LoadStateChanged,
    Notification,
    OddsChanged,
    WindowAppended,
    WindowReset,
)
from odds_board.sync.orchestrator import SyncOrchestrator

log = structlog.get_logger()


def configure_logging(level: str) -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer() if sys.stderr.isatty() else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            structlog._log_levels.NAME_TO_LEVEL[level.lower()]
        ),
    )


def build_client(settings: Settings) -> BulkFetchClient:
    transport: httpx.AsyncBaseTransport | None = None
    if settings.use_mock_feed:
        feed = MockFeed(
            event_count=settings.mock_event_count,
            events_path=settings.events_path,
            odds_path=settings.odds_path,
            reset_path=settings.reset_path,
        )
        transport = feed.transport
        log.info("mock_feed_enabled", events=len(feed.events))
    return BulkFetchClient(settings, transport=transport)


async def report(queue: asyncio.Queue[Notification]) -> None:
    """Log what the presentation layer would render."""
    while True:
        note = await queue.get()
        if isinstance(note, WindowReset):
            log.info("window_reset", generation=note.generation)
        elif isinstance(note, WindowAppended):
            log.info("window_appended", generation=note.generation, ids=len(note.ids))
        elif isinstance(note, OddsChanged):
            log.info("odds_changed", ids=list(note.ids))
        elif isinstance(note, LoadStateChanged):
            log.info("load_state_changed", status=note.state.status.value, error=note.state.error)


async def run() -> None:
    settings = Settings()
    configure_logging(settings.log_level)

    log.info("starting", version="0.1.0")

    db = await init_db(settings.db_path)
    repo = SnapshotRepository(db)
    client = build_client(settings)
    channel = MockUpdateChannel(
        interval_seconds=settings.stream_interval_seconds,
        max_batch=settings.stream_max_batch,
    )
    scheduler = create_scheduler()
    timer = CheckpointTimer(scheduler, settings.checkpoint_interval_seconds)
    orchestrator = SyncOrchestrator(settings, client, channel, repo, timer)
    reporter = asyncio.create_task(report(orchestrator.subscribe()))

    stop_event = asyncio.Event()
    background: set[asyncio.Task] = set()

    def handle_shutdown(*_: object) -> None:
        log.info("shutdown_requested")
        stop_event.set()

    def spawn(coro_fn) -> None:
        task = asyncio.create_task(coro_fn())
        background.add(task)
        task.add_done_callback(background.discard)

    loop = asyncio.get_running_loop()
    handlers = {
        signal.SIGINT: handle_shutdown,
        signal.SIGTERM: handle_shutdown,
    }
    # App lifecycle stand-ins: SIGUSR1 = background, SIGUSR2 = foreground
    if hasattr(signal, "SIGUSR1"):
        handlers[signal.SIGUSR1] = lambda: spawn(orchestrator.suspend)
        handlers[signal.SIGUSR2] = lambda: spawn(orchestrator.resume)
    for sig, handler in handlers.items():
        try:
            loop.add_signal_handler(sig, handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    scheduler.start()
    await orchestrator.load_next_page()

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        await orchestrator.suspend()
        await orchestrator.close()
        reporter.cancel()
        scheduler.shutdown(wait=False)
        await client.close()
        await db.close()
        log.info("shutdown_complete")


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
