"""Sync orchestrator: cache warm-start, bulk refresh, paging and live odds."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Protocol

import structlog

from odds_board.api.schemas import Event, MergedRecord, OddsQuote
from odds_board.config import Settings
from odds_board.db.repository import SnapshotRepository
from odds_board.engine.pagination import Paginator
from odds_board.engine.reconcile import merge_bulk, merge_incremental
from odds_board.engine.store import RecordStore
from odds_board.errors import SyncError
from odds_board.stream.channel import UpdateChannel
from odds_board.sync.checkpoint import CheckpointTimer
from odds_board.sync.notifications import (
    LoadState,
    LoadStateChanged,
    LoadStatus,
    Notification,
    OddsChanged,
    WindowAppended,
    WindowReset,
)

log = structlog.get_logger()


class FetchClient(Protocol):
    async def fetch_all(self) -> tuple[list[Event], list[OddsQuote]]: ...

    async def reset(self) -> None: ...


class SyncOrchestrator:
    """Single owner of the record store, the visible window and the pager.

    Everything runs on one event loop. Each step that mutates the store and
    emits notifications contains no await, so merges never interleave. Work
    that does await (cache reads, bulk fetches, checkpoint writes) captures
    the generation when it starts and is dropped if the generation has moved
    on by the time it completes.
    """

    def __init__(
        self,
        settings: Settings,
        client: FetchClient,
        channel: UpdateChannel,
        repo: SnapshotRepository,
        timer: CheckpointTimer,
    ) -> None:
        self._settings = settings
        self._client = client
        self._channel = channel
        self._repo = repo
        self._timer = timer

        self._store = RecordStore()
        self._paginator = Paginator(self._store, settings.page_size)
        self._window: list[int] = []
        self._state = LoadState.idle()
        self._generation = 0
        self._refresh_pending = False

        self._subscribers: list[asyncio.Queue[Notification]] = []
        self._fetch_task: asyncio.Task | None = None
        self._checkpoint_task: asyncio.Task | None = None
        self._stream_task: asyncio.Task | None = None

    # ── Read access ─────────────────────────────────────────────────

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def window(self) -> tuple[int, ...]:
        return tuple(self._window)

    def record(self, event_id: int) -> MergedRecord | None:
        return self._store.get(event_id)

    def records(self) -> tuple[MergedRecord, ...]:
        return self._store.snapshot()

    def subscribe(self) -> asyncio.Queue[Notification]:
        """Register a consumer. Every notification is delivered to every queue."""
        queue: asyncio.Queue[Notification] = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    # ── Commands ────────────────────────────────────────────────────

    async def load_next_page(self) -> list[int] | None:
        """Append the next page to the window, loading data first if there is none."""
        if self._state.status is LoadStatus.LOADING:
            log.debug("page_request_ignored", reason="loading")
            return None
        if not self._store:
            await self._cold_start()
            return list(self._window) or None
        return self._append_page()

    async def retry(self) -> None:
        """Discard everything and reload from the network with a remote reset."""
        log.info("retry_requested", generation=self._generation)
        self._bump_generation()
        self._cancel_fetch()
        self._cancel_checkpoint()
        self._timer.stop()
        self._channel.disconnect()
        self._store.clear()
        self._paginator.reset()
        self._window.clear()
        self._emit(WindowReset(self._generation))
        self._set_state(LoadState.loading())
        self._refresh_pending = False
        generation = self._generation

        await self._repo.clear()
        if generation != self._generation:
            log.info("retry_superseded", generation=generation, current=self._generation)
            return
        await self._run_fetch(reset=True)

    def update_odds(self, event_id: int, odds_a: float, odds_b: float) -> bool:
        """Apply a single odds update. Returns True if the record exists and changed."""
        quote = OddsQuote(event_id=event_id, odds_a=odds_a, odds_b=odds_b)
        return bool(self._apply_batch([quote]))

    async def checkpoint(self) -> None:
        """Persist the current store. Skipped when empty."""
        if not self._store:
            log.debug("checkpoint_skipped", reason="empty")
            return
        if self._checkpoint_task is not None and not self._checkpoint_task.done():
            log.debug("checkpoint_skipped", reason="in_progress")
            return
        task = asyncio.create_task(self._save_snapshot(self._generation, self._store.snapshot()))
        self._checkpoint_task = task
        await asyncio.wait({task})

    async def suspend(self) -> None:
        """Going to background: stop the timer, flush a checkpoint, drop the stream."""
        log.info("suspend", generation=self._generation)
        self._timer.stop()
        self._cancel_checkpoint()
        fetching = self._fetch_task is not None and not self._fetch_task.done()
        if fetching or self._state.status is LoadStatus.LOADING:
            # Pending cache reads and fetches see the new generation and drop their results.
            self._bump_generation()
            self._cancel_fetch()
            if self._state.status is LoadStatus.LOADING:
                self._set_state(LoadState.loaded() if self._store else LoadState.idle())

        if self._store:
            await self._repo.save(self._store.snapshot())
        self._channel.disconnect()

    async def resume(self) -> None:
        """Back in foreground: reconnect the stream and timer if data is loaded."""
        if not self._store:
            log.debug("resume_noop", reason="no_data")
            return
        log.info("resume", generation=self._generation, records=len(self._store))
        self._connect_stream()
        self._timer.start(self.checkpoint)
        if self._refresh_pending and (self._fetch_task is None or self._fetch_task.done()):
            log.info("background_refresh_restarted", generation=self._generation)
            self._fetch_task = asyncio.create_task(self._fetch(self._generation, reset=False))

    async def wait_for_refresh(self) -> None:
        """Wait for the in-flight bulk fetch, if any, to finish."""
        if self._fetch_task is not None and not self._fetch_task.done():
            await asyncio.wait({self._fetch_task})

    async def close(self) -> None:
        self._bump_generation()
        self._timer.stop()
        self._cancel_fetch()
        self._cancel_checkpoint()
        self._channel.disconnect()
        tasks = [t for t in (self._fetch_task, self._checkpoint_task, self._stream_task) if t]
        if self._stream_task is not None:
            self._stream_task.cancel()
            self._stream_task = None
        if tasks:
            await asyncio.wait(tasks)
        log.info("orchestrator_closed")

    # ── Loading ─────────────────────────────────────────────────────

    async def _cold_start(self) -> None:
        self._set_state(LoadState.loading())
        generation = self._bump_generation()

        cached = await self._load_cache()
        if generation != self._generation:
            log.info("cache_result_discarded", generation=generation, current=self._generation)
            return

        if cached:
            log.info("warm_start", records=len(cached))
            self._replace_records(cached)
            self._refresh_pending = True
            self._fetch_task = asyncio.create_task(self._fetch(self._generation, reset=False))
            return

        await self._run_fetch(reset=False)

    async def _load_cache(self) -> list[MergedRecord] | None:
        records = await self._repo.load()
        if records is None:
            return None
        now = datetime.now(timezone.utc)
        fresh = [r for r in records if r.event.start_time > now]
        if not fresh:
            log.info("snapshot_stale", records=len(records))
            await self._repo.clear()
            return None
        if len(fresh) < len(records):
            log.info("snapshot_pruned", kept=len(fresh), dropped=len(records) - len(fresh))
        return fresh

    async def _run_fetch(self, reset: bool) -> None:
        self._cancel_fetch()
        task = asyncio.create_task(self._fetch(self._generation, reset=reset))
        self._fetch_task = task
        await asyncio.wait({task})

    async def _fetch(self, generation: int, reset: bool) -> None:
        try:
            if reset:
                await self._client.reset()
            events, odds = await self._client.fetch_all()
        except SyncError as exc:
            self._fetch_failed(generation, str(exc))
            return
        except Exception:
            log.exception("fetch_error", generation=generation)
            self._fetch_failed(generation, "Unexpected error while loading odds")
            return

        if generation != self._generation:
            log.info("fetch_result_discarded", generation=generation, current=self._generation)
            return
        self._refresh_pending = False
        self._replace_records(merge_bulk(events, odds))

    def _fetch_failed(self, generation: int, message: str) -> None:
        if generation != self._generation:
            log.info("fetch_failure_discarded", generation=generation, current=self._generation)
            return
        self._refresh_pending = False
        log.error("load_failed", error=message, generation=generation)
        self._set_state(LoadState.failed(message))

    def _replace_records(self, records: list[MergedRecord]) -> None:
        generation = self._bump_generation()
        self._store.replace(records)
        self._paginator.reset()
        self._window.clear()
        self._emit(WindowReset(generation))
        self._set_state(LoadState.loaded())
        self._append_page()
        self._connect_stream()
        self._timer.start(self.checkpoint)
        log.info("records_replaced", records=len(records), generation=generation)

    # ── Paging ──────────────────────────────────────────────────────

    def _append_page(self) -> list[int] | None:
        page = self._paginator.next_page()
        if page is None:
            log.debug("no_more_pages", window=len(self._window))
            return None
        self._window.extend(page)
        self._emit(WindowAppended(self._generation, tuple(page)))
        log.debug("page_appended", size=len(page), window=len(self._window))
        return page

    # ── Incremental updates ─────────────────────────────────────────

    def _connect_stream(self) -> None:
        self._channel.connect(self._store.ids())
        if self._stream_task is None:
            self._stream_task = asyncio.create_task(self._consume_stream())

    async def _consume_stream(self) -> None:
        try:
            async for batch in self._channel.stream():
                self._apply_batch(batch)
        except Exception:
            # Fail closed: the stream is not restartable, live odds stop until a new orchestrator.
            log.exception("odds_stream_error")
            self._channel.disconnect()
            return
        log.warning("odds_stream_ended")

    def _apply_batch(self, batch: list[OddsQuote]) -> set[int]:
        changed = merge_incremental(self._store, batch)
        if changed:
            self._emit(OddsChanged(tuple(sorted(changed))))
            log.debug("odds_merged", changed=len(changed), batch=len(batch))
        return changed

    # ── Checkpointing ───────────────────────────────────────────────

    async def _save_snapshot(self, generation: int, records: tuple[MergedRecord, ...]) -> None:
        if generation != self._generation:
            log.info("checkpoint_discarded", generation=generation, current=self._generation)
            return
        if await self._repo.save(records):
            log.info("checkpoint_saved", records=len(records), generation=generation)

    # ── Internal ────────────────────────────────────────────────────

    def _bump_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _set_state(self, state: LoadState) -> None:
        if state == self._state:
            return
        log.info("load_state", status=state.status.value, error=state.error)
        self._state = state
        self._emit(LoadStateChanged(state))

    def _emit(self, notification: Notification) -> None:
        for queue in self._subscribers:
            queue.put_nowait(notification)

    def _cancel_fetch(self) -> None:
        if self._fetch_task is not None and not self._fetch_task.done():
            self._fetch_task.cancel()
            log.info("fetch_cancelled")

    def _cancel_checkpoint(self) -> None:
        if self._checkpoint_task is not None and not self._checkpoint_task.done():
            self._checkpoint_task.cancel()
            log.info("checkpoint_cancelled")
