"""Incremental odds update channel."""

from __future__ import annotations

import abc
import asyncio
import random
from typing import AsyncIterator, Iterable

import structlog

from odds_board.api.mock_feed import random_odds
from odds_board.api.schemas import OddsQuote

log = structlog.get_logger()


class UpdateChannel(abc.ABC):
    """Push source of odds batches scoped to a subscribed id set.

    Only one subscription is active at a time. `connect` supersedes the
    previous subscription, and batches produced for a superseded one are never
    delivered. `stream()` may be called once per channel.
    """

    @abc.abstractmethod
    def connect(self, ids: Iterable[int]) -> None:
        ...

    @abc.abstractmethod
    def disconnect(self) -> None:
        ...

    @abc.abstractmethod
    def stream(self) -> AsyncIterator[list[OddsQuote]]:
        ...

    @property
    @abc.abstractmethod
    def connected(self) -> bool:
        ...

    @property
    @abc.abstractmethod
    def subscribed_ids(self) -> frozenset[int]:
        ...


class MockUpdateChannel(UpdateChannel):
    """Demo channel that broadcasts random odds for the subscribed ids."""

    def __init__(
        self,
        interval_seconds: float = 1.0,
        max_batch: int = 10,
        rng: random.Random | None = None,
    ) -> None:
        self._interval = interval_seconds
        self._max_batch = max_batch
        self._rng = rng or random.Random()
        # Each queued batch is tagged with the subscription it was produced for.
        self._queue: asyncio.Queue[tuple[int, list[OddsQuote]]] = asyncio.Queue()
        self._subscription = 0
        self._ids: frozenset[int] = frozenset()
        self._connected = False
        self._broadcaster: asyncio.Task | None = None
        self._streaming = False

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def subscribed_ids(self) -> frozenset[int]:
        return self._ids

    def connect(self, ids: Iterable[int]) -> None:
        self._stop_broadcaster()
        self._subscription += 1
        self._ids = frozenset(ids)
        self._connected = True
        if self._interval > 0:
            self._broadcaster = asyncio.get_running_loop().create_task(
                self._broadcast_loop(self._subscription)
            )
        log.info("channel_connected", ids=len(self._ids), subscription=self._subscription)

    def disconnect(self) -> None:
        if not self._connected:
            return
        self._stop_broadcaster()
        self._subscription += 1
        self._ids = frozenset()
        self._connected = False
        log.info("channel_disconnected")

    def publish(self, batch: Iterable[OddsQuote]) -> int:
        """Queue a batch on the active subscription. Returns the number of quotes queued."""
        if not self._connected:
            return 0
        scoped = [q for q in batch if q.event_id in self._ids]
        if scoped:
            self._queue.put_nowait((self._subscription, scoped))
        return len(scoped)

    def stream(self) -> AsyncIterator[list[OddsQuote]]:
        if self._streaming:
            raise RuntimeError("odds stream already consumed")
        self._streaming = True
        return self._iterate()

    # ── Internal ────────────────────────────────────────────────────

    async def _iterate(self) -> AsyncIterator[list[OddsQuote]]:
        while True:
            subscription, batch = await self._queue.get()
            if subscription != self._subscription:
                continue
            yield batch

    async def _broadcast_loop(self, subscription: int) -> None:
        while subscription == self._subscription:
            await asyncio.sleep(self._interval)
            if not self._ids:
                continue
            self.publish(self._random_batch())

    def _random_batch(self) -> list[OddsQuote]:
        count = self._rng.randint(1, min(self._max_batch, len(self._ids)))
        selected = self._rng.sample(sorted(self._ids), count)
        return [
            OddsQuote(
                event_id=event_id,
                odds_a=random_odds(self._rng),
                odds_b=random_odds(self._rng),
            )
            for event_id in selected
        ]

    def _stop_broadcaster(self) -> None:
        if self._broadcaster is not None:
            self._broadcaster.cancel()
            self._broadcaster = None
