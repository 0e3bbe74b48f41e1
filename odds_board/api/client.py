"""Async bulk fetch client for the events and odds collections."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from odds_board.api.schemas import Event, EventList, OddsList, OddsQuote
from odds_board.config import Settings
from odds_board.errors import DecodeFailed, FetchFailed, InvalidRequest

log = structlog.get_logger()

RETRYABLE = (httpx.TransportError, httpx.HTTPStatusError, DecodeFailed)


class BulkFetchClient:
    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.api_base_url,
            timeout=settings.request_timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    # ── Public methods ──────────────────────────────────────────────

    async def fetch_events(self) -> list[Event]:
        return await self._get_collection(self._settings.events_path, EventList)

    async def fetch_odds(self) -> list[OddsQuote]:
        return await self._get_collection(self._settings.odds_path, OddsList)

    async def fetch_all(self) -> tuple[list[Event], list[OddsQuote]]:
        """Fetch events and odds concurrently. Both must succeed."""
        events_task = asyncio.ensure_future(self.fetch_events())
        odds_task = asyncio.ensure_future(self.fetch_odds())
        try:
            events, odds = await asyncio.gather(events_task, odds_task)
        except BaseException:
            events_task.cancel()
            odds_task.cancel()
            raise
        log.info("bulk_fetch_complete", events=len(events), odds=len(odds))
        return events, odds

    async def reset(self) -> None:
        """Ask the remote side to discard its demo state before a fresh fetch."""
        try:
            resp = await self._client.post(self._settings.reset_path)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            log.warning("remote_reset_failed", error=str(exc))
            return
        log.info("remote_reset")

    # ── Internal ────────────────────────────────────────────────────

    async def _get_collection(self, path: str, adapter: TypeAdapter[Any]) -> list[Any]:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.fetch_max_attempts),
            wait=wait_exponential(
                multiplier=self._settings.fetch_backoff_seconds,
                max=self._settings.fetch_backoff_max_seconds,
            ),
            retry=retry_if_exception_type(RETRYABLE),
            before_sleep=_log_retry(path),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self._get_once(path, adapter)
        except RETRYABLE as exc:
            log.error(
                "bulk_fetch_failed",
                path=path,
                attempts=self._settings.fetch_max_attempts,
                error=str(exc),
            )
            raise FetchFailed(f"Could not load {path.strip('/') or path}: {_describe(exc)}") from exc
        raise FetchFailed(f"Could not load {path}")

    async def _get_once(self, path: str, adapter: TypeAdapter[Any]) -> list[Any]:
        resp = await self._client.get(path)
        if resp.status_code == 404:
            raise InvalidRequest(path)
        resp.raise_for_status()
        try:
            return adapter.validate_json(resp.content)
        except ValidationError as exc:
            raise DecodeFailed(f"Failed to decode {path}: {exc.error_count()} error(s)") from exc


def _log_retry(path: str):
    def before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        log.warning(
            "bulk_fetch_retry",
            path=path,
            attempt=state.attempt_number,
            error=str(exc),
        )

    return before_sleep


def _describe(exc: BaseException) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"server responded {exc.response.status_code}"
    if isinstance(exc, httpx.TransportError):
        return "network request failed"
    return str(exc)
