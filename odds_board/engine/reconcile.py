"""Merging bulk fetch results and incremental odds batches."""

from __future__ import annotations

from typing import Iterable

import structlog

from odds_board.api.schemas import Event, MergedRecord, OddsQuote
from odds_board.engine.store import RecordStore, sort_key

log = structlog.get_logger()


def merge_bulk(events: Iterable[Event], odds: Iterable[OddsQuote]) -> list[MergedRecord]:
    """Join events with their odds, ordered by start time then id.

    Events without odds are dropped. If the odds contain the same event id
    more than once, the later entry wins.
    """
    odds_by_id: dict[int, OddsQuote] = {}
    for quote in odds:
        odds_by_id[quote.event_id] = quote

    merged: list[MergedRecord] = []
    dropped = 0
    for event in events:
        quote = odds_by_id.get(event.id)
        if quote is None:
            dropped += 1
            continue
        merged.append(MergedRecord(event=event, odds=quote))

    if dropped:
        log.info("bulk_merge_dropped_events", dropped=dropped, kept=len(merged))

    merged.sort(key=sort_key)
    return merged


def merge_incremental(store: RecordStore, batch: Iterable[OddsQuote]) -> set[int]:
    """Apply an odds batch to records already in the store. Returns the changed ids."""
    changed: set[int] = set()
    for quote in batch:
        if store.replace_odds(quote):
            changed.add(quote.event_id)
    return changed
