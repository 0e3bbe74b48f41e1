"""In-memory record store: id lookup plus start-time ordering."""

from __future__ import annotations

from typing import Iterable, Iterator

from odds_board.api.schemas import MergedRecord, OddsQuote


def sort_key(record: MergedRecord) -> tuple:
    return (record.event.start_time, record.event.id)


class RecordStore:
    """Authoritative merged records.

    `_by_id` serves lookups and odds replacement, `_ordered` is the
    pagination source. `_position` maps an id to its index in `_ordered`.
    Every mutation updates all three before returning.
    """

    def __init__(self) -> None:
        self._by_id: dict[int, MergedRecord] = {}
        self._ordered: list[MergedRecord] = []
        self._position: dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._ordered)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._by_id

    def __iter__(self) -> Iterator[MergedRecord]:
        return iter(self._ordered)

    def get(self, event_id: int) -> MergedRecord | None:
        return self._by_id.get(event_id)

    def replace(self, records: Iterable[MergedRecord]) -> None:
        """Swap in a whole new record set."""
        by_id = {r.id: r for r in records}
        ordered = sorted(by_id.values(), key=sort_key)
        self._by_id = by_id
        self._ordered = ordered
        self._position = {r.id: i for i, r in enumerate(ordered)}

    def replace_odds(self, odds: OddsQuote) -> bool:
        """Swap the odds of a stored record in place. Unknown ids are ignored."""
        current = self._by_id.get(odds.event_id)
        if current is None:
            return False
        updated = current.with_odds(odds)
        self._by_id[odds.event_id] = updated
        self._ordered[self._position[odds.event_id]] = updated
        return True

    def clear(self) -> None:
        self._by_id = {}
        self._ordered = []
        self._position = {}

    def ids(self) -> list[int]:
        return [r.id for r in self._ordered]

    def slice_ids(self, start: int, stop: int) -> list[int]:
        return [r.id for r in self._ordered[start:stop]]

    def snapshot(self) -> tuple[MergedRecord, ...]:
        return tuple(self._ordered)
