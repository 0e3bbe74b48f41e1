"""Fixed-size paging over the record store's ordered sequence."""

from __future__ import annotations

from odds_board.engine.store import RecordStore


class Paginator:
    def __init__(self, store: RecordStore, page_size: int = 40) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self._store = store
        self.page_size = page_size
        self.cursor = 0
        self.exhausted = False

    def next_page(self) -> list[int] | None:
        """Ids of the next page, or None once every record has been paged out."""
        if self.exhausted:
            return None
        total = len(self._store)
        if self.cursor >= total:
            return None

        end = min(self.cursor + self.page_size, total)
        page = self._store.slice_ids(self.cursor, end)
        self.cursor = end
        if end >= total:
            self.exhausted = True
        return page

    def reset(self) -> None:
        self.cursor = 0
        self.exhausted = False
