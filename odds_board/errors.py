"""Error taxonomy for the sync core."""

from __future__ import annotations


class SyncError(Exception):
    """Base class for errors raised by odds_board."""


class FetchFailed(SyncError):
    """Bulk fetch gave up after exhausting its retries."""


class DecodeFailed(SyncError):
    """A remote or persisted payload could not be decoded."""


class InvalidRequest(SyncError):
    """The remote API does not recognize the requested path."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Invalid request path: {path}")
        self.path = path
