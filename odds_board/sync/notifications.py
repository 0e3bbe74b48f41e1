"""Load state and the notifications emitted to the presentation layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class LoadStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class LoadState:
    status: LoadStatus
    error: str | None = None  # human-readable, set only when FAILED

    @classmethod
    def idle(cls) -> LoadState:
        return cls(LoadStatus.IDLE)

    @classmethod
    def loading(cls) -> LoadState:
        return cls(LoadStatus.LOADING)

    @classmethod
    def loaded(cls) -> LoadState:
        return cls(LoadStatus.LOADED)

    @classmethod
    def failed(cls, message: str) -> LoadState:
        return cls(LoadStatus.FAILED, message)


@dataclass(frozen=True)
class WindowReset:
    """The visible window was emptied because the data set was replaced."""

    generation: int


@dataclass(frozen=True)
class WindowAppended:
    generation: int
    ids: tuple[int, ...]


@dataclass(frozen=True)
class OddsChanged:
    """Odds changed in place for these ids; the window itself is untouched."""

    ids: tuple[int, ...]


@dataclass(frozen=True)
class LoadStateChanged:
    state: LoadState


Notification = WindowReset | WindowAppended | OddsChanged | LoadStateChanged
