"""Protocols for the collaborators the pomodoro timer talks to."""

from __future__ import annotations

from typing import Callable, Optional, Protocol, Union

StoredValue = Union[float, str]


class StateStoreLike(Protocol):
    """Flat key/value store holding the last known timer state.

    `get` raises `storage.errors.StorageReadError` when the backing store
    cannot be read; `set` raises `storage.errors.StorageWriteError`.
    """
    def get(self, key: str) -> Optional[StoredValue]:
        ...

    def set(self, key: str, value: StoredValue) -> None:
        ...


class IdleMonitorLike(Protocol):
    """Delivers one "user became active" callback per registered watch."""
    def add_user_active_watch(self, callback: Callable[[], None]) -> int:
        ...

    def remove_watch(self, watch_id: int) -> None:
        ...


class ResumeNotifierLike(Protocol):
    """Calls connected callbacks after the system resumes from suspend."""
    def connect(self, callback: Callable[[], None]) -> None:
        ...

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...


class TickerLike(Protocol):
    """Periodic driver started while the timer is running."""
    def start(self) -> None:
        ...

    def cancel(self) -> None:
        ...
