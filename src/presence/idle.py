"""Idle-time monitor notifying watchers when the user becomes active again."""

from __future__ import annotations

import itertools
import logging
import subprocess
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from pomodoro.ticker import Ticker

from .errors import IdleMonitorError

IdleTimeFn = Callable[[], float]


@dataclass
class _Watch:
    callback: Callable[[], None]
    last_idle_seconds: Optional[float] = None


def command_idle_time(command: Sequence[str], *, timeout_seconds: float = 2.0) -> float:
    """Run `command` and read the idle time in milliseconds from its stdout."""
    if not command:
        raise IdleMonitorError("No idle command configured")
    try:
        completed = subprocess.run(
            list(command),
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as error:
        raise IdleMonitorError(f"Idle command {command[0]!r} failed: {error}") from error

    output = completed.stdout.strip()
    try:
        idle_ms = float(output)
    except ValueError as error:
        raise IdleMonitorError(f"Unexpected idle command output: {output!r}") from error
    return max(0.0, idle_ms / 1000.0)


class CommandIdleMonitor:
    """Polls the user's idle time and fires each watch once on activity.

    Activity is a drop in idle time between two polls. A new watch takes
    its baseline on the first poll, so registering never runs the idle
    source on the caller's thread. Callbacks run on the polling thread
    without any monitor lock held. When the idle source fails, pending
    watches are dropped and later registrations raise `IdleMonitorError`.
    """

    def __init__(
        self,
        idle_time_fn: IdleTimeFn,
        *,
        poll_seconds: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ):
        self._idle_time = idle_time_fn
        self._logger = logger or logging.getLogger("presence.idle")
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._watches: dict[int, _Watch] = {}
        self._failed = False
        self._ticker = Ticker(
            self.poll,
            interval_seconds=poll_seconds,
            logger=self._logger,
            name="idle-monitor",
        )

    @classmethod
    def from_command(
        cls,
        command: Sequence[str],
        *,
        poll_seconds: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ) -> "CommandIdleMonitor":
        command = tuple(command)
        return cls(
            lambda: command_idle_time(command),
            poll_seconds=poll_seconds,
            logger=logger,
        )

    @property
    def is_available(self) -> bool:
        with self._lock:
            return not self._failed

    @property
    def watch_count(self) -> int:
        with self._lock:
            return len(self._watches)

    def add_user_active_watch(self, callback: Callable[[], None]) -> int:
        with self._lock:
            if self._failed:
                raise IdleMonitorError("Idle monitor is disabled")
            watch_id = next(self._ids)
            self._watches[watch_id] = _Watch(callback=callback)
        self._ticker.start()
        self._logger.debug("Idle watch %d added", watch_id)
        return watch_id

    def remove_watch(self, watch_id: int) -> None:
        with self._lock:
            self._watches.pop(watch_id, None)

    def poll(self) -> int:
        """Sample the idle time once; returns how many watches fired."""
        with self._lock:
            if not self._watches:
                return 0
        try:
            idle_seconds = self._idle_time()
        except IdleMonitorError as error:
            self._logger.warning("Idle time unavailable, disabling idle monitor: %s", error)
            self._disable()
            return 0

        fired: list[Callable[[], None]] = []
        with self._lock:
            for watch_id, watch in list(self._watches.items()):
                baseline = watch.last_idle_seconds
                if baseline is not None and idle_seconds < baseline:
                    fired.append(watch.callback)
                    del self._watches[watch_id]
                else:
                    watch.last_idle_seconds = idle_seconds

        for callback in fired:
            try:
                callback()
            except Exception as error:
                self._logger.error("User-active callback failed: %s", error, exc_info=True)
        return len(fired)

    def close(self) -> None:
        self._ticker.cancel()
        with self._lock:
            self._watches.clear()

    def _disable(self) -> None:
        with self._lock:
            self._failed = True
            self._watches.clear()
        self._ticker.cancel()
