"""Suspend/resume detection from wall-clock versus monotonic drift."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from pomodoro.ticker import Ticker


class SuspendDetector:
    """Calls connected callbacks when the wall clock jumps past the monotonic clock.

    The monotonic clock stands still while the machine sleeps, so a wall-clock
    gain larger than `threshold_seconds` between two checks means the system
    was suspended and has resumed.
    """

    def __init__(
        self,
        *,
        poll_seconds: float = 5.0,
        threshold_seconds: float = 10.0,
        wall_fn: Optional[Callable[[], float]] = None,
        monotonic_fn: Optional[Callable[[], float]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._threshold_seconds = float(threshold_seconds)
        self._wall = wall_fn or time.time
        self._monotonic = monotonic_fn or time.monotonic
        self._logger = logger or logging.getLogger("presence.resume")
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []
        self._last: Optional[tuple[float, float]] = None
        self._ticker = Ticker(
            self.check,
            interval_seconds=poll_seconds,
            logger=self._logger,
            name="suspend-detector",
        )

    def connect(self, callback: Callable[[], None]) -> None:
        with self._lock:
            self._callbacks.append(callback)

    def start(self) -> None:
        self.check()
        self._ticker.start()

    def stop(self) -> None:
        self._ticker.cancel()

    def check(self) -> bool:
        """Compare clocks with the previous check; returns True on a detected resume."""
        wall, monotonic = self._wall(), self._monotonic()
        with self._lock:
            last = self._last
            self._last = (wall, monotonic)
            callbacks = list(self._callbacks)
        if last is None:
            return False

        drift = (wall - last[0]) - (monotonic - last[1])
        if drift < self._threshold_seconds:
            return False

        self._logger.info("System resumed after about %.0fs asleep", drift)
        for callback in callbacks:
            try:
                callback()
            except Exception as error:
                self._logger.error("Resume callback failed: %s", error, exc_info=True)
        return True
