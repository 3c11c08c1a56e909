"""Background thread firing a callback at a fixed cadence."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .constants import DEFAULT_TICK_INTERVAL_SECONDS


class Ticker:
    """Calls `callback` every `interval_seconds` until cancelled.

    Holds no timer state. `cancel()` only signals the thread, so it is safe
    to call from inside the callback or while the callback waits on a lock.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        *,
        interval_seconds: float = DEFAULT_TICK_INTERVAL_SECONDS,
        logger: Optional[logging.Logger] = None,
        name: str = "pomodoro-ticker",
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be greater than zero")
        self._callback = callback
        self._interval_seconds = float(interval_seconds)
        self._logger = logger or logging.getLogger("pomodoro.ticker")
        self._name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @property
    def is_running(self) -> bool:
        return (
            self._thread is not None
            and self._thread.is_alive()
            and not self._stop.is_set()
        )

    def start(self) -> None:
        if self.is_running:
            return
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(self._stop,),
            daemon=True,
            name=self._name,
        )
        self._thread.start()

    def cancel(self) -> None:
        self._stop.set()

    def join(self, timeout_seconds: float = 2.0) -> None:
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout=timeout_seconds)

    def _run(self, stop: threading.Event) -> None:
        while not stop.wait(self._interval_seconds):
            try:
                self._callback()
            except Exception as error:
                self._logger.error("Tick callback failed: %s", error, exc_info=True)
