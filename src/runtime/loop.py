"""Runtime orchestration loop for timer commands, resume events and config reloads."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from queue import Empty, Queue
from typing import Any, Callable, Mapping, Optional

from app_config import AppConfig
from contracts.collaborators import ResumeNotifierLike
from contracts.ui_protocol import REASON_STARTUP
from pomodoro import PomodoroTimer, TimerEvent, TimerSnapshot
from presence import CommandIdleMonitor
from server import UIServer

from .commands import TimerCommandDispatcher
from .config_watch import ConfigWatcher
from .events import (
    QueueEventPublisher,
    ResumeDetectedEvent,
    ShutdownRequestedEvent,
    TimerCommandEvent,
)
from .ui import RuntimeUIPublisher


@dataclass(frozen=True)
class RuntimeHooks:
    """Injectable lifecycle hooks used by runtime startup and shutdown flow."""
    setup_signal_handlers: Callable[[QueueEventPublisher], None]


@dataclass(frozen=True)
class RuntimeBootstrap:
    """Dependency bundle required to construct the runtime engine."""
    logger: logging.Logger
    app_config: AppConfig
    timer: PomodoroTimer
    ui_server: Optional[UIServer]
    idle_monitor: Optional[CommandIdleMonitor]
    suspend_detector: Optional[ResumeNotifierLike]
    config_watcher: Optional[ConfigWatcher]
    hooks: RuntimeHooks


class RuntimeEngine:
    """Main runtime loop that restores the timer and serializes outside input."""
    def __init__(
        self,
        bootstrap: RuntimeBootstrap,
        *,
        monotonic_fn: Optional[Callable[[], float]] = None,
    ):
        self._bootstrap = bootstrap
        self._logger = bootstrap.logger
        self._timer = bootstrap.timer
        self._monotonic = monotonic_fn or time.monotonic

        self._ui = RuntimeUIPublisher(bootstrap.ui_server)
        self._dispatcher = TimerCommandDispatcher(self._timer, logger=self._logger)
        self._event_queue: Queue[Any] = Queue()
        self._publisher = QueueEventPublisher(self._event_queue)
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._next_config_poll = 0.0

    @property
    def publisher(self) -> QueueEventPublisher:
        return self._publisher

    def submit_command(self, message: Mapping[str, Any]) -> None:
        self._publisher.publish(TimerCommandEvent.from_message(message))

    def run(self) -> int:
        try:
            self._startup()
            self._logger.info("Ready! Timer is %s.", self._timer.state)

            while True:
                self._poll_config()
                event = self._poll_event(timeout_seconds=0.25)
                if event is None:
                    continue
                if self._handle_event(event):
                    return 0

        except KeyboardInterrupt:
            self._logger.info("Shutdown requested by keyboard interrupt.")
            return 0
        except Exception as error:
            self._logger.error("Unexpected error: %s", error, exc_info=True)
            return 1
        finally:
            self._shutdown()

    def process_pending(self) -> bool:
        """Handle every queued event without blocking; True once shutdown was requested."""
        while True:
            event = self._poll_event(timeout_seconds=None)
            if event is None:
                return False
            if self._handle_event(event):
                return True

    def _startup(self) -> None:
        self._unsubscribe = self._timer.subscribe(self._on_timer_event)
        self._bootstrap.hooks.setup_signal_handlers(self._publisher)

        ui_server = self._bootstrap.ui_server
        if ui_server is not None:
            ui_server.set_command_handler(self.submit_command)
            self._logger.info("Starting UI server...")
            ui_server.start()

        self._timer.restore()
        self._ui.publish_timer_sync(self._timer.snapshot(), reason=REASON_STARTUP)

        suspend_detector = self._bootstrap.suspend_detector
        if suspend_detector is not None:
            suspend_detector.connect(self._on_resume)
            suspend_detector.start()

    def _on_timer_event(self, event: TimerEvent, snapshot: TimerSnapshot) -> None:
        self._logger.debug("Timer event %s in state %s", event.kind, snapshot.state)
        self._ui.publish_timer_event(event, snapshot)

    def _on_resume(self) -> None:
        self._publisher.publish(ResumeDetectedEvent(occurred_at=datetime.now(timezone.utc)))

    def _poll_config(self) -> None:
        watcher = self._bootstrap.config_watcher
        if watcher is None:
            return
        now = self._monotonic()
        if now < self._next_config_poll:
            return
        self._next_config_poll = now + self._bootstrap.app_config.runtime.config_poll_seconds

        for key, value in watcher.poll():
            self._timer.on_config_changed(key, value)

    def _poll_event(self, timeout_seconds: Optional[float]) -> Optional[Any]:
        try:
            if timeout_seconds is None:
                return self._event_queue.get_nowait()
            return self._event_queue.get(timeout=timeout_seconds)
        except Empty:
            return None

    def _handle_event(self, event: Any) -> bool:
        if isinstance(event, TimerCommandEvent):
            result = self._dispatcher.dispatch(event.action, event.arguments)
            self._ui.publish_command_result(
                action=result.action,
                accepted=result.accepted,
                reason=result.reason,
                snapshot=result.snapshot,
            )
            return False

        if isinstance(event, ResumeDetectedEvent):
            self._logger.info("Resumed at %s, restoring timer", event.occurred_at.isoformat())
            self._timer.on_resume()
            return False

        if isinstance(event, ShutdownRequestedEvent):
            self._logger.info("Shutdown requested: %s", event.reason)
            return True

        self._logger.warning("Ignoring unknown event type: %s", type(event).__name__)
        return False

    def _shutdown(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        suspend_detector = self._bootstrap.suspend_detector
        if suspend_detector is not None:
            suspend_detector.stop()

        self._logger.info("Stopping timer...")
        self._timer.dispose()

        idle_monitor = self._bootstrap.idle_monitor
        if idle_monitor is not None:
            idle_monitor.close()

        ui_server = self._bootstrap.ui_server
        if ui_server is not None:
            self._logger.info("Stopping UI server...")
            try:
                ui_server.stop(timeout_seconds=5.0)
            except Exception as error:
                self._logger.error("Error stopping UI server: %s", error, exc_info=True)
