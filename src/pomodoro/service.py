"""Thread-safe pomodoro timer service wrapping the pure state machine."""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from contracts.collaborators import IdleMonitorLike, StateStoreLike, TickerLike
from presence.errors import IdleMonitorError

from .constants import (
    DEFAULT_TICK_INTERVAL_SECONDS,
    DURATION_SETTINGS,
    MAX_REPLAY_TRANSITIONS,
    SETTING_SESSION_LIMIT,
    STATE_IDLE,
    STATE_NULL,
    STATE_POMODORO,
    TIMER_STATES,
)
from .events import EventBatch, TimerEvent, transition_events
from .machine import TimerMachine, TimerState, Transition
from .recovery import (
    live_state,
    read_persisted_state,
    recover,
    recovery_events,
    write_persisted_state,
)
from .settings import TimerSettings
from .ticker import Ticker

TimerListener = Callable[[TimerEvent, "TimerSnapshot"], None]
TickerFactory = Callable[[Callable[[], None]], TickerLike]


@dataclass(frozen=True)
class TimerSnapshot:
    """Immutable view of the public timer fields, in whole seconds."""
    state: TimerState
    elapsed: int
    elapsed_limit: int
    session: int
    session_limit: int
    state_timestamp: int

    @property
    def is_running(self) -> bool:
        return self.state != STATE_NULL

    @property
    def remaining(self) -> int:
        return max(0, self.elapsed_limit - self.elapsed)


@dataclass(frozen=True)
class TimerUpdate:
    """Events committed by one timer operation and the state they left behind."""
    events: tuple[TimerEvent, ...]
    snapshot: TimerSnapshot

    def kinds(self) -> list[str]:
        return [event.kind for event in self.events]


class PomodoroTimer:
    """Pomodoro/pause timer driven by ticks, idle activity and config changes.

    Every public operation runs under one lock inside one event batch; the
    committed events are handed to listeners after the lock is released, so
    listeners may call back into the timer.
    """

    def __init__(
        self,
        *,
        settings: Optional[TimerSettings] = None,
        store: Optional[StateStoreLike] = None,
        idle_monitor: Optional[IdleMonitorLike] = None,
        ticker_factory: Optional[TickerFactory] = None,
        now_fn: Optional[Callable[[], float]] = None,
        tick_interval_seconds: float = DEFAULT_TICK_INTERVAL_SECONDS,
        logger: Optional[logging.Logger] = None,
    ):
        self._logger = logger or logging.getLogger("pomodoro")
        self._settings = self._sanitize_settings(settings or TimerSettings())
        self._machine = TimerMachine(self._settings)
        self._store = store
        self._idle_monitor = idle_monitor
        self._idle_watch_id: Optional[int] = None
        self._ticker_factory = ticker_factory or self._default_ticker_factory(
            tick_interval_seconds
        )
        self._ticker: Optional[TickerLike] = None
        self._now = now_fn or time.time
        self._lock = threading.Lock()
        self._batch = EventBatch()
        self._listeners: list[TimerListener] = []

    @property
    def settings(self) -> TimerSettings:
        with self._lock:
            return self._settings

    @property
    def state(self) -> TimerState:
        with self._lock:
            return self._machine.state

    @property
    def elapsed(self) -> int:
        with self._lock:
            return self._machine.elapsed_ms // 1000

    @property
    def elapsed_limit(self) -> int:
        with self._lock:
            return self._machine.elapsed_limit_ms // 1000

    @property
    def state_timestamp(self) -> int:
        with self._lock:
            return self._machine.state_timestamp_ms // 1000

    @property
    def session(self) -> int:
        with self._lock:
            return self._machine.session

    @property
    def session_limit(self) -> int:
        with self._lock:
            return self._machine.session_limit

    @session_limit.setter
    def session_limit(self, value: int) -> None:
        self.on_config_changed(SETTING_SESSION_LIMIT, value)

    @property
    def is_running(self) -> bool:
        return self.state != STATE_NULL

    def snapshot(self) -> TimerSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def subscribe(self, listener: TimerListener) -> Callable[[], None]:
        """Register `listener(event, snapshot)`; returns a callable that unsubscribes."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def start(self) -> TimerUpdate:
        return self._run(self._start_locked)

    def stop(self) -> TimerUpdate:
        return self._run(self._stop_locked)

    def reset(self) -> TimerUpdate:
        return self._run(self._reset_locked)

    def set_elapsed(self, seconds: float) -> TimerUpdate:
        return self._run(lambda now_ms: self._set_elapsed_locked(seconds, now_ms))

    def on_tick(self, now: Optional[float] = None) -> TimerUpdate:
        return self._run(self._tick_locked, now)

    def on_idle_became_active(self) -> TimerUpdate:
        return self._run(self._idle_became_active_locked)

    def on_config_changed(self, key: str, value: Any) -> TimerUpdate:
        return self._run(lambda now_ms: self._config_changed_locked(key, value, now_ms))

    def restore(self, now: Optional[float] = None) -> TimerUpdate:
        """Rebuild the timer from the state store and replay missed transitions."""
        return self._run(self._restore_locked, now)

    def on_resume(self) -> TimerUpdate:
        return self.restore()

    def commit_transition(
        self,
        new_state: TimerState,
        timestamp: Optional[float] = None,
        *,
        is_requested: bool = False,
    ) -> tuple[TimerEvent, ...]:
        """Enter `new_state` at `timestamp` (epoch seconds, default now)."""
        if new_state not in TIMER_STATES:
            raise ValueError(f"Unknown timer state: {new_state!r}")

        def operation(now_ms: int) -> None:
            self._commit_locked(new_state, now_ms, requested=is_requested)

        return self._run(operation, timestamp).events

    def dispose(self) -> None:
        with self._lock:
            self._cancel_ticker_locked()
            self._disable_idle_watch_locked()

    def _run(
        self,
        operation: Callable[[int], None],
        now: Optional[float] = None,
    ) -> TimerUpdate:
        with self._lock:
            now_ms = int((self._now() if now is None else now) * 1000)
            self._batch.begin()
            try:
                operation(now_ms)
            finally:
                events = self._batch.commit()
            snapshot = self._snapshot_locked()
            listeners = tuple(self._listeners)

        for event in events:
            for listener in listeners:
                try:
                    listener(event, snapshot)
                except Exception as error:
                    self._logger.error(
                        "Timer listener failed on %s: %s",
                        event.kind,
                        error,
                        exc_info=True,
                    )
        return TimerUpdate(events=events, snapshot=snapshot)

    def _start_locked(self, now_ms: int) -> None:
        if self._machine.state in (STATE_NULL, STATE_IDLE):
            self._commit_locked(STATE_POMODORO, now_ms, requested=True)

    def _stop_locked(self, now_ms: int) -> None:
        self._commit_locked(STATE_NULL, now_ms, requested=True)

    def _reset_locked(self, now_ms: int) -> None:
        was_running = self._machine.state != STATE_NULL
        self._machine.session = 0
        self._commit_locked(STATE_NULL, now_ms, requested=True)
        self._machine.session = 0
        self._persist_locked()
        if was_running:
            self._commit_locked(STATE_POMODORO, now_ms, requested=True)

    def _set_elapsed_locked(self, seconds: float, now_ms: int) -> None:
        machine = self._machine
        if machine.state == STATE_NULL:
            return
        try:
            elapsed_ms = float(seconds) * 1000
        except (TypeError, ValueError):
            elapsed_ms = math.nan
        if not math.isfinite(elapsed_ms):
            self._logger.warning("Ignoring elapsed time %r, not a finite number", seconds)
            return
        # The state cannot have started before the epoch.
        if machine.set_elapsed(min(int(elapsed_ms), now_ms)):
            machine.state_timestamp_ms = now_ms - machine.elapsed_ms
            self._persist_locked()
            self._batch.emit(TimerEvent.elapsed_changed())
        self._advance_locked(now_ms)

    def _tick_locked(self, now_ms: int) -> None:
        machine = self._machine
        if machine.state == STATE_NULL:
            return
        machine.set_elapsed(now_ms - machine.state_timestamp_ms)
        self._batch.emit(TimerEvent.elapsed_changed())
        self._advance_locked(now_ms)

    def _idle_became_active_locked(self, now_ms: int) -> None:
        if self._machine.state == STATE_IDLE:
            self._commit_locked(STATE_POMODORO, now_ms, requested=False)

    def _config_changed_locked(self, key: str, value: Any, now_ms: int) -> None:
        try:
            settings = self._settings.with_value(key, value)
        except (KeyError, ValueError) as error:
            self._logger.warning("Ignoring timer setting change: %s", error)
            return

        settings = self._sanitize_settings(settings)
        if settings == self._settings:
            return
        self._settings = settings
        self._logger.info("Timer setting %s changed to %r", key, settings.value_of(key))

        machine = self._machine
        if key == SETTING_SESSION_LIMIT:
            machine.session_limit = settings.session_limit
        elapsed_before = machine.elapsed_ms
        if machine.apply_settings(settings, key):
            if machine.elapsed_ms != elapsed_before:
                # Ticks measure from the state start, so move it with the clamp.
                machine.state_timestamp_ms = now_ms - machine.elapsed_ms
                self._persist_locked()
            self._batch.emit(TimerEvent.elapsed_changed())

    def _restore_locked(self, now_ms: int) -> None:
        machine = self._machine
        fallback = None
        if machine.state != STATE_NULL:
            fallback = live_state(machine)
        persisted = read_persisted_state(
            self._store,
            now_ms=now_ms,
            fallback=fallback,
            logger=self._logger,
        )
        with self._batch.silenced():
            result = recover(self._machine, persisted, now_ms, logger=self._logger)

        if self._machine.state == STATE_NULL:
            self._cancel_ticker_locked()
        else:
            self._ensure_ticker_locked()
        self._update_idle_watch_locked()
        self._persist_locked()
        self._batch.extend(
            recovery_events(
                self._machine.state,
                pause_when_idle=self._settings.pause_when_idle,
            )
        )
        self._logger.info(
            "Timer restored: %s -> %s after %d transition(s), elapsed=%ss session=%d",
            persisted.state,
            result.state,
            result.replayed_transitions,
            result.elapsed_ms // 1000,
            self._machine.session,
        )

    def _advance_locked(self, now_ms: int) -> None:
        for _ in range(MAX_REPLAY_TRANSITIONS):
            target = self._machine.auto_transition_target()
            if target is None:
                return
            self._commit_locked(target, now_ms, requested=False)
        self._logger.warning(
            "Timer kept transitioning after %d steps; check interval lengths",
            MAX_REPLAY_TRANSITIONS,
        )

    def _commit_locked(
        self,
        new_state: TimerState,
        timestamp_ms: int,
        *,
        requested: bool,
    ) -> Transition:
        transition = self._machine.commit_transition(new_state, timestamp_ms)

        if transition.state != STATE_NULL:
            self._ensure_ticker_locked()
        if transition.changed:
            if transition.state == STATE_NULL:
                self._cancel_ticker_locked()
            self._update_idle_watch_locked()
            self._logger.info(
                "Timer %s -> %s: session=%d limit=%ss",
                transition.previous_state,
                transition.state,
                transition.session,
                transition.elapsed_limit_ms // 1000,
            )

        self._persist_locked()
        self._batch.extend(
            transition_events(
                transition,
                is_requested=requested,
                pause_when_idle=self._settings.pause_when_idle,
            )
        )
        return transition

    def _persist_locked(self) -> None:
        write_persisted_state(self._store, self._machine, logger=self._logger)

    def _ensure_ticker_locked(self) -> None:
        if self._ticker is not None:
            return
        self._ticker = self._ticker_factory(self._on_ticker)
        self._ticker.start()

    def _cancel_ticker_locked(self) -> None:
        if self._ticker is None:
            return
        self._ticker.cancel()
        self._ticker = None

    def _on_ticker(self) -> None:
        self.on_tick()

    def _update_idle_watch_locked(self) -> None:
        if self._machine.state == STATE_IDLE:
            self._enable_idle_watch_locked()
        else:
            self._disable_idle_watch_locked()

    def _enable_idle_watch_locked(self) -> None:
        if self._idle_monitor is None or self._idle_watch_id is not None:
            return
        try:
            self._idle_watch_id = self._idle_monitor.add_user_active_watch(
                self._on_user_active
            )
        except IdleMonitorError as error:
            self._logger.warning(
                "Idle monitor unavailable, idle pauses end only on start: %s", error
            )
            self._idle_monitor = None

    def _disable_idle_watch_locked(self) -> None:
        watch_id = self._idle_watch_id
        self._idle_watch_id = None
        if self._idle_monitor is None or watch_id is None:
            return
        try:
            self._idle_monitor.remove_watch(watch_id)
        except IdleMonitorError as error:
            self._logger.warning("Failed to remove idle watch %s: %s", watch_id, error)

    def _on_user_active(self) -> None:
        self.on_idle_became_active()

    def _snapshot_locked(self) -> TimerSnapshot:
        machine = self._machine
        return TimerSnapshot(
            state=machine.state,
            elapsed=machine.elapsed_ms // 1000,
            elapsed_limit=machine.elapsed_limit_ms // 1000,
            session=machine.session,
            session_limit=machine.session_limit,
            state_timestamp=machine.state_timestamp_ms // 1000,
        )

    def _sanitize_settings(self, settings: TimerSettings) -> TimerSettings:
        changes: dict[str, int] = {}
        for key in sorted(DURATION_SETTINGS | {SETTING_SESSION_LIMIT}):
            value = settings.value_of(key)
            if isinstance(value, int) and value < 1:
                self._logger.warning("Timer setting %s=%r is below 1, using 1", key, value)
                changes[key] = 1
        for key, value in changes.items():
            settings = settings.with_value(key, value)
        return settings

    def _default_ticker_factory(self, interval_seconds: float) -> TickerFactory:
        def factory(callback: Callable[[], None]) -> TickerLike:
            return Ticker(
                callback,
                interval_seconds=interval_seconds,
                logger=self._logger.getChild("ticker"),
            )

        return factory
