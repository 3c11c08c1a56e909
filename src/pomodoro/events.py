"""Output events and the begin/commit batch that collects them."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Literal, Optional

from .constants import (
    EVENT_ELAPSED_CHANGED,
    EVENT_NOTIFY_POMODORO_END,
    EVENT_NOTIFY_POMODORO_START,
    EVENT_POMODORO_END,
    EVENT_POMODORO_START,
    EVENT_STATE_CHANGED,
    LIFECYCLE_EVENTS,
    STATE_IDLE,
    STATE_PAUSE,
    STATE_POMODORO,
)
from .machine import Transition

TimerEventKind = Literal[
    "state_changed",
    "elapsed_changed",
    "pomodoro_start",
    "pomodoro_end",
    "notify_pomodoro_start",
    "notify_pomodoro_end",
]


@dataclass(frozen=True)
class TimerEvent:
    """One output event; start events carry `is_requested`, end events `is_completed`."""
    kind: TimerEventKind
    is_requested: Optional[bool] = None
    is_completed: Optional[bool] = None

    @classmethod
    def state_changed(cls) -> "TimerEvent":
        return cls(EVENT_STATE_CHANGED)

    @classmethod
    def elapsed_changed(cls) -> "TimerEvent":
        return cls(EVENT_ELAPSED_CHANGED)

    @classmethod
    def pomodoro_start(cls, is_requested: bool) -> "TimerEvent":
        return cls(EVENT_POMODORO_START, is_requested=is_requested)

    @classmethod
    def pomodoro_end(cls, is_completed: bool) -> "TimerEvent":
        return cls(EVENT_POMODORO_END, is_completed=is_completed)

    @classmethod
    def notify_pomodoro_start(cls, is_requested: bool) -> "TimerEvent":
        return cls(EVENT_NOTIFY_POMODORO_START, is_requested=is_requested)

    @classmethod
    def notify_pomodoro_end(cls, is_completed: bool) -> "TimerEvent":
        return cls(EVENT_NOTIFY_POMODORO_END, is_completed=is_completed)


def starts_notification(state: str, *, pause_when_idle: bool) -> bool:
    """Whether entering `state` means a pomodoro is (about to be) running."""
    return state == STATE_POMODORO or (state == STATE_IDLE and pause_when_idle)


def transition_events(
    transition: Transition,
    *,
    is_requested: bool,
    pause_when_idle: bool,
) -> list[TimerEvent]:
    """Events raised by one committed transition, in delivery order."""
    events: list[TimerEvent] = []
    if transition.changed:
        events.append(TimerEvent.state_changed())
    if transition.elapsed_moved:
        events.append(TimerEvent.elapsed_changed())
    if not transition.changed:
        return events

    previous, current = transition.previous_state, transition.state
    notify_start = starts_notification(current, pause_when_idle=pause_when_idle)

    if current == STATE_POMODORO:
        events.append(TimerEvent.pomodoro_start(is_requested))
    if previous == STATE_PAUSE and notify_start:
        events.append(TimerEvent.notify_pomodoro_start(is_requested))
    if previous == STATE_POMODORO:
        events.append(TimerEvent.pomodoro_end(transition.is_completed))
        if current == STATE_PAUSE:
            events.append(TimerEvent.notify_pomodoro_end(transition.is_completed))
    return events


class EventBatch:
    """Collects the events of one operation and releases them on commit.

    `state_changed` and `elapsed_changed` collapse to a single occurrence
    each, placed first; lifecycle events keep their order. Events emitted
    inside `silenced()` are dropped. Batches do not nest: the timer is not
    reentrant.
    """

    def __init__(self):
        self._open = False
        self._silence_depth = 0
        self._state_changed = False
        self._elapsed_changed = False
        self._lifecycle: list[TimerEvent] = []

    @property
    def is_open(self) -> bool:
        return self._open

    def begin(self) -> None:
        if self._open:
            raise RuntimeError("Timer batch already open; timer calls must not nest")
        self._open = True
        self._silence_depth = 0
        self._state_changed = False
        self._elapsed_changed = False
        self._lifecycle = []

    def emit(self, event: TimerEvent) -> None:
        if not self._open:
            raise RuntimeError("Timer batch is not open")
        if self._silence_depth:
            return
        if event.kind == EVENT_STATE_CHANGED:
            self._state_changed = True
        elif event.kind == EVENT_ELAPSED_CHANGED:
            self._elapsed_changed = True
        elif event.kind in LIFECYCLE_EVENTS:
            self._lifecycle.append(event)
        else:
            raise ValueError(f"Unknown timer event kind: {event.kind!r}")

    def extend(self, events: list[TimerEvent]) -> None:
        for event in events:
            self.emit(event)

    @contextmanager
    def silenced(self) -> Iterator[None]:
        self._silence_depth += 1
        try:
            yield
        finally:
            self._silence_depth -= 1

    def commit(self) -> tuple[TimerEvent, ...]:
        if not self._open:
            raise RuntimeError("Timer batch is not open")
        events: list[TimerEvent] = []
        if self._state_changed:
            events.append(TimerEvent.state_changed())
        if self._elapsed_changed:
            events.append(TimerEvent.elapsed_changed())
        events.extend(self._lifecycle)

        self._open = False
        self._state_changed = False
        self._elapsed_changed = False
        self._lifecycle = []
        return tuple(events)
