"""Restore the timer from persisted fields and replay the transitions it missed."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from contracts.collaborators import StateStoreLike
from storage.errors import StorageError, StorageReadError

from .constants import (
    MAX_REPLAY_TRANSITIONS,
    STATE_NULL,
    STATE_PAUSE,
    STORE_SESSION_COUNT,
    STORE_STATE,
    STORE_STATE_CHANGED_DATE,
    TIMER_STATES,
)
from .events import TimerEvent, starts_notification
from .machine import TimerMachine, TimerState

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


@dataclass(frozen=True)
class PersistedTimerState:
    """Timer fields as last written through the state store."""
    session: int
    state: TimerState
    state_timestamp_ms: int


@dataclass(frozen=True)
class RecoveryResult:
    """Outcome of one recovery run."""
    persisted: PersistedTimerState
    replayed_transitions: int
    state: TimerState
    elapsed_ms: int


def format_timestamp(timestamp_ms: int) -> str:
    """Render epoch milliseconds as an ISO-8601 UTC calendar string."""
    return (_EPOCH + timedelta(milliseconds=timestamp_ms)).isoformat()


def parse_timestamp(raw: str) -> int:
    """Parse an ISO-8601 calendar string into epoch milliseconds.

    Naive values are taken as UTC. Raises ValueError for anything else.
    """
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - _EPOCH) // _ONE_MS


def parse_state(raw: object) -> Optional[TimerState]:
    if isinstance(raw, str) and raw.strip().lower() in TIMER_STATES:
        return raw.strip().lower()  # type: ignore[return-value]
    return None


def read_persisted_state(
    store: Optional[StateStoreLike],
    *,
    now_ms: int,
    fallback: Optional[PersistedTimerState] = None,
    logger: Optional[logging.Logger] = None,
) -> PersistedTimerState:
    """Read session, state and state timestamp, falling back to safe defaults.

    Without a readable store `fallback` is returned when given, otherwise a
    stopped timer at `now_ms`.
    """
    logger = logger or logging.getLogger("pomodoro.recovery")
    stopped = PersistedTimerState(session=0, state=STATE_NULL, state_timestamp_ms=now_ms)
    if store is None:
        return fallback or stopped

    try:
        raw_session = store.get(STORE_SESSION_COUNT)
        raw_state = store.get(STORE_STATE)
        raw_date = store.get(STORE_STATE_CHANGED_DATE)
    except StorageReadError as error:
        if fallback is not None:
            logger.warning("Could not read timer state, keeping the running timer: %s", error)
            return fallback
        logger.warning("Could not read timer state, starting stopped: %s", error)
        return stopped

    session = _parse_session(raw_session, logger)

    state = parse_state(raw_state)
    if state is None:
        if raw_state not in (None, ""):
            logger.warning("Unknown persisted timer state %r, using %s", raw_state, STATE_NULL)
        state = STATE_NULL

    try:
        if not isinstance(raw_date, str):
            raise ValueError(f"expected a calendar string, got {raw_date!r}")
        state_timestamp_ms = parse_timestamp(raw_date)
    except ValueError as error:
        # Elapsed time of the persisted state is lost.
        logger.warning("Could not restore state time: %s", error)
        state_timestamp_ms = now_ms

    if state_timestamp_ms > now_ms:
        logger.warning(
            "Persisted state time %s is in the future, using current time",
            format_timestamp(state_timestamp_ms),
        )
        state_timestamp_ms = now_ms

    return PersistedTimerState(
        session=session,
        state=state,
        state_timestamp_ms=state_timestamp_ms,
    )


def live_state(machine: TimerMachine) -> PersistedTimerState:
    """The machine's own fields in persisted form, used when the store is unavailable."""
    return PersistedTimerState(
        session=machine.session,
        state=machine.state,
        state_timestamp_ms=machine.state_timestamp_ms,
    )


def write_persisted_state(
    store: Optional[StateStoreLike],
    machine: TimerMachine,
    *,
    logger: Optional[logging.Logger] = None,
) -> bool:
    """Write session, state and state start through the store.

    Failures are logged and reported as False; the timer keeps running.
    """
    if store is None:
        return False
    try:
        store.set(STORE_SESSION_COUNT, float(machine.session))
        store.set(STORE_STATE, machine.state)
        store.set(STORE_STATE_CHANGED_DATE, format_timestamp(machine.state_timestamp_ms))
    except StorageError as error:
        (logger or logging.getLogger("pomodoro.recovery")).warning(
            "Failed to persist timer state: %s", error
        )
        return False
    return True


def replay_missed_transitions(
    machine: TimerMachine,
    now_ms: int,
    *,
    max_transitions: int = MAX_REPLAY_TRANSITIONS,
    logger: Optional[logging.Logger] = None,
) -> int:
    """Advance the machine to `now_ms`, one auto-transition per finished interval.

    Each transition is committed at the logical boundary where the interval
    ran out, so elapsed time flows on into the following state. Returns the
    number of transitions performed.
    """
    if machine.state == STATE_NULL:
        return 0

    machine.set_elapsed(now_ms - machine.state_timestamp_ms)
    count = 0
    while True:
        target = machine.auto_transition_target()
        if target is None:
            break
        if count >= max_transitions:
            (logger or logging.getLogger("pomodoro.recovery")).warning(
                "Stopped replaying timer transitions after %d steps", count
            )
            break
        boundary_ms = machine.state_timestamp_ms + machine.elapsed_limit_ms
        machine.set_elapsed(machine.elapsed_limit_ms)
        machine.commit_transition(target, boundary_ms)
        machine.set_elapsed(now_ms - machine.state_timestamp_ms)
        count += 1

    machine.state_timestamp_ms = now_ms - machine.elapsed_ms
    return count


def recover(
    machine: TimerMachine,
    persisted: PersistedTimerState,
    now_ms: int,
    *,
    max_transitions: int = MAX_REPLAY_TRANSITIONS,
    logger: Optional[logging.Logger] = None,
) -> RecoveryResult:
    """Rebuild the machine from `persisted` and catch it up with `now_ms`."""
    machine.load(session=persisted.session, state_timestamp_ms=persisted.state_timestamp_ms)
    machine.commit_transition(persisted.state, persisted.state_timestamp_ms)
    replayed = replay_missed_transitions(
        machine,
        now_ms,
        max_transitions=max_transitions,
        logger=logger,
    )
    return RecoveryResult(
        persisted=persisted,
        replayed_transitions=replayed,
        state=machine.state,
        elapsed_ms=machine.elapsed_ms,
    )


def recovery_events(state: TimerState, *, pause_when_idle: bool) -> list[TimerEvent]:
    """Consolidated events announcing the recovered state.

    Recovery never claims a completed pomodoro or a user request.
    """
    events = [TimerEvent.state_changed(), TimerEvent.elapsed_changed()]
    if state == STATE_NULL:
        return events
    if starts_notification(state, pause_when_idle=pause_when_idle):
        events.append(TimerEvent.pomodoro_start(False))
        events.append(TimerEvent.notify_pomodoro_start(False))
    if state == STATE_PAUSE:
        events.append(TimerEvent.pomodoro_end(False))
        events.append(TimerEvent.notify_pomodoro_end(False))
    return events


def _parse_session(raw: object, logger: logging.Logger) -> int:
    if raw is None or raw == "":
        return 0
    try:
        session = int(float(raw))  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        logger.warning("Invalid persisted session count %r, using 0", raw)
        return 0
    return max(0, session)
