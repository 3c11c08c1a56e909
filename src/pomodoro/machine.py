"""Pure pomodoro state machine: state, elapsed time, limits and session count."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

from .constants import (
    SETTING_LONG_PAUSE_TIME,
    SETTING_POMODORO_TIME,
    SETTING_SHORT_PAUSE_TIME,
    STATE_IDLE,
    STATE_NULL,
    STATE_PAUSE,
    STATE_POMODORO,
)
from .session import SessionAccountant
from .settings import TimerSettings

TimerState = Literal["null", "pomodoro", "pause", "idle"]


@dataclass(frozen=True)
class Transition:
    """Before/after record of one committed state transition."""
    previous_state: TimerState
    state: TimerState
    previous_session: int
    session: int
    previous_elapsed_ms: int
    previous_elapsed_limit_ms: int
    elapsed_ms: int
    elapsed_limit_ms: int
    timestamp_ms: int

    @property
    def changed(self) -> bool:
        return self.previous_state != self.state

    @property
    def elapsed_moved(self) -> bool:
        return (
            self.previous_elapsed_ms != self.elapsed_ms
            or self.previous_elapsed_limit_ms != self.elapsed_limit_ms
        )

    @property
    def is_completed(self) -> bool:
        return self.session != self.previous_session


class TimerMachine:
    """Owns the timer fields and computes transitions between the four states.

    Times are integer milliseconds; `state_timestamp_ms` is wall-clock time
    since the Unix epoch. The machine has no clock, no threads and no
    collaborators: callers pass timestamps in and act on the returned
    `Transition` records.
    """

    def __init__(self, settings: TimerSettings):
        self._settings = settings
        self._accountant = SessionAccountant(settings)
        self.state: TimerState = STATE_NULL
        self.elapsed_ms = 0
        self.elapsed_limit_ms = 0
        self.session = 0
        self.session_limit = max(1, settings.session_limit)
        self.state_timestamp_ms = 0

    @property
    def settings(self) -> TimerSettings:
        return self._settings

    @property
    def accountant(self) -> SessionAccountant:
        return self._accountant

    def load(self, *, session: int, state_timestamp_ms: int) -> None:
        """Reset to a stopped baseline carrying persisted session and timestamp."""
        self.state = STATE_NULL
        self.elapsed_ms = 0
        self.elapsed_limit_ms = 0
        self.session = max(0, session)
        self.state_timestamp_ms = state_timestamp_ms

    def auto_transition_target(self) -> Optional[TimerState]:
        """State the machine must move to now, or None while the interval runs."""
        if self.elapsed_ms < self.elapsed_limit_ms:
            return None
        if self.state == STATE_POMODORO:
            return STATE_PAUSE
        if self.state == STATE_PAUSE:
            return STATE_IDLE if self._settings.pause_when_idle else STATE_POMODORO
        return None

    def commit_transition(self, new_state: TimerState, timestamp_ms: int) -> Transition:
        """Enter `new_state` at `timestamp_ms`, applying session accounting.

        Committing the current state again changes nothing. A pomodoro that
        overran its limit carries the overrun into the pause, which then
        starts that much earlier than `timestamp_ms`.
        """
        previous_state = self.state
        previous_session = self.session
        previous_elapsed_ms = self.elapsed_ms
        previous_elapsed_limit_ms = self.elapsed_limit_ms

        if new_state != previous_state:
            self._enter(new_state, timestamp_ms)

        return Transition(
            previous_state=previous_state,
            state=self.state,
            previous_session=previous_session,
            session=self.session,
            previous_elapsed_ms=previous_elapsed_ms,
            previous_elapsed_limit_ms=previous_elapsed_limit_ms,
            elapsed_ms=self.elapsed_ms,
            elapsed_limit_ms=self.elapsed_limit_ms,
            timestamp_ms=timestamp_ms,
        )

    def set_elapsed(self, elapsed_ms: int) -> bool:
        elapsed_ms = max(0, int(elapsed_ms))
        if elapsed_ms == self.elapsed_ms:
            return False
        self.elapsed_ms = elapsed_ms
        return True

    def apply_settings(self, settings: TimerSettings, key: str) -> bool:
        """Adopt new settings; re-limit the current state if `key` governs it.

        Returns True when `elapsed_ms` or `elapsed_limit_ms` moved.
        """
        self._settings = settings
        self._accountant.settings = settings

        if not self._governs_current_limit(key):
            return False

        elapsed_limit_ms = self._limit_for(self.state)
        elapsed_ms = min(self.elapsed_ms, elapsed_limit_ms)
        moved = (
            elapsed_limit_ms != self.elapsed_limit_ms or elapsed_ms != self.elapsed_ms
        )
        self.elapsed_limit_ms = elapsed_limit_ms
        self.elapsed_ms = elapsed_ms
        return moved

    def _governs_current_limit(self, key: str) -> bool:
        if self.state == STATE_POMODORO:
            return key == SETTING_POMODORO_TIME
        if self.state == STATE_PAUSE:
            if self.session >= self.session_limit:
                return key == SETTING_LONG_PAUSE_TIME
            return key == SETTING_SHORT_PAUSE_TIME
        return False

    def _limit_for(self, state: TimerState) -> int:
        if state == STATE_POMODORO:
            return self._settings.pomodoro_ms
        if state == STATE_PAUSE:
            if self.session >= self.session_limit:
                return self._settings.long_pause_ms
            return self._settings.short_pause_ms
        return 0

    def _enter(self, new_state: TimerState, timestamp_ms: int) -> None:
        accountant = self._accountant
        previous_state = self.state

        if previous_state == STATE_POMODORO:
            self.session = accountant.session_after_pomodoro(self.session, self.elapsed_ms)

        new_elapsed_ms = 0
        if new_state == STATE_POMODORO:
            if previous_state in (STATE_PAUSE, STATE_IDLE):
                self.session = accountant.session_after_pause(self.session, self.elapsed_ms)
            elif previous_state == STATE_NULL and self.state_timestamp_ms > 0:
                stopped_ms = timestamp_ms - self.state_timestamp_ms
                self.session = accountant.session_after_stop(self.session, stopped_ms)
        elif new_state == STATE_PAUSE:
            if previous_state == STATE_POMODORO and self.elapsed_ms > self.elapsed_limit_ms:
                new_elapsed_ms = self.elapsed_ms - self.elapsed_limit_ms

        self.state = new_state
        self.elapsed_limit_ms = self._limit_for(new_state)
        self.elapsed_ms = new_elapsed_ms
        self.state_timestamp_ms = timestamp_ms - new_elapsed_ms
