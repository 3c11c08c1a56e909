"""Acceptance heuristics deciding when the session counter moves."""

from __future__ import annotations

from .constants import (
    SESSION_ACCEPTANCE,
    SHORT_LONG_PAUSE_ACCEPTANCE,
    SHORT_PAUSE_ACCEPTANCE,
)
from .settings import TimerSettings


class SessionAccountant:
    """Applies the pomodoro/pause acceptance factors to elapsed times.

    All durations are milliseconds. The accountant reads interval lengths
    from the settings it is given and holds no state of its own.
    """

    def __init__(self, settings: TimerSettings):
        self._settings = settings

    @property
    def settings(self) -> TimerSettings:
        return self._settings

    @settings.setter
    def settings(self, value: TimerSettings) -> None:
        self._settings = value

    def long_pause_acceptance_ms(self) -> int:
        """Pause length from which a break counts as a long one."""
        return int(
            (1.0 - SHORT_LONG_PAUSE_ACCEPTANCE) * self._settings.short_pause_ms
            + SHORT_LONG_PAUSE_ACCEPTANCE * self._settings.long_pause_ms
        )

    def is_pomodoro_accepted(self, elapsed_ms: int) -> bool:
        """Whether a pomodoro ending after `elapsed_ms` counts as completed."""
        return elapsed_ms >= SESSION_ACCEPTANCE * self._settings.pomodoro_ms

    def is_pause_skipped(self, elapsed_ms: int) -> bool:
        return elapsed_ms < SHORT_PAUSE_ACCEPTANCE * self._settings.short_pause_ms

    def is_long_pause_taken(self, elapsed_ms: int) -> bool:
        return elapsed_ms >= self.long_pause_acceptance_ms()

    def session_after_pomodoro(self, session: int, elapsed_ms: int) -> int:
        if self.is_pomodoro_accepted(elapsed_ms):
            return session + 1
        return session

    def session_after_pause(self, session: int, elapsed_ms: int) -> int:
        """Session count when a pause (or idle break) gives way to a pomodoro.

        A skipped pause brings the long pause closer; a pause at least as long
        as the long-pause acceptance time starts a new cycle.
        """
        if self.is_pause_skipped(elapsed_ms):
            session += 1
        if self.is_long_pause_taken(elapsed_ms):
            session = 0
        return session

    def session_after_stop(self, session: int, stopped_ms: int) -> int:
        """Session count when starting again after `stopped_ms` fully stopped."""
        if self.is_long_pause_taken(stopped_ms):
            return 0
        return session
