"""Read-only timer settings injected into the state machine."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Union

from .constants import (
    DEFAULT_LONG_PAUSE_SECONDS,
    DEFAULT_POMODORO_SECONDS,
    DEFAULT_SESSION_LIMIT,
    DEFAULT_SHORT_PAUSE_SECONDS,
    SETTING_LONG_PAUSE_TIME,
    SETTING_PAUSE_WHEN_IDLE,
    SETTING_POMODORO_TIME,
    SETTING_SESSION_LIMIT,
    SETTING_SHORT_PAUSE_TIME,
)

SettingValue = Union[int, bool]

_KEY_TO_FIELD: dict[str, str] = {
    SETTING_POMODORO_TIME: "pomodoro_time",
    SETTING_SHORT_PAUSE_TIME: "short_pause_time",
    SETTING_LONG_PAUSE_TIME: "long_pause_time",
    SETTING_PAUSE_WHEN_IDLE: "pause_when_idle",
    SETTING_SESSION_LIMIT: "session_limit",
}


@dataclass(frozen=True)
class TimerSettings:
    """Interval lengths (seconds) and presence options read by the timer."""
    pomodoro_time: int = DEFAULT_POMODORO_SECONDS
    short_pause_time: int = DEFAULT_SHORT_PAUSE_SECONDS
    long_pause_time: int = DEFAULT_LONG_PAUSE_SECONDS
    pause_when_idle: bool = False
    session_limit: int = DEFAULT_SESSION_LIMIT

    @property
    def pomodoro_ms(self) -> int:
        return self.pomodoro_time * 1000

    @property
    def short_pause_ms(self) -> int:
        return self.short_pause_time * 1000

    @property
    def long_pause_ms(self) -> int:
        return self.long_pause_time * 1000

    def value_of(self, key: str) -> SettingValue:
        return getattr(self, _field_for(key))

    def with_value(self, key: str, value: Any) -> "TimerSettings":
        """Return a copy with one option replaced, keyed by its option name."""
        field_name = _field_for(key)
        if key == SETTING_PAUSE_WHEN_IDLE:
            if not isinstance(value, bool):
                raise ValueError(f"{key} must be a boolean, got {value!r}")
            return replace(self, **{field_name: value})

        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{key} must be a number, got {value!r}")
        if not math.isfinite(value):
            raise ValueError(f"{key} must be finite, got {value!r}")
        return replace(self, **{field_name: int(value)})

    def changed_keys(self, other: "TimerSettings") -> list[tuple[str, SettingValue]]:
        """List `(key, new_value)` pairs that differ in `other`."""
        changes: list[tuple[str, SettingValue]] = []
        for key, field_name in _KEY_TO_FIELD.items():
            new_value = getattr(other, field_name)
            if getattr(self, field_name) != new_value:
                changes.append((key, new_value))
        return changes


def setting_keys() -> tuple[str, ...]:
    return tuple(_KEY_TO_FIELD)


def _field_for(key: str) -> str:
    try:
        return _KEY_TO_FIELD[key]
    except KeyError:
        raise KeyError(f"Unknown timer setting: {key}") from None
