"""Translate UI commands into timer operations."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from contracts.ui_protocol import (
    ACTION_CONFIGURE,
    ACTION_RESET,
    ACTION_SET_ELAPSED,
    ACTION_START,
    ACTION_STOP,
    ACTION_SYNC,
    COMMAND_ACTIONS,
    REASON_ALREADY_RUNNING,
    REASON_CONFIGURED,
    REASON_ELAPSED_SET,
    REASON_INVALID_SECONDS,
    REASON_INVALID_VALUE,
    REASON_NOT_RUNNING,
    REASON_RESET,
    REASON_STARTED,
    REASON_STOPPED,
    REASON_SYNC,
    REASON_UNKNOWN_ACTION,
    REASON_UNKNOWN_SETTING,
)
from pomodoro import STATE_IDLE, STATE_NULL, PomodoroTimer, TimerSnapshot
from pomodoro.settings import setting_keys


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one dispatched command and the timer state after it."""
    action: str
    accepted: bool
    reason: str
    snapshot: TimerSnapshot


class TimerCommandDispatcher:
    """Validates command arguments and calls the matching timer operation."""

    def __init__(self, timer: PomodoroTimer, logger: Optional[logging.Logger] = None):
        self._timer = timer
        self._logger = logger or logging.getLogger("runtime")

    def dispatch(self, action: str, arguments: Mapping[str, Any]) -> CommandResult:
        action = action.strip().lower()
        if action not in COMMAND_ACTIONS:
            self._logger.warning("Unknown timer command: %s", action)
            return self._result(action, False, REASON_UNKNOWN_ACTION)

        handler = {
            ACTION_START: self._start,
            ACTION_STOP: self._stop,
            ACTION_RESET: self._reset,
            ACTION_SET_ELAPSED: self._set_elapsed,
            ACTION_CONFIGURE: self._configure,
            ACTION_SYNC: self._sync,
        }[action]
        result = handler(action, arguments)
        self._logger.info(
            "Timer command %s: accepted=%s reason=%s",
            action,
            result.accepted,
            result.reason,
        )
        return result

    def _start(self, action: str, arguments: Mapping[str, Any]) -> CommandResult:
        del arguments
        if self._timer.state not in (STATE_NULL, STATE_IDLE):
            return self._result(action, False, REASON_ALREADY_RUNNING)
        update = self._timer.start()
        return CommandResult(action, True, REASON_STARTED, update.snapshot)

    def _stop(self, action: str, arguments: Mapping[str, Any]) -> CommandResult:
        del arguments
        if self._timer.state == STATE_NULL:
            return self._result(action, False, REASON_NOT_RUNNING)
        update = self._timer.stop()
        return CommandResult(action, True, REASON_STOPPED, update.snapshot)

    def _reset(self, action: str, arguments: Mapping[str, Any]) -> CommandResult:
        del arguments
        update = self._timer.reset()
        return CommandResult(action, True, REASON_RESET, update.snapshot)

    def _set_elapsed(self, action: str, arguments: Mapping[str, Any]) -> CommandResult:
        seconds = arguments.get("seconds")
        if (
            isinstance(seconds, bool)
            or not isinstance(seconds, (int, float))
            or not math.isfinite(seconds)
            or seconds < 0
        ):
            return self._result(action, False, REASON_INVALID_SECONDS)
        if self._timer.state == STATE_NULL:
            return self._result(action, False, REASON_NOT_RUNNING)
        update = self._timer.set_elapsed(seconds)
        return CommandResult(action, True, REASON_ELAPSED_SET, update.snapshot)

    def _configure(self, action: str, arguments: Mapping[str, Any]) -> CommandResult:
        key = arguments.get("key")
        if key not in setting_keys():
            return self._result(action, False, REASON_UNKNOWN_SETTING)
        value = arguments.get("value")
        try:
            self._timer.settings.with_value(key, value)
        except ValueError:
            return self._result(action, False, REASON_INVALID_VALUE)
        update = self._timer.on_config_changed(key, value)
        return CommandResult(action, True, REASON_CONFIGURED, update.snapshot)

    def _sync(self, action: str, arguments: Mapping[str, Any]) -> CommandResult:
        del arguments
        return self._result(action, True, REASON_SYNC)

    def _result(self, action: str, accepted: bool, reason: str) -> CommandResult:
        return CommandResult(action, accepted, reason, self._timer.snapshot())
