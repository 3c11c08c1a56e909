"""Websocket event types and client command vocabulary."""

from __future__ import annotations

# Server -> client event types
EVENT_HELLO = "hello"
EVENT_TIMER = "timer"
EVENT_COMMAND_RESULT = "command_result"
EVENT_ERROR = "error"

# Client -> server message types
MESSAGE_COMMAND = "command"

# Command actions
ACTION_START = "start"
ACTION_STOP = "stop"
ACTION_RESET = "reset"
ACTION_SET_ELAPSED = "set_elapsed"
ACTION_CONFIGURE = "configure"
ACTION_SYNC = "sync"

COMMAND_ACTIONS: frozenset[str] = frozenset(
    {
        ACTION_START,
        ACTION_STOP,
        ACTION_RESET,
        ACTION_SET_ELAPSED,
        ACTION_CONFIGURE,
        ACTION_SYNC,
    }
)

# Command outcome reasons
REASON_STARTED = "started"
REASON_ALREADY_RUNNING = "already_running"
REASON_STOPPED = "stopped"
REASON_NOT_RUNNING = "not_running"
REASON_RESET = "reset"
REASON_ELAPSED_SET = "elapsed_set"
REASON_INVALID_SECONDS = "invalid_seconds"
REASON_CONFIGURED = "configured"
REASON_UNKNOWN_SETTING = "unknown_setting"
REASON_INVALID_VALUE = "invalid_value"
REASON_SYNC = "sync"
REASON_STARTUP = "startup"
REASON_UNKNOWN_ACTION = "unknown_action"

STICKY_EVENT_TYPES: frozenset[str] = frozenset({EVENT_TIMER, EVENT_ERROR})

STICKY_EVENT_ORDER: tuple[str, ...] = (
    EVENT_TIMER,
    EVENT_ERROR,
)
