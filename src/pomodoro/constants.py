"""State, settings-key, event, and tuning constants used by the pomodoro timer."""

from __future__ import annotations

STATE_NULL = "null"
STATE_POMODORO = "pomodoro"
STATE_PAUSE = "pause"
STATE_IDLE = "idle"

TIMER_STATES: tuple[str, ...] = (STATE_NULL, STATE_POMODORO, STATE_PAUSE, STATE_IDLE)

# A pomodoro stopped after this fraction of its length still counts.
SESSION_ACCEPTANCE = 20.0 / 25.0

# A pause shorter than this fraction of the short pause counts as skipped.
SHORT_PAUSE_ACCEPTANCE = 1.0 / 5.0

# Position between short and long pause length from which a pause counts as
# a long one.
SHORT_LONG_PAUSE_ACCEPTANCE = 0.5

DEFAULT_POMODORO_SECONDS = 25 * 60
DEFAULT_SHORT_PAUSE_SECONDS = 5 * 60
DEFAULT_LONG_PAUSE_SECONDS = 15 * 60
DEFAULT_SESSION_LIMIT = 4
DEFAULT_TICK_INTERVAL_SECONDS = 1.0

MAX_REPLAY_TRANSITIONS = 10_000

SETTING_POMODORO_TIME = "pomodoro-time"
SETTING_SHORT_PAUSE_TIME = "short-pause-time"
SETTING_LONG_PAUSE_TIME = "long-pause-time"
SETTING_PAUSE_WHEN_IDLE = "pause-when-idle"
SETTING_SESSION_LIMIT = "session-limit"

DURATION_SETTINGS: frozenset[str] = frozenset(
    {SETTING_POMODORO_TIME, SETTING_SHORT_PAUSE_TIME, SETTING_LONG_PAUSE_TIME}
)

STORE_SESSION_COUNT = "session-count"
STORE_STATE = "state"
STORE_STATE_CHANGED_DATE = "state-changed-date"

EVENT_STATE_CHANGED = "state_changed"
EVENT_ELAPSED_CHANGED = "elapsed_changed"
EVENT_POMODORO_START = "pomodoro_start"
EVENT_POMODORO_END = "pomodoro_end"
EVENT_NOTIFY_POMODORO_START = "notify_pomodoro_start"
EVENT_NOTIFY_POMODORO_END = "notify_pomodoro_end"

LIFECYCLE_EVENTS: frozenset[str] = frozenset(
    {
        EVENT_POMODORO_START,
        EVENT_POMODORO_END,
        EVENT_NOTIFY_POMODORO_START,
        EVENT_NOTIFY_POMODORO_END,
    }
)
