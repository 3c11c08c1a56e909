from .constants import (
    DEFAULT_LONG_PAUSE_SECONDS,
    DEFAULT_POMODORO_SECONDS,
    DEFAULT_SESSION_LIMIT,
    DEFAULT_SHORT_PAUSE_SECONDS,
    STATE_IDLE,
    STATE_NULL,
    STATE_PAUSE,
    STATE_POMODORO,
)
from .events import EventBatch, TimerEvent
from .machine import TimerMachine, TimerState, Transition
from .service import PomodoroTimer, TimerSnapshot, TimerUpdate
from .settings import TimerSettings
from .ticker import Ticker

__all__ = [
    "DEFAULT_LONG_PAUSE_SECONDS",
    "DEFAULT_POMODORO_SECONDS",
    "DEFAULT_SESSION_LIMIT",
    "DEFAULT_SHORT_PAUSE_SECONDS",
    "EventBatch",
    "PomodoroTimer",
    "STATE_IDLE",
    "STATE_NULL",
    "STATE_PAUSE",
    "STATE_POMODORO",
    "Ticker",
    "TimerEvent",
    "TimerMachine",
    "TimerSettings",
    "TimerSnapshot",
    "TimerState",
    "TimerUpdate",
    "Transition",
]
