from .errors import IdleMonitorError, PresenceError
from .idle import CommandIdleMonitor, command_idle_time
from .resume import SuspendDetector

__all__ = [
    "CommandIdleMonitor",
    "IdleMonitorError",
    "PresenceError",
    "SuspendDetector",
    "command_idle_time",
]
