class PresenceError(Exception):
    """Base exception for presence integrations."""


class IdleMonitorError(PresenceError):
    """Raised when the user's idle time cannot be determined."""
