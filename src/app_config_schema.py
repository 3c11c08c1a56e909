"""Dataclass schema objects used by runtime configuration loading."""

from __future__ import annotations

from dataclasses import dataclass, field

from pomodoro.constants import DEFAULT_TICK_INTERVAL_SECONDS
from pomodoro.settings import TimerSettings

DEFAULT_CONFIG_FILE = "config.toml"
DEFAULT_STATE_FILE = "state/timer_state.json"


class AppConfigurationError(Exception):
    """Raised when application configuration fails."""


@dataclass(frozen=True)
class PresenceSettings:
    """Idle and suspend detection settings from `[presence]`.

    `pause_when_idle` itself lives on `TimerSettings` since the timer reads it.
    """
    idle_command: tuple[str, ...] = ()
    idle_poll_seconds: float = 1.0
    resume_detection: bool = True
    resume_poll_seconds: float = 5.0
    resume_threshold_seconds: float = 10.0


@dataclass(frozen=True)
class StorageSettings:
    """State store location from `[storage]`."""
    state_file: str = ""


@dataclass(frozen=True)
class UIServerSettings:
    """Built-in websocket server settings from `[ui_server]`."""
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 8765
    websocket_path: str = "/ws"


@dataclass(frozen=True)
class RuntimeSettings:
    """Loop cadence settings; `tick_interval_seconds` comes from `[timer]`."""
    tick_interval_seconds: float = DEFAULT_TICK_INTERVAL_SECONDS
    config_poll_seconds: float = 2.0


@dataclass(frozen=True)
class AppConfig:
    """Complete typed runtime configuration loaded from `config.toml`."""
    timer: TimerSettings
    presence: PresenceSettings
    storage: StorageSettings
    ui_server: UIServerSettings
    runtime: RuntimeSettings = field(default_factory=RuntimeSettings)
    source_file: str = ""
