"""Typed parser for config.toml sections into immutable app settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from app_config_schema import (
    DEFAULT_STATE_FILE,
    AppConfig,
    AppConfigurationError,
    PresenceSettings,
    RuntimeSettings,
    StorageSettings,
    UIServerSettings,
)
from pomodoro.constants import (
    DEFAULT_LONG_PAUSE_SECONDS,
    DEFAULT_POMODORO_SECONDS,
    DEFAULT_SESSION_LIMIT,
    DEFAULT_SHORT_PAUSE_SECONDS,
    DEFAULT_TICK_INTERVAL_SECONDS,
)
from pomodoro.settings import TimerSettings


def parse_app_config(
    raw: Mapping[str, Any],
    *,
    base_dir: Path,
    source_file: str,
) -> AppConfig:
    """Parse raw TOML mappings into strongly typed application settings."""
    timer_section = _section(raw, "timer")
    presence_section = _section(raw, "presence")

    timer = parse_timer_settings(timer_section, presence_section)
    presence = _parse_presence_settings(presence_section)
    storage = _parse_storage_settings(_section(raw, "storage"), base_dir=base_dir)
    ui_server = _parse_ui_server_settings(_section(raw, "ui_server"))
    runtime = _parse_runtime_settings(_section(raw, "runtime"), timer_section)

    return AppConfig(
        timer=timer,
        presence=presence,
        storage=storage,
        ui_server=ui_server,
        runtime=runtime,
        source_file=source_file,
    )


def parse_timer_settings(
    timer_section: Mapping[str, Any],
    presence_section: Mapping[str, Any],
) -> TimerSettings:
    """Build the timer options from `[timer]` and `[presence].pause_when_idle`."""
    return TimerSettings(
        pomodoro_time=_as_positive_int(
            timer_section.get("pomodoro_time", DEFAULT_POMODORO_SECONDS),
            "timer.pomodoro_time",
        ),
        short_pause_time=_as_positive_int(
            timer_section.get("short_pause_time", DEFAULT_SHORT_PAUSE_SECONDS),
            "timer.short_pause_time",
        ),
        long_pause_time=_as_positive_int(
            timer_section.get("long_pause_time", DEFAULT_LONG_PAUSE_SECONDS),
            "timer.long_pause_time",
        ),
        session_limit=_as_positive_int(
            timer_section.get("session_limit", DEFAULT_SESSION_LIMIT),
            "timer.session_limit",
        ),
        pause_when_idle=_as_bool(
            presence_section.get("pause_when_idle", False),
            "presence.pause_when_idle",
        ),
    )


def _parse_presence_settings(section: Mapping[str, Any]) -> PresenceSettings:
    return PresenceSettings(
        idle_command=_as_command(section.get("idle_command", []), "presence.idle_command"),
        idle_poll_seconds=_as_positive_float(
            section.get("idle_poll_seconds", 1.0),
            "presence.idle_poll_seconds",
        ),
        resume_detection=_as_bool(
            section.get("resume_detection", True),
            "presence.resume_detection",
        ),
        resume_poll_seconds=_as_positive_float(
            section.get("resume_poll_seconds", 5.0),
            "presence.resume_poll_seconds",
        ),
        resume_threshold_seconds=_as_positive_float(
            section.get("resume_threshold_seconds", 10.0),
            "presence.resume_threshold_seconds",
        ),
    )


def _parse_storage_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> StorageSettings:
    state_file = _as_str(section.get("state_file", DEFAULT_STATE_FILE), "storage.state_file")
    return StorageSettings(state_file=_resolve_path(base_dir, state_file))


def _parse_ui_server_settings(section: Mapping[str, Any]) -> UIServerSettings:
    return UIServerSettings(
        enabled=_as_bool(section.get("enabled", True), "ui_server.enabled"),
        host=_as_str(section.get("host", "127.0.0.1"), "ui_server.host"),
        port=_as_int(section.get("port", 8765), "ui_server.port"),
        websocket_path=_as_str(
            section.get("websocket_path", "/ws"),
            "ui_server.websocket_path",
        ),
    )


def _parse_runtime_settings(
    section: Mapping[str, Any],
    timer_section: Mapping[str, Any],
) -> RuntimeSettings:
    return RuntimeSettings(
        tick_interval_seconds=_as_positive_float(
            timer_section.get("tick_interval_seconds", DEFAULT_TICK_INTERVAL_SECONDS),
            "timer.tick_interval_seconds",
        ),
        config_poll_seconds=_as_positive_float(
            section.get("config_poll_seconds", 2.0),
            "runtime.config_poll_seconds",
        ),
    )


def _section(root: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    raw = root.get(name, {})
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise AppConfigurationError(f"[{name}] must be a table.")
    return raw


def _as_str(value: Any, field: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    raise AppConfigurationError(f"{field} must be a string.")


def _as_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    raise AppConfigurationError(f"{field} must be a boolean.")


def _as_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be an integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be an integer.") from error
    raise AppConfigurationError(f"{field} must be an integer.")


def _as_positive_int(value: Any, field: str) -> int:
    number = _as_int(value, field)
    if number < 1:
        raise AppConfigurationError(f"{field} must be a positive integer.")
    return number


def _as_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be a float.")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be a float.") from error
    raise AppConfigurationError(f"{field} must be a float.")


def _as_positive_float(value: Any, field: str) -> float:
    number = _as_float(value, field)
    if number <= 0:
        raise AppConfigurationError(f"{field} must be greater than zero.")
    return number


def _as_command(value: Any, field: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(value.split())
    if isinstance(value, (list, tuple)) and all(isinstance(part, str) for part in value):
        return tuple(part for part in value if part.strip())
    raise AppConfigurationError(f"{field} must be a string or a list of strings.")


def _resolve_path(base_dir: Path, raw: str) -> str:
    if not raw:
        return ""
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return str(path)
