"""Detect edits to the timer section of the config file while running."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from app_config import AppConfig, AppConfigurationError, load_app_config
from pomodoro.settings import SettingValue, TimerSettings

ConfigLoader = Callable[[str], AppConfig]


class ConfigWatcher:
    """Reloads the config file when its mtime changes and diffs the timer options."""

    def __init__(
        self,
        path: str | Path,
        settings: TimerSettings,
        *,
        loader: Optional[ConfigLoader] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._path = Path(path)
        self._settings = settings
        self._loader = loader or load_app_config
        self._logger = logger or logging.getLogger("runtime")
        self._mtime_ns = self._read_mtime()

    @property
    def settings(self) -> TimerSettings:
        return self._settings

    def poll(self) -> list[tuple[str, SettingValue]]:
        """Return `(key, value)` pairs changed since the last successful load."""
        mtime_ns = self._read_mtime()
        if mtime_ns is None or mtime_ns == self._mtime_ns:
            return []
        self._mtime_ns = mtime_ns

        try:
            config = self._loader(str(self._path))
        except AppConfigurationError as error:
            self._logger.warning("Ignoring config change, reload failed: %s", error)
            return []

        changes = self._settings.changed_keys(config.timer)
        self._settings = config.timer
        if changes:
            self._logger.info(
                "Config file changed: %s",
                ", ".join(key for key, _ in changes),
            )
        return changes

    def _read_mtime(self) -> Optional[int]:
        try:
            return self._path.stat().st_mtime_ns
        except OSError as error:
            self._logger.debug("Cannot stat config file %s: %s", self._path, error)
            return None
