"""Flat JSON file holding the last known timer state."""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Optional, Union

from .errors import StorageReadError, StorageWriteError

StoredValue = Union[float, str]


class JsonStateStore:
    """Key/value store persisted as one JSON object, replaced atomically on write."""

    def __init__(self, path: str | Path, logger: Optional[logging.Logger] = None):
        self.path = Path(path)
        self._logger = logger or logging.getLogger("storage")
        self._lock = threading.Lock()
        self._values: Optional[dict[str, StoredValue]] = None

    def get(self, key: str) -> Optional[StoredValue]:
        with self._lock:
            return self._load_locked().get(key)

    def set(self, key: str, value: StoredValue) -> None:
        if not isinstance(value, (int, float, str)) or isinstance(value, bool):
            raise StorageWriteError(f"Unsupported value for {key}: {value!r}")
        with self._lock:
            try:
                values = dict(self._load_locked())
            except StorageReadError:
                # Replace an unreadable file rather than fail every write.
                values = {}
            values[key] = value
            self._write_locked(values)
            self._values = values

    def _load_locked(self) -> dict[str, StoredValue]:
        if self._values is not None:
            return self._values
        if not self.path.exists():
            self._values = {}
            return self._values
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as error:
            raise StorageReadError(f"Failed to read {self.path}: {error}") from error
        if not isinstance(data, dict):
            raise StorageReadError(f"{self.path} must hold a JSON object")
        self._values = {
            str(key): value
            for key, value in data.items()
            if isinstance(value, (int, float, str)) and not isinstance(value, bool)
        }
        return self._values

    def _write_locked(self, values: dict[str, StoredValue]) -> None:
        payload = json.dumps(values, ensure_ascii=True, indent=2, sort_keys=True)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with NamedTemporaryFile(
                "w",
                delete=False,
                encoding="utf-8",
                dir=str(self.path.parent),
            ) as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
                tmp_path = Path(handle.name)
            os.replace(tmp_path, self.path)
        except OSError as error:
            raise StorageWriteError(f"Failed to write {self.path}: {error}") from error
        self._logger.debug("Timer state written to %s", self.path)
