"""In-memory state store used for tests and for running without persistence."""

from __future__ import annotations

from typing import Mapping, Optional, Union

StoredValue = Union[float, str]


class MemoryStateStore:
    """Dict-backed key/value store."""

    def __init__(self, values: Optional[Mapping[str, StoredValue]] = None):
        self._values: dict[str, StoredValue] = dict(values or {})

    def get(self, key: str) -> Optional[StoredValue]:
        return self._values.get(key)

    def set(self, key: str, value: StoredValue) -> None:
        self._values[key] = value

    def as_dict(self) -> dict[str, StoredValue]:
        return dict(self._values)
