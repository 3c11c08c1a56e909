from .errors import StorageError, StorageReadError, StorageWriteError
from .json_store import JsonStateStore
from .memory_store import MemoryStateStore

__all__ = [
    "JsonStateStore",
    "MemoryStateStore",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
]
