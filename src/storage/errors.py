class StorageError(Exception):
    """Base exception for timer state stores."""


class StorageReadError(StorageError):
    """Raised when persisted timer state cannot be read."""


class StorageWriteError(StorageError):
    """Raised when timer state cannot be written."""
