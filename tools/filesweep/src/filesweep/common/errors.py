from __future__ import annotations

from pathlib import Path


class FilesweepError(Exception):
    """Base class for errors raised by filesweep."""


class ConfigError(FilesweepError):
    """Configuration is missing or invalid. Fatal, raised before any scanning."""


class ScanError(FilesweepError):
    """The root path cannot be enumerated. Fatal, the run's stats are discarded."""


class DeleteError(FilesweepError):
    """
    A single file could not be deleted.

    Never escapes the scanner: it is counted and logged, and the pass continues.
    The underlying OSError is chained as __cause__.
    """

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"could not delete {path}: {reason}")
        self.path = path
        self.reason = reason
