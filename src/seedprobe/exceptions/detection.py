"""Detection and cache exceptions: snapshot loading, cache storage."""

from pathlib import Path
from typing import Union

from .base import SeedProbeError


class SnapshotError(SeedProbeError):
    """Raised when a schema snapshot document cannot be read at all.

    Missing or malformed fields inside a readable snapshot are not errors;
    they are treated as empty collections.
    """

    def __init__(self, source: Union[str, Path], reason: str):
        super().__init__(
            f"Cannot load schema snapshot: {source}",
            details={"source": str(source), "reason": reason},
        )
        self.source = source
        self.reason = reason


class CacheError(SeedProbeError):
    """Base class for detection cache errors."""

    pass


class CacheDirectoryError(CacheError):
    """Raised when no usable cache directory exists, fallback included."""

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(
            f"Cannot create cache directory: {path}",
            details={"path": str(path), "reason": reason},
        )
        self.path = path
        self.reason = reason
