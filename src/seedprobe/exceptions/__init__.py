"""Exception hierarchy for seedprobe."""

from .base import SeedProbeError
from .config import ConfigFileError, ConfigurationError, InvalidConfigError
from .detection import CacheDirectoryError, CacheError, SnapshotError

__all__ = [
    "SeedProbeError",
    "ConfigurationError",
    "ConfigFileError",
    "InvalidConfigError",
    "SnapshotError",
    "CacheError",
    "CacheDirectoryError",
]
