"""
Key-value storage backends for the detection cache.

Backends store opaque serialized records (JSON text) by key. They know
nothing about expiry or eviction; DetectionCache owns those policies.
Failures propagate to the caller, which decides how to degrade.
"""

from __future__ import annotations

import hashlib
import sqlite3
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from diskcache import Cache

from ..exceptions import CacheDirectoryError
from ..logging_config import get_logger

logger = get_logger(__name__)


class CacheBackend(ABC):
    """Minimal key-value interface used by DetectionCache."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the record stored under key, or None."""

    @abstractmethod
    def set(self, key: str, record: str) -> None:
        """Store record under key, replacing any previous record."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove key; returns True if something was removed."""

    @abstractmethod
    def keys(self) -> list[str]:
        """All stored keys."""

    @abstractmethod
    def clear(self) -> int:
        """Remove every record; returns how many were removed."""

    def close(self) -> None:
        """Release underlying resources."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable description of where records live."""


class MemoryBackend(CacheBackend):
    """Process-local backend holding records in a dict."""

    def __init__(self):
        self._records: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._records.get(key)

    def set(self, key: str, record: str) -> None:
        with self._lock:
            self._records[key] = record

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._records.pop(key, None) is not None

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._records)

    def clear(self) -> int:
        with self._lock:
            count = len(self._records)
            self._records.clear()
            return count

    @property
    def location(self) -> str:
        return "memory"


def fallback_cache_dir(project_dir: Optional[Path] = None) -> Path:
    """Per-project cache directory under the system temp dir."""
    project = (project_dir or Path.cwd()).resolve()
    digest = hashlib.sha256(str(project).encode("utf-8")).hexdigest()[:12]
    return Path(tempfile.gettempdir()) / f"seedprobe-cache-{digest}"


class DiskBackend(CacheBackend):
    """
    diskcache-backed persistent backend, one record per key.

    If the configured directory cannot be created or opened, a per-project
    directory under the system temp dir is used instead.

    Raises:
        CacheDirectoryError: If neither directory is usable
    """

    def __init__(self, cache_dir: str | Path, fallback_dir: Optional[Path] = None):
        requested = Path(cache_dir).expanduser()
        try:
            self._cache = self._open(requested)
        except (OSError, sqlite3.Error) as e:
            fallback = fallback_dir or fallback_cache_dir()
            logger.warning(
                f"Cache directory {requested} is not usable ({e}); falling back to {fallback}"
            )
            try:
                self._cache = self._open(fallback)
            except (OSError, sqlite3.Error) as fallback_error:
                raise CacheDirectoryError(str(fallback), str(fallback_error))

        logger.debug(f"Disk cache opened at {self._cache.directory}")

    @staticmethod
    def _open(directory: Path) -> Cache:
        directory.mkdir(parents=True, exist_ok=True)
        return Cache(str(directory))

    def get(self, key: str) -> Optional[str]:
        return self._cache.get(key)

    def set(self, key: str, record: str) -> None:
        self._cache.set(key, record)

    def delete(self, key: str) -> bool:
        return bool(self._cache.delete(key))

    def keys(self) -> list[str]:
        return [k for k in self._cache.iterkeys() if isinstance(k, str)]

    def clear(self) -> int:
        return int(self._cache.clear())

    def close(self) -> None:
        self._cache.close()

    @property
    def location(self) -> str:
        return str(self._cache.directory)
