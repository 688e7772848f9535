"""
DetectionCache: persists detection results keyed by schema fingerprint.

Entries are validated on every read (TTL, database identity, schema hash,
engine version) and maintained synchronously before every write (expired
and corrupt records removed, then least-used records evicted until the
count and byte limits hold).
"""

from __future__ import annotations

import json
import threading
import time
from typing import Any, Callable, Optional

from ..config import CacheConfig
from ..detection.models import ENGINE_VERSION, EvidenceAnalysisResult
from ..logging_config import get_logger
from .backends import CacheBackend, DiskBackend, MemoryBackend
from .keys import generate_key, normalize_database_identity
from .models import CacheMetadata, CacheStatistics, ConfidenceLevel, DetectionCacheEntry

logger = get_logger(__name__)


def _encode(entry: DetectionCacheEntry) -> str:
    return json.dumps(entry.to_dict(), sort_keys=True)


def _decode(record: str) -> Optional[DetectionCacheEntry]:
    """Parse a stored record; None if it is corrupt."""
    try:
        return DetectionCacheEntry.from_dict(json.loads(record))
    except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError):
        return None


def _record_size(record: str) -> int:
    return len(record.encode("utf-8"))


class DetectionCache:
    """
    Cache of EvidenceAnalysisResult objects.

    Usage:
        with DetectionCache(CacheConfig(cache_dir=".seedprobe-cache")) as cache:
            key = cache.generate_key(url, schema_hash)
            entry = cache.retrieve(key, url, schema_hash)
            if entry is None:
                cache.store(key, url, schema_hash, result)

    Args:
        config: Cache limits, TTL and invalidation strategy
        backend: Storage backend; defaults to a DiskBackend on config.cache_dir
        clock: Returns the current time in epoch seconds
        engine_version: Version stamped on stored entries; entries written
            by any other version are treated as stale
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        backend: Optional[CacheBackend] = None,
        clock: Callable[[], float] = time.time,
        engine_version: str = ENGINE_VERSION,
    ):
        self.config = config or CacheConfig()
        self.backend = backend if backend is not None else DiskBackend(self.config.cache_dir)
        self.clock = clock
        self.engine_version = engine_version

        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

    @classmethod
    def in_memory(cls, config: Optional[CacheConfig] = None, **kwargs) -> DetectionCache:
        return cls(config, backend=MemoryBackend(), **kwargs)

    # ── Keys ─────────────────────────────────────────────────────

    @staticmethod
    def generate_key(
        database_identity: str, schema_hash: str, options: Optional[dict[str, Any]] = None
    ) -> str:
        return generate_key(database_identity, schema_hash, options)

    # ── Read path ────────────────────────────────────────────────

    def retrieve(
        self,
        key: str,
        database_identity: Optional[str] = None,
        schema_hash: Optional[str] = None,
    ) -> Optional[DetectionCacheEntry]:
        """
        Return the cached entry for key, or None on a miss.

        A stale entry (expired, different database, changed schema, other
        engine version) counts as a miss and is deleted.
        """
        try:
            record = self.backend.get(key)
        except Exception as e:
            logger.warning(f"Failed to read detection cache entry {key}: {e}")
            self._record_miss()
            return None

        if record is None:
            self._record_miss()
            return None

        entry = _decode(record)
        if entry is None:
            logger.debug(f"Removing corrupt detection cache entry {key}")
            self._delete_quietly(key)
            self._record_miss()
            return None

        now = self.clock()
        reason = self._invalid_reason(entry, now, database_identity, schema_hash)
        if reason:
            logger.debug(f"Detection cache entry {key} is stale: {reason}")
            self._delete_quietly(key)
            self._record_miss()
            return None

        entry.metadata.access_count += 1
        entry.metadata.last_accessed_at = now
        try:
            self.backend.set(key, _encode(entry))
        except Exception as e:
            logger.warning(f"Failed to update access stats for {key}: {e}")

        self._record_hit()
        return entry

    def has(
        self,
        key: str,
        database_identity: Optional[str] = None,
        schema_hash: Optional[str] = None,
    ) -> bool:
        return self.retrieve(key, database_identity, schema_hash) is not None

    def _invalid_reason(
        self,
        entry: DetectionCacheEntry,
        now: float,
        database_identity: Optional[str],
        schema_hash: Optional[str],
    ) -> Optional[str]:
        if entry.metadata.is_expired(now):
            return "entry expired"

        if database_identity is not None:
            if normalize_database_identity(database_identity) != entry.database_identity:
                return "database identity mismatch"

        if (
            schema_hash is not None
            and self.config.invalidation_strategy != "time"
            and schema_hash != entry.schema_hash
        ):
            return "schema has changed"

        if entry.metadata.engine_version != self.engine_version:
            return (
                f"engine version mismatch "
                f"({entry.metadata.engine_version} != {self.engine_version})"
            )

        return None

    # ── Write path ───────────────────────────────────────────────

    def store(
        self,
        key: str,
        database_identity: str,
        schema_hash: str,
        result: EvidenceAnalysisResult,
        auto_configuration: Optional[dict[str, Any]] = None,
        ttl: Optional[float] = None,
    ) -> bool:
        """
        Persist a detection result.

        Results below min_confidence_to_cache, and records larger than
        max_cache_size on their own, are not stored. Maintenance
        (expiry cleanup, then size enforcement with room reserved for the new
        record) runs before the write.

        Returns:
            True if the entry was written
        """
        if result.overall_confidence < self.config.min_confidence_to_cache:
            logger.debug(
                f"Not caching {key}: confidence {result.overall_confidence:.2f} "
                f"below {self.config.min_confidence_to_cache:.2f}"
            )
            return False

        now = self.clock()
        entry = DetectionCacheEntry(
            key=key,
            schema_hash=schema_hash,
            database_identity=normalize_database_identity(database_identity),
            detection_results=result,
            auto_configuration=auto_configuration,
            metadata=CacheMetadata(
                created_at=now,
                last_accessed_at=now,
                access_count=0,
                engine_version=self.engine_version,
                ttl=float(ttl if ttl is not None else self.config.default_ttl),
                confidence_level=ConfidenceLevel.for_confidence(result.overall_confidence),
            ),
        )
        record = _encode(entry)
        record_size = _record_size(record)
        if record_size > self.config.max_cache_size:
            logger.warning(
                f"Not caching {key}: entry of {record_size} bytes exceeds "
                f"max_cache_size {self.config.max_cache_size}"
            )
            return False

        try:
            self.cleanup_expired_entries()
            # The existing record under key is overwritten, so it does not count
            self.enforce_max_size(reserve_bytes=record_size, reserve_entries=1, exclude_key=key)
            self.backend.set(key, record)
        except Exception as e:
            logger.warning(f"Failed to store detection cache entry {key}: {e}")
            return False

        logger.debug(f"Cached detection result {key} (ttl={entry.metadata.ttl:.0f}s)")
        return True

    def remove(self, key: str) -> bool:
        try:
            return self.backend.delete(key)
        except Exception as e:
            logger.warning(f"Failed to remove detection cache entry {key}: {e}")
            return False

    def clear(self) -> int:
        """Remove every entry and reset hit/miss counters."""
        try:
            removed = self.backend.clear()
        except Exception as e:
            logger.warning(f"Failed to clear detection cache: {e}")
            removed = 0

        with self._lock:
            self._hits = 0
            self._misses = 0

        logger.debug(f"Cleared {removed} detection cache entries")
        return removed

    # ── Maintenance ──────────────────────────────────────────────

    def cleanup_expired_entries(self) -> int:
        """Remove expired and corrupt entries; returns how many were removed."""
        now = self.clock()
        removed = 0
        try:
            for key in self.backend.keys():
                record = self.backend.get(key)
                if record is None:
                    continue
                entry = _decode(record)
                if entry is None or entry.metadata.is_expired(now):
                    if self.backend.delete(key):
                        removed += 1
        except Exception as e:
            logger.warning(f"Detection cache cleanup failed: {e}")

        if removed:
            logger.debug(f"Removed {removed} expired or corrupt cache entries")
        return removed

    def enforce_max_size(
        self,
        reserve_bytes: int = 0,
        reserve_entries: int = 0,
        exclude_key: Optional[str] = None,
    ) -> int:
        """
        Evict least-used entries until both limits hold.

        Eviction order is access_count ascending, then last_accessed_at
        ascending; corrupt records go first. reserve_bytes/reserve_entries
        account for a record about to be written, and exclude_key names
        the key that record will replace.

        Returns:
            Number of evicted entries
        """
        rows: list[tuple[int, float, str, int]] = []
        try:
            for key in self.backend.keys():
                if key == exclude_key:
                    continue
                record = self.backend.get(key)
                if record is None:
                    continue
                entry = _decode(record)
                if entry is None:
                    rows.append((-1, 0.0, key, _record_size(record)))
                else:
                    rows.append(
                        (
                            entry.metadata.access_count,
                            entry.metadata.last_accessed_at,
                            key,
                            _record_size(record),
                        )
                    )
        except Exception as e:
            logger.warning(f"Detection cache size check failed: {e}")
            return 0

        count = len(rows) + reserve_entries
        size = sum(row[3] for row in rows) + reserve_bytes

        def within_limits() -> bool:
            return count <= self.config.max_entries and size <= self.config.max_cache_size

        if within_limits():
            return 0

        evicted = 0
        for _, _, key, record_size in sorted(rows):
            if within_limits():
                break
            try:
                self.backend.delete(key)
            except Exception as e:
                logger.warning(f"Failed to evict detection cache entry {key}: {e}")
                continue
            count -= 1
            size -= record_size
            evicted += 1

        logger.debug(f"Evicted {evicted} detection cache entries to stay within limits")
        return evicted

    # ── Statistics ───────────────────────────────────────────────

    def get_statistics(self) -> CacheStatistics:
        """Entry count, size, ages and hit rate. Corrupt entries count toward
        size and total but not toward ages."""
        now = self.clock()
        total_entries = 0
        cache_size = 0
        ages: list[float] = []
        most_frequent_key = ""
        top_access = -1

        try:
            for key in self.backend.keys():
                record = self.backend.get(key)
                if record is None:
                    continue
                total_entries += 1
                cache_size += _record_size(record)
                entry = _decode(record)
                if entry is None:
                    continue
                ages.append(entry.metadata.age(now))
                if entry.metadata.access_count > top_access:
                    top_access = entry.metadata.access_count
                    most_frequent_key = key
        except Exception as e:
            logger.warning(f"Failed to read detection cache statistics: {e}")

        with self._lock:
            hits, misses = self._hits, self._misses

        lookups = hits + misses
        return CacheStatistics(
            total_entries=total_entries,
            cache_size=cache_size,
            hit_rate=hits / lookups if lookups else 0.0,
            total_hits=hits,
            total_misses=misses,
            average_age=sum(ages) / len(ages) if ages else 0.0,
            oldest_entry=max(ages) if ages else 0.0,
            most_frequent_key=most_frequent_key,
            location=self.backend.location,
        )

    # ── Lifecycle ────────────────────────────────────────────────

    def close(self) -> None:
        self.backend.close()

    def __enter__(self) -> DetectionCache:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ── Internals ────────────────────────────────────────────────

    def _record_hit(self) -> None:
        with self._lock:
            self._hits += 1

    def _record_miss(self) -> None:
        with self._lock:
            self._misses += 1

    def _delete_quietly(self, key: str) -> None:
        try:
            self.backend.delete(key)
        except Exception as e:
            logger.debug(f"Could not delete detection cache entry {key}: {e}")
