"""Detection result cache: keys, storage backends, and the cache manager."""

from .backends import CacheBackend, DiskBackend, MemoryBackend, fallback_cache_dir
from .formatting import format_bytes, format_duration, format_statistics
from .keys import generate_key, normalize_database_identity
from .manager import DetectionCache
from .models import CacheMetadata, CacheStatistics, ConfidenceLevel, DetectionCacheEntry

__all__ = [
    "CacheBackend",
    "CacheMetadata",
    "CacheStatistics",
    "ConfidenceLevel",
    "DetectionCache",
    "DetectionCacheEntry",
    "DiskBackend",
    "MemoryBackend",
    "fallback_cache_dir",
    "format_bytes",
    "format_duration",
    "format_statistics",
    "generate_key",
    "normalize_database_identity",
]
