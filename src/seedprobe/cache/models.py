"""Detection cache records and statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..detection.models import EvidenceAnalysisResult

# overall_confidence at or above this is labelled HIGH
HIGH_CONFIDENCE = 0.8


class ConfidenceLevel(Enum):
    """Coarse label stored with an entry for quick filtering."""

    HIGH = "high"
    MEDIUM = "medium"

    @classmethod
    def for_confidence(cls, overall_confidence: float) -> ConfidenceLevel:
        return cls.HIGH if overall_confidence >= HIGH_CONFIDENCE else cls.MEDIUM


@dataclass
class CacheMetadata:
    """Bookkeeping for one cache entry. Timestamps are epoch seconds."""

    created_at: float
    last_accessed_at: float
    access_count: int
    engine_version: str
    ttl: float  # seconds
    confidence_level: ConfidenceLevel

    def age(self, now: float) -> float:
        return now - self.created_at

    def is_expired(self, now: float) -> bool:
        return now - self.created_at > self.ttl

    def to_dict(self) -> dict[str, Any]:
        return {
            "created_at": self.created_at,
            "last_accessed_at": self.last_accessed_at,
            "access_count": self.access_count,
            "engine_version": self.engine_version,
            "ttl": self.ttl,
            "confidence_level": self.confidence_level.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> CacheMetadata:
        return cls(
            created_at=float(data["created_at"]),
            last_accessed_at=float(data.get("last_accessed_at", data["created_at"])),
            access_count=int(data.get("access_count", 0)),
            engine_version=str(data["engine_version"]),
            ttl=float(data["ttl"]),
            confidence_level=ConfidenceLevel(data.get("confidence_level", "medium")),
        )


@dataclass
class DetectionCacheEntry:
    """One cached detection, keyed by database identity, schema and options.

    Attributes:
        key: Cache key (see keys.generate_key)
        schema_hash: Fingerprint of the schema the result was computed from
        database_identity: Normalized identity, credentials stripped
        detection_results: The cached analysis result
        auto_configuration: Opaque downstream configuration, if any
        metadata: Timestamps, access count, engine version, TTL
    """

    key: str
    schema_hash: str
    database_identity: str
    detection_results: EvidenceAnalysisResult
    metadata: CacheMetadata
    auto_configuration: Optional[dict[str, Any]] = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "schema_hash": self.schema_hash,
            "database_identity": self.database_identity,
            "detection_results": self.detection_results.to_dict(),
            "auto_configuration": self.auto_configuration,
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> DetectionCacheEntry:
        return cls(
            key=str(data["key"]),
            schema_hash=str(data["schema_hash"]),
            database_identity=str(data.get("database_identity", "")),
            detection_results=EvidenceAnalysisResult.from_dict(data["detection_results"]),
            metadata=CacheMetadata.from_dict(data["metadata"]),
            auto_configuration=data.get("auto_configuration"),
        )


@dataclass
class CacheStatistics:
    """Snapshot of cache contents plus in-process hit/miss counters.

    Ages are in seconds. Hit and miss counts cover this process only.
    """

    total_entries: int = 0
    cache_size: int = 0
    hit_rate: float = 0.0
    total_hits: int = 0
    total_misses: int = 0
    average_age: float = 0.0
    oldest_entry: float = 0.0
    most_frequent_key: str = ""
    location: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_entries": self.total_entries,
            "cache_size": self.cache_size,
            "hit_rate": self.hit_rate,
            "total_hits": self.total_hits,
            "total_misses": self.total_misses,
            "average_age": self.average_age,
            "oldest_entry": self.oldest_entry,
            "most_frequent_key": self.most_frequent_key,
            "location": self.location,
        }
