"""
DetectionService: cached architecture detection for one schema snapshot.

Combines the EvidenceAggregator with an optional DetectionCache:
fingerprint the snapshot, look the result up, and on a miss run detection
and store the outcome. The cache is strictly an optimization; if it fails,
detection still returns a result.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional

from .cache import DetectionCache
from .config import DetectionConfig
from .detection import ENGINE_VERSION, EvidenceAggregator, EvidenceAnalysisResult
from .detection.collector import default_collectors
from .detection.rules import build_rule_sets
from .logging_config import get_logger
from .snapshot import SchemaSnapshot

logger = get_logger(__name__)


@dataclass
class DetectionOutcome:
    """Result of DetectionService.detect.

    Attributes:
        result: The architecture analysis
        cache_key: Key the result is (or would be) cached under
        schema_hash: Fingerprint of the analysed snapshot
        from_cache: True if the result was served from the cache
    """

    result: EvidenceAnalysisResult
    cache_key: str
    schema_hash: str
    from_cache: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "result": self.result.to_dict(),
            "cache_key": self.cache_key,
            "schema_hash": self.schema_hash,
            "from_cache": self.from_cache,
        }


class DetectionService:
    """
    Cached front door to architecture detection.

    Usage:
        config = load_config()
        with DetectionService.from_config(config) as service:
            outcome = service.detect(snapshot, "postgres://db/app")
            print(outcome.result.architecture)

    Args:
        aggregator: Runs the collectors and scores the evidence
        cache: Optional result cache; None disables caching
        rule_overrides: Rule constant overrides in effect, folded into the
            cache key so overridden runs never share entries with default ones
    """

    def __init__(
        self,
        aggregator: Optional[EvidenceAggregator] = None,
        cache: Optional[DetectionCache] = None,
        rule_overrides: Optional[Mapping[str, Any]] = None,
    ):
        self.aggregator = aggregator or EvidenceAggregator()
        self.cache = cache
        self.rule_overrides = dict(rule_overrides or {})

    @classmethod
    def from_config(
        cls, config: DetectionConfig, cache: Optional[DetectionCache] = None
    ) -> DetectionService:
        """Build a service from configuration.

        Opens a disk-backed cache when caching is enabled and no cache is
        passed in.

        Raises:
            InvalidConfigError: If a rule override is invalid
            CacheDirectoryError: If no usable cache directory exists
        """
        collectors = default_collectors(build_rule_sets(config.rule_overrides))
        aggregator = EvidenceAggregator(
            config=config.evidence,
            collectors=collectors,
            parallel=config.parallel_collectors,
        )
        if cache is None and config.cache.enabled:
            cache = DetectionCache(config.cache)
        return cls(aggregator, cache, rule_overrides=config.rule_overrides)

    def detect(
        self,
        snapshot: SchemaSnapshot,
        database_identity: str = "",
        options: Optional[Mapping[str, Any]] = None,
        use_cache: bool = True,
    ) -> DetectionOutcome:
        """
        Detect the platform architecture of a snapshot.

        Args:
            snapshot: Schema to analyse
            database_identity: Connection URL or other identity of the database
            options: Evidence collection overrides for this call
            use_cache: Consult and populate the cache (if one is configured)

        Returns:
            DetectionOutcome with the result and its cache coordinates

        Raises:
            InvalidConfigError: If options name an unknown setting
        """
        evidence_config = self.aggregator.resolve_config(options)
        schema_hash = snapshot.schema_hash()
        key_options = {
            "evidence": asdict(evidence_config),
            "rules": self.rule_overrides,
            "engine": ENGINE_VERSION,
        }
        cache_key = DetectionCache.generate_key(database_identity, schema_hash, key_options)

        caching = use_cache and self.cache is not None
        if caching:
            entry = self.cache.retrieve(cache_key, database_identity, schema_hash)
            if entry is not None:
                logger.debug(f"Detection cache hit for {cache_key}")
                return DetectionOutcome(
                    result=entry.detection_results,
                    cache_key=cache_key,
                    schema_hash=schema_hash,
                    from_cache=True,
                )

        result = self.aggregator.collect_all(snapshot, options)

        if caching:
            self.cache.store(cache_key, database_identity, schema_hash, result)

        return DetectionOutcome(result=result, cache_key=cache_key, schema_hash=schema_hash)

    def close(self) -> None:
        if self.cache is not None:
            self.cache.close()

    def __enter__(self) -> DetectionService:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
