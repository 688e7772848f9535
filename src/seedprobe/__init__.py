"""
SeedProbe - Platform Architecture Detection

Infers whether an application database is built for individual users,
teams, or both, from a read-only schema snapshot: evidence rules fire on
table names, relationships, columns and database functions, and their
weighted votes become architecture scores, platform features, reasoning
and warnings. Results are cached per schema fingerprint.
"""

__version__ = "1.0.0"

from .cache import DetectionCache
from .config import CacheConfig, DetectionConfig, EvidenceCollectionConfig, load_config
from .detection import ArchitectureType, EvidenceAggregator, EvidenceAnalysisResult
from .service import DetectionOutcome, DetectionService
from .snapshot import Relationship, SchemaSnapshot

__all__ = [
    "ArchitectureType",
    "CacheConfig",
    "DetectionCache",
    "DetectionConfig",
    "DetectionOutcome",
    "DetectionService",  # Main entry point
    "EvidenceAggregator",
    "EvidenceAnalysisResult",
    "EvidenceCollectionConfig",
    "Relationship",
    "SchemaSnapshot",
    "load_config",
]
