"""Architecture detection: evidence rules, collectors, aggregation."""

from .aggregator import EvidenceAggregator
from .collector import EvidenceCollector, default_collectors
from .models import (
    ENGINE_VERSION,
    ArchitectureScores,
    ArchitectureType,
    Evidence,
    EvidenceAnalysisResult,
    EvidenceType,
    PlatformFeature,
    SupportingData,
)
from .rules import EvidenceRule, RuleMatch, build_rule_sets

__all__ = [
    "ENGINE_VERSION",
    "ArchitectureScores",
    "ArchitectureType",
    "Evidence",
    "EvidenceAggregator",
    "EvidenceAnalysisResult",
    "EvidenceCollector",
    "EvidenceRule",
    "EvidenceType",
    "PlatformFeature",
    "RuleMatch",
    "SupportingData",
    "build_rule_sets",
    "default_collectors",
]
