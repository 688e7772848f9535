"""Generic evidence collector: runs one rule set over a snapshot.

The Individual, Team and Hybrid collectors are the same engine driven by
different rule tables, so there is one class and three instances.
"""

from __future__ import annotations

from typing import Iterable, Optional

from ..config import EvidenceCollectionConfig
from ..logging_config import get_logger
from ..snapshot import SchemaSnapshot
from .models import ArchitectureType, Evidence, EvidenceType, SupportingData
from .rules import RULE_SETS, EvidenceRule, RuleMatch

logger = get_logger(__name__)


class EvidenceCollector:
    """Collects evidence for one architecture hypothesis.

    ``collect`` is a pure function of the snapshot and config: no I/O, no
    shared mutable state, deterministic output. Instances are therefore safe
    to run concurrently over the same snapshot.
    """

    def __init__(self, hypothesis: ArchitectureType, rules: Iterable[EvidenceRule]):
        self.hypothesis = hypothesis
        self.rules: tuple[EvidenceRule, ...] = tuple(rules)

    @property
    def name(self) -> str:
        return self.hypothesis.value

    def collect(
        self, snapshot: SchemaSnapshot, config: Optional[EvidenceCollectionConfig] = None
    ) -> list[Evidence]:
        """Run every rule and return filtered, ranked evidence."""
        config = config or EvidenceCollectionConfig()
        evidence = []
        for rule in self.rules:
            found = rule.match(snapshot, rule)
            if found is not None:
                evidence.append(_to_evidence(rule, found))

        ranked = filter_and_rank(evidence, config)
        logger.debug(
            f"{self.name} collector: {len(evidence)} matched, {len(ranked)} kept"
        )
        return ranked

    def __repr__(self) -> str:
        return f"EvidenceCollector({self.name!r}, rules={len(self.rules)})"


def _to_evidence(rule: EvidenceRule, found: RuleMatch) -> Evidence:
    return Evidence(
        type=rule.evidence_type,
        description=found.description,
        confidence=rule.confidence,
        weight=rule.weight,
        supporting_data=SupportingData(
            tables=list(found.tables),
            patterns=[rule.name],
            samples=list(found.samples),
        ),
        architecture_indicators=rule.indicators,
    )


def enabled_types(config: EvidenceCollectionConfig) -> set[EvidenceType]:
    """Evidence types the config's analysis flags allow through."""
    enabled = set()
    if config.detailed_table_analysis:
        enabled.add(EvidenceType.TABLE_PATTERN)
    if config.analyze_column_patterns:
        enabled.add(EvidenceType.COLUMN_ANALYSIS)
    if config.analyze_relationships:
        enabled.add(EvidenceType.RELATIONSHIP_PATTERN)
    if config.analyze_business_logic:
        enabled.add(EvidenceType.BUSINESS_LOGIC)
    return enabled


def filter_and_rank(
    evidence: list[Evidence], config: EvidenceCollectionConfig
) -> list[Evidence]:
    """Drop disabled or low-confidence evidence, rank by strength, truncate.

    The sort is stable: equal-strength items keep first-found order.
    """
    allowed = enabled_types(config)
    kept = [
        e
        for e in evidence
        if e.type in allowed and e.confidence >= config.min_evidence_confidence
    ]
    kept.sort(key=lambda e: e.strength, reverse=True)
    return kept[: config.max_evidence_per_type]


def default_collectors(
    rule_sets: Optional[dict[ArchitectureType, tuple[EvidenceRule, ...]]] = None,
) -> list[EvidenceCollector]:
    """One collector per hypothesis, in individual, team, hybrid order."""
    rule_sets = rule_sets or RULE_SETS
    return [EvidenceCollector(arch, rule_sets[arch]) for arch in ArchitectureType]
