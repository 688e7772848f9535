"""Tests for EvidenceCollector filtering and ranking."""

from seedprobe.config import EvidenceCollectionConfig
from seedprobe.detection.collector import EvidenceCollector, default_collectors, enabled_types
from seedprobe.detection.models import ArchitectureType, EvidenceType
from seedprobe.detection.rules import RULE_SETS, build_rule_sets
from seedprobe.snapshot import SchemaSnapshot


def collector(arch):
    return EvidenceCollector(arch, RULE_SETS[arch])


class TestEvidenceCollector:
    def test_empty_snapshot_yields_no_evidence(self, empty_snapshot):
        for c in default_collectors():
            assert c.collect(empty_snapshot) == []

    def test_individual_evidence(self, individual_snapshot):
        evidence = collector(ArchitectureType.INDIVIDUAL).collect(individual_snapshot)
        patterns = [e.supporting_data.patterns[0] for e in evidence]
        # strength 0.6 first, then the two 0.42 items in rule order
        assert patterns == [
            "simple_account_structure",
            "personal_content_focus",
            "no_team_structures",
        ]

    def test_evidence_carries_rule_constants(self, individual_snapshot):
        evidence = collector(ArchitectureType.INDIVIDUAL).collect(individual_snapshot)
        content = next(e for e in evidence if e.supporting_data.patterns == ["personal_content_focus"])
        assert content.type == EvidenceType.TABLE_PATTERN
        assert content.confidence == 0.7
        assert content.weight == 0.6
        assert content.description == "Found personal content tables: posts"
        assert content.supporting_data.tables == ["posts"]

    def test_ranked_by_strength_descending(self, hybrid_snapshot):
        for c in default_collectors():
            strengths = [e.strength for e in c.collect(hybrid_snapshot)]
            assert strengths == sorted(strengths, reverse=True)

    def test_max_evidence_per_type(self, hybrid_snapshot):
        config = EvidenceCollectionConfig(max_evidence_per_type=2)
        evidence = collector(ArchitectureType.HYBRID).collect(hybrid_snapshot, config)
        assert len(evidence) == 2
        assert [e.supporting_data.patterns[0] for e in evidence] == [
            "flexible_account_structure",
            "mixed_ownership_patterns",
        ]

    def test_min_evidence_confidence(self, hybrid_snapshot):
        config = EvidenceCollectionConfig(min_evidence_confidence=0.85)
        evidence = collector(ArchitectureType.HYBRID).collect(hybrid_snapshot, config)
        assert all(e.confidence >= 0.85 for e in evidence)
        assert len(evidence) == 2

    def test_business_logic_disabled_by_default(self):
        snapshot = SchemaSnapshot.build(["teams"], functions=["create_team"])
        team = collector(ArchitectureType.TEAM)

        default = team.collect(snapshot)
        assert EvidenceType.BUSINESS_LOGIC not in {e.type for e in default}

        enabled = team.collect(snapshot, EvidenceCollectionConfig(analyze_business_logic=True))
        assert EvidenceType.BUSINESS_LOGIC in {e.type for e in enabled}

    def test_relationship_flag_filters_relationship_evidence(self, individual_snapshot):
        config = EvidenceCollectionConfig(analyze_relationships=False)
        evidence = collector(ArchitectureType.INDIVIDUAL).collect(individual_snapshot, config)
        assert all(e.type != EvidenceType.RELATIONSHIP_PATTERN for e in evidence)
        assert len(evidence) == 2

    def test_collect_is_deterministic(self, hybrid_snapshot):
        c = collector(ArchitectureType.HYBRID)
        first = [e.to_dict() for e in c.collect(hybrid_snapshot)]
        second = [e.to_dict() for e in c.collect(hybrid_snapshot)]
        assert first == second


class TestHelpers:
    def test_enabled_types_defaults(self):
        assert enabled_types(EvidenceCollectionConfig()) == {
            EvidenceType.TABLE_PATTERN,
            EvidenceType.COLUMN_ANALYSIS,
            EvidenceType.RELATIONSHIP_PATTERN,
        }

    def test_default_collectors_order(self):
        assert [c.name for c in default_collectors()] == ["individual", "team", "hybrid"]

    def test_default_collectors_with_overridden_rules(self, individual_snapshot):
        rule_sets = build_rule_sets({"personal_content_focus": {"confidence": 0.2}})
        individual = default_collectors(rule_sets)[0]
        patterns = [e.supporting_data.patterns[0] for e in individual.collect(individual_snapshot)]
        # Overridden confidence falls below min_evidence_confidence (0.3)
        assert "personal_content_focus" not in patterns
