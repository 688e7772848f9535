"""Detection models: evidence, scores, platform features, analysis result.

Every model round-trips through ``to_dict``/``from_dict`` so results can be
persisted by the detection cache. ``from_dict`` ignores unknown keys to stay
readable across forward-compatible format additions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

# Bump when the serialized shape of EvidenceAnalysisResult changes;
# cached entries written by another engine version are discarded.
ENGINE_VERSION = "1.0.0"


class ArchitectureType(Enum):
    """The three architecture hypotheses."""

    INDIVIDUAL = "individual"
    TEAM = "team"
    HYBRID = "hybrid"


class EvidenceType(Enum):
    """Signal class an evidence item was derived from."""

    TABLE_PATTERN = "table_pattern"
    RELATIONSHIP_PATTERN = "relationship_pattern"
    COLUMN_ANALYSIS = "column_analysis"
    BUSINESS_LOGIC = "business_logic"


@dataclass(frozen=True)
class ArchitectureScores:
    """One value per hypothesis.

    Used both for per-evidence indicator vectors (affinities, not required
    to sum to 1) and for the aggregated, normalized scores.
    """

    individual: float = 0.0
    team: float = 0.0
    hybrid: float = 0.0

    def get(self, arch: ArchitectureType) -> float:
        return getattr(self, arch.value)

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.individual, self.team, self.hybrid)

    def ranked(self) -> list[tuple[ArchitectureType, float]]:
        """Hypotheses by descending value; ties keep individual, team, hybrid order."""
        pairs = [(arch, self.get(arch)) for arch in ArchitectureType]
        return sorted(pairs, key=lambda p: -p[1])

    def dominant(self) -> ArchitectureType:
        return self.ranked()[0][0]

    def separation(self) -> float:
        """Gap between the leading and runner-up values."""
        ranked = self.ranked()
        return ranked[0][1] - ranked[1][1]

    def to_dict(self) -> dict[str, float]:
        return {"individual": self.individual, "team": self.team, "hybrid": self.hybrid}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> ArchitectureScores:
        data = data or {}
        return cls(
            individual=float(data.get("individual", 0.0)),
            team=float(data.get("team", 0.0)),
            hybrid=float(data.get("hybrid", 0.0)),
        )


@dataclass
class SupportingData:
    """What an evidence item was derived from."""

    tables: list[str] = field(default_factory=list)
    patterns: list[str] = field(default_factory=list)
    samples: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, list[str]]:
        # Omit empty lists; every key is optional in the record format
        data: dict[str, list[str]] = {}
        if self.tables:
            data["tables"] = list(self.tables)
        if self.patterns:
            data["patterns"] = list(self.patterns)
        if self.samples:
            data["samples"] = list(self.samples)
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> SupportingData:
        data = data or {}
        return cls(
            tables=[str(t) for t in data.get("tables", [])],
            patterns=[str(p) for p in data.get("patterns", [])],
            samples=[str(s) for s in data.get("samples", [])],
        )


@dataclass
class Evidence:
    """One weighted, confidence-scored observation about a snapshot.

    Attributes:
        type: Signal class this evidence came from
        description: Human-readable explanation
        confidence: How sure the rule is that the signal is real [0, 1]
        weight: How diagnostic the signal is for architecture [0, 1]
        supporting_data: Tables, pattern names and samples behind it
        architecture_indicators: Affinity toward each hypothesis
    """

    type: EvidenceType
    description: str
    confidence: float
    weight: float
    supporting_data: SupportingData = field(default_factory=SupportingData)
    architecture_indicators: ArchitectureScores = field(default_factory=ArchitectureScores)

    @property
    def strength(self) -> float:
        return self.confidence * self.weight

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "description": self.description,
            "confidence": self.confidence,
            "weight": self.weight,
            "supporting_data": self.supporting_data.to_dict(),
            "architecture_indicators": self.architecture_indicators.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Evidence:
        return cls(
            type=EvidenceType(data["type"]),
            description=data.get("description", ""),
            confidence=float(data.get("confidence", 0.0)),
            weight=float(data.get("weight", 0.0)),
            supporting_data=SupportingData.from_dict(data.get("supporting_data")),
            architecture_indicators=ArchitectureScores.from_dict(
                data.get("architecture_indicators")
            ),
        )


@dataclass
class PlatformFeature:
    """A platform capability recognized in the schema."""

    id: str
    name: str
    category: str
    present: bool
    confidence: float
    evidence: list[str] = field(default_factory=list)
    implementing_tables: list[str] = field(default_factory=list)
    typically_indicates: list[ArchitectureType] = field(default_factory=list)
    common_in_domains: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "present": self.present,
            "confidence": self.confidence,
            "evidence": list(self.evidence),
            "implementing_tables": list(self.implementing_tables),
            "typically_indicates": [a.value for a in self.typically_indicates],
            "common_in_domains": list(self.common_in_domains),
        }

    @classmethod
    def from_dict(cls, data: dict) -> PlatformFeature:
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            category=data.get("category", ""),
            present=bool(data.get("present", True)),
            confidence=float(data.get("confidence", 0.0)),
            evidence=list(data.get("evidence", [])),
            implementing_tables=list(data.get("implementing_tables", [])),
            typically_indicates=[ArchitectureType(a) for a in data.get("typically_indicates", [])],
            common_in_domains=list(data.get("common_in_domains", [])),
        )


@dataclass
class EvidenceAnalysisResult:
    """The detection payload handed to downstream configuration steps.

    Invariants:
        - every architecture score is <= 1.0
        - 0.0 <= overall_confidence <= 1.0
    """

    evidence: list[Evidence] = field(default_factory=list)
    architecture_scores: ArchitectureScores = field(default_factory=ArchitectureScores)
    platform_features: list[PlatformFeature] = field(default_factory=list)
    reasoning: list[str] = field(default_factory=list)
    overall_confidence: float = 0.0
    warnings: list[str] = field(default_factory=list)

    @property
    def architecture(self) -> Optional[ArchitectureType]:
        """Highest-scoring hypothesis, or None when nothing scored."""
        if max(self.architecture_scores.as_tuple()) <= 0.0:
            return None
        return self.architecture_scores.dominant()

    def to_dict(self) -> dict[str, Any]:
        return {
            "evidence": [e.to_dict() for e in self.evidence],
            "architecture_scores": self.architecture_scores.to_dict(),
            "platform_features": [f.to_dict() for f in self.platform_features],
            "reasoning": list(self.reasoning),
            "overall_confidence": self.overall_confidence,
            "warnings": list(self.warnings),
        }

    @classmethod
    def from_dict(cls, data: dict) -> EvidenceAnalysisResult:
        return cls(
            evidence=[Evidence.from_dict(e) for e in data.get("evidence", [])],
            architecture_scores=ArchitectureScores.from_dict(data.get("architecture_scores")),
            platform_features=[
                PlatformFeature.from_dict(f) for f in data.get("platform_features", [])
            ],
            reasoning=list(data.get("reasoning", [])),
            overall_confidence=float(data.get("overall_confidence", 0.0)),
            warnings=list(data.get("warnings", [])),
        )
