"""EvidenceAggregator: turns collected evidence into an architecture verdict.

Orchestrates:
1. Evidence collection (three collectors, optionally on a thread pool)
2. Score computation (strength-weighted indicator mean, normalized to <= 1)
3. Platform feature extraction
4. Reasoning trail
5. Overall confidence (computed once, shared with warning generation)
6. Warnings
"""

from __future__ import annotations

import concurrent.futures
from dataclasses import fields, replace
from typing import Any, Mapping, Optional

import numpy as np

from ..config import EvidenceCollectionConfig
from ..exceptions import InvalidConfigError
from ..logging_config import get_logger
from ..snapshot import SchemaSnapshot
from .collector import EvidenceCollector, default_collectors
from .features import extract_platform_features
from .models import ArchitectureScores, Evidence, EvidenceAnalysisResult

logger = get_logger(__name__)

# Reasoning
_TOP_EVIDENCE = 5

# Overall confidence = mean confidence, evidence volume, score separation
_CONFIDENCE_WEIGHT = 0.4
_VOLUME_WEIGHT = 0.3
_SEPARATION_WEIGHT = 0.3
_FULL_VOLUME = 10

# Warnings
_MIN_EVIDENCE = 3
_STRONG_EVIDENCE = 0.5
_CONFLICT_INDICATOR = 0.4
_CLOSE_SCORES = 0.2
_LOW_CONFIDENCE = 0.6


class EvidenceAggregator:
    """Runs the collectors over a snapshot and scores the result.

    Args:
        config: Default evidence filtering/ranking config
        collectors: Collectors to run (defaults to individual, team, hybrid)
        parallel: Run collectors on a thread pool. Output is identical to
            sequential collection; results are always joined in collector order.
    """

    def __init__(
        self,
        config: Optional[EvidenceCollectionConfig] = None,
        collectors: Optional[list[EvidenceCollector]] = None,
        parallel: bool = True,
    ):
        self.config = config or EvidenceCollectionConfig()
        self.collectors = collectors if collectors is not None else default_collectors()
        self.parallel = parallel

    def collect_all(
        self,
        snapshot: SchemaSnapshot,
        config_overrides: Optional[Mapping[str, Any]] = None,
    ) -> EvidenceAnalysisResult:
        """Collect evidence from every collector and build the analysis result.

        Never raises for snapshot content; a failing collector is logged and
        reported as a warning.

        Raises:
            InvalidConfigError: If config_overrides names an unknown setting
        """
        config = self.resolve_config(config_overrides)

        evidence, collector_warnings = self._collect(snapshot, config)

        scores = calculate_architecture_scores(evidence)
        features = extract_platform_features(evidence, snapshot)
        reasoning = generate_reasoning(evidence, scores)
        overall = calculate_overall_confidence(evidence, scores)
        warnings = collector_warnings + generate_warnings(evidence, scores, overall)

        logger.debug(
            f"Aggregated {len(evidence)} evidence items: "
            f"individual={scores.individual:.2f} team={scores.team:.2f} "
            f"hybrid={scores.hybrid:.2f} confidence={overall:.2f}"
        )

        return EvidenceAnalysisResult(
            evidence=evidence,
            architecture_scores=scores,
            platform_features=features,
            reasoning=reasoning,
            overall_confidence=overall,
            warnings=warnings,
        )

    def resolve_config(
        self, overrides: Optional[Mapping[str, Any]]
    ) -> EvidenceCollectionConfig:
        """Effective evidence config for one call.

        Raises:
            InvalidConfigError: Unknown setting or invalid value
        """
        if not overrides:
            return self.config
        known = {f.name for f in fields(EvidenceCollectionConfig)}
        for key, value in overrides.items():
            if key not in known:
                raise InvalidConfigError(key, value, "unknown evidence collection setting")
        try:
            return replace(self.config, **overrides)
        except ValueError as e:
            raise InvalidConfigError("evidence", dict(overrides), str(e))

    def _collect(
        self, snapshot: SchemaSnapshot, config: EvidenceCollectionConfig
    ) -> tuple[list[Evidence], list[str]]:
        """Run collectors; returns evidence in collector order plus warnings."""
        results: list[Optional[list[Evidence]]] = [None] * len(self.collectors)
        warnings: list[str] = []

        if self.parallel and len(self.collectors) > 1:
            with concurrent.futures.ThreadPoolExecutor(
                max_workers=len(self.collectors)
            ) as executor:
                futures = {
                    executor.submit(collector.collect, snapshot, config): idx
                    for idx, collector in enumerate(self.collectors)
                }
                for future in concurrent.futures.as_completed(futures):
                    idx = futures[future]
                    try:
                        results[idx] = future.result()
                    except Exception as e:
                        results[idx] = []
                        warnings.append(self._collector_failed(self.collectors[idx], e))
        else:
            for idx, collector in enumerate(self.collectors):
                try:
                    results[idx] = collector.collect(snapshot, config)
                except Exception as e:
                    results[idx] = []
                    warnings.append(self._collector_failed(collector, e))

        evidence = [e for chunk in results for e in (chunk or [])]
        return evidence, sorted(warnings)

    @staticmethod
    def _collector_failed(collector: EvidenceCollector, error: Exception) -> str:
        logger.warning(f"{collector.name} collector failed: {error}")
        return f"{collector.name.capitalize()} evidence collection failed - results may be incomplete"


def calculate_architecture_scores(evidence: list[Evidence]) -> ArchitectureScores:
    """Strength-weighted mean of indicator vectors.

    scores[h] = sum(indicator[h] * strength) / sum(strength), then divided by
    the maximum if it exceeds 1.0. No evidence (or zero total strength)
    yields all zeros.
    """
    if not evidence:
        return ArchitectureScores()

    strengths = np.array([e.strength for e in evidence], dtype=float)
    total = strengths.sum()
    if total <= 0:
        return ArchitectureScores()

    indicators = np.array([e.architecture_indicators.as_tuple() for e in evidence], dtype=float)
    scores = strengths @ indicators / total

    peak = scores.max()
    if peak > 1.0:
        scores = scores / peak

    return ArchitectureScores(
        individual=float(scores[0]), team=float(scores[1]), hybrid=float(scores[2])
    )


def _ranked_by_strength(evidence: list[Evidence]) -> list[Evidence]:
    return sorted(evidence, key=lambda e: e.strength, reverse=True)


def generate_reasoning(evidence: list[Evidence], scores: ArchitectureScores) -> list[str]:
    """Human-readable trail: header, strongest evidence, final scores."""
    reasoning = [f"Architecture analysis based on {len(evidence)} pieces of evidence:"]

    for e in _ranked_by_strength(evidence)[:_TOP_EVIDENCE]:
        dominant = e.architecture_indicators.dominant().value
        reasoning.append(f"• {e.description} ({dominant} indicator, strength: {e.strength:.2f})")

    reasoning.append(
        f"Final scores: Individual: {scores.individual:.2f}, "
        f"Team: {scores.team:.2f}, Hybrid: {scores.hybrid:.2f}"
    )
    return reasoning


def calculate_overall_confidence(evidence: list[Evidence], scores: ArchitectureScores) -> float:
    """0.4 * mean confidence + 0.3 * min(n / 10, 1) + 0.3 * (top - second).

    Rewards both evidence volume and clear separation between the leading
    and runner-up hypothesis. Zero evidence gives zero confidence.
    """
    if not evidence:
        return 0.0

    mean_confidence = float(np.mean([e.confidence for e in evidence]))
    volume = min(len(evidence) / _FULL_VOLUME, 1.0)
    separation = scores.separation()

    overall = (
        mean_confidence * _CONFIDENCE_WEIGHT
        + volume * _VOLUME_WEIGHT
        + separation * _SEPARATION_WEIGHT
    )
    return min(max(overall, 0.0), 1.0)


def _is_conflicting(e: Evidence) -> bool:
    """Strong evidence whose runner-up indicators are also substantial."""
    values = e.architecture_indicators.as_tuple()
    peak = max(values)
    return any(v > _CONFLICT_INDICATOR and v != peak for v in values)


def generate_warnings(
    evidence: list[Evidence], scores: ArchitectureScores, overall_confidence: float
) -> list[str]:
    """Advisory warnings about evidence volume, conflicts and confidence."""
    warnings = []

    if len(evidence) < _MIN_EVIDENCE:
        warnings.append("Limited evidence available - consider manual verification")

    strong = [e for e in evidence if e.strength > _STRONG_EVIDENCE]
    if any(_is_conflicting(e) for e in strong):
        warnings.append(
            "Some evidence points to multiple architecture types - hybrid platform likely"
        )

    if scores.separation() < _CLOSE_SCORES:
        warnings.append("Architecture scores are close - consider additional analysis")

    if overall_confidence < _LOW_CONFIDENCE:
        warnings.append("Low confidence in architecture detection - manual review recommended")

    return warnings
