"""Platform feature extraction.

Features are recognized independently of scoring: each signature looks at
the snapshot or at the tables cited by collected evidence and, when it
matches, yields a PlatformFeature for downstream configuration builders.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from ..snapshot import SchemaSnapshot
from .models import ArchitectureType, Evidence, PlatformFeature

_ALL = [ArchitectureType.INDIVIDUAL, ArchitectureType.TEAM, ArchitectureType.HYBRID]


@dataclass(frozen=True)
class FeatureSignature:
    """Declarative description of a platform feature.

    Attributes:
        id, name, category: Identity of the emitted feature.
        table_regex: Tables implementing the feature.
        source: "snapshot" to match any table in the schema, "evidence" to
            match only tables already cited by collected evidence.
        confidence: Confidence of the emitted feature.
        evidence_note: Text recorded in the feature's evidence list.
    """

    id: str
    name: str
    category: str
    table_regex: re.Pattern
    source: str
    confidence: float
    evidence_note: str
    typically_indicates: list[ArchitectureType] = field(default_factory=list)
    common_in_domains: list[str] = field(default_factory=list)


FEATURE_SIGNATURES: tuple[FeatureSignature, ...] = (
    FeatureSignature(
        id="authentication",
        name="User Authentication",
        category="authentication",
        # Prefix match: auth_sessions, users_meta, accounts_settings all count
        table_regex=re.compile(r"^(auth|users?|accounts?)", re.IGNORECASE),
        source="snapshot",
        confidence=0.95,
        evidence_note="Found authentication related tables",
        typically_indicates=_ALL,
        common_in_domains=["outdoor", "saas", "ecommerce", "social", "generic"],
    ),
    FeatureSignature(
        id="user_management",
        name="User Profile Management",
        category="user_management",
        table_regex=re.compile(r"^(user_profiles?|profiles?)$", re.IGNORECASE),
        source="evidence",
        confidence=0.8,
        evidence_note="Found user profile management tables",
        typically_indicates=[ArchitectureType.INDIVIDUAL, ArchitectureType.HYBRID],
        common_in_domains=["outdoor", "saas", "social", "generic"],
    ),
    FeatureSignature(
        id="team_collaboration",
        name="Team Collaboration",
        category="collaboration",
        table_regex=re.compile(r"^(teams?|organizations?|members?)$", re.IGNORECASE),
        source="evidence",
        confidence=0.9,
        evidence_note="Found team collaboration structures",
        typically_indicates=[ArchitectureType.TEAM, ArchitectureType.HYBRID],
        common_in_domains=["saas", "generic"],
    ),
    FeatureSignature(
        id="content_creation",
        name="Content Creation",
        category="content_creation",
        table_regex=re.compile(
            r"^(posts?|articles?|stories?|content|creations?|items?)$", re.IGNORECASE
        ),
        source="evidence",
        confidence=0.75,
        evidence_note="Found user-generated content tables",
        typically_indicates=_ALL,
        common_in_domains=["outdoor", "social", "generic"],
    ),
    FeatureSignature(
        id="access_control",
        name="Role-Based Access Control",
        category="organization",
        table_regex=re.compile(
            r"^(permissions?|roles?|access_controls?|policies?)$", re.IGNORECASE
        ),
        source="evidence",
        confidence=0.85,
        evidence_note="Found permission and role tables",
        typically_indicates=[ArchitectureType.TEAM, ArchitectureType.HYBRID],
        common_in_domains=["saas", "ecommerce", "generic"],
    ),
)


def extract_platform_features(
    evidence: list[Evidence],
    snapshot: SchemaSnapshot,
    signatures: tuple[FeatureSignature, ...] = FEATURE_SIGNATURES,
) -> list[PlatformFeature]:
    """Emit one PlatformFeature per matching signature, in signature order."""
    cited = {table for e in evidence for table in e.supporting_data.tables}
    features = []

    for sig in signatures:
        if sig.source == "snapshot":
            present = any(sig.table_regex.search(t) for t in snapshot.table_names)
        else:
            present = any(sig.table_regex.search(t) for t in cited)
        if not present:
            continue

        features.append(
            PlatformFeature(
                id=sig.id,
                name=sig.name,
                category=sig.category,
                present=True,
                confidence=sig.confidence,
                evidence=[sig.evidence_note],
                implementing_tables=snapshot.tables_matching(sig.table_regex),
                typically_indicates=list(sig.typically_indicates),
                common_in_domains=list(sig.common_in_domains),
            )
        )

    return features
