"""Evidence rules for architecture detection.

Rules are declarative: each names the signal it looks for, the evidence
type it produces, hand-tuned confidence/weight constants and the indicator
vector it contributes. A rule's ``match`` callable inspects the snapshot and
returns a RuleMatch (evidence found) or None.

Three rule sets exist, one per hypothesis. They share a single engine
(see collector.py), so they differ only in patterns and constants.

The constants reflect how diagnostic each signal is. They have not been
calibrated against a corpus of real schemas; override them through the
``[rules.<name>]`` sections of the config file rather than editing here.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping, Optional

from ..exceptions import InvalidConfigError
from ..snapshot import SchemaSnapshot
from .models import ArchitectureScores, ArchitectureType, EvidenceType


@dataclass(frozen=True)
class RuleMatch:
    """What a rule found in the snapshot."""

    description: str
    tables: list[str] = field(default_factory=list)
    samples: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class EvidenceRule:
    """A declarative rule producing at most one evidence item.

    Attributes:
        name:          Unique rule identifier, also recorded as the evidence pattern.
        evidence_type: Signal class of the produced evidence.
        confidence:    Confidence assigned to the evidence [0, 1].
        weight:        Diagnostic weight of the evidence [0, 1].
        indicators:    Affinity toward each hypothesis.
        match:         Callable (snapshot, rule) -> RuleMatch | None.
        table_regex:   Table-name pattern the matcher uses, if any.
    """

    name: str
    evidence_type: EvidenceType
    confidence: float
    weight: float
    indicators: ArchitectureScores
    match: Callable[[SchemaSnapshot, "EvidenceRule"], Optional[RuleMatch]]
    table_regex: Optional[re.Pattern] = None


def _regex(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.IGNORECASE)


def _tables_present(template: str, minimum: int = 1) -> Callable:
    """Matcher firing when at least ``minimum`` tables match the rule's regex."""

    def _match(snapshot: SchemaSnapshot, rule: EvidenceRule) -> Optional[RuleMatch]:
        tables = snapshot.tables_matching(rule.table_regex)
        if len(tables) < minimum:
            return None
        return RuleMatch(description=template.format(tables=", ".join(tables)), tables=tables)

    return _match


def _touches_any(rel, fragments: tuple[str, ...]) -> bool:
    return any(rel.touches(f) for f in fragments)


def _related_to(snapshot: SchemaSnapshot, tables: list[str]):
    """Relationships with either endpoint in ``tables`` (case-insensitive)."""
    lowered = {t.lower() for t in tables}
    return [
        rel
        for rel in snapshot.relationships
        if rel.from_table.lower() in lowered or rel.to_table.lower() in lowered
    ]


_TEAM_FRAGMENTS = ("member", "team", "organization")
_CONTENT_FRAGMENTS = ("post", "content", "item", "creation")

_PROFILE_TABLES = _regex(r"^(user_profiles?|profiles?|users_profiles?)$")
_PERSONAL_CONTENT_TABLES = _regex(r"^(posts?|articles?|stories?|content|creations?|items?)$")
_ACCOUNT_TABLES = _regex(r"^accounts?$")
_COLLABORATION_TABLES = _regex(
    r"^(teams?|organizations?|workspaces?|groups?|members?|roles?|permissions?)$"
)
_TEAM_TABLES = _regex(r"^(teams?|organizations?|companies?|groups?)$")
_MEMBER_TABLES = _regex(r"^(members?|team_members?|organization_members?|invitations?|invites?)$")
_WORKSPACE_TABLES = _regex(r"^(workspaces?|projects?|boards?|channels?)$")
_PERMISSION_TABLES = _regex(r"^(permissions?|roles?|access_controls?|policies?)$")
_SHARED_CONTENT_TABLES = _regex(r"^(posts?|content|items?|resources?|projects?)$")
_SHARING_TABLES = _regex(r"^(permissions?|access_controls?|shares?|visibility)$")
_DUAL_CAPABILITY_TABLES = _regex(r"^(contexts?|scopes?|environments?|modes?)$")
_TEAM_FUNCTIONS = _regex(r"(team|organization|invitation|membership)")

_USER_OWNER_COLUMNS = frozenset({"user_id", "owner_id", "author_id", "created_by"})
_TEAM_OWNER_COLUMNS = frozenset({"team_id", "organization_id", "org_id", "workspace_id"})


# ==============================================================================
# Individual
# ==============================================================================


def _simple_account_structure(snapshot: SchemaSnapshot, rule: EvidenceRule) -> Optional[RuleMatch]:
    """Accounts exist but never point at member/team/organization tables."""
    accounts = snapshot.tables_matching(rule.table_regex)
    if not accounts:
        return None
    has_team_links = any(
        "account" in rel.from_table.lower()
        and any(f in rel.to_table.lower() for f in _TEAM_FRAGMENTS)
        for rel in snapshot.relationships
    )
    if has_team_links:
        return None
    return RuleMatch(
        description="Accounts table lacks team/organization relationships", tables=accounts
    )


def _direct_user_content(snapshot: SchemaSnapshot, rule: EvidenceRule) -> Optional[RuleMatch]:
    """Users linked straight to content tables, in either direction."""

    def _user_content(a: str, b: str) -> bool:
        return "user" in a.lower() and any(f in b.lower() for f in _CONTENT_FRAGMENTS)

    links = [
        rel
        for rel in snapshot.relationships
        if _user_content(rel.from_table, rel.to_table) or _user_content(rel.to_table, rel.from_table)
    ]
    if not links:
        return None
    return RuleMatch(
        description=f"Found direct user-content relationships: {len(links)} connections",
        samples=[rel.describe() for rel in links],
    )


def _no_team_structures(snapshot: SchemaSnapshot, rule: EvidenceRule) -> Optional[RuleMatch]:
    """No collaboration tables at all.

    An empty schema says nothing about collaboration, so at least one table
    must exist for absence to count.
    """
    if not snapshot.table_names or snapshot.tables_matching(rule.table_regex):
        return None
    return RuleMatch(
        description="Absence of team collaboration tables (teams, organizations, workspaces)"
    )


def _minimal_collaboration(snapshot: SchemaSnapshot, rule: EvidenceRule) -> Optional[RuleMatch]:
    """One or two collaboration tables: some sharing, not a team platform."""
    tables = snapshot.tables_matching(rule.table_regex)
    if not 1 <= len(tables) <= 2:
        return None
    return RuleMatch(
        description=f"Minimal collaboration structures: {', '.join(tables)}", tables=tables
    )


INDIVIDUAL_RULES: tuple[EvidenceRule, ...] = (
    EvidenceRule(
        name="user_profile_focus",
        evidence_type=EvidenceType.TABLE_PATTERN,
        confidence=0.8,
        weight=0.7,
        indicators=ArchitectureScores(individual=0.8, team=0.2, hybrid=0.4),
        match=_tables_present("Found user profile tables: {tables}"),
        table_regex=_PROFILE_TABLES,
    ),
    EvidenceRule(
        name="personal_content_focus",
        evidence_type=EvidenceType.TABLE_PATTERN,
        confidence=0.7,
        weight=0.6,
        indicators=ArchitectureScores(individual=0.9, team=0.1, hybrid=0.3),
        match=_tables_present("Found personal content tables: {tables}"),
        table_regex=_PERSONAL_CONTENT_TABLES,
    ),
    EvidenceRule(
        name="simple_account_structure",
        evidence_type=EvidenceType.RELATIONSHIP_PATTERN,
        confidence=0.75,
        weight=0.8,
        indicators=ArchitectureScores(individual=0.8, team=0.1, hybrid=0.2),
        match=_simple_account_structure,
        table_regex=_ACCOUNT_TABLES,
    ),
    EvidenceRule(
        name="direct_user_content_ownership",
        evidence_type=EvidenceType.RELATIONSHIP_PATTERN,
        confidence=0.8,
        weight=0.7,
        indicators=ArchitectureScores(individual=0.9, team=0.2, hybrid=0.4),
        match=_direct_user_content,
    ),
    EvidenceRule(
        name="no_team_structures",
        evidence_type=EvidenceType.TABLE_PATTERN,
        confidence=0.7,
        weight=0.6,
        indicators=ArchitectureScores(individual=0.8, team=0.1, hybrid=0.3),
        match=_no_team_structures,
        table_regex=_COLLABORATION_TABLES,
    ),
    EvidenceRule(
        name="minimal_collaboration",
        evidence_type=EvidenceType.TABLE_PATTERN,
        confidence=0.6,
        weight=0.5,
        indicators=ArchitectureScores(individual=0.6, team=0.4, hybrid=0.7),
        match=_minimal_collaboration,
        table_regex=_COLLABORATION_TABLES,
    ),
)


# ==============================================================================
# Team
# ==============================================================================


def _role_based_membership(snapshot: SchemaSnapshot, rule: EvidenceRule) -> Optional[RuleMatch]:
    """Members or users pointing at role tables."""
    links = [
        rel
        for rel in snapshot.relationships
        if "role" in rel.to_table.lower()
        and ("member" in rel.from_table.lower() or "user" in rel.from_table.lower())
    ]
    if not links:
        return None
    return RuleMatch(
        description=f"Found role-based member relationships: {len(links)} connections",
        samples=[rel.describe() for rel in links],
    )


def _team_lifecycle_functions(snapshot: SchemaSnapshot, rule: EvidenceRule) -> Optional[RuleMatch]:
    """Database functions that manage teams, invitations or memberships."""
    names = sorted(f for f in snapshot.functions if _TEAM_FUNCTIONS.search(f))
    if not names:
        return None
    return RuleMatch(
        description=f"Found team lifecycle functions: {', '.join(names)}", samples=names
    )


TEAM_RULES: tuple[EvidenceRule, ...] = (
    EvidenceRule(
        name="team_organization_structure",
        evidence_type=EvidenceType.TABLE_PATTERN,
        confidence=0.9,
        weight=0.9,
        indicators=ArchitectureScores(individual=0.1, team=0.9, hybrid=0.7),
        match=_tables_present("Found team structure tables: {tables}"),
        table_regex=_TEAM_TABLES,
    ),
    EvidenceRule(
        name="member_management_system",
        evidence_type=EvidenceType.TABLE_PATTERN,
        confidence=0.85,
        weight=0.8,
        indicators=ArchitectureScores(individual=0.1, team=0.9, hybrid=0.6),
        match=_tables_present("Found member management tables: {tables}"),
        table_regex=_MEMBER_TABLES,
    ),
    EvidenceRule(
        name="role_based_membership",
        evidence_type=EvidenceType.RELATIONSHIP_PATTERN,
        confidence=0.8,
        weight=0.7,
        indicators=ArchitectureScores(individual=0.2, team=0.8, hybrid=0.6),
        match=_role_based_membership,
    ),
    EvidenceRule(
        name="workspace_project_structure",
        evidence_type=EvidenceType.TABLE_PATTERN,
        confidence=0.8,
        weight=0.7,
        indicators=ArchitectureScores(individual=0.2, team=0.8, hybrid=0.7),
        match=_tables_present("Found workspace/project tables: {tables}"),
        table_regex=_WORKSPACE_TABLES,
    ),
    EvidenceRule(
        name="complex_permission_system",
        evidence_type=EvidenceType.TABLE_PATTERN,
        confidence=0.85,
        weight=0.8,
        indicators=ArchitectureScores(individual=0.1, team=0.9, hybrid=0.6),
        # A lone roles table is too common to be diagnostic
        match=_tables_present("Found complex permission system: {tables}", minimum=2),
        table_regex=_PERMISSION_TABLES,
    ),
    EvidenceRule(
        name="team_lifecycle_functions",
        evidence_type=EvidenceType.BUSINESS_LOGIC,
        confidence=0.7,
        weight=0.6,
        indicators=ArchitectureScores(individual=0.1, team=0.8, hybrid=0.5),
        match=_team_lifecycle_functions,
    ),
)


# ==============================================================================
# Hybrid
# ==============================================================================


def _flexible_account_structure(
    snapshot: SchemaSnapshot, rule: EvidenceRule
) -> Optional[RuleMatch]:
    """Account relationships reach both users and team members."""
    account_links = [rel for rel in snapshot.relationships if rel.touches("account")]
    has_user = any(rel.touches("user") for rel in account_links)
    has_team = any(_touches_any(rel, ("member", "team")) for rel in account_links)
    if not (has_user and has_team):
        return None
    return RuleMatch(
        description="Accounts support both individual users and team members",
        samples=[rel.describe() for rel in account_links],
    )


def _mixed_ownership(snapshot: SchemaSnapshot, rule: EvidenceRule) -> Optional[RuleMatch]:
    """Content tables related to both users and teams."""
    content = snapshot.tables_matching(rule.table_regex)
    links = _related_to(snapshot, content)
    has_user = any(rel.touches("user") for rel in links)
    has_team = any(_touches_any(rel, ("team", "organization")) for rel in links)
    if not (has_user and has_team):
        return None
    return RuleMatch(
        description="Content can be owned by both individual users and teams", tables=content
    )


def _dual_ownership_columns(snapshot: SchemaSnapshot, rule: EvidenceRule) -> Optional[RuleMatch]:
    """Content tables carrying both a user-owner and a team-owner column."""
    tables = []
    samples = []
    for table in snapshot.tables_matching(rule.table_regex):
        columns = {c.lower() for c in snapshot.columns_of(table)}
        user_cols = sorted(columns & _USER_OWNER_COLUMNS)
        team_cols = sorted(columns & _TEAM_OWNER_COLUMNS)
        if user_cols and team_cols:
            tables.append(table)
            samples.append(f"{table}.{user_cols[0]} + {table}.{team_cols[0]}")
    if not tables:
        return None
    return RuleMatch(
        description=f"Content tables carry both user and team owner columns: {', '.join(tables)}",
        tables=tables,
        samples=samples,
    )


def _scalable_permissions(snapshot: SchemaSnapshot, rule: EvidenceRule) -> Optional[RuleMatch]:
    """Sharing tables that grant access to users and to teams."""
    sharing = snapshot.tables_matching(rule.table_regex)
    if not sharing:
        return None
    links = _related_to(snapshot, sharing)
    has_user = any(rel.touches("user") for rel in links)
    has_team = any(_touches_any(rel, ("team", "member")) for rel in links)
    if not (has_user and has_team):
        return None
    return RuleMatch(
        description="Permission system supports both individual and team access patterns",
        tables=sharing,
    )


def _context_switching(snapshot: SchemaSnapshot, rule: EvidenceRule) -> Optional[RuleMatch]:
    """Relationship columns that select a context, scope or mode."""
    links = [
        rel
        for rel in snapshot.relationships
        if any(f in rel.column_name.lower() for f in ("context", "scope", "mode"))
    ]
    if not links:
        return None
    return RuleMatch(
        description=f"Found context-switching patterns: {len(links)} relationships",
        samples=[rel.column_name for rel in links],
    )


HYBRID_RULES: tuple[EvidenceRule, ...] = (
    EvidenceRule(
        name="flexible_account_structure",
        evidence_type=EvidenceType.RELATIONSHIP_PATTERN,
        confidence=0.9,
        weight=0.9,
        indicators=ArchitectureScores(individual=0.3, team=0.3, hybrid=0.9),
        match=_flexible_account_structure,
    ),
    EvidenceRule(
        name="mixed_ownership_patterns",
        evidence_type=EvidenceType.RELATIONSHIP_PATTERN,
        confidence=0.85,
        weight=0.8,
        indicators=ArchitectureScores(individual=0.2, team=0.2, hybrid=0.8),
        match=_mixed_ownership,
        table_regex=_SHARED_CONTENT_TABLES,
    ),
    EvidenceRule(
        name="dual_ownership_columns",
        evidence_type=EvidenceType.COLUMN_ANALYSIS,
        confidence=0.8,
        weight=0.7,
        indicators=ArchitectureScores(individual=0.2, team=0.2, hybrid=0.85),
        match=_dual_ownership_columns,
        table_regex=_SHARED_CONTENT_TABLES,
    ),
    EvidenceRule(
        name="scalable_permission_system",
        evidence_type=EvidenceType.RELATIONSHIP_PATTERN,
        confidence=0.8,
        weight=0.7,
        indicators=ArchitectureScores(individual=0.3, team=0.3, hybrid=0.8),
        match=_scalable_permissions,
        table_regex=_SHARING_TABLES,
    ),
    EvidenceRule(
        name="dual_capability_structure",
        evidence_type=EvidenceType.TABLE_PATTERN,
        confidence=0.7,
        weight=0.6,
        indicators=ArchitectureScores(individual=0.4, team=0.4, hybrid=0.8),
        match=_tables_present("Found dual capability indicators: {tables}"),
        table_regex=_DUAL_CAPABILITY_TABLES,
    ),
    EvidenceRule(
        name="context_switching_capability",
        evidence_type=EvidenceType.COLUMN_ANALYSIS,
        confidence=0.75,
        weight=0.6,
        indicators=ArchitectureScores(individual=0.3, team=0.3, hybrid=0.9),
        match=_context_switching,
    ),
)


RULE_SETS: dict[ArchitectureType, tuple[EvidenceRule, ...]] = {
    ArchitectureType.INDIVIDUAL: INDIVIDUAL_RULES,
    ArchitectureType.TEAM: TEAM_RULES,
    ArchitectureType.HYBRID: HYBRID_RULES,
}

_OVERRIDABLE = ("confidence", "weight", "indicators")


def build_rule_sets(
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> dict[ArchitectureType, tuple[EvidenceRule, ...]]:
    """Return the rule sets with constants replaced from ``overrides``.

    Args:
        overrides: {rule_name: {"confidence": .., "weight": .., "indicators": {..}}}

    Raises:
        InvalidConfigError: Unknown rule name or field, or a value outside [0, 1]
    """
    if not overrides:
        return dict(RULE_SETS)

    known = {rule.name for rules in RULE_SETS.values() for rule in rules}
    for name, values in overrides.items():
        if name not in known:
            raise InvalidConfigError(f"rules.{name}", values, "unknown rule")
        if not isinstance(values, Mapping):
            raise InvalidConfigError(f"rules.{name}", values, "expected a table")
        for key in values:
            if key not in _OVERRIDABLE:
                raise InvalidConfigError(
                    f"rules.{name}.{key}", values[key], f"only {', '.join(_OVERRIDABLE)} can be overridden"
                )

    return {
        arch: tuple(_override(rule, overrides.get(rule.name)) for rule in rules)
        for arch, rules in RULE_SETS.items()
    }


def _override(rule: EvidenceRule, values: Optional[Mapping[str, Any]]) -> EvidenceRule:
    if not values:
        return rule

    changes: dict[str, Any] = {}
    for key in ("confidence", "weight"):
        if key in values:
            changes[key] = _unit_float(f"rules.{rule.name}.{key}", values[key])

    if "indicators" in values:
        raw = values["indicators"]
        if not isinstance(raw, Mapping):
            raise InvalidConfigError(f"rules.{rule.name}.indicators", raw, "expected a table")
        merged = rule.indicators.to_dict()
        for arch, value in raw.items():
            if arch not in merged:
                raise InvalidConfigError(
                    f"rules.{rule.name}.indicators.{arch}", value, "unknown architecture"
                )
            merged[arch] = _unit_float(f"rules.{rule.name}.indicators.{arch}", value)
        changes["indicators"] = ArchitectureScores(**merged)

    return replace(rule, **changes)


def _unit_float(key: str, value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidConfigError(key, value, "expected a number")
    if not 0.0 <= number <= 1.0:
        raise InvalidConfigError(key, value, "must be between 0.0 and 1.0")
    return number
