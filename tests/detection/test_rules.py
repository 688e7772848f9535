"""Tests for the evidence rule tables and rule overrides."""

import pytest

from seedprobe.detection.models import ArchitectureType, EvidenceType
from seedprobe.detection.rules import (
    HYBRID_RULES,
    INDIVIDUAL_RULES,
    RULE_SETS,
    TEAM_RULES,
    build_rule_sets,
)
from seedprobe.exceptions import InvalidConfigError
from seedprobe.snapshot import SchemaSnapshot


def rule(name):
    for rules in RULE_SETS.values():
        for r in rules:
            if r.name == name:
                return r
    raise KeyError(name)


def fire(name, snapshot):
    r = rule(name)
    return r.match(snapshot, r)


class TestRuleTables:
    """Structural checks on the built-in rule tables."""

    def test_rule_names_are_unique(self):
        names = [r.name for rules in RULE_SETS.values() for r in rules]
        assert len(names) == len(set(names))

    def test_one_rule_set_per_hypothesis(self):
        assert set(RULE_SETS) == set(ArchitectureType)
        assert RULE_SETS[ArchitectureType.INDIVIDUAL] is INDIVIDUAL_RULES
        assert RULE_SETS[ArchitectureType.TEAM] is TEAM_RULES
        assert RULE_SETS[ArchitectureType.HYBRID] is HYBRID_RULES

    def test_constants_within_unit_interval(self):
        for rules in RULE_SETS.values():
            for r in rules:
                assert 0.0 <= r.confidence <= 1.0, r.name
                assert 0.0 <= r.weight <= 1.0, r.name
                assert all(0.0 <= v <= 1.0 for v in r.indicators.as_tuple()), r.name

    def test_rules_favour_their_own_hypothesis(self):
        """Every team rule leans team and every hybrid rule leans hybrid."""
        for r in TEAM_RULES:
            assert r.indicators.dominant() == ArchitectureType.TEAM, r.name
        for r in HYBRID_RULES:
            assert r.indicators.dominant() == ArchitectureType.HYBRID, r.name


class TestIndividualRules:
    def test_profile_tables(self):
        found = fire("user_profile_focus", SchemaSnapshot.build(["user_profiles", "posts"]))
        assert found is not None
        assert found.tables == ["user_profiles"]
        assert "user_profiles" in found.description

    def test_profile_pattern_is_anchored(self):
        assert fire("user_profile_focus", SchemaSnapshot.build(["old_profiles_backup"])) is None

    def test_table_matching_is_case_insensitive(self):
        found = fire("personal_content_focus", SchemaSnapshot.build(["Posts", "Articles"]))
        assert found.tables == ["Articles", "Posts"]

    def test_simple_accounts_without_team_links(self):
        snapshot = SchemaSnapshot.build(["accounts", "posts"], [("accounts", "posts")])
        found = fire("simple_account_structure", snapshot)
        assert found.description == "Accounts table lacks team/organization relationships"

    def test_accounts_linked_to_teams_are_not_simple(self):
        snapshot = SchemaSnapshot.build(["accounts", "teams"], [("accounts", "teams")])
        assert fire("simple_account_structure", snapshot) is None

    def test_direct_user_content_either_direction(self):
        snapshot = SchemaSnapshot.build(
            ["users", "posts", "items"],
            [("posts", "users", "user_id"), ("users", "items", "owner_id")],
        )
        found = fire("direct_user_content_ownership", snapshot)
        assert found.description == "Found direct user-content relationships: 2 connections"
        assert found.samples == ["posts -> users", "users -> items"]

    def test_no_team_structures(self):
        assert fire("no_team_structures", SchemaSnapshot.build(["users", "posts"])) is not None
        assert fire("no_team_structures", SchemaSnapshot.build(["users", "teams"])) is None

    def test_no_team_structures_needs_a_schema(self):
        assert fire("no_team_structures", SchemaSnapshot()) is None

    @pytest.mark.parametrize(
        "tables,fires",
        [
            (["users"], False),
            (["users", "roles"], True),
            (["users", "roles", "groups"], True),
            (["users", "roles", "groups", "teams"], False),
        ],
    )
    def test_minimal_collaboration_counts_one_or_two(self, tables, fires):
        assert (fire("minimal_collaboration", SchemaSnapshot.build(tables)) is not None) == fires


class TestTeamRules:
    def test_team_tables(self):
        found = fire("team_organization_structure", SchemaSnapshot.build(["teams", "companies"]))
        assert found.tables == ["companies", "teams"]
        assert found.description == "Found team structure tables: companies, teams"

    def test_member_tables(self):
        snapshot = SchemaSnapshot.build(["team_members", "invitations", "members_archive"])
        found = fire("member_management_system", snapshot)
        assert found.tables == ["invitations", "team_members"]

    def test_role_based_membership(self):
        snapshot = SchemaSnapshot.build(
            ["members", "roles"], [("members", "roles", "role_id"), ("roles", "members")]
        )
        found = fire("role_based_membership", snapshot)
        assert found.samples == ["members -> roles"]

    def test_single_permission_table_is_not_complex(self):
        assert fire("complex_permission_system", SchemaSnapshot.build(["roles"])) is None
        found = fire("complex_permission_system", SchemaSnapshot.build(["roles", "permissions"]))
        assert found.tables == ["permissions", "roles"]

    def test_team_lifecycle_functions(self):
        snapshot = SchemaSnapshot.build(
            ["teams"], functions=["create_team", "accept_invitation", "slugify"]
        )
        found = fire("team_lifecycle_functions", snapshot)
        assert found.samples == ["accept_invitation", "create_team"]
        assert rule("team_lifecycle_functions").evidence_type == EvidenceType.BUSINESS_LOGIC


class TestHybridRules:
    def test_flexible_accounts_need_users_and_members(self):
        only_users = SchemaSnapshot.build(["accounts", "users"], [("accounts", "users")])
        assert fire("flexible_account_structure", only_users) is None

        both = SchemaSnapshot.build(
            ["accounts", "users", "team_members"],
            [("accounts", "users"), ("team_members", "accounts")],
        )
        found = fire("flexible_account_structure", both)
        assert found.description == "Accounts support both individual users and team members"

    def test_mixed_ownership(self, hybrid_snapshot):
        found = fire("mixed_ownership_patterns", hybrid_snapshot)
        assert found.tables == ["posts"]

    def test_dual_ownership_columns(self):
        snapshot = SchemaSnapshot.build(
            ["posts", "items"],
            columns={"posts": ["id", "author_id", "org_id"], "items": ["id", "user_id"]},
        )
        found = fire("dual_ownership_columns", snapshot)
        assert found.tables == ["posts"]
        assert found.samples == ["posts.author_id + posts.org_id"]

    def test_dual_ownership_columns_without_column_data(self):
        assert fire("dual_ownership_columns", SchemaSnapshot.build(["posts"])) is None

    def test_scalable_permissions(self, hybrid_snapshot):
        found = fire("scalable_permission_system", hybrid_snapshot)
        assert found.tables == ["shares"]

    def test_context_switching(self):
        snapshot = SchemaSnapshot.build(
            ["posts", "workspaces"], [("posts", "workspaces", "active_scope_id")]
        )
        found = fire("context_switching_capability", snapshot)
        assert found.samples == ["active_scope_id"]


class TestBuildRuleSets:
    def test_no_overrides_returns_builtin_rules(self):
        assert build_rule_sets() == RULE_SETS
        assert build_rule_sets({}) == RULE_SETS

    def test_override_constants(self):
        rule_sets = build_rule_sets(
            {"user_profile_focus": {"confidence": 0.5, "indicators": {"team": 0.6}}}
        )
        overridden = next(
            r for r in rule_sets[ArchitectureType.INDIVIDUAL] if r.name == "user_profile_focus"
        )
        assert overridden.confidence == 0.5
        assert overridden.weight == rule("user_profile_focus").weight
        assert overridden.indicators.team == 0.6
        assert overridden.indicators.individual == rule("user_profile_focus").indicators.individual

    def test_builtin_rules_untouched_by_override(self):
        build_rule_sets({"user_profile_focus": {"confidence": 0.1}})
        assert rule("user_profile_focus").confidence == 0.8

    @pytest.mark.parametrize(
        "overrides",
        [
            {"no_such_rule": {"confidence": 0.5}},
            {"user_profile_focus": {"threshold": 0.5}},
            {"user_profile_focus": {"confidence": 1.5}},
            {"user_profile_focus": {"weight": "heavy"}},
            {"user_profile_focus": {"indicators": {"enterprise": 0.5}}},
            {"user_profile_focus": 0.5},
        ],
    )
    def test_invalid_overrides_rejected(self, overrides):
        with pytest.raises(InvalidConfigError):
            build_rule_sets(overrides)
