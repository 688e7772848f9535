"""Tests for SchemaSnapshot loading and fingerprinting."""

import json

import pytest

from seedprobe.exceptions import SnapshotError
from seedprobe.snapshot import Relationship, SchemaSnapshot


class TestFromDict:
    def test_camel_case_document(self):
        snapshot = SchemaSnapshot.from_dict(
            {
                "tableNames": ["users", "posts"],
                "relationships": [
                    {"fromTable": "posts", "toTable": "users", "columnName": "user_id"}
                ],
                "businessLogic": {"functions": ["create_team"]},
            }
        )
        assert snapshot.table_names == frozenset({"users", "posts"})
        assert snapshot.relationships == (Relationship("posts", "users", "user_id"),)
        assert snapshot.functions == ("create_team",)

    def test_snake_case_document(self):
        snapshot = SchemaSnapshot.from_dict(
            {
                "table_names": ["teams"],
                "relationships": [{"from_table": "teams", "to_table": "orgs", "type": "fk"}],
                "columns": {"teams": ["id", "org_id"]},
                "functions": ["f"],
            }
        )
        assert snapshot.relationships[0].type == "fk"
        assert snapshot.columns_of("teams") == ("id", "org_id")
        assert snapshot.columns_of("missing") == ()

    @pytest.mark.parametrize(
        "document",
        [None, [], "tables", {"tableNames": "users"}, {"relationships": [1, {"fromTable": 2}]}],
    )
    def test_malformed_fields_become_empty(self, document):
        snapshot = SchemaSnapshot.from_dict(document)
        assert snapshot.relationships == ()
        assert snapshot.functions == ()

    def test_non_string_table_names_skipped(self):
        snapshot = SchemaSnapshot.from_dict({"tableNames": ["users", 3, None, ""]})
        assert snapshot.table_names == frozenset({"users"})


class TestFromFile:
    def test_load(self, tmp_path):
        path = tmp_path / "schema.json"
        path.write_text(json.dumps({"tableNames": ["accounts"]}))
        assert SchemaSnapshot.from_file(path).table_names == frozenset({"accounts"})

    def test_missing_file(self, tmp_path):
        with pytest.raises(SnapshotError):
            SchemaSnapshot.from_file(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "schema.json"
        path.write_text("{tables: ")
        with pytest.raises(SnapshotError) as exc:
            SchemaSnapshot.from_file(path)
        assert "invalid JSON" in exc.value.details["reason"]


class TestSchemaHash:
    def test_independent_of_order(self):
        a = SchemaSnapshot.build(
            ["users", "posts", "teams"], [("posts", "users"), ("posts", "teams")]
        )
        b = SchemaSnapshot.build(
            ["teams", "users", "posts"], [("posts", "teams"), ("posts", "users")]
        )
        assert a.schema_hash() == b.schema_hash()

    def test_changes_with_schema(self):
        a = SchemaSnapshot.build(["users", "posts"])
        b = SchemaSnapshot.build(["users", "posts", "teams"])
        c = SchemaSnapshot.build(["users", "posts"], columns={"posts": ["team_id"]})
        assert len({a.schema_hash(), b.schema_hash(), c.schema_hash()}) == 3

    def test_round_trip_preserves_hash(self, hybrid_snapshot):
        restored = SchemaSnapshot.from_dict(json.loads(json.dumps(hybrid_snapshot.to_dict())))
        assert restored.schema_hash() == hybrid_snapshot.schema_hash()


class TestRelationship:
    def test_touches_is_case_insensitive(self):
        rel = Relationship("Team_Members", "accounts")
        assert rel.touches("member")
        assert rel.touches("ACCOUNT")
        assert not rel.touches("post")

    def test_describe(self):
        assert Relationship("posts", "users").describe() == "posts -> users"


class TestImmutability:
    def test_columns_are_read_only(self):
        snapshot = SchemaSnapshot.build(["posts"], columns={"posts": ["id", "user_id"]})
        before = snapshot.schema_hash()
        with pytest.raises(TypeError):
            snapshot.columns["posts"] = ("id", "team_id")
        assert snapshot.schema_hash() == before

    def test_caller_dict_is_copied(self):
        columns = {"posts": ["id", "user_id"]}
        snapshot = SchemaSnapshot(table_names=frozenset(["posts"]), columns=columns)
        columns["posts"].append("team_id")
        assert snapshot.columns_of("posts") == ("id", "user_id")

    def test_snapshot_is_hashable(self):
        a = SchemaSnapshot.build(["posts"], columns={"posts": ["id"]})
        b = SchemaSnapshot.build(["posts"], columns={"posts": ["id"]})
        assert a == b
        assert hash(a) == hash(b)
