"""Schema snapshot: the read-only input of architecture detection.

A snapshot is what a schema-introspection step hands to the detector:
table names, optional column lists, foreign-key style relationships and,
optionally, the names of database functions. The detector never mutates it
and places no constraint on where it came from (live introspection, a JSON
file, a test fixture).

Loading is tolerant: absent or malformed fields become empty collections so
a damaged snapshot degrades to a low-evidence detection instead of a crash.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Union

from .exceptions import SnapshotError
from .logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Relationship:
    """A foreign-key style link between two tables."""

    from_table: str
    to_table: str
    column_name: str = ""
    type: str = "foreign_key"

    def describe(self) -> str:
        return f"{self.from_table} -> {self.to_table}"

    def touches(self, fragment: str) -> bool:
        """True if either endpoint's name contains fragment (case-insensitive)."""
        fragment = fragment.lower()
        return fragment in self.from_table.lower() or fragment in self.to_table.lower()

    def to_dict(self) -> dict[str, str]:
        return {
            "from_table": self.from_table,
            "to_table": self.to_table,
            "column_name": self.column_name,
            "type": self.type,
        }


@dataclass(frozen=True)
class SchemaSnapshot:
    """Immutable view of an introspected relational schema.

    Attributes:
        table_names: Every table in the schema
        relationships: Foreign-key style relationships, in introspection order
        columns: Column names per table (optional; may be partial)
        functions: Database function names (optional)
    """

    table_names: frozenset[str] = frozenset()
    relationships: tuple[Relationship, ...] = ()
    columns: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({}), hash=False
    )
    functions: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Read-only copy so the schema hash cannot drift after construction
        frozen = MappingProxyType({str(t): tuple(cols) for t, cols in self.columns.items()})
        object.__setattr__(self, "columns", frozen)

    @classmethod
    def build(
        cls,
        tables: Iterable[str] = (),
        relationships: Iterable[Union[Relationship, tuple]] = (),
        columns: Mapping[str, Iterable[str]] | None = None,
        functions: Iterable[str] = (),
    ) -> SchemaSnapshot:
        """Convenience constructor accepting plain iterables and tuples.

        Relationship tuples are (from_table, to_table[, column_name]).
        """
        rels = []
        for rel in relationships:
            if isinstance(rel, Relationship):
                rels.append(rel)
            else:
                rels.append(Relationship(*rel))
        return cls(
            table_names=frozenset(tables),
            relationships=tuple(rels),
            columns=columns or {},
            functions=tuple(functions),
        )

    @classmethod
    def from_dict(cls, data: Any) -> SchemaSnapshot:
        """Build a snapshot from a JSON-like document.

        Accepts camelCase (tableNames, fromTable, ...) or snake_case keys.
        Anything missing or of the wrong shape is treated as empty.
        """
        if not isinstance(data, Mapping):
            logger.debug("Snapshot document is not a mapping - using empty snapshot")
            return cls()

        tables = _first(data, "table_names", "tableNames", "tables")
        table_names = frozenset(
            str(t) for t in _as_list(tables) if isinstance(t, str) and t
        )

        relationships = []
        for raw in _as_list(_first(data, "relationships")):
            if not isinstance(raw, Mapping):
                continue
            from_table = _first(raw, "from_table", "fromTable")
            to_table = _first(raw, "to_table", "toTable")
            if not isinstance(from_table, str) or not isinstance(to_table, str):
                continue
            column_name = _first(raw, "column_name", "columnName")
            rel_type = _first(raw, "type")
            relationships.append(
                Relationship(
                    from_table=from_table,
                    to_table=to_table,
                    column_name=column_name if isinstance(column_name, str) else "",
                    type=rel_type if isinstance(rel_type, str) else "foreign_key",
                )
            )

        columns: dict[str, tuple[str, ...]] = {}
        raw_columns = _first(data, "columns")
        if isinstance(raw_columns, Mapping):
            for table, cols in raw_columns.items():
                columns[str(table)] = tuple(c for c in _as_list(cols) if isinstance(c, str))

        business_logic = _first(data, "business_logic", "businessLogic")
        raw_functions = _first(data, "functions")
        if raw_functions is None and isinstance(business_logic, Mapping):
            raw_functions = business_logic.get("functions")
        functions = tuple(f for f in _as_list(raw_functions) if isinstance(f, str))

        return cls(
            table_names=table_names,
            relationships=tuple(relationships),
            columns=columns,
            functions=functions,
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> SchemaSnapshot:
        """Load a snapshot from a JSON file.

        Raises:
            SnapshotError: If the file cannot be read or is not JSON
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise SnapshotError(path, str(e))
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SnapshotError(path, f"invalid JSON: {e}")
        return cls.from_dict(data)

    def tables_matching(self, pattern) -> list[str]:
        """Table names matched by a compiled (anchored) regex, sorted."""
        return sorted(name for name in self.table_names if pattern.search(name))

    def columns_of(self, table: str) -> tuple[str, ...]:
        return tuple(self.columns.get(table, ()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "table_names": sorted(self.table_names),
            "relationships": [rel.to_dict() for rel in self.relationships],
            "columns": {t: list(cols) for t, cols in sorted(self.columns.items())},
            "functions": list(self.functions),
        }

    def schema_hash(self) -> str:
        """Fingerprint of the schema structure.

        Independent of introspection order: tables, relationships, columns
        and functions are all sorted before hashing.
        """
        payload = {
            "tables": sorted(self.table_names),
            "relationships": sorted(
                [r.from_table, r.to_table, r.column_name, r.type] for r in self.relationships
            ),
            "columns": {t: sorted(cols) for t, cols in sorted(self.columns.items())},
            "functions": sorted(self.functions),
        }
        data = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(data.encode("utf-8")).hexdigest()


def _first(data: Mapping, *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _as_list(value: Any) -> list:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return []
