"""Shared fixtures: an in-memory backend and table builders."""

import copy
from typing import Any, Sequence

import pytest

from pgseed.config import build_config
from pgseed.seed.backends.base import DatabaseBackend
from pgseed.seed.schemas import ColumnInfo, ForeignKeyInfo, TableInfo, UniqueConstraintInfo


def col(name: str, data_type: str = "integer", nullable: bool = False, **kwargs) -> ColumnInfo:
    udt = kwargs.pop("udt_name", {
        "integer": "int4",
        "text": "text",
        "character varying": "varchar",
        "boolean": "bool",
        "numeric": "numeric",
        "date": "date",
        "uuid": "uuid",
    }.get(data_type, data_type))
    return ColumnInfo(name=name, data_type=data_type, udt_name=udt, is_nullable=nullable, **kwargs)


def make_table(
    name: str,
    columns: list[ColumnInfo],
    pk: list[str] | None = None,
    fks: list[ForeignKeyInfo] | None = None,
    uniques: list[UniqueConstraintInfo] | None = None,
    schema: str = "public",
) -> TableInfo:
    return TableInfo(
        schema=schema,
        name=name,
        columns=columns,
        pk_columns=pk or [],
        fks=fks or [],
        unique_constraints=uniques or [],
    )


def fk(columns, ref_table: str, ref_columns, ref_schema: str = "public") -> ForeignKeyInfo:
    return ForeignKeyInfo(
        columns=tuple(columns),
        ref_schema=ref_schema,
        ref_table=ref_table,
        ref_columns=tuple(ref_columns),
    )


def _sort_key(row: tuple):
    return tuple((value is None, str(value)) for value in row)


class InMemoryBackend(DatabaseBackend):
    """Stores rows in dicts and snapshots them for the unit of work."""

    name = "memory"

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None):
        self.tables: dict[str, list[dict[str, Any]]] = {k: list(v) for k, v in (tables or {}).items()}
        self.inserts: list[tuple[str, int]] = []
        self.casts: dict[str, list] = {}
        self.statements: list[str] = []
        self.connected = False
        self.committed = False
        self._snapshot = None

    def _rows(self, schema: str, table: str) -> list[dict[str, Any]]:
        return self.tables.setdefault(f"{schema}.{table}", [])

    def connect(self) -> None:
        self.connected = True

    def disconnect(self) -> None:
        self.connected = False

    def query(self, sql: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        self.statements.append(sql)
        return []

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> int:
        self.statements.append(sql)
        return 0

    def begin(self) -> None:
        self._snapshot = copy.deepcopy(self.tables)

    def commit(self) -> None:
        self.committed = True
        self._snapshot = None

    def rollback(self) -> None:
        if self._snapshot is not None:
            self.tables = self._snapshot
            self._snapshot = None

    def count_rows(self, schema: str, table: str) -> int:
        return len(self._rows(schema, table))

    def select_columns(self, schema, table, columns, limit=None, ordered=False) -> list[tuple]:
        rows = [tuple(row.get(c) for c in columns) for row in self._rows(schema, table)]
        if ordered:
            rows.sort(key=_sort_key)
        if limit is not None:
            rows = rows[:limit]
        return rows

    def insert_rows(self, schema, table, columns, rows, casts=None) -> int:
        target = self._rows(schema, table)
        for row in rows:
            target.append(dict(zip(columns, row)))
        self.inserts.append((f"{schema}.{table}", len(rows)))
        self.casts[f"{schema}.{table}"] = list(casts or [])
        return len(rows)

    def insert_default_rows(self, schema, table, count) -> int:
        target = self._rows(schema, table)
        for _ in range(count):
            target.append({"id": len(target) + 1})
        self.inserts.append((f"{schema}.{table}", count))
        return count


class StaticIntrospector:
    """Serves fixed table descriptors instead of reading a catalog."""

    def __init__(self, tables: list[TableInfo], enums: dict[str, list[str]] | None = None):
        self.tables = tables
        self.enums = enums or {}

    def list_tables(self, schema: str) -> list[TableInfo]:
        return [t for t in self.tables if t.schema == schema]

    def list_enum_labels(self, schema: str) -> dict[str, list[str]]:
        return self.enums


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def make_config():
    def factory(**values):
        return build_config(values)
    return factory
