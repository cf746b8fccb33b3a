"""Abstract base class for database backends."""

from abc import ABC, abstractmethod
from typing import Any, Sequence

from ..schemas import ColumnInfo


def quote_ident(value: str) -> str:
    """Quote an SQL identifier, doubling embedded quotes."""
    return '"' + value.replace('"', '""') + '"'


def qualified_table(schema: str, table: str) -> str:
    return f"{quote_ident(schema)}.{quote_ident(table)}"


def column_cast(column: ColumnInfo) -> str | None:
    """
    Type to cast an inserted value to, or None when no cast is needed.

    Array parameters arrive as ARRAY[...] constructors typed text[], which do
    not coerce to enum, uuid or inet arrays on their own.
    """
    if not column.is_array:
        return None
    if column.udt_schema:
        return qualified_table(column.udt_schema, column.udt_name)
    return quote_ident(column.udt_name)


class DatabaseBackend(ABC):
    """
    Abstract base class for database backends.

    Subclasses provide the raw query/execute interface and unit-of-work
    control; the row-level helpers the seeder relies on are built on top.
    """

    name: str = "base"
    placeholder: str = "%s"

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Close connection to the database."""
        pass

    @abstractmethod
    def query(self, sql: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        """Run a statement and return its rows as ordered column -> value mappings."""
        pass

    @abstractmethod
    def execute(self, sql: str, params: Sequence[Any] | None = None) -> int:
        """
        Run a statement that returns no rows.
        Returns the number of affected rows.
        """
        pass

    @abstractmethod
    def begin(self) -> None:
        """Start a unit of work."""
        pass

    @abstractmethod
    def commit(self) -> None:
        """Commit the current unit of work."""
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Discard the current unit of work."""
        pass

    def describe_constraint(self, constraint: str) -> str | None:
        """Best-effort lookup of the table that owns a named constraint."""
        return None

    def get_connection_info(self) -> dict[str, str]:
        """Get connection information for display to user."""
        return {}

    def count_rows(self, schema: str, table: str) -> int:
        """Get the count of records in a table."""
        rows = self.query(f"SELECT count(*) AS count FROM {qualified_table(schema, table)}")
        return int(rows[0]["count"]) if rows else 0

    def select_columns(
        self,
        schema: str,
        table: str,
        columns: Sequence[str],
        limit: int | None = None,
        ordered: bool = False,
    ) -> list[tuple]:
        """Fetch value tuples for the given columns, optionally ordered and capped."""
        columns_sql = ", ".join(quote_ident(c) for c in columns)
        sql = f"SELECT {columns_sql} FROM {qualified_table(schema, table)}"
        if ordered:
            sql += f" ORDER BY {columns_sql}"
        if limit is not None:
            sql += f" LIMIT {int(limit)}"
        return [tuple(row[c] for c in columns) for row in self.query(sql)]

    def insert_rows(
        self,
        schema: str,
        table: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        casts: Sequence[str | None] | None = None,
    ) -> int:
        """
        Insert rows with a single multi-row statement.
        ``casts`` optionally gives a type per column to cast its placeholder to.
        Returns the number of records inserted.
        """
        if not rows:
            return 0

        columns_sql = ", ".join(quote_ident(c) for c in columns)
        placeholders = [
            f"{self.placeholder}::{cast}" if cast else self.placeholder
            for cast in (casts or [None] * len(columns))
        ]
        row_sql = "(" + ", ".join(placeholders) + ")"
        values_sql = ", ".join([row_sql] * len(rows))
        params = [value for row in rows for value in row]

        sql = f"INSERT INTO {qualified_table(schema, table)} ({columns_sql}) VALUES {values_sql}"
        self.execute(sql, params)
        return len(rows)

    def insert_default_rows(self, schema: str, table: str, count: int) -> int:
        """Insert rows that take every column from its default."""
        sql = f"INSERT INTO {qualified_table(schema, table)} DEFAULT VALUES"
        for _ in range(count):
            self.execute(sql)
        return count
