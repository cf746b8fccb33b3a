"""PostgreSQL catalog introspection into table descriptors."""

import logging

from .backends.base import DatabaseBackend
from .errors import SystemSchemaError
from .schemas import ColumnInfo, EnumMap, ForeignKeyInfo, TableInfo, UniqueConstraintInfo

logger = logging.getLogger(__name__)

SYSTEM_SCHEMAS = {"pg_catalog", "information_schema"}

ENUMS_SQL = """
    SELECT n.nspname AS schema, t.typname AS name, e.enumlabel AS label
    FROM pg_type t
    JOIN pg_enum e ON t.oid = e.enumtypid
    JOIN pg_namespace n ON n.oid = t.typnamespace
    WHERE n.nspname = %s
    ORDER BY t.typname, e.enumsortorder
"""

TABLES_SQL = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_type = 'BASE TABLE' AND table_schema = %s
    ORDER BY table_name
"""

COLUMNS_SQL = """
    SELECT table_name, column_name, data_type, udt_schema, udt_name, is_nullable,
           column_default, is_identity, is_generated,
           character_maximum_length, numeric_precision, numeric_scale
    FROM information_schema.columns
    WHERE table_schema = %s
    ORDER BY table_name, ordinal_position
"""

KEY_COLUMNS_SQL = """
    SELECT tc.table_name, tc.constraint_name, kcu.column_name
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage kcu
      ON tc.constraint_name = kcu.constraint_name
     AND tc.table_schema = kcu.table_schema
     AND tc.table_name = kcu.table_name
    WHERE tc.constraint_type = %s AND tc.table_schema = %s
    ORDER BY tc.table_name, tc.constraint_name, kcu.ordinal_position
"""

# Referenced columns are matched by position so composite keys pair up correctly
FOREIGN_KEYS_SQL = """
    SELECT kcu.table_name, kcu.constraint_name, kcu.column_name,
           ref.table_schema AS foreign_table_schema,
           ref.table_name AS foreign_table_name,
           ref.column_name AS foreign_column_name
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage kcu
      ON tc.constraint_name = kcu.constraint_name
     AND tc.table_schema = kcu.table_schema
     AND tc.table_name = kcu.table_name
    JOIN information_schema.referential_constraints rc
      ON rc.constraint_name = tc.constraint_name
     AND rc.constraint_schema = tc.table_schema
    JOIN information_schema.key_column_usage ref
      ON ref.constraint_name = rc.unique_constraint_name
     AND ref.constraint_schema = rc.unique_constraint_schema
     AND ref.ordinal_position = kcu.position_in_unique_constraint
    WHERE tc.constraint_type = 'FOREIGN KEY' AND tc.table_schema = %s
    ORDER BY kcu.table_name, kcu.constraint_name, kcu.ordinal_position
"""


class PostgresIntrospector:
    """Reads table, constraint and enum metadata through a backend."""

    def __init__(self, backend: DatabaseBackend):
        self.backend = backend

    def list_enum_labels(self, schema: str) -> EnumMap:
        """Enum labels keyed by both bare and schema-qualified type name."""
        enums: EnumMap = {}
        for row in self.backend.query(ENUMS_SQL, [schema]):
            for key in (row["name"], f"{row['schema']}.{row['name']}"):
                enums.setdefault(key, []).append(row["label"])
        return enums

    def list_tables(self, schema: str) -> list[TableInfo]:
        """Describe every base table in a schema, ordered by name."""
        if schema in SYSTEM_SCHEMAS:
            raise SystemSchemaError(f"Refusing to introspect system schema: {schema}")

        names = [row["table_name"] for row in self.backend.query(TABLES_SQL, [schema])]
        if not names:
            return []

        tables = {name: TableInfo(schema=schema, name=name) for name in names}

        for row in self.backend.query(COLUMNS_SQL, [schema]):
            table = tables.get(row["table_name"])
            if table is None:
                continue
            table.columns.append(ColumnInfo(
                name=row["column_name"],
                data_type=row["data_type"],
                udt_name=row["udt_name"] or "",
                udt_schema=row.get("udt_schema") or "",
                is_nullable=row["is_nullable"] == "YES",
                column_default=row["column_default"],
                is_identity=row["is_identity"] == "YES",
                is_generated=bool(row["is_generated"]) and row["is_generated"] != "NEVER",
                max_length=row["character_maximum_length"],
                numeric_precision=row["numeric_precision"],
                numeric_scale=row["numeric_scale"],
            ))

        for row in self.backend.query(KEY_COLUMNS_SQL, ["PRIMARY KEY", schema]):
            table = tables.get(row["table_name"])
            if table is not None:
                table.pk_columns.append(row["column_name"])

        uniques: dict[tuple[str, str], list[str]] = {}
        for row in self.backend.query(KEY_COLUMNS_SQL, ["UNIQUE", schema]):
            uniques.setdefault((row["table_name"], row["constraint_name"]), []).append(row["column_name"])
        for (table_name, constraint_name), columns in uniques.items():
            if table_name in tables:
                tables[table_name].unique_constraints.append(
                    UniqueConstraintInfo(name=constraint_name, columns=tuple(columns))
                )

        fk_rows: dict[tuple[str, str], list[dict]] = {}
        for row in self.backend.query(FOREIGN_KEYS_SQL, [schema]):
            fk_rows.setdefault((row["table_name"], row["constraint_name"]), []).append(row)
        for (table_name, _), rows in fk_rows.items():
            if table_name not in tables:
                continue
            tables[table_name].fks.append(ForeignKeyInfo(
                columns=tuple(r["column_name"] for r in rows),
                ref_schema=rows[0]["foreign_table_schema"],
                ref_table=rows[0]["foreign_table_name"],
                ref_columns=tuple(r["foreign_column_name"] for r in rows),
            ))

        logger.debug("Introspected %d tables in %s", len(tables), schema)
        return [tables[name] for name in names]
