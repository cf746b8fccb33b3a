"""Tests for database backends and catalog introspection."""

from unittest.mock import MagicMock

import pytest

from pgseed.seed.backends.base import DatabaseBackend


class RecordingBackend(DatabaseBackend):
    """Records every statement and serves canned rows."""

    name = "recording"

    def __init__(self, rows=None):
        self.calls = []
        self.rows = rows or []

    def connect(self):
        pass

    def disconnect(self):
        pass

    def query(self, sql, params=None):
        self.calls.append((sql, params))
        return self.rows

    def execute(self, sql, params=None):
        self.calls.append((sql, params))
        return 1

    def begin(self):
        pass

    def commit(self):
        pass

    def rollback(self):
        pass


class TestBaseBackend:
    """Tests for the SQL helpers shared by all backends."""

    def test_quote_ident(self):
        from pgseed.seed.backends import qualified_table, quote_ident

        assert quote_ident("users") == '"users"'
        assert quote_ident('we"ird') == '"we""ird"'
        assert qualified_table("public", "users") == '"public"."users"'

    def test_count_rows(self):
        backend = RecordingBackend([{"count": 7}])
        assert backend.count_rows("public", "users") == 7
        assert backend.calls == [('SELECT count(*) AS count FROM "public"."users"', None)]

    def test_select_columns(self):
        backend = RecordingBackend([{"a": 1, "b": "x"}, {"a": 2, "b": "y"}])

        rows = backend.select_columns("public", "t", ["a", "b"], limit=5, ordered=True)

        assert rows == [(1, "x"), (2, "y")]
        assert backend.calls[0][0] == 'SELECT "a", "b" FROM "public"."t" ORDER BY "a", "b" LIMIT 5'

    def test_select_columns_unbounded(self):
        backend = RecordingBackend([])
        backend.select_columns("public", "t", ["a"])
        assert backend.calls[0][0] == 'SELECT "a" FROM "public"."t"'

    def test_insert_rows_single_statement(self):
        backend = RecordingBackend()

        inserted = backend.insert_rows("public", "t", ["a", "b"], [[1, 2], [3, None]])

        assert inserted == 2
        assert backend.calls == [(
            'INSERT INTO "public"."t" ("a", "b") VALUES (%s, %s), (%s, %s)',
            [1, 2, 3, None],
        )]

    def test_insert_rows_casts_placeholders(self):
        backend = RecordingBackend()

        backend.insert_rows("public", "t", ["a", "b"], [[1, ["happy"]]], casts=[None, '"public"."_mood"'])

        assert backend.calls == [(
            'INSERT INTO "public"."t" ("a", "b") VALUES (%s, %s::"public"."_mood")',
            [1, ["happy"]],
        )]

    def test_column_cast(self):
        from pgseed.seed.backends import column_cast
        from pgseed.seed.schemas import ColumnInfo

        moods = ColumnInfo(name="moods", data_type="ARRAY", udt_name="_mood", udt_schema="public")
        assert column_cast(moods) == '"public"."_mood"'
        assert column_cast(ColumnInfo(name="ids", data_type="ARRAY", udt_name="_uuid")) == '"_uuid"'
        assert column_cast(ColumnInfo(name="mood", data_type="USER-DEFINED", udt_name="mood")) is None

    def test_insert_rows_empty(self):
        backend = RecordingBackend()
        assert backend.insert_rows("public", "t", ["a"], []) == 0
        assert backend.calls == []

    def test_insert_default_rows(self):
        backend = RecordingBackend()
        assert backend.insert_default_rows("public", "t", 3) == 3
        assert backend.calls == [('INSERT INTO "public"."t" DEFAULT VALUES', None)] * 3

    def test_describe_constraint_default(self):
        assert RecordingBackend().describe_constraint("x") is None


class TestBackendRegistry:
    """Tests for backend lookup."""

    def test_list_backends(self):
        from pgseed.seed.backends import list_backends

        assert list_backends() == ["postgres"]

    @pytest.mark.parametrize("name", ["postgres", "pg", "PostgreSQL"])
    def test_get_backend_aliases(self, name):
        from pgseed.seed.backends import PostgresBackend, get_backend

        assert isinstance(get_backend(name), PostgresBackend)

    def test_get_backend_passes_connection(self):
        from pgseed.seed.backends import get_backend

        backend = get_backend("postgres", host="db", port=6543)
        assert backend.host == "db"
        assert backend.port == 6543

    def test_get_backend_unknown(self):
        from pgseed.seed.backends import get_backend

        with pytest.raises(ValueError, match="Unknown backend: oracle"):
            get_backend("oracle")


class TestPostgresBackend:
    """Tests for the psycopg2 backend without a live server."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for key in (
            "DATABASE_URL", "PG_CONNECTION_STRING", "POSTGRES_HOST", "POSTGRES_PORT",
            "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_DB",
        ):
            monkeypatch.delenv(key, raising=False)

    def test_defaults(self):
        from pgseed.seed.backends.postgres import PostgresBackend

        backend = PostgresBackend()
        assert backend.dsn is None
        assert backend.host == "localhost"
        assert backend.port == 5432
        assert backend.user == "postgres"
        assert backend.database == "postgres"
        assert backend.get_connection_info()["connect_cmd"] == (
            "psql -h localhost -p 5432 -U postgres -d postgres"
        )

    def test_environment(self, monkeypatch):
        from pgseed.seed.backends.postgres import PostgresBackend

        monkeypatch.setenv("POSTGRES_HOST", "db.internal")
        monkeypatch.setenv("POSTGRES_PORT", "6000")
        monkeypatch.setenv("PG_CONNECTION_STRING", "postgres://env/app")

        backend = PostgresBackend()
        assert backend.host == "db.internal"
        assert backend.port == 6000
        assert backend.dsn == "postgres://env/app"
        assert backend.get_connection_info() == {
            "dsn": "postgres://env/app",
            "connect_cmd": "psql postgres://env/app",
        }

    def test_explicit_dsn_wins(self, monkeypatch):
        from pgseed.seed.backends.postgres import PostgresBackend

        monkeypatch.setenv("DATABASE_URL", "postgres://env/app")
        assert PostgresBackend(dsn="postgres://arg/app").dsn == "postgres://arg/app"

    def test_query_uses_open_connection(self):
        from pgseed.seed.backends.postgres import PostgresBackend

        backend = PostgresBackend()
        backend.conn = MagicMock()
        cursor = backend.conn.cursor.return_value
        cursor.fetchall.return_value = [{"count": 3}]

        assert backend.query("SELECT 1", [1]) == [{"count": 3}]
        cursor.execute.assert_called_once_with("SELECT 1", [1])
        cursor.close.assert_called_once()

    def test_execute_returns_rowcount(self):
        from pgseed.seed.backends.postgres import PostgresBackend

        backend = PostgresBackend()
        backend.conn = MagicMock()
        backend.conn.cursor.return_value.rowcount = 2

        assert backend.execute("DELETE FROM t") == 2

    def test_dict_and_list_values_adapted(self):
        from psycopg2.extras import Json

        from pgseed.seed.backends.postgres import PostgresBackend

        backend = PostgresBackend()
        backend.conn = MagicMock()
        cursor = backend.conn.cursor.return_value

        backend.execute("INSERT", [{"a": 1}, [1, 2], "x"])

        params = cursor.execute.call_args[0][1]
        assert isinstance(params[0], Json)
        assert params[1] == [1, 2]
        assert params[2] == "x"

    def test_commit_and_rollback(self):
        from pgseed.seed.backends.postgres import PostgresBackend

        backend = PostgresBackend()
        backend.commit()
        backend.rollback()

        conn = MagicMock()
        backend.conn = conn
        backend.commit()
        backend.rollback()
        conn.commit.assert_called_once()
        conn.rollback.assert_called_once()

        backend.disconnect()
        conn.close.assert_called_once()
        assert backend.conn is None

    def test_describe_constraint(self):
        from pgseed.seed.backends.postgres import PostgresBackend

        backend = PostgresBackend()
        backend.query = MagicMock(return_value=[{"table_name": "users"}])
        assert backend.describe_constraint("users_email_key") == "users"

        backend.query = MagicMock(side_effect=RuntimeError("gone"))
        assert backend.describe_constraint("users_email_key") is None


def catalog_backend(catalog):
    """A backend mock answering each catalog query from a dict of canned rows."""
    from pgseed.seed import introspect

    def query(sql, params=None):
        if sql == introspect.KEY_COLUMNS_SQL:
            return catalog.get(params[0], [])
        for name in ("ENUMS_SQL", "TABLES_SQL", "COLUMNS_SQL", "FOREIGN_KEYS_SQL"):
            if sql == getattr(introspect, name):
                return catalog.get(name, [])
        raise AssertionError(f"unexpected query: {sql}")

    backend = MagicMock()
    backend.query.side_effect = query
    return backend


def column_row(table, name, data_type="integer", udt="int4", nullable="NO", default=None, **extra):
    row = {
        "table_name": table,
        "column_name": name,
        "data_type": data_type,
        "udt_name": udt,
        "is_nullable": nullable,
        "column_default": default,
        "is_identity": "NO",
        "is_generated": "NEVER",
        "character_maximum_length": None,
        "numeric_precision": None,
        "numeric_scale": None,
    }
    row.update(extra)
    return row


class TestIntrospector:
    """Tests for reading the PostgreSQL catalog into table descriptors."""

    def test_system_schema_refused(self):
        from pgseed.seed.errors import SystemSchemaError
        from pgseed.seed.introspect import PostgresIntrospector

        introspector = PostgresIntrospector(MagicMock())
        for schema in ("pg_catalog", "information_schema"):
            with pytest.raises(SystemSchemaError):
                introspector.list_tables(schema)

    def test_empty_schema(self):
        from pgseed.seed.introspect import PostgresIntrospector

        backend = catalog_backend({})
        assert PostgresIntrospector(backend).list_tables("public") == []
        assert backend.query.call_count == 1

    def test_enum_labels(self):
        from pgseed.seed.introspect import PostgresIntrospector

        backend = catalog_backend({"ENUMS_SQL": [
            {"schema": "public", "name": "mood", "label": "happy"},
            {"schema": "public", "name": "mood", "label": "sad"},
        ]})

        enums = PostgresIntrospector(backend).list_enum_labels("public")
        assert enums == {"mood": ["happy", "sad"], "public.mood": ["happy", "sad"]}

    def test_list_tables(self):
        from pgseed.seed.introspect import PostgresIntrospector

        backend = catalog_backend({
            "TABLES_SQL": [{"table_name": "accounts"}, {"table_name": "memberships"}],
            "COLUMNS_SQL": [
                column_row("accounts", "id", is_identity="YES"),
                column_row("accounts", "email", "character varying", "varchar", character_maximum_length=120),
                column_row("accounts", "region", "integer", "int4"),
                column_row("accounts", "search", "tsvector", "tsvector", is_generated="ALWAYS"),
                column_row("memberships", "account_id"),
                column_row("memberships", "account_region"),
                column_row("memberships", "note", "text", "text", nullable="YES", default="''::text"),
            ],
            "PRIMARY KEY": [
                {"table_name": "accounts", "constraint_name": "accounts_pkey", "column_name": "id"},
            ],
            "UNIQUE": [
                {"table_name": "accounts", "constraint_name": "accounts_id_region_key", "column_name": "id"},
                {"table_name": "accounts", "constraint_name": "accounts_id_region_key", "column_name": "region"},
                {"table_name": "accounts", "constraint_name": "accounts_email_key", "column_name": "email"},
            ],
            "FOREIGN_KEYS_SQL": [
                {
                    "table_name": "memberships", "constraint_name": "memberships_account_fkey",
                    "column_name": "account_id", "foreign_table_schema": "public",
                    "foreign_table_name": "accounts", "foreign_column_name": "id",
                },
                {
                    "table_name": "memberships", "constraint_name": "memberships_account_fkey",
                    "column_name": "account_region", "foreign_table_schema": "public",
                    "foreign_table_name": "accounts", "foreign_column_name": "region",
                },
            ],
        })

        accounts, memberships = PostgresIntrospector(backend).list_tables("public")

        assert accounts.get_column_names() == ["id", "email", "region", "search"]
        assert accounts.column("id").is_identity
        assert accounts.column("search").is_generated
        assert not accounts.column("email").is_generated
        assert accounts.column("email").max_length == 120
        assert accounts.pk_columns == ["id"]
        assert [(u.name, u.columns) for u in accounts.unique_constraints] == [
            ("accounts_id_region_key", ("id", "region")),
            ("accounts_email_key", ("email",)),
        ]

        assert memberships.column("note").is_nullable
        assert memberships.column("note").has_default
        assert len(memberships.fks) == 1
        ref = memberships.fks[0]
        assert ref.columns == ("account_id", "account_region")
        assert ref.ref_columns == ("id", "region")
        assert ref.pool_key == ("public", "accounts", ("id", "region"))

    def test_array_type_schema_read(self):
        from pgseed.seed.introspect import PostgresIntrospector

        backend = catalog_backend({
            "TABLES_SQL": [{"table_name": "journal"}],
            "COLUMNS_SQL": [column_row("journal", "moods", "ARRAY", "_mood", udt_schema="app")],
        })

        (journal,) = PostgresIntrospector(backend).list_tables("app")

        assert journal.column("moods").udt_schema == "app"
        assert journal.column("moods").is_array
