"""PostgreSQL database backend."""

import logging
import os
from typing import Any, Sequence

from .base import DatabaseBackend
from ..errors import IntegrityViolationError

logger = logging.getLogger(__name__)


class PostgresBackend(DatabaseBackend):
    """PostgreSQL database backend using psycopg2."""

    name = "postgres"

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        user: str | None = None,
        password: str | None = None,
        database: str | None = None,
        dsn: str | None = None,
    ):
        self.dsn = dsn or os.environ.get("DATABASE_URL") or os.environ.get("PG_CONNECTION_STRING")
        self.host = host or os.environ.get("POSTGRES_HOST", "localhost")
        self.port = port or int(os.environ.get("POSTGRES_PORT", "5432"))
        self.user = user or os.environ.get("POSTGRES_USER", "postgres")
        self.password = password or os.environ.get("POSTGRES_PASSWORD", "")
        self.database = database or os.environ.get("POSTGRES_DB", "postgres")
        self.conn = None

    def get_connection_info(self) -> dict[str, str]:
        """Get connection information for display to user."""
        if self.dsn:
            return {"dsn": self.dsn, "connect_cmd": f"psql {self.dsn}"}
        return {
            "host": self.host,
            "port": str(self.port),
            "user": self.user,
            "database": self.database,
            "connect_cmd": f"psql -h {self.host} -p {self.port} -U {self.user} -d {self.database}",
        }

    def connect(self) -> None:
        """Establish connection to PostgreSQL."""
        import psycopg2

        if self.conn is None:
            if self.dsn:
                self.conn = psycopg2.connect(self.dsn)
            else:
                self.conn = psycopg2.connect(
                    host=self.host,
                    port=self.port,
                    user=self.user,
                    password=self.password,
                    dbname=self.database,
                )
            self.conn.autocommit = False

    def disconnect(self) -> None:
        """Close connection to PostgreSQL."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def _adapt(self, value: Any) -> Any:
        """Wrap values psycopg2 cannot adapt on its own."""
        from psycopg2.extras import Json

        if isinstance(value, dict):
            return Json(value)
        if isinstance(value, list):
            return [self._adapt(v) for v in value]
        return value

    def _run(self, sql: str, params: Sequence[Any] | None, fetch: bool):
        import psycopg2
        from psycopg2.extras import RealDictCursor

        self.connect()
        adapted = [self._adapt(v) for v in params] if params is not None else None
        cursor = self.conn.cursor(cursor_factory=RealDictCursor)
        try:
            cursor.execute(sql, adapted)
            if fetch:
                return [dict(row) for row in cursor.fetchall()]
            return cursor.rowcount
        except psycopg2.IntegrityError as e:
            diag = getattr(e, "diag", None)
            raise IntegrityViolationError(
                (getattr(e, "pgerror", None) or str(e)).strip(),
                code=getattr(e, "pgcode", None),
                constraint=getattr(diag, "constraint_name", None),
            ) from e
        finally:
            cursor.close()

    def query(self, sql: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        return self._run(sql, params, fetch=True)

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> int:
        return self._run(sql, params, fetch=False)

    def begin(self) -> None:
        # psycopg2 opens a transaction implicitly on the first statement
        self.connect()

    def commit(self) -> None:
        if self.conn:
            self.conn.commit()

    def rollback(self) -> None:
        if self.conn:
            self.conn.rollback()

    def describe_constraint(self, constraint: str) -> str | None:
        """Look up the table that owns a constraint via pg_constraint."""
        try:
            rows = self.query(
                "SELECT conrelid::regclass::text AS table_name FROM pg_constraint WHERE conname = %s",
                [constraint],
            )
        except Exception as e:
            logger.debug("Constraint lookup for %s failed: %s", constraint, e)
            return None
        return rows[0]["table_name"] if rows else None
