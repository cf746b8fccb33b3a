"""Foreign-key reference pools sampled from parent tables."""

import logging
from dataclasses import dataclass, field

from .backends.base import DatabaseBackend
from .errors import EmptyForeignKeyPoolError
from .schemas import ForeignKeyInfo, TableInfo

logger = logging.getLogger(__name__)

PoolKey = tuple[str, str, tuple[str, ...]]
Pool = list[tuple]

DEFAULT_POOL_FLOOR = 50
DEFAULT_POOL_MULTIPLIER = 5
DEFAULT_POOL_CEILING = 5000


def pool_limit(
    max_records: int,
    floor: int = DEFAULT_POOL_FLOOR,
    multiplier: int = DEFAULT_POOL_MULTIPLIER,
    ceiling: int = DEFAULT_POOL_CEILING,
) -> int:
    """How many parent rows to sample for one pool."""
    return min(ceiling, max(floor, max_records * multiplier))


@dataclass
class ForeignKeyPoolCache:
    """
    Run-scoped cache of parent key tuples.

    Each (referenced schema, table, columns) is loaded at most once per run
    and is not refreshed when the parent later receives more rows.
    """
    limit: int = DEFAULT_POOL_CEILING
    pools: dict[PoolKey, Pool] = field(default_factory=dict)

    def __contains__(self, key: PoolKey) -> bool:
        return key in self.pools

    def get(self, backend: DatabaseBackend, fk: ForeignKeyInfo) -> Pool:
        """Return the pool for a foreign key, loading it on first use."""
        key = fk.pool_key
        if key in self.pools:
            return self.pools[key]

        rows = backend.select_columns(
            fk.ref_schema,
            fk.ref_table,
            fk.ref_columns,
            limit=self.limit,
            ordered=True,
        )
        # First loader wins if a duplicate load ever races this one
        pool = self.pools.setdefault(key, rows)
        logger.debug(
            "Loaded %d keys from %s.%s(%s)",
            len(pool), fk.ref_schema, fk.ref_table, ", ".join(fk.ref_columns),
        )
        return pool

    def load_for_table(self, backend: DatabaseBackend, table: TableInfo) -> dict[PoolKey, Pool]:
        """Load every pool a table's foreign keys draw from."""
        return {fk.pool_key: self.get(backend, fk) for fk in table.fks}


def validate_pools(table: TableInfo, pools: dict[PoolKey, Pool]) -> None:
    """
    Fail early when a required foreign key has nothing to reference.

    Raises:
        EmptyForeignKeyPoolError: If a foreign key with a non-nullable
            column has an empty pool
    """
    columns = {column.name: column for column in table.columns}
    for fk in table.fks:
        if pools.get(fk.pool_key):
            continue
        requires_value = any(
            name in columns and not columns[name].is_nullable for name in fk.columns
        )
        if requires_value:
            raise EmptyForeignKeyPoolError(
                f"Foreign key pool empty for {table.qualified_name} -> "
                f"{fk.ref_schema}.{fk.ref_table}. Seed parent table first or allow "
                f"nulls on {', '.join(fk.columns)}."
            )
