"""Row synthesis honoring foreign keys, nullability, overrides and uniqueness."""

import logging
from typing import Any

from .errors import EmptyForeignKeyPoolError, UniqueConstraintExhaustedError
from .generators import ColumnOverride, ValueGenerator
from .schemas import ColumnInfo, ForeignKeyInfo, TableInfo
from .uniqueness import UniquenessTracker

logger = logging.getLogger(__name__)

DEFAULT_NULL_PROBABILITY = 0.15
DEFAULT_MAX_ATTEMPTS = 25


def resolve_override(
    overrides: dict[str, ColumnOverride] | None,
    schema: str,
    table: str,
    column: str,
) -> ColumnOverride | None:
    """Find a column override: schema.table.column, then table.column, then column."""
    if not overrides:
        return None
    for key in (f"{schema}.{table}.{column}", f"{table}.{column}", column):
        if key in overrides:
            return overrides[key]
    return None


class RowSynthesizer:
    """Builds rows for one table, one at a time, in insert-column order."""

    def __init__(
        self,
        table: TableInfo,
        insert_columns: list[ColumnInfo],
        pools: dict,
        tracker: UniquenessTracker,
        generator: ValueGenerator,
        overrides: dict[str, ColumnOverride] | None = None,
        null_probability: float = DEFAULT_NULL_PROBABILITY,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self.table = table
        self.insert_columns = insert_columns
        self.pools = pools
        self.tracker = tracker
        self.generator = generator
        self.null_probability = null_probability
        self.attempts = max_attempts if tracker else 1
        self._fk_by_column = table.fk_for_column()
        self._overrides = {
            column.name: resolve_override(overrides, table.schema, table.name, column.name)
            for column in insert_columns
        }

    def build_row(self) -> list[Any]:
        """
        Produce one row that clears every tracked unique constraint.

        Raises:
            EmptyForeignKeyPoolError: If a non-nullable foreign-key column has
                no parent row to reference
            UniqueConstraintExhaustedError: If every attempt conflicted
        """
        conflicted: list[str] = []
        for attempt in range(self.attempts):
            row = self._attempt()
            if not self.tracker:
                return row

            pending = []
            conflicts = []
            for constraint in self.tracker:
                key = constraint.key_for(row)
                if key is None:
                    continue
                if constraint.contains(key):
                    conflicts.append(constraint.name)
                else:
                    pending.append((constraint, key))

            if not conflicts:
                for constraint, key in pending:
                    constraint.reserve(key)
                return row
            logger.debug(
                "%s: attempt %d conflicted on %s",
                self.table.qualified_name, attempt + 1, ", ".join(conflicts),
            )
            for name in conflicts:
                if name not in conflicted:
                    conflicted.append(name)

        raise UniqueConstraintExhaustedError(self.table.qualified_name, conflicted)

    def _attempt(self) -> list[Any]:
        presets: dict[int, Any] = {}
        for constraint in self.tracker:
            pair = constraint.next_pair()
            if pair is not None:
                presets[constraint.indices[0]] = pair[0]
                presets[constraint.indices[1]] = pair[1]

        rng = self.generator.random
        sampled: dict[ForeignKeyInfo, tuple | None] = {}
        for fk in self.table.fks:
            pool = self.pools.get(fk.pool_key) or []
            sampled[fk] = self.generator.choice(pool) if pool else None

        row: list[Any] = []
        for index, column in enumerate(self.insert_columns):
            if index in presets:
                row.append(presets[index])
                continue

            fk = self._fk_by_column.get(column.name)
            if fk is not None:
                row.append(self._foreign_value(column, fk, sampled[fk]))
                continue

            if column.is_nullable and rng.random() < self.null_probability:
                row.append(None)
                continue

            row.append(self.generator.generate(
                column, self._overrides.get(column.name), schema=self.table.schema,
            ))
        return row

    def _foreign_value(self, column: ColumnInfo, fk: ForeignKeyInfo, assigned: tuple | None) -> Any:
        if assigned is None:
            if column.is_nullable:
                return None
            raise EmptyForeignKeyPoolError(
                f"Foreign key pool empty for {self.table.qualified_name}.{column.name}. "
                f"Ensure parent table {fk.ref_table} has rows or relax nullability."
            )
        return assigned[fk.columns.index(column.name)]
