"""Seeding orchestration: filter, order, and fill each table up to the target."""

import logging
from dataclasses import dataclass
from typing import Protocol

from .backends.base import DatabaseBackend, column_cast
from .generators import ValueGenerator, resolve_overrides
from .introspect import PostgresIntrospector
from .ordering import order_tables
from .pools import ForeignKeyPoolCache, pool_limit, validate_pools
from .rows import RowSynthesizer
from .schemas import ColumnInfo, EnumMap, TableInfo
from .uniqueness import UniquenessTracker

logger = logging.getLogger(__name__)


class Introspector(Protocol):
    def list_tables(self, schema: str) -> list[TableInfo]: ...

    def list_enum_labels(self, schema: str) -> EnumMap: ...


@dataclass
class SeedSummary:
    """Per-table outcome of a run."""
    schema: str
    table: str
    existing: int
    inserted: int

    @property
    def total(self) -> int:
        return self.existing + self.inserted


def matches_table_filter(filters: set[str], schema: str, table: str) -> bool:
    """True when a filter names the table bare or schema-qualified."""
    return table in filters or f"{schema}.{table}" in filters


def select_insert_columns(table: TableInfo) -> list[ColumnInfo]:
    """
    Columns the seeder supplies values for.

    Identity and generated columns are left to the database, as are columns
    with a default unless they belong to a foreign key.
    """
    fk_columns = set(table.fk_for_column())
    columns = []
    for column in table.columns:
        if column.is_identity or column.is_generated:
            continue
        if column.has_default and column.name not in fk_columns:
            continue
        columns.append(column)
    return columns


class Seeder:
    """Fills every selected table of each schema up to ``max_records`` rows."""

    def __init__(
        self,
        backend: DatabaseBackend,
        config,
        generator: ValueGenerator | None = None,
        introspector: Introspector | None = None,
    ):
        self.backend = backend
        self.config = config
        self.generator = generator or ValueGenerator(
            seed=config.seed, reference_time=config.reference_time,
        )
        self.introspector = introspector or PostgresIntrospector(backend)
        self.overrides = resolve_overrides(config.overrides)
        self.pool_cache = ForeignKeyPoolCache(limit=pool_limit(
            config.max_records,
            floor=config.pool_floor,
            multiplier=config.pool_multiplier,
            ceiling=config.pool_ceiling,
        ))
        self._include = set(config.include_tables or ())
        self._exclude = set(config.exclude_tables or ())

    def run(self) -> list[SeedSummary]:
        """Seed every configured schema in order."""
        summary: list[SeedSummary] = []
        for schema in self.config.schemas:
            summary.extend(self.seed_schema(schema))
        return summary

    def _selected(self, table: TableInfo) -> bool:
        if self._include and not matches_table_filter(self._include, table.schema, table.name):
            return False
        if self._exclude and matches_table_filter(self._exclude, table.schema, table.name):
            return False
        return True

    def seed_schema(self, schema: str) -> list[SeedSummary]:
        """Seed one schema. Ordering fails before any insert if tables form a cycle."""
        enums = self.introspector.list_enum_labels(schema)
        tables = [t for t in self.introspector.list_tables(schema) if self._selected(t)]
        ordered = order_tables(tables, schema)
        self.generator.set_enums(enums)

        results = []
        for table in ordered:
            logger.info("Seeding table %s", table.qualified_name)
            results.append(self.seed_table(table))
        return results

    def seed_table(self, table: TableInfo) -> SeedSummary:
        """Insert however many rows the table is missing relative to the target."""
        existing = self.backend.count_rows(table.schema, table.name)
        target = max(0, self.config.max_records - existing)
        if target == 0:
            logger.info("%s already has %d rows", table.qualified_name, existing)
            return SeedSummary(table.schema, table.name, existing, 0)

        pools = self.pool_cache.load_for_table(self.backend, table)
        validate_pools(table, pools)

        insert_columns = select_insert_columns(table)
        tracker = UniquenessTracker.for_table(table, insert_columns)
        tracker.load_existing(self.backend)
        tracker.build_pair_queues(table.fks, pools, target, self.generator.random)

        if not insert_columns:
            inserted = self.backend.insert_default_rows(table.schema, table.name, target)
            return SeedSummary(table.schema, table.name, existing, inserted)

        synthesizer = RowSynthesizer(
            table,
            insert_columns,
            pools,
            tracker,
            self.generator,
            overrides=self.overrides,
            null_probability=self.config.null_probability,
            max_attempts=self.config.max_attempts,
        )
        column_names = [column.name for column in insert_columns]
        casts = [column_cast(column) for column in insert_columns]
        batch_size = self.config.batch_size

        inserted = 0
        batch: list[list] = []
        for _ in range(target):
            batch.append(synthesizer.build_row())
            if len(batch) >= batch_size:
                inserted += self.backend.insert_rows(
                    table.schema, table.name, column_names, batch, casts=casts,
                )
                batch = []
        if batch:
            inserted += self.backend.insert_rows(
                table.schema, table.name, column_names, batch, casts=casts,
            )

        logger.info("%s: +%d rows (existing %d)", table.qualified_name, inserted, existing)
        return SeedSummary(table.schema, table.name, existing, inserted)
