"""Unique-constraint bookkeeping: canonical keys, reserved sets, pair queues."""

import json
import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Sequence

from .backends.base import DatabaseBackend
from .schemas import ColumnInfo, ForeignKeyInfo, TableInfo

logger = logging.getLogger(__name__)

DEFAULT_PAIR_FLOOR = 200
DEFAULT_PAIR_MULTIPLIER = 5


def value_to_key(value: Any) -> str | None:
    """Canonical string for one value; None means the value never conflicts."""
    if value is None:
        return None
    if isinstance(value, (str, bool, int, float, Decimal)):
        return str(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime) and value.tzinfo is not None:
        # Same instant, same key, whatever zone it was read or written in
        return value.astimezone(timezone.utc).isoformat()
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    try:
        return json.dumps(value, sort_keys=True, default=str)
    except (TypeError, ValueError):
        return str(value)


def build_unique_key(values: Sequence[Any]) -> str | None:
    """Join per-value keys in order; any null participant yields no key."""
    keys = []
    for value in values:
        key = value_to_key(value)
        if key is None:
            return None
        keys.append(key)
    return json.dumps(keys)


@dataclass
class UniqueConstraintSet:
    """Keys already present or reserved for one unique constraint."""
    name: str
    columns: tuple[str, ...]
    indices: tuple[int, ...]
    keys: set[str] = field(default_factory=set)
    pair_queue: deque | None = None

    def key_for(self, row: Sequence[Any]) -> str | None:
        """Key for a row laid out in insert-column order."""
        return build_unique_key([row[i] for i in self.indices])

    def contains(self, key: str) -> bool:
        return key in self.keys

    def reserve(self, key: str) -> bool:
        """Add a key if absent. Returns False when it was already taken."""
        if key in self.keys:
            return False
        self.keys.add(key)
        return True

    def next_pair(self) -> tuple | None:
        """Pop the next precomputed pair, or None once the queue is empty."""
        if self.pair_queue:
            return self.pair_queue.popleft()
        return None


class UniquenessTracker:
    """The unique constraints that apply to one table's inserted columns."""

    def __init__(self, table: TableInfo, constraints: list[UniqueConstraintSet]):
        self.table = table
        self.constraints = constraints

    def __bool__(self) -> bool:
        return bool(self.constraints)

    def __iter__(self):
        return iter(self.constraints)

    @property
    def names(self) -> list[str]:
        return [c.name for c in self.constraints]

    @classmethod
    def for_table(cls, table: TableInfo, insert_columns: list[ColumnInfo]) -> "UniquenessTracker":
        """
        Track the constraints whose columns are all being inserted.

        The primary key counts as a unique constraint. Constraints touching a
        column left to its server default cannot conflict and are skipped.
        """
        index_by_name = {column.name: i for i, column in enumerate(insert_columns)}
        candidates: list[tuple[str, tuple[str, ...]]] = []
        if table.pk_columns:
            candidates.append((f"{table.name}_pkey", tuple(table.pk_columns)))
        for unique in table.unique_constraints:
            candidates.append((unique.name, unique.columns))

        constraints: list[UniqueConstraintSet] = []
        seen: set[tuple[str, ...]] = set()
        for name, columns in candidates:
            if not columns or columns in seen:
                continue
            if any(column not in index_by_name for column in columns):
                continue
            seen.add(columns)
            constraints.append(UniqueConstraintSet(
                name=name,
                columns=columns,
                indices=tuple(index_by_name[column] for column in columns),
            ))

        return cls(table, constraints)

    def load_existing(self, backend: DatabaseBackend) -> None:
        """Seed every constraint's key set from the rows already stored."""
        for constraint in self.constraints:
            rows = backend.select_columns(self.table.schema, self.table.name, constraint.columns)
            for row in rows:
                key = build_unique_key(row)
                if key is not None:
                    constraint.keys.add(key)
            logger.debug("%s: %d existing keys", constraint.name, len(constraint.keys))

    def build_pair_queues(
        self,
        fks: list[ForeignKeyInfo],
        pools: dict,
        target: int,
        rng,
        floor: int = DEFAULT_PAIR_FLOOR,
        multiplier: int = DEFAULT_PAIR_MULTIPLIER,
    ) -> None:
        """
        Precompute unused value pairs for small two-column constraints.

        Applies when both columns carry a single-column foreign key. The
        cross product of distinct non-null pool values is enumerated only
        when it stays under max(floor, target * multiplier); pairs already
        stored are dropped and the rest shuffled with the run's random source.
        """
        column_values: dict[str, list] = {}
        for fk in fks:
            if len(fk.columns) != 1:
                continue
            pool = pools.get(fk.pool_key) or []
            distinct = dict.fromkeys(row[0] for row in pool if row[0] is not None)
            column_values[fk.columns[0]] = list(distinct)

        max_pairs = max(floor, target * multiplier)
        for constraint in self.constraints:
            if len(constraint.columns) != 2:
                continue
            values_a = column_values.get(constraint.columns[0])
            values_b = column_values.get(constraint.columns[1])
            if not values_a or not values_b:
                continue
            if len(values_a) * len(values_b) > max_pairs:
                continue

            pairs = []
            for a in values_a:
                for b in values_b:
                    key = build_unique_key([a, b])
                    if key is None or key in constraint.keys:
                        continue
                    pairs.append((a, b))
            rng.shuffle(pairs)
            constraint.pair_queue = deque(pairs)
            logger.debug("%s: queued %d unused pairs", constraint.name, len(pairs))
