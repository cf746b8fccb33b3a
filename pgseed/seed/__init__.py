"""Constraint-aware row synthesis and dependency-ordered insertion."""

from .schemas import ColumnInfo, ForeignKeyInfo, UniqueConstraintInfo, TableInfo
from .generators import ValueGenerator, ColumnOverride, resolve_overrides
from .ordering import topological_sort, order_tables
from .pools import ForeignKeyPoolCache
from .uniqueness import UniquenessTracker
from .rows import RowSynthesizer
from .runner import Seeder, SeedSummary
from .backends import get_backend, list_backends

__all__ = [
    "ColumnInfo",
    "ForeignKeyInfo",
    "UniqueConstraintInfo",
    "TableInfo",
    "ValueGenerator",
    "ColumnOverride",
    "resolve_overrides",
    "topological_sort",
    "order_tables",
    "ForeignKeyPoolCache",
    "UniquenessTracker",
    "RowSynthesizer",
    "Seeder",
    "SeedSummary",
    "get_backend",
    "list_backends",
]
