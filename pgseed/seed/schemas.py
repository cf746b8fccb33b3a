"""Table, column and constraint descriptors produced by introspection."""

from dataclasses import dataclass, field, replace


# information_schema udt names mapped back to their data_type spelling
UDT_DATA_TYPES = {
    "int2": "smallint",
    "int4": "integer",
    "int8": "bigint",
    "varchar": "character varying",
    "bpchar": "character",
    "text": "text",
    "bool": "boolean",
    "float4": "real",
    "float8": "double precision",
    "numeric": "numeric",
    "date": "date",
    "time": "time without time zone",
    "timetz": "time with time zone",
    "timestamp": "timestamp without time zone",
    "timestamptz": "timestamp with time zone",
    "uuid": "uuid",
    "json": "json",
    "jsonb": "jsonb",
    "inet": "inet",
    "cidr": "cidr",
    "bytea": "bytea",
}

# Maps enum type name (bare and schema-qualified) to its ordered labels
EnumMap = dict[str, list[str]]


def udt_to_data_type(udt_name: str) -> str:
    """Translate a PostgreSQL udt name into its data_type spelling."""
    return UDT_DATA_TYPES.get(udt_name, udt_name)


@dataclass(frozen=True)
class ColumnInfo:
    """A single column as reported by introspection."""
    name: str
    data_type: str
    udt_name: str = ""
    is_nullable: bool = False
    column_default: str | None = None
    is_identity: bool = False
    is_generated: bool = False
    max_length: int | None = None
    numeric_precision: int | None = None
    numeric_scale: int | None = None
    udt_schema: str = ""

    @property
    def has_default(self) -> bool:
        return self.column_default is not None

    @property
    def is_array(self) -> bool:
        return self.udt_name.startswith("_")

    @property
    def normalized_type(self) -> str:
        """Lower-cased data type, resolved through the udt name when known."""
        if self.udt_name and self.udt_name.lower() in UDT_DATA_TYPES:
            return udt_to_data_type(self.udt_name.lower())
        return self.data_type.lower()

    def element_column(self) -> "ColumnInfo":
        """Describe the element type of an array column."""
        base = self.udt_name[1:]
        return replace(self, data_type=udt_to_data_type(base), udt_name=base)


@dataclass(frozen=True)
class ForeignKeyInfo:
    """A foreign key; local and referenced columns pair up by position."""
    columns: tuple[str, ...]
    ref_schema: str
    ref_table: str
    ref_columns: tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "ref_columns", tuple(self.ref_columns))

    @property
    def pool_key(self) -> tuple[str, str, tuple[str, ...]]:
        return (self.ref_schema, self.ref_table, self.ref_columns)


@dataclass(frozen=True)
class UniqueConstraintInfo:
    """A named unique constraint over one or more columns."""
    name: str
    columns: tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "columns", tuple(self.columns))


@dataclass
class TableInfo:
    """A relation to seed, with its columns and constraints."""
    schema: str
    name: str
    columns: list[ColumnInfo] = field(default_factory=list)
    pk_columns: list[str] = field(default_factory=list)
    fks: list[ForeignKeyInfo] = field(default_factory=list)
    unique_constraints: list[UniqueConstraintInfo] = field(default_factory=list)

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.name}"

    def get_column_names(self) -> list[str]:
        """Get column names in declared order."""
        return [c.name for c in self.columns]

    def column(self, name: str) -> ColumnInfo:
        for col in self.columns:
            if col.name == name:
                return col
        raise KeyError(f"Unknown column {name} on {self.qualified_name}")

    def fk_for_column(self) -> dict[str, ForeignKeyInfo]:
        """Map each local foreign-key column to the key it belongs to."""
        mapping: dict[str, ForeignKeyInfo] = {}
        for fk in self.fks:
            for column in fk.columns:
                mapping[column] = fk
        return mapping
