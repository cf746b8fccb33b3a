"""Exception types raised while seeding."""


class SeedError(Exception):
    """Base exception for all seeding errors."""


class ConfigError(SeedError):
    """Raised when the seeder configuration is invalid."""


class OverrideError(ConfigError):
    """Raised when a column override cannot be resolved to a generator."""


class SchemaError(SeedError):
    """Raised when a schema cannot be seeded as introspected."""


class SystemSchemaError(SchemaError):
    """Raised when asked to introspect a reserved system schema."""


class CyclicDependencyError(SchemaError):
    """Raised when tables reference each other in a foreign-key cycle."""

    def __init__(self, tables: list[str]):
        self.tables = list(tables)
        super().__init__(
            f"Cycle detected in table dependencies. Cyclic tables: {', '.join(self.tables)}"
        )


class ConstraintUnsatisfiableError(SeedError):
    """Raised when no valid row can be produced for a table."""


class EmptyForeignKeyPoolError(ConstraintUnsatisfiableError):
    """Raised when a required foreign key has no parent rows to reference."""


class UniqueConstraintExhaustedError(ConstraintUnsatisfiableError):
    """Raised when retries run out without producing a non-conflicting row."""

    def __init__(self, table: str, constraints: list[str]):
        self.table = table
        self.constraints = list(constraints)
        super().__init__(
            f"Unable to generate unique values for {table}. "
            f"Constraints: {', '.join(self.constraints)}"
        )


class IntegrityViolationError(SeedError):
    """Raised when the database rejects a row the seeder believed valid."""

    def __init__(self, message: str, code: str | None = None, constraint: str | None = None):
        self.code = code
        self.constraint = constraint
        super().__init__(message)
