"""Seeder configuration loading and merging."""

import os
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional

import yaml

from .seed.errors import ConfigError
from .seed.generators import ColumnOverride, resolve_overrides
from .seed.pools import DEFAULT_POOL_CEILING, DEFAULT_POOL_FLOOR, DEFAULT_POOL_MULTIPLIER
from .seed.rows import DEFAULT_MAX_ATTEMPTS, DEFAULT_NULL_PROBABILITY


# Searched in the working directory when no --config is given
DEFAULT_CONFIG_FILES = ("seeder.yaml", "seeder.yml", "seeder.config.json")

# camelCase keys used by seeder.config.json files
KEY_ALIASES = {
    "maxRecords": "max_records",
    "includeTables": "include_tables",
    "excludeTables": "exclude_tables",
    "dryRun": "dry_run",
    "batchSize": "batch_size",
    "nullProbability": "null_probability",
    "maxAttempts": "max_attempts",
    "connectionString": "connection_string",
    "referenceTime": "reference_time",
}


@dataclass
class ConnectionConfig:
    dsn: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    password: Optional[str] = None
    database: Optional[str] = None

    def as_kwargs(self) -> dict[str, Any]:
        """Connection parameters that were actually set."""
        values = {
            "dsn": self.dsn,
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "database": self.database,
        }
        return {k: v for k, v in values.items() if v is not None}


@dataclass
class SeedConfig:
    schemas: list[str] = field(default_factory=lambda: ["public"])
    max_records: int = 50
    seed: int = 1337
    include_tables: list[str] = field(default_factory=list)
    exclude_tables: list[str] = field(default_factory=list)
    dry_run: bool = False
    overrides: dict[str, ColumnOverride] = field(default_factory=dict)
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    batch_size: int = 100
    null_probability: float = DEFAULT_NULL_PROBABILITY
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    pool_floor: int = DEFAULT_POOL_FLOOR
    pool_multiplier: int = DEFAULT_POOL_MULTIPLIER
    pool_ceiling: int = DEFAULT_POOL_CEILING
    # Anchor for generated dates; derived from the seed when unset
    reference_time: Optional[datetime] = None


def load_env_file(path: Path) -> dict[str, str]:
    """Load a simple KEY=VALUE .env file."""
    env: dict[str, str] = {}
    if not path.exists():
        return env

    for line in path.read_text().splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped.startswith("export "):
            stripped = stripped[len("export "):]
        if "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        env[key.strip()] = value

    return env


_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-(.*?))?\}")


def expand_env_vars(value: str, env: dict[str, str]) -> str:
    """Expand ${VAR} and ${VAR:-default} placeholders."""
    def repl(match: re.Match[str]) -> str:
        resolved = env.get(match.group(1))
        if not resolved:
            return match.group(2) or ""
        return resolved

    return _ENV_PATTERN.sub(repl, value)


def expand_config(value, env: dict[str, str]):
    """Recursively expand env placeholders in config values."""
    if isinstance(value, dict):
        return {k: expand_config(v, env) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_config(v, env) for v in value]
    if isinstance(value, str):
        return expand_env_vars(value, env)
    return value


def parse_list(value) -> list[str] | None:
    """Split a comma-separated string; lists pass through trimmed."""
    if value is None:
        return None
    items = value.split(",") if isinstance(value, str) else value
    cleaned = [str(item).strip() for item in items if str(item).strip()]
    return cleaned or None


def find_config_file(path: str | None = None, cwd: Path | None = None) -> Path | None:
    """
    Locate the config file to load.

    An explicit path must exist; otherwise the default names are tried in
    the working directory and None is returned when none exist.
    """
    cwd = cwd or Path.cwd()
    if path:
        candidate = (cwd / path).resolve()
        if not candidate.is_file():
            raise ConfigError(f"Config file not found: {candidate}")
        return candidate

    for name in DEFAULT_CONFIG_FILES:
        candidate = cwd / name
        if candidate.is_file():
            return candidate
    return None


def load_config_file(path: Path | None) -> dict[str, Any]:
    """Read a YAML (or JSON) config file, expanding env placeholders."""
    if path is None:
        return {}

    env = load_env_file(path.parent / ".env")
    env.update(os.environ)

    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return expand_config(raw, env)


def _normalize_layer(values: dict[str, Any]) -> dict[str, Any]:
    layer = {KEY_ALIASES.get(k, k): v for k, v in values.items() if v is not None}
    schema = layer.pop("schema", None)
    if schema and not layer.get("schemas"):
        layer["schemas"] = [schema]
    return layer


def _as_int(name: str, value: Any, minimum: int) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Invalid {name} value: {value}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid {name} value: {value}") from None
    if number < minimum:
        raise ConfigError(f"Invalid {name} value: {value} (minimum {minimum})")
    return number


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _as_datetime(value: Any) -> datetime | None:
    """Parse an ISO date or timestamp; aware values become naive UTC."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip())
        except ValueError:
            raise ConfigError(f"Invalid reference_time value: {value}") from None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _as_connection(value: Any, dsn: str | None) -> ConnectionConfig:
    value = value or {}
    if not isinstance(value, dict):
        raise ConfigError("connection must be a mapping")
    port = value.get("port")
    return ConnectionConfig(
        dsn=dsn or value.get("dsn"),
        host=value.get("host"),
        port=_as_int("port", port, 1) if port not in (None, "") else None,
        user=value.get("user"),
        password=value.get("password"),
        database=value.get("database"),
    )


def build_config(
    file_values: dict[str, Any] | None = None,
    cli_values: dict[str, Any] | None = None,
) -> SeedConfig:
    """
    Merge defaults, file values and CLI values (later wins) into a SeedConfig.

    Raises:
        ConfigError: If a value is malformed or an override cannot be resolved
    """
    merged = {**_normalize_layer(file_values or {}), **_normalize_layer(cli_values or {})}

    defaults = SeedConfig()
    try:
        probability = float(merged.get("null_probability", defaults.null_probability))
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid null_probability value: {merged['null_probability']}") from None
    if not 0.0 <= probability <= 1.0:
        raise ConfigError(f"null_probability must be between 0 and 1, got {probability}")

    overrides = merged.get("overrides") or {}
    if not isinstance(overrides, dict):
        raise ConfigError("overrides must be a mapping")

    return SeedConfig(
        schemas=parse_list(merged.get("schemas")) or list(defaults.schemas),
        max_records=_as_int("max_records", merged.get("max_records", defaults.max_records), 0),
        seed=_as_int("seed", merged.get("seed", defaults.seed), 0),
        include_tables=parse_list(merged.get("include_tables")) or [],
        exclude_tables=parse_list(merged.get("exclude_tables")) or [],
        dry_run=_as_bool(merged.get("dry_run", False)),
        overrides=resolve_overrides(overrides),
        connection=_as_connection(merged.get("connection"), merged.get("connection_string")),
        batch_size=_as_int("batch_size", merged.get("batch_size", defaults.batch_size), 1),
        null_probability=probability,
        max_attempts=_as_int("max_attempts", merged.get("max_attempts", defaults.max_attempts), 1),
        pool_floor=_as_int("pool_floor", merged.get("pool_floor", defaults.pool_floor), 1),
        pool_multiplier=_as_int("pool_multiplier", merged.get("pool_multiplier", defaults.pool_multiplier), 1),
        pool_ceiling=_as_int("pool_ceiling", merged.get("pool_ceiling", defaults.pool_ceiling), 1),
        reference_time=_as_datetime(merged.get("reference_time")),
    )
