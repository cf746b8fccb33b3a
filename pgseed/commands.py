"""CLI command implementations."""

import logging
from typing import Any

from .config import SeedConfig, build_config, find_config_file, load_config_file, parse_list
from .seed.backends import DatabaseBackend, get_backend
from .seed.errors import IntegrityViolationError, SeedError
from .seed.runner import Seeder, SeedSummary

logger = logging.getLogger(__name__)


class Colors:
    RED = "\033[0;31m"
    GREEN = "\033[0;32m"
    YELLOW = "\033[1;33m"
    BLUE = "\033[0;34m"
    CYAN = "\033[0;36m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    NC = "\033[0m"  # No Color


# SQLSTATE codes for the violations we can name
INTEGRITY_CODES = {
    "23505": "Unique constraint violation",
    "23503": "Foreign key violation",
    "23502": "Not-null violation",
    "23514": "Check constraint violation",
}


def print_color(text: str, color: str = ""):
    """Print colored text."""
    print(f"{color}{text}{Colors.NC}")


def cli_values(args) -> dict[str, Any]:
    """Pull the config keys the user actually passed on the command line."""
    return {
        "schema": getattr(args, "schema", None),
        "schemas": parse_list(getattr(args, "schemas", None)),
        "max_records": getattr(args, "max_records", None),
        "seed": getattr(args, "seed", None),
        "include_tables": parse_list(getattr(args, "include", None)),
        "exclude_tables": parse_list(getattr(args, "exclude", None)),
        "dry_run": True if getattr(args, "dry_run", False) else None,
        "connection_string": getattr(args, "connection", None),
        "batch_size": getattr(args, "batch_size", None),
        "reference_time": getattr(args, "reference_time", None),
    }


def print_summary(summary: list[SeedSummary], dry_run: bool = False) -> None:
    """Print one line per seeded table."""
    print()
    print_color("Seed summary", Colors.CYAN + Colors.BOLD)
    note = " (dry-run)" if dry_run else ""
    for row in summary:
        print(f"- {row.schema}.{row.table}: +{row.inserted} (total {row.total}){note}")


def describe_integrity_error(backend: DatabaseBackend, error: IntegrityViolationError) -> str:
    """Translate a database integrity error into a table/constraint message."""
    label = INTEGRITY_CODES.get(error.code or "")
    if label and error.constraint:
        table = backend.describe_constraint(error.constraint)
        if table:
            return f"{label} on {table} ({error.constraint})."
        return f"{label} ({error.constraint}): {error}"
    return str(error)


def run_seed(backend: DatabaseBackend, config: SeedConfig) -> list[SeedSummary]:
    """
    Run the seeder inside one unit of work.

    Dry runs execute every statement and then roll back, so reported counts
    match a real run while storage is left unchanged. Any failure rolls back
    the whole run.
    """
    backend.connect()
    backend.begin()
    try:
        summary = Seeder(backend, config).run()
    except Exception:
        backend.rollback()
        raise

    if config.dry_run:
        backend.rollback()
    else:
        backend.commit()
    return summary


def cmd_seed(args) -> bool:
    """Seed the configured schemas. Returns True on success."""
    try:
        config_path = find_config_file(getattr(args, "config", None))
        config = build_config(load_config_file(config_path), cli_values(args))
    except SeedError as e:
        print_color(str(e), Colors.RED)
        return False

    backend = get_backend("postgres", **config.connection.as_kwargs())

    print_color(f"Seeding {', '.join(config.schemas)} up to {config.max_records} rows per table...", Colors.CYAN)
    print(f"  Seed: {config.seed}")
    if config.dry_run:
        print("  Dry run: Yes")

    try:
        summary = run_seed(backend, config)
        print_summary(summary, config.dry_run)
        return True

    except ImportError as e:
        print_color(f"Missing dependency: {e}", Colors.RED)
        print_color("Install required packages: pip install -e .", Colors.YELLOW)
        return False

    except IntegrityViolationError as e:
        print_color(describe_integrity_error(backend, e), Colors.RED)
        return False

    except SeedError as e:
        print_color(f"Error: {e}", Colors.RED)
        return False

    except Exception as e:
        logger.debug("Seeding failed", exc_info=True)
        print_color(f"Error: {e}", Colors.RED)
        return False

    finally:
        backend.disconnect()
