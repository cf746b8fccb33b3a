#!/usr/bin/env python3
"""
PostgreSQL Seeder CLI

Fill a database with synthetic rows that respect its keys and constraints.
"""

import argparse
import logging
import sys

from pgseed.commands import cmd_seed


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Seed a PostgreSQL database with realistic mock data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                  Seed the public schema (50 rows per table)
  %(prog)s --schemas public,billing         Seed several schemas
  %(prog)s --max-records 200 --seed 7       More rows, different data
  %(prog)s --include users,orders --dry-run Preview counts without writing
  %(prog)s -c seeder.yaml                   Use a config file
""",
    )

    parser.add_argument("--config", "-c", help="Path to seeder.yaml or seeder.config.json")
    parser.add_argument("--schema", help="Schema to seed (default: public)")
    parser.add_argument("--schemas", help="Comma-separated list of schemas to seed")
    parser.add_argument(
        "--max-records", "-n",
        type=int,
        help="Target rows per table; existing rows count toward it (default: 50)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for deterministic randomness (default: 1337)",
    )
    parser.add_argument("--include", help="Comma-separated list of tables to include")
    parser.add_argument("--exclude", help="Comma-separated list of tables to exclude")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run every insert, then roll back",
    )
    parser.add_argument("--connection", help="Postgres connection string")
    parser.add_argument(
        "--batch-size",
        type=int,
        help="Rows per insert statement (default: 100)",
    )
    parser.add_argument(
        "--reference-time",
        help="ISO date or timestamp generated dates lead up to (default: derived from --seed)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log progress for each table",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    success = cmd_seed(args)
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
