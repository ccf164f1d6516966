"""ShopCore database management CLI.

Provides commands to create and drop the schema for every aggregate,
entity and projection of the shopcore domain. The target database comes
from ``SHOPCORE_DATABASE_URL`` unless ``--database-url`` is given.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import os
import sys


def _domain(url=None):
    if url:
        os.environ["SHOPCORE_DATABASE_URL"] = url

    from shared.domain import init_domain

    return init_domain()


def setup_databases(url=None):
    """Create all tables."""
    from shared.db import setup_db

    domain = _domain(url)
    print(f"Creating {domain.name} database schema...")
    setup_db(domain)
    print("Done.")


def drop_databases(url=None):
    """Drop all tables."""
    from shared.db import drop_db

    domain = _domain(url)
    print(f"Dropping {domain.name} database schema...")
    drop_db(domain)
    print("Done.")


def main(argv=None):
    parser = argparse.ArgumentParser(description="ShopCore database management")
    parser.add_argument("--database-url", help="Database URL (default: SHOPCORE_DATABASE_URL)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_databases(args.database_url)
    elif args.command == "drop-db":
        drop_databases(args.database_url)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
