#!/usr/bin/env python3
"""Initialize the fusion-bot database with all migrations."""

import argparse
import logging
import sqlite3
from pathlib import Path

from fusion_bot.migrations import DEFAULT_COLLECTION, run_migrations


def init_db(db_path: Path, collection: str = DEFAULT_COLLECTION) -> None:
    """Create the database (if needed) and apply pending migrations."""
    print(f"Initializing database: {db_path} (collection {collection})")

    applied = run_migrations(db_path, collection)
    if applied:
        print(f"Applied {len(applied)} migration(s).")

    # Show final state
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.execute(
            "SELECT collection, version, applied_ts FROM schema_migrations "
            "ORDER BY collection, version"
        )
        print("\nSchema versions:")
        for row in cursor:
            print(f"  {row[0]} v{row[1]} applied at {row[2]}")

        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        )
        tables = [row[0] for row in cursor if not row[0].startswith("sqlite_")]
        print(f"\nTables: {', '.join(tables)}")
    finally:
        conn.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Initialize fusion-bot database")
    parser.add_argument(
        "--db",
        type=Path,
        default=Path("fusion.db"),
        help="Path to the SQLite database file (default: fusion.db)",
    )
    parser.add_argument(
        "--collection",
        default=DEFAULT_COLLECTION,
        help=f"Quotes table name (default: {DEFAULT_COLLECTION})",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    init_db(args.db, args.collection)


if __name__ == "__main__":
    main()
