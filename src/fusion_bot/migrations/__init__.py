"""
Database migration utilities for fusion-bot.

Migrations are numbered SQL files in this directory (e.g., 0002_description.sql).
They are applied in order based on the numeric prefix. Each file is a
``string.Template`` whose ``$table`` placeholder is the quotes collection name,
so several collections can live in one database file.
"""

import logging
import re
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from string import Template

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent
DEFAULT_COLLECTION = "quotes"


def get_migration_files() -> list[tuple[int, Path]]:
    """Get all migration files sorted by version number."""
    migrations = []
    for path in MIGRATIONS_DIR.glob("*.sql"):
        match = re.match(r"^(\d+)_", path.name)
        if match:
            version = int(match.group(1))
            migrations.append((version, path))
    return sorted(migrations, key=lambda x: x[0])


def get_applied_versions(conn: sqlite3.Connection, collection: str) -> set[int]:
    """Get the set of already-applied migration versions for a collection."""
    try:
        cursor = conn.execute(
            "SELECT version FROM schema_migrations WHERE collection = ?",
            (collection,),
        )
        return {row[0] for row in cursor.fetchall()}
    except sqlite3.OperationalError:
        # Table doesn't exist yet
        return set()


def apply_migration(
    conn: sqlite3.Connection,
    version: int,
    path: Path,
    collection: str,
) -> None:
    """Apply a single migration file."""
    sql = Template(path.read_text()).substitute(table=collection)
    now = datetime.now(UTC).isoformat()

    conn.executescript(sql)

    conn.execute(
        "INSERT INTO schema_migrations (collection, version, applied_ts) VALUES (?, ?, ?)",
        (collection, version, now),
    )
    conn.commit()


def run_migrations(db_path: Path, collection: str = DEFAULT_COLLECTION) -> list[int]:
    """
    Run all pending migrations on the database.

    Also switches the database to WAL journaling so concurrent writers
    wait on each other instead of failing.

    Returns list of versions that were applied.
    """
    conn = sqlite3.connect(db_path)
    applied = []

    try:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_migrations (
                collection TEXT NOT NULL,
                version INTEGER NOT NULL,
                applied_ts TEXT NOT NULL,
                PRIMARY KEY (collection, version)
            )
        """)
        conn.commit()

        already_applied = get_applied_versions(conn, collection)

        for version, path in get_migration_files():
            if version in already_applied:
                logger.debug(f"Skipping migration {version} for {collection} (already applied)")
                continue

            logger.info(f"Applying migration {version} to {collection}: {path.name}")
            apply_migration(conn, version, path, collection)
            applied.append(version)

        if not applied:
            logger.debug(f"No new migrations for {collection}")

    finally:
        conn.close()

    return applied


def get_current_version(db_path: Path, collection: str = DEFAULT_COLLECTION) -> int:
    """Get the current schema version of a collection."""
    if not db_path.exists():
        return 0

    conn = sqlite3.connect(db_path)
    try:
        applied = get_applied_versions(conn, collection)
        return max(applied) if applied else 0
    finally:
        conn.close()
