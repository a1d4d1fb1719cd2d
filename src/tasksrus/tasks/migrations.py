# src/tasksrus/tasks/migrations.py

"""
Versioned schema for the task database.

Each Migration is applied at most once, in ascending version order, inside its
own transaction together with the version bump. The current version lives in the
single-row `database_metadata` table; a database without it is version 0.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass

from ..errors import MigrationFailedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Migration:
    version: int
    name: str
    statements: tuple[str, ...]


MIGRATIONS: tuple[Migration, ...] = (
    Migration(
        version=1,
        name="bootstrap",
        statements=(
            """
            CREATE TABLE IF NOT EXISTS tasks (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                title       TEXT NOT NULL DEFAULT '',
                description TEXT NOT NULL DEFAULT '',
                scheduled   TEXT NOT NULL DEFAULT 'anytime',
                completed   TEXT
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS links (
                from_id INTEGER NOT NULL REFERENCES tasks(id),
                to_id   INTEGER NOT NULL REFERENCES tasks(id),
                PRIMARY KEY (from_id, to_id)
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS database_metadata (
                version INTEGER NOT NULL
            )
            """,
        ),
    ),
    Migration(
        version=2,
        name="add_deleted",
        statements=("ALTER TABLE tasks ADD COLUMN deleted TEXT",),
    ),
    Migration(
        version=3,
        name="link_indexes",
        statements=(
            "CREATE INDEX IF NOT EXISTS idx_links_to ON links(to_id)",
            "CREATE INDEX IF NOT EXISTS idx_tasks_scheduled ON tasks(scheduled)",
        ),
    ),
)

LATEST_VERSION = MIGRATIONS[-1].version


def read_version(conn: sqlite3.Connection) -> int:
    """Current schema version; 0 when the metadata table is missing or empty."""
    try:
        row = conn.execute("SELECT version FROM database_metadata LIMIT 1").fetchone()
    except sqlite3.Error:
        return 0
    if row is None:
        return 0
    try:
        return int(row[0])
    except (TypeError, ValueError):
        return 0


def _write_version(conn: sqlite3.Connection, version: int) -> None:
    conn.execute("DELETE FROM database_metadata")
    conn.execute("INSERT INTO database_metadata(version) VALUES (?)", (int(version),))


class Migrator:
    """
    Brings a connection up to the latest schema.

    The connection must be in autocommit mode (isolation_level=None) so that
    BEGIN/COMMIT here are the only transaction boundaries; SQLite DDL is
    transactional, so a failing step leaves no partial schema behind.
    """

    def __init__(self, migrations: Sequence[Migration] = MIGRATIONS) -> None:
        versions = [m.version for m in migrations]
        if versions != sorted(set(versions)):
            raise ValueError(f"Migration versions must be unique and ascending: {versions}")
        self._migrations = tuple(migrations)

    @property
    def latest_version(self) -> int:
        return self._migrations[-1].version if self._migrations else 0

    def pending(self, current: int) -> list[Migration]:
        return [m for m in self._migrations if m.version > current]

    def migrate(self, conn: sqlite3.Connection) -> int:
        """Apply every pending step; returns the resulting version."""
        current = read_version(conn)

        if current > self.latest_version:
            logger.warning(
                "Database schema version %s is newer than the latest known %s; opening as is.",
                current,
                self.latest_version,
            )
            return current

        for migration in self.pending(current):
            self._apply(conn, migration)
            current = migration.version

        return current

    @staticmethod
    def _apply(conn: sqlite3.Connection, migration: Migration) -> None:
        try:
            conn.execute("BEGIN IMMEDIATE")
            for statement in migration.statements:
                conn.execute(statement)
            _write_version(conn, migration.version)
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            logger.error("Migration %s (%s) failed: %s", migration.version, migration.name, e)
            raise MigrationFailedError(migration.version, migration.name, str(e)) from e

        logger.info("Applied migration %s (%s)", migration.version, migration.name)
