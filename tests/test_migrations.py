# tests/test_migrations.py

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from tasksrus.errors import MigrationFailedError
from tasksrus.tasks.migrations import LATEST_VERSION, MIGRATIONS, Migration, Migrator, read_version
from tasksrus.tasks.task_store import TaskStore


def _connect(path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(path), isolation_level=None)
    conn.row_factory = sqlite3.Row
    return conn


def _columns(conn: sqlite3.Connection, table: str) -> set[str]:
    return {row["name"] for row in conn.execute(f"PRAGMA table_info({table})")}


def test_fresh_database_reaches_latest_version(tmp_path: Path) -> None:
    conn = _connect(tmp_path / "db.sqlite")
    assert read_version(conn) == 0

    assert Migrator().migrate(conn) == LATEST_VERSION
    assert read_version(conn) == LATEST_VERSION
    assert "deleted" in _columns(conn, "tasks")
    assert _columns(conn, "links") == {"from_id", "to_id"}
    (rows,) = conn.execute("SELECT COUNT(*) FROM database_metadata").fetchone()
    assert rows == 1


def test_migrate_twice_is_a_no_op(tmp_path: Path) -> None:
    conn = _connect(tmp_path / "db.sqlite")
    Migrator().migrate(conn)
    conn.execute("INSERT INTO tasks(title) VALUES ('keep me')")

    assert Migrator().migrate(conn) == LATEST_VERSION
    (title,) = conn.execute("SELECT title FROM tasks").fetchone()
    assert title == "keep me"


def test_version_one_store_is_upgraded_in_place(tmp_path: Path) -> None:
    conn = _connect(tmp_path / "db.sqlite")
    Migrator(MIGRATIONS[:1]).migrate(conn)
    conn.execute("INSERT INTO tasks(title, scheduled) VALUES ('old', 'someday')")
    assert read_version(conn) == 1
    assert "deleted" not in _columns(conn, "tasks")

    Migrator().migrate(conn)

    assert read_version(conn) == LATEST_VERSION
    row = conn.execute("SELECT title, scheduled, deleted FROM tasks").fetchone()
    assert tuple(row) == ("old", "someday", None)


def test_failing_step_rolls_back_and_reports(tmp_path: Path) -> None:
    conn = _connect(tmp_path / "db.sqlite")
    Migrator().migrate(conn)

    broken = Migration(
        version=LATEST_VERSION + 1,
        name="broken",
        statements=(
            "ALTER TABLE tasks ADD COLUMN priority INTEGER",
            "ALTER TABLE no_such_table ADD COLUMN x TEXT",
        ),
    )
    with pytest.raises(MigrationFailedError) as ei:
        Migrator((*MIGRATIONS, broken)).migrate(conn)

    assert ei.value.version == LATEST_VERSION + 1
    assert ei.value.name == "broken"
    assert "priority" not in _columns(conn, "tasks")
    assert read_version(conn) == LATEST_VERSION
    assert not conn.in_transaction


def test_open_aborts_on_migration_failure(tmp_path: Path) -> None:
    db = tmp_path / "db.sqlite"
    broken = Migration(version=1, name="bad_sql", statements=("CREATE TABLE (",))

    with pytest.raises(MigrationFailedError):
        TaskStore.open(db, migrator=Migrator((broken,)))

    conn = _connect(db)
    assert read_version(conn) == 0


def test_newer_schema_is_left_alone(tmp_path: Path) -> None:
    conn = _connect(tmp_path / "db.sqlite")
    Migrator().migrate(conn)
    conn.execute("UPDATE database_metadata SET version = ?", (LATEST_VERSION + 5,))

    assert Migrator().migrate(conn) == LATEST_VERSION + 5


def test_migration_versions_must_ascend() -> None:
    with pytest.raises(ValueError):
        Migrator((MIGRATIONS[1], MIGRATIONS[0]))
