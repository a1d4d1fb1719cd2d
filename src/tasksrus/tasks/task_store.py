# src/tasksrus/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from ..errors import BackendFailureError, LinkCycleError, NotFoundError, TaskStoreError
from .migrations import Migrator
from .task_models import Task, format_iso_date
from .views import VIEW_QUERIES, View, view_sql, views_for

logger = logging.getLogger(__name__)

Clock = Callable[[], date]


@dataclass(slots=True)
class TaskDetails:
    task: Task
    parents: list[Task] = field(default_factory=list)
    children: list[Task] = field(default_factory=list)
    views: list[View] = field(default_factory=list)


class TaskStore:
    """
    SQLite task store.

    Thread-safety:
    - one connection for the lifetime of the store
    - every public method holds self._lock for its whole unit of work,
      so at most one operation talks to SQLite at a time

    Use TaskStore.open(path): it runs pending migrations before returning.
    """

    def __init__(self, conn: sqlite3.Connection, *, clock: Clock | None = None) -> None:
        self._conn = conn
        self._lock = threading.Lock()
        self._clock: Clock = clock or date.today

    @classmethod
    def open(
        cls,
        db_path: str | Path,
        *,
        clock: Clock | None = None,
        migrator: Migrator | None = None,
        timeout: float = 30.0,
    ) -> TaskStore:
        db_path = Path(db_path)
        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                str(db_path),
                timeout=timeout,
                check_same_thread=False,
                isolation_level=None,
            )
        except (OSError, sqlite3.Error) as e:
            raise BackendFailureError(f"Cannot open task database {db_path}: {e}") from e

        conn.row_factory = sqlite3.Row
        cls._configure_conn(conn)

        try:
            version = (migrator or Migrator()).migrate(conn)
        except TaskStoreError:
            conn.close()
            raise

        store = cls(conn, clock=clock)
        logger.info("TaskStore ready db=%s schema=%s", db_path, version)
        return store

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> TaskStore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ---- low-level helpers ----

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA foreign_keys=ON")
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def _locked(self) -> Iterator[sqlite3.Connection]:
        """Hold the store lock; re-raise engine faults as BackendFailureError."""
        with self._lock:
            try:
                yield self._conn
            except sqlite3.Error as e:
                raise BackendFailureError(str(e)) from e

    @contextlib.contextmanager
    def _transaction(self, conn: sqlite3.Connection) -> Iterator[None]:
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield
        except BaseException:
            # SQLite may already have rolled back on its own (e.g. SQLITE_FULL).
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")

    def current_date(self) -> date:
        """'Today' as the store's clock sees it; read fresh on every call."""
        return self._clock()

    def _today(self, today: date | None) -> date:
        return today if today is not None else self._clock()

    @staticmethod
    def _fetch_tasks(conn: sqlite3.Connection, sql: str, params: Any = ()) -> list[Task]:
        return [Task.from_row(r) for r in conn.execute(sql, params).fetchall()]

    @staticmethod
    def _exists(conn: sqlite3.Connection, task_id: int) -> bool:
        row = conn.execute("SELECT 1 FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
        return row is not None

    def _require(self, conn: sqlite3.Connection, *task_ids: int) -> None:
        for task_id in task_ids:
            if not self._exists(conn, task_id):
                raise NotFoundError(task_id)

    # ---- tasks ----

    def count_tasks(self) -> int:
        with self._locked() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def new_task(self) -> Task:
        with self._locked() as conn:
            cur = conn.execute("INSERT INTO tasks DEFAULT VALUES")
            rowid = cur.lastrowid
            if rowid is None:
                raise BackendFailureError("SQLite did not return lastrowid for tasks insert")
            task = Task(id=int(rowid))
        logger.debug("Task created id=%s", task.id)
        return task

    def get_task(self, task_id: int) -> Task:
        with self._locked() as conn:
            return self._get_task(conn, task_id)

    def _get_task(self, conn: sqlite3.Connection, task_id: int) -> Task:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
        if row is None:
            raise NotFoundError(task_id)
        return Task.from_row(row)

    def update_task(self, task: Task) -> None:
        """Overwrite every mutable field of the row keyed by task.id."""
        with self._locked() as conn:
            cur = conn.execute(
                """
                UPDATE tasks
                SET title = ?,
                    description = ?,
                    scheduled = ?,
                    completed = ?,
                    deleted = ?
                WHERE id = ?
                """,
                (
                    task.title or "",
                    task.description or "",
                    task.scheduled.format(),
                    format_iso_date(task.completed) if task.completed is not None else None,
                    format_iso_date(task.deleted) if task.deleted is not None else None,
                    int(task.id),
                ),
            )
            if cur.rowcount == 0:
                raise NotFoundError(task.id)
        logger.debug("Task updated id=%s scheduled=%s", task.id, task.scheduled)

    # ---- link graph ----

    def link(self, from_id: int, to_id: int) -> None:
        """
        Add the edge from_id -> to_id (from_id organizes to_id).

        Idempotent. Self-links and edges that would close a cycle are rejected.
        """
        with self._locked() as conn:
            self._require(conn, from_id, to_id)
            with self._transaction(conn):
                if self._edge_exists(conn, from_id, to_id):
                    return
                if from_id == to_id or self._reachable(conn, to_id, from_id):
                    raise LinkCycleError(from_id, to_id)
                conn.execute(
                    "INSERT INTO links(from_id, to_id) VALUES (?, ?)",
                    (int(from_id), int(to_id)),
                )
        logger.debug("Linked %s -> %s", from_id, to_id)

    def unlink(self, from_id: int, to_id: int) -> None:
        with self._locked() as conn:
            self._require(conn, from_id, to_id)
            conn.execute(
                "DELETE FROM links WHERE from_id = ? AND to_id = ?",
                (int(from_id), int(to_id)),
            )
        logger.debug("Unlinked %s -> %s", from_id, to_id)

    @staticmethod
    def _edge_exists(conn: sqlite3.Connection, from_id: int, to_id: int) -> bool:
        row = conn.execute(
            "SELECT 1 FROM links WHERE from_id = ? AND to_id = ?",
            (int(from_id), int(to_id)),
        ).fetchone()
        return row is not None

    @staticmethod
    def _reachable(conn: sqlite3.Connection, start: int, target: int) -> bool:
        """True if target can be reached from start by following edges."""
        row = conn.execute(
            """
            WITH RECURSIVE descendants(id) AS (
                SELECT to_id FROM links WHERE from_id = :start
                UNION
                SELECT links.to_id FROM links JOIN descendants ON links.from_id = descendants.id
            )
            SELECT 1 FROM descendants WHERE id = :target LIMIT 1
            """,
            {"start": int(start), "target": int(target)},
        ).fetchone()
        return row is not None

    def root_tasks(self) -> list[Task]:
        """Tasks without a parent (projects and standalone items)."""
        with self._locked() as conn:
            return self._fetch_tasks(
                conn,
                """
                SELECT tasks.*
                FROM tasks
                WHERE NOT EXISTS (SELECT 1 FROM links WHERE links.to_id = tasks.id)
                ORDER BY tasks.id ASC
                """,
            )

    def parents(self, task_id: int) -> list[Task]:
        with self._locked() as conn:
            self._require(conn, task_id)
            return self._parents(conn, task_id)

    def children(self, task_id: int) -> list[Task]:
        with self._locked() as conn:
            self._require(conn, task_id)
            return self._children(conn, task_id)

    def _parents(self, conn: sqlite3.Connection, task_id: int) -> list[Task]:
        return self._fetch_tasks(
            conn,
            """
            SELECT tasks.*
            FROM tasks
            INNER JOIN links ON links.from_id = tasks.id
            WHERE links.to_id = ?
            ORDER BY tasks.id ASC
            """,
            (int(task_id),),
        )

    def _children(self, conn: sqlite3.Connection, task_id: int) -> list[Task]:
        return self._fetch_tasks(
            conn,
            """
            SELECT tasks.*
            FROM tasks
            INNER JOIN links ON links.to_id = tasks.id
            WHERE links.from_id = ?
            ORDER BY tasks.id ASC
            """,
            (int(task_id),),
        )

    def task_details(self, task_id: int, *, today: date | None = None) -> TaskDetails:
        """A task with its parents, children and the views it currently shows up in."""
        day = self._today(today)
        with self._locked() as conn:
            task = self._get_task(conn, task_id)
            parents = self._parents(conn, task_id)
            children = self._children(conn, task_id)
        return TaskDetails(
            task=task,
            parents=parents,
            children=children,
            views=views_for(task, has_parent=bool(parents), has_children=bool(children), today=day),
        )

    # ---- views ----

    def view(self, view: View, *, today: date | None = None) -> list[Task]:
        params: dict[str, str] = {}
        if VIEW_QUERIES[view].uses_today:
            params["today"] = format_iso_date(self._today(today))
        with self._locked() as conn:
            return self._fetch_tasks(conn, view_sql(view), params)

    def inbox(self) -> list[Task]:
        return self.view(View.INBOX)

    def today(self, today: date | None = None) -> list[Task]:
        return self.view(View.TODAY, today=today)

    def upcoming(self, today: date | None = None) -> list[Task]:
        return self.view(View.UPCOMING, today=today)

    def anytime(self) -> list[Task]:
        return self.view(View.ANYTIME)

    def someday(self) -> list[Task]:
        return self.view(View.SOMEDAY)

    def logbook(self) -> list[Task]:
        return self.view(View.LOGBOOK)

    def trash(self) -> list[Task]:
        return self.view(View.TRASH)

    def search(self, token: str) -> list[Task]:
        """
        Naive case-sensitive substring match on title/description.

        instr() is used instead of LIKE, which is case-insensitive for ASCII.
        """
        with self._locked() as conn:
            return self._fetch_tasks(
                conn,
                """
                SELECT tasks.*
                FROM tasks
                WHERE tasks.deleted IS NULL
                  AND (
                    :token = ''
                        OR instr(tasks.title, :token) > 0
                        OR instr(tasks.description, :token) > 0
                    )
                ORDER BY tasks.id ASC
                """,
                {"token": str(token)},
            )
