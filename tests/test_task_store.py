# tests/test_task_store.py

from __future__ import annotations

import sqlite3
import threading
from datetime import date
from pathlib import Path

import pytest

from tasksrus.errors import (
    BackendFailureError,
    InvalidEncodingError,
    LinkCycleError,
    NotFoundError,
)
from tasksrus.tasks.task_models import SOMEDAY, Scheduled, Task
from tasksrus.tasks.task_store import TaskStore


def test_new_task_is_blank_and_persisted(store: TaskStore) -> None:
    task = store.new_task()
    assert task == Task(id=task.id)
    assert task.id > 0
    assert store.get_task(task.id) == task


def test_ids_strictly_increase(store: TaskStore) -> None:
    ids = [store.new_task().id for _ in range(5)]
    assert ids == sorted(ids)
    assert len(set(ids)) == 5
    assert ids[0] == 1


def test_ids_are_not_reused_after_reopen(tmp_path: Path) -> None:
    db = tmp_path / "db.sqlite"
    with TaskStore.open(db) as s:
        first = s.new_task()
        first.title = "survives restart"
        s.update_task(first)

    with TaskStore.open(db) as s:
        assert s.get_task(first.id).title == "survives restart"
        assert s.new_task().id == first.id + 1


def test_get_task_missing(store: TaskStore) -> None:
    with pytest.raises(NotFoundError) as ei:
        store.get_task(42)
    assert ei.value.task_id == 42
    assert ei.value.kind == "NotFound"


def test_update_task_overwrites_whole_record(store: TaskStore) -> None:
    task = store.new_task()
    task.title = "Buy milk"
    task.description = "semi-skimmed"
    task.scheduled = Scheduled.on(date(2024, 6, 1))
    task.completed = date(2024, 5, 17)
    task.deleted = date(2024, 5, 18)
    store.update_task(task)
    assert store.get_task(task.id) == task

    task.title = ""
    task.scheduled = SOMEDAY
    task.completed = None
    task.deleted = None
    store.update_task(task)
    assert store.get_task(task.id) == task


def test_update_missing_task_is_not_found(store: TaskStore) -> None:
    with pytest.raises(NotFoundError):
        store.update_task(Task(id=99, title="ghost"))
    assert store.count_tasks() == 0


def test_corrupt_scheduled_column_is_invalid_encoding(store: TaskStore, settings) -> None:
    task = store.new_task()
    raw = sqlite3.connect(str(settings.db_path))
    raw.execute("UPDATE tasks SET scheduled = 'next week' WHERE id = ?", (task.id,))
    raw.commit()
    raw.close()

    with pytest.raises(InvalidEncodingError):
        store.get_task(task.id)


def test_closed_store_reports_backend_failure(tmp_path: Path) -> None:
    s = TaskStore.open(tmp_path / "db.sqlite")
    s.close()
    with pytest.raises(BackendFailureError):
        s.new_task()


# ---- link graph ----


def test_link_parents_children_roots(store: TaskStore) -> None:
    t1 = store.new_task()
    t2 = store.new_task()

    store.link(t1.id, t2.id)

    assert store.root_tasks() == [t1]
    assert store.children(t1.id) == [t2]
    assert store.parents(t2.id) == [t1]


def test_traversal_filters_by_the_given_task(store: TaskStore) -> None:
    a, b, c, d = (store.new_task() for _ in range(4))
    store.link(a.id, b.id)
    store.link(c.id, d.id)

    assert store.children(a.id) == [b]
    assert store.children(c.id) == [d]
    assert store.parents(b.id) == [a]
    assert store.parents(d.id) == [c]
    assert store.children(b.id) == []
    assert store.parents(a.id) == []


def test_multiple_parents_and_children_are_ordered(store: TaskStore) -> None:
    p1, p2, child, other = (store.new_task() for _ in range(4))
    store.link(p2.id, child.id)
    store.link(p1.id, child.id)
    store.link(p1.id, other.id)

    assert store.parents(child.id) == [p1, p2]
    assert store.children(p1.id) == [child, other]
    assert store.root_tasks() == [p1, p2]


def test_link_is_idempotent(store: TaskStore) -> None:
    a, b = store.new_task(), store.new_task()
    store.link(a.id, b.id)
    store.link(a.id, b.id)
    assert store.children(a.id) == [b]


def test_unlink_restores_root_and_ignores_absent_edge(store: TaskStore) -> None:
    a, b = store.new_task(), store.new_task()
    store.unlink(a.id, b.id)

    store.link(a.id, b.id)
    store.unlink(a.id, b.id)
    store.unlink(a.id, b.id)

    assert store.root_tasks() == [a, b]
    assert store.children(a.id) == []


@pytest.mark.parametrize("op", ["link", "unlink"])
def test_edges_need_both_endpoints(store: TaskStore, op: str) -> None:
    a = store.new_task()
    with pytest.raises(NotFoundError):
        getattr(store, op)(a.id, 404)
    with pytest.raises(NotFoundError):
        getattr(store, op)(404, a.id)


def test_traversal_of_missing_task_is_not_found(store: TaskStore) -> None:
    with pytest.raises(NotFoundError):
        store.parents(5)
    with pytest.raises(NotFoundError):
        store.children(5)


def test_link_rejects_cycles(store: TaskStore) -> None:
    a, b, c = (store.new_task() for _ in range(3))
    store.link(a.id, b.id)
    store.link(b.id, c.id)

    with pytest.raises(LinkCycleError):
        store.link(a.id, a.id)
    with pytest.raises(LinkCycleError):
        store.link(c.id, a.id)
    with pytest.raises(LinkCycleError):
        store.link(b.id, a.id)

    assert store.parents(a.id) == []
    assert store.root_tasks() == [a]


def test_root_tasks_keeps_projects_with_children(store: TaskStore) -> None:
    project, sub, standalone = (store.new_task() for _ in range(3))
    store.link(project.id, sub.id)
    assert store.root_tasks() == [project, standalone]


def test_task_details_bundles_links_and_views(store: TaskStore) -> None:
    parent, task, child = (store.new_task() for _ in range(3))
    store.link(parent.id, task.id)
    store.link(task.id, child.id)

    details = store.task_details(task.id)
    assert details.task == task
    assert details.parents == [parent]
    assert details.children == [child]
    assert [v.value for v in details.views] == ["Anytime"]

    with pytest.raises(NotFoundError):
        store.task_details(999)


# ---- concurrency ----


def test_concurrent_writers_get_unique_ids(store: TaskStore) -> None:
    created: list[int] = []
    errors: list[BaseException] = []
    guard = threading.Lock()

    def worker() -> None:
        try:
            for _ in range(20):
                t = store.new_task()
                t.title = f"task {t.id}"
                store.update_task(t)
                store.inbox()
                with guard:
                    created.append(t.id)
        except BaseException as e:  # collected and asserted below
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for th in threads:
        th.start()
    for th in threads:
        th.join(timeout=30)

    assert errors == []
    assert len(created) == 160
    assert len(set(created)) == 160
    assert store.count_tasks() == 160
    assert all(store.get_task(i).title == f"task {i}" for i in created)


def test_transaction_keeps_original_error_after_engine_rollback(store: TaskStore) -> None:
    conn = store._conn

    with pytest.raises(RuntimeError, match="disk full"):
        with store._transaction(conn):
            conn.execute("ROLLBACK")
            raise RuntimeError("disk full")

    assert not conn.in_transaction
    assert store.new_task().id == 1
