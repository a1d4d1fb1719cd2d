# src/tasksrus/tasks/views.py

"""
View classification.

A view is a derived, read-only bucket of tasks. The same predicates exist twice:
as SQL fragments (what TaskStore queries) and as `belongs_to` (pure Python, used
for a single task whose link flags are already known). Keep them in sync.

Trash wins over everything: a deleted task is in Trash and in no other view.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import StrEnum

from .task_models import ScheduledKind, Task


class View(StrEnum):
    INBOX = "Inbox"
    TODAY = "Today"
    UPCOMING = "Upcoming"
    ANYTIME = "Anytime"
    SOMEDAY = "Someday"
    LOGBOOK = "Logbook"
    TRASH = "Trash"

    @classmethod
    def from_name(cls, raw: str) -> View:
        """Case-insensitive lookup ("inbox", "Inbox", "INBOX")."""
        needle = (raw or "").strip().lower()
        for v in cls:
            if v.value.lower() == needle:
                return v
        raise ValueError(f"Unknown view: {raw!r}")


@dataclass(frozen=True, slots=True)
class ViewQuery:
    where: str
    order_by: str = "tasks.id ASC"
    uses_today: bool = False


_OPEN = "tasks.completed IS NULL AND tasks.deleted IS NULL"
_HAS_PARENT = "EXISTS (SELECT 1 FROM links WHERE links.to_id = tasks.id)"
_HAS_CHILD = "EXISTS (SELECT 1 FROM links WHERE links.from_id = tasks.id)"
# 'anytime'/'someday' sort after digits, so date comparisons need this guard.
_IS_DAY = "tasks.scheduled GLOB '[0-9][0-9][0-9][0-9]-[0-9][0-9]-[0-9][0-9]'"

VIEW_QUERIES: dict[View, ViewQuery] = {
    View.INBOX: ViewQuery(
        f"tasks.scheduled = 'anytime' AND {_OPEN} AND NOT {_HAS_PARENT} AND NOT {_HAS_CHILD}"
    ),
    View.TODAY: ViewQuery(
        f"{_IS_DAY} AND tasks.scheduled = :today AND {_OPEN}",
        uses_today=True,
    ),
    View.UPCOMING: ViewQuery(
        f"{_IS_DAY} AND tasks.scheduled > :today AND {_OPEN}",
        order_by="tasks.scheduled ASC, tasks.id ASC",
        uses_today=True,
    ),
    View.ANYTIME: ViewQuery(f"tasks.scheduled = 'anytime' AND {_OPEN} AND {_HAS_PARENT}"),
    View.SOMEDAY: ViewQuery(f"tasks.scheduled = 'someday' AND {_OPEN}"),
    View.LOGBOOK: ViewQuery("tasks.completed IS NOT NULL AND tasks.deleted IS NULL"),
    View.TRASH: ViewQuery("tasks.deleted IS NOT NULL"),
}


def view_sql(view: View) -> str:
    q = VIEW_QUERIES[view]
    return f"SELECT tasks.* FROM tasks WHERE {q.where} ORDER BY {q.order_by}"


def belongs_to(
    view: View,
    task: Task,
    *,
    has_parent: bool,
    has_children: bool,
    today: date,
) -> bool:
    if view is View.TRASH:
        return task.deleted is not None
    if task.deleted is not None:
        return False
    if view is View.LOGBOOK:
        return task.completed is not None
    if task.completed is not None:
        return False

    kind = task.scheduled.kind
    if view is View.INBOX:
        return kind is ScheduledKind.ANYTIME and not has_parent and not has_children
    if view is View.ANYTIME:
        return kind is ScheduledKind.ANYTIME and has_parent
    if view is View.SOMEDAY:
        return kind is ScheduledKind.SOMEDAY
    if view is View.TODAY:
        return kind is ScheduledKind.DAY and task.scheduled.day == today
    if view is View.UPCOMING:
        day = task.scheduled.day
        return kind is ScheduledKind.DAY and day is not None and day > today
    raise ValueError(f"Unhandled view: {view!r}")


def views_for(task: Task, *, has_parent: bool, has_children: bool, today: date) -> list[View]:
    return [
        v
        for v in View
        if belongs_to(v, task, has_parent=has_parent, has_children=has_children, today=today)
    ]
