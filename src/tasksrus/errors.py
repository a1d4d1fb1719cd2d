# src/tasksrus/errors.py

"""
Error kinds surfaced by the task store.

Every error carries a stable `kind` string so the command surface can hand it
to a UI shell without leaking Python exception types.
"""

from __future__ import annotations


class TaskStoreError(Exception):
    kind = "TaskStoreError"


class NotFoundError(TaskStoreError, LookupError):
    """A task id referenced by a lookup, update or link does not exist."""

    kind = "NotFound"

    def __init__(self, task_id: int) -> None:
        super().__init__(f"No such task with ID: {task_id}")
        self.task_id = task_id


class InvalidEncodingError(TaskStoreError, ValueError):
    """A persisted scheduled/date string could not be parsed."""

    kind = "InvalidEncoding"


class MigrationFailedError(TaskStoreError):
    kind = "MigrationFailed"

    def __init__(self, version: int, name: str, reason: str) -> None:
        super().__init__(f"Migration {version} ({name}) failed: {reason}")
        self.version = version
        self.name = name


class BackendFailureError(TaskStoreError):
    """SQLite reported a lower-level fault (I/O, constraint, disk full...)."""

    kind = "BackendFailure"


class LinkCycleError(TaskStoreError, ValueError):
    kind = "LinkCycle"

    def __init__(self, from_id: int, to_id: int) -> None:
        super().__init__(f"Linking {from_id} -> {to_id} would create a cycle")
        self.from_id = from_id
        self.to_id = to_id
