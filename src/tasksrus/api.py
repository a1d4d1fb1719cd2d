# src/tasksrus/api.py

"""
Request/response command surface for a UI shell.

Every command takes a dict of arguments and returns a JSON-serializable
envelope:

    {"ok": True, "value": ...}
    {"ok": False, "error": {"kind": "NotFound", "message": "..."}}

Store errors are translated by their `kind`; they never escape invoke().
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from .errors import TaskStoreError
from .tasks.task_models import Task
from .tasks.task_store import TaskDetails, TaskStore
from .tasks.views import View

logger = logging.getLogger(__name__)

Envelope = dict[str, Any]
CommandFn = Callable[[dict[str, Any]], Any]


class InvalidArgumentError(ValueError):
    kind = "InvalidArgument"


def ok(value: Any = None) -> Envelope:
    return {"ok": True, "value": value}


def error(kind: str, message: str) -> Envelope:
    return {"ok": False, "error": {"kind": kind, "message": message}}


def _int_arg(args: dict[str, Any], name: str) -> int:
    if name not in args:
        raise InvalidArgumentError(f"Missing argument: {name}")
    raw = args[name]
    if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
        raise InvalidArgumentError(f"Argument {name} must be an integer, got {raw!r}")
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"Argument {name} must be an integer, got {raw!r}") from e


def _tasks(tasks: list[Task]) -> list[dict[str, Any]]:
    return [t.to_dict() for t in tasks]


def _details(d: TaskDetails) -> dict[str, Any]:
    return {
        "task": d.task.to_dict(),
        "parents": _tasks(d.parents),
        "children": _tasks(d.children),
        "views": [v.value for v in d.views],
    }


class TaskCommands:
    """Named commands bound to one TaskStore."""

    def __init__(self, store: TaskStore) -> None:
        self.store = store
        self._commands: dict[str, CommandFn] = {
            "new_task": self._new_task,
            "get_task": self._get_task,
            "get_task_details": self._get_task_details,
            "update_task": self._update_task,
            "link": self._link,
            "unlink": self._unlink,
            "get_view": self._get_view,
            "root_tasks": self._root_tasks,
            "parents": self._parents,
            "children": self._children,
            "search": self._search,
        }

    @property
    def names(self) -> list[str]:
        return sorted(self._commands)

    def invoke(self, name: str, args: Mapping[str, Any] | None = None) -> Envelope:
        fn = self._commands.get(name)
        if fn is None:
            return error("UnknownCommand", f"Unknown command: {name}")
        if args is not None and not isinstance(args, Mapping):
            kind = type(args).__name__
            return error("InvalidArgument", f"Arguments must be an object, got {kind}")

        try:
            return ok(fn(dict(args or {})))
        except TaskStoreError as e:
            logger.info("Command %s failed: %s: %s", name, e.kind, e)
            return error(e.kind, str(e))
        except InvalidArgumentError as e:
            return error(e.kind, str(e))

    # ---- handlers ----

    def _new_task(self, args: dict[str, Any]) -> dict[str, Any]:
        return self.store.new_task().to_dict()

    def _get_task(self, args: dict[str, Any]) -> dict[str, Any]:
        return self.store.get_task(_int_arg(args, "id")).to_dict()

    def _get_task_details(self, args: dict[str, Any]) -> dict[str, Any]:
        return _details(self.store.task_details(_int_arg(args, "id")))

    def _update_task(self, args: dict[str, Any]) -> None:
        payload = args.get("task")
        if not isinstance(payload, dict):
            raise InvalidArgumentError("Argument task must be an object")
        # A bad payload is the caller's fault, not store corruption.
        try:
            task = Task.from_dict(payload)
        except ValueError as e:
            raise InvalidArgumentError(str(e)) from e
        self.store.update_task(task)

    def _link(self, args: dict[str, Any]) -> None:
        self.store.link(_int_arg(args, "from_id"), _int_arg(args, "to_id"))

    def _unlink(self, args: dict[str, Any]) -> None:
        self.store.unlink(_int_arg(args, "from_id"), _int_arg(args, "to_id"))

    def _get_view(self, args: dict[str, Any]) -> list[dict[str, Any]]:
        try:
            view = View.from_name(str(args.get("view", "")))
        except ValueError as e:
            raise InvalidArgumentError(str(e)) from e
        return _tasks(self.store.view(view))

    def _root_tasks(self, args: dict[str, Any]) -> list[dict[str, Any]]:
        return _tasks(self.store.root_tasks())

    def _parents(self, args: dict[str, Any]) -> list[dict[str, Any]]:
        return _tasks(self.store.parents(_int_arg(args, "id")))

    def _children(self, args: dict[str, Any]) -> list[dict[str, Any]]:
        return _tasks(self.store.children(_int_arg(args, "id")))

    def _search(self, args: dict[str, Any]) -> list[dict[str, Any]]:
        token = args.get("token")
        if not isinstance(token, str):
            raise InvalidArgumentError("Argument token must be a string")
        return _tasks(self.store.search(token))
