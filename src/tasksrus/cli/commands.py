# src/tasksrus/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Callable
from typing import Any, cast

from ..core.state import AppState

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Slash-command registry used by the console shell (/help, /new, /view, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting ----


def format_task(task: dict[str, Any]) -> str:
    mark = "x" if task.get("completed") else " "
    title = task.get("title") or "(untitled)"
    line = f"[{mark}] #{task['id']} {title} ({task['scheduled']})"
    if task.get("deleted"):
        line += f" [trashed {task['deleted']}]"
    return line


def format_tasks(header: str, tasks: list[dict[str, Any]]) -> str:
    if not tasks:
        return f"{header}: nothing here."
    return "\n".join([f"{header}:"] + [f"  {format_task(t)}" for t in tasks])


def _error_text(env: dict[str, Any]) -> str:
    err = env["error"]
    return f"Error [{err['kind']}]: {err['message']}"


def _parse_id(raw: str) -> int | None:
    try:
        return int(raw.lstrip("#"))
    except ValueError:
        return None


def _invoke(state: AppState, name: str, **args: Any) -> tuple[Any, str | None]:
    env = state.commands.invoke(name, args)
    if env["ok"]:
        return env["value"], None
    logger.debug("Command %s rejected: %s", name, env["error"])
    return None, _error_text(env)


def _edit(state: AppState, task_id: int, **changes: Any) -> str:
    """Read-modify-write one task through the command surface."""
    task, err = _invoke(state, "get_task", id=task_id)
    if err:
        return err
    task.update(changes)
    _, err = _invoke(state, "update_task", task=task)
    if err:
        return err
    return f"Updated: {format_task(task)}"


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_new(state: AppState, args: list[str]) -> str:
    task, err = _invoke(state, "new_task")
    if err:
        return err
    if args:
        return _edit(state, task["id"], title=" ".join(args))
    return f"Created: {format_task(task)}"


def cmd_show(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args[0]) if args else None
    if task_id is None:
        return "Usage: /show ID"
    details, err = _invoke(state, "get_task_details", id=task_id)
    if err:
        return err
    task = details["task"]
    lines = [format_task(task)]
    if task.get("description"):
        lines.append(f"  {task['description']}")
    if task.get("completed"):
        lines.append(f"  completed: {task['completed']}")
    views = ", ".join(details["views"]) or "-"
    lines.append(f"  views: {views}")
    for p in details["parents"]:
        lines.append(f"  parent: {format_task(p)}")
    for c in details["children"]:
        lines.append(f"  child:  {format_task(c)}")
    return "\n".join(lines)


def _text_field(state: AppState, args: list[str], field_name: str, usage: str) -> str:
    task_id = _parse_id(args[0]) if args else None
    if task_id is None:
        return usage
    return _edit(state, task_id, **{field_name: " ".join(args[1:])})


def cmd_title(state: AppState, args: list[str]) -> str:
    return _text_field(state, args, "title", "Usage: /title ID TEXT")


def cmd_note(state: AppState, args: list[str]) -> str:
    return _text_field(state, args, "description", "Usage: /note ID TEXT")


def cmd_schedule(state: AppState, args: list[str]) -> str:
    """
    /schedule ID anytime|someday|today|YYYY-MM-DD
    """
    task_id = _parse_id(args[0]) if args else None
    if task_id is None or len(args) < 2:
        return "Usage: /schedule ID anytime|someday|today|YYYY-MM-DD"

    when = args[1].lower()
    if when == "today":
        when = state.store.current_date().isoformat()
    return _edit(state, task_id, scheduled=when)


def _stamp(state: AppState, args: list[str], field_name: str, set_it: bool, usage: str) -> str:
    task_id = _parse_id(args[0]) if args else None
    if task_id is None:
        return usage
    value = state.store.current_date().isoformat() if set_it else None
    return _edit(state, task_id, **{field_name: value})


def cmd_done(state: AppState, args: list[str]) -> str:
    return _stamp(state, args, "completed", True, "Usage: /done ID")


def cmd_undone(state: AppState, args: list[str]) -> str:
    return _stamp(state, args, "completed", False, "Usage: /undone ID")


def cmd_trash(state: AppState, args: list[str]) -> str:
    return _stamp(state, args, "deleted", True, "Usage: /trash ID")


def cmd_restore(state: AppState, args: list[str]) -> str:
    return _stamp(state, args, "deleted", False, "Usage: /restore ID")


def _edge(state: AppState, args: list[str], command: str) -> str:
    ids = [_parse_id(a) for a in args[:2]]
    if len(ids) < 2 or None in ids:
        return f"Usage: /{command} FROM_ID TO_ID"
    from_id, to_id = ids
    _, err = _invoke(state, command, from_id=from_id, to_id=to_id)
    if err:
        return err
    arrow = "->" if command == "link" else "-/->"
    return f"OK: #{from_id} {arrow} #{to_id}"


def cmd_link(state: AppState, args: list[str]) -> str:
    return _edge(state, args, "link")


def cmd_unlink(state: AppState, args: list[str]) -> str:
    return _edge(state, args, "unlink")


def cmd_view(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /view inbox|today|upcoming|anytime|someday|logbook|trash"
    tasks, err = _invoke(state, "get_view", view=args[0])
    if err:
        return err
    return format_tasks(args[0].capitalize(), tasks)


def cmd_roots(state: AppState, args: list[str]) -> str:
    tasks, err = _invoke(state, "root_tasks")
    if err:
        return err
    return format_tasks("Projects and standalone tasks", tasks)


def cmd_search(
    state: AppState,
    args: list[str],
    emit: CommandEmitter | None = None,
) -> str:
    if not args:
        return "Usage: /search TEXT"
    token = " ".join(args)
    if emit:
        with contextlib.suppress(Exception):
            emit(f"Searching for {token!r}...")
    tasks, err = _invoke(state, "search", token=token)
    if err:
        return err
    return format_tasks(f"Matches for {token!r}", tasks)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("new", cmd_new, help_text="Create a task: /new [title].")
registry.register("show", cmd_show, help_text="Show a task with parents/children: /show ID.")
registry.register("title", cmd_title, help_text="Set the title: /title ID TEXT.")
registry.register("note", cmd_note, help_text="Set the description: /note ID TEXT.")
registry.register(
    "schedule",
    cmd_schedule,
    help_text="Schedule: /schedule ID anytime|someday|today|YYYY-MM-DD.",
)
registry.register("done", cmd_done, help_text="Mark completed today: /done ID.")
registry.register("undone", cmd_undone, help_text="Clear completion: /undone ID.")
registry.register("trash", cmd_trash, help_text="Move to trash: /trash ID.", aliases=["rm"])
registry.register("restore", cmd_restore, help_text="Take out of trash: /restore ID.")
registry.register("link", cmd_link, help_text="Put TO under FROM: /link FROM TO.")
registry.register("unlink", cmd_unlink, help_text="Remove an edge: /unlink FROM TO.")
registry.register(
    "view",
    cmd_view,
    help_text="List a view: /view inbox|today|upcoming|anytime|someday|logbook|trash.",
    aliases=["v"],
)
registry.register("roots", cmd_roots, help_text="List projects and standalone tasks.")
registry.register("search", cmd_search, help_text="Case-sensitive search: /search TEXT.")
