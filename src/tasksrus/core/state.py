# src/tasksrus/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field

from ..api import TaskCommands
from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    # Settings object (real Settings or a test namespace).
    settings: object
    store: TaskStore
    commands: TaskCommands = field(init=False)

    def __post_init__(self) -> None:
        self.commands = TaskCommands(self.store)
