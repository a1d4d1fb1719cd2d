# src/tasksrus/tasks/__init__.py

from .task_models import ANYTIME, SOMEDAY, Scheduled, ScheduledKind, Task
from .task_store import TaskDetails, TaskStore
from .views import View

__all__ = [
    "ANYTIME",
    "SOMEDAY",
    "Scheduled",
    "ScheduledKind",
    "Task",
    "TaskDetails",
    "TaskStore",
    "View",
]
