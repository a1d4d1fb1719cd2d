# src/tasksrus/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- opens (and migrates) the task database and wires it into AppState.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date

from ..config import get_settings
from ..core.state import AppState
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, clock: Callable[[], date] | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings(). Raises TaskStoreError when the
    database cannot be opened or migrated.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = TaskStore.open(
        settings.db_path,
        clock=clock,
        timeout=float(getattr(settings, "db_timeout", 30.0)),
    )
    return AppState(settings=settings, store=store)
