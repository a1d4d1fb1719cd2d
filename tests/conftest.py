# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from tasksrus.core.state import AppState
from tasksrus.tasks.task_store import TaskStore

from .fakes import FakeClock


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI layer.

    A SimpleNamespace rather than real config keeps tests isolated from the
    environment and any local .env file.
    """
    return SimpleNamespace(
        app_name="tasksrus-test",
        log_level="DEBUG",
        console_enabled=True,
        data_dir=tmp_path,
        db_path=tmp_path / "database.sqlite",
        log_dir=tmp_path,
        db_timeout=5.0,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(settings: SimpleNamespace, clock: FakeClock):
    """Real SQLite store (its correctness is what we test) with a controllable clock."""
    s = TaskStore.open(settings.db_path, clock=clock)
    yield s
    s.close()


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore) -> AppState:
    return AppState(settings=settings, store=store)
