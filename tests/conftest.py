# tests/conftest.py

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from todo_companion.core.state import AppState
from todo_companion.todo.task_store import TaskListStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="todo-test",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        console_user="tester",
        store_max_retries=16,
        matrix_enabled=False,
        matrix_rooms=[],
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskListStore:
    return TaskListStore(settings.tasks_db_path)


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskListStore) -> AppState:
    """AppState wired with the real SQLite store (its correctness is part of what we test)."""
    return AppState(settings=settings, task_store=store)


@pytest.fixture()
def t0() -> datetime:
    return datetime(2024, 3, 1, 9, 30, 0, tzinfo=UTC)
