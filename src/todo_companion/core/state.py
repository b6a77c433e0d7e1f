# src/todo_companion/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .ports import TaskListRepo


@dataclass
class AppState:
    # Settings object (config.Settings or a test SimpleNamespace).
    settings: Any
    task_store: TaskListRepo
