# src/todo_companion/core/ports.py

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps connectors/storage swappable and makes testing easier.
"""

from __future__ import annotations

from typing import Protocol

from ..todo.task_models import StoredTaskList, TaskList


class TaskListRepo(Protocol):
    """Durable conversation -> task list mapping with versioned saves."""

    def load(self, conversation_id: str) -> StoredTaskList: ...

    def save(self, conversation_id: str, tasks: TaskList, *, expected_version: int) -> int: ...


class ProfileLookup(Protocol):
    """
    Connector-side port: turn a platform sender id into a display name.

    Returning None means "unknown"; the core then falls back to the raw id.
    """

    def display_name(self, sender_id: str) -> str | None: ...
