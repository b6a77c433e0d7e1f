# src/todo_companion/todo/task_models.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Transitions only move forward: pending -> executing -> done
    (pending -> done is allowed, skipping the timer).
    """

    PENDING = "pending"
    EXECUTING = "executing"
    DONE = "done"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


def new_task_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class Task:
    content: str
    status: TaskStatus
    created_at: datetime

    assignee_name: str | None = None
    executor_name: str | None = None
    completed_by_name: str | None = None

    start_time: datetime | None = None
    end_time: datetime | None = None

    id: str = field(default_factory=new_task_id)


TaskList = list[Task]


@dataclass(slots=True, frozen=True)
class StoredTaskList:
    """A conversation's tasks together with the version they were read at (0 = no record yet)."""

    conversation_id: str
    tasks: TaskList
    version: int = 0
