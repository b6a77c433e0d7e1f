# src/todo_companion/todo/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from datetime import datetime
from pathlib import Path
from typing import Any

from .task_models import StoredTaskList, Task, TaskList, TaskStatus

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Persistence failed; the attempted change must not be assumed applied."""


class VersionConflict(StoreError):
    """Someone else saved the list after we loaded it."""

    def __init__(self, conversation_id: str, expected_version: int) -> None:
        super().__init__(
            f"task list {conversation_id!r} changed since version {expected_version}"
        )
        self.conversation_id = conversation_id
        self.expected_version = expected_version


# ---- (de)serialization ----


def _dt_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _str_to_dt(raw: Any) -> datetime | None:
    if not raw:
        return None
    return datetime.fromisoformat(str(raw))


def task_to_dict(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "content": task.content,
        "status": task.status.value,
        "created_at": _dt_to_str(task.created_at),
        "assignee_name": task.assignee_name,
        "executor_name": task.executor_name,
        "completed_by_name": task.completed_by_name,
        "start_time": _dt_to_str(task.start_time),
        "end_time": _dt_to_str(task.end_time),
    }


def task_from_dict(data: dict[str, Any]) -> Task:
    created_at = _str_to_dt(data.get("created_at"))
    if created_at is None:
        raise ValueError("task record is missing created_at")
    return Task(
        id=str(data["id"]),
        content=str(data.get("content") or ""),
        status=TaskStatus.from_db(data.get("status")),
        created_at=created_at,
        assignee_name=data.get("assignee_name"),
        executor_name=data.get("executor_name"),
        completed_by_name=data.get("completed_by_name"),
        start_time=_str_to_dt(data.get("start_time")),
        end_time=_str_to_dt(data.get("end_time")),
    )


def tasks_to_json(tasks: TaskList) -> str:
    return json.dumps([task_to_dict(t) for t in tasks], ensure_ascii=False)


def tasks_from_json(raw: str | None) -> TaskList:
    if not raw:
        return []
    val = json.loads(raw)
    if not isinstance(val, list):
        raise ValueError("Expected JSON array of tasks")
    return [task_from_dict(item) for item in val if isinstance(item, dict)]


class TaskListStore:
    """
    SQLite store: one row per conversation holding the whole ordered task list.

    Saves are compare-and-swap on a version counter, so two requests that
    loaded the same version cannot both win; the loser gets VersionConflict
    and is expected to redo load -> apply -> save.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_lists()
        except StoreError:
            total = -1
        logger.info("TaskListStore ready db=%s lists=%s", self._db_path, total)

    def close(self) -> None:
        """Shutdown hook (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        except sqlite3.Error as e:
            raise StoreError(f"cannot open {self._db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS task_lists (
                    conversation_id TEXT PRIMARY KEY,
                    version INTEGER NOT NULL DEFAULT 1,
                    tasks TEXT NOT NULL DEFAULT '[]',
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"schema setup failed: {e}") from e
        finally:
            conn.close()

    # ---- public API ----

    def count_lists(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM task_lists").fetchone()
            return int(n)
        except sqlite3.Error as e:
            raise StoreError(f"count failed: {e}") from e
        finally:
            conn.close()

    def load(self, conversation_id: str) -> StoredTaskList:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT version, tasks FROM task_lists WHERE conversation_id = ?",
                (conversation_id,),
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"load failed for {conversation_id!r}: {e}") from e
        finally:
            conn.close()

        if row is None:
            return StoredTaskList(conversation_id=conversation_id, tasks=[], version=0)

        try:
            tasks = tasks_from_json(row["tasks"])
        except (ValueError, KeyError, TypeError) as e:
            raise StoreError(f"corrupt task list for {conversation_id!r}: {e}") from e

        return StoredTaskList(
            conversation_id=conversation_id,
            tasks=tasks,
            version=int(row["version"]),
        )

    def save(self, conversation_id: str, tasks: TaskList, *, expected_version: int) -> int:
        """
        Overwrite the conversation's list if it is still at expected_version.

        Returns the new version. Raises VersionConflict if another writer got
        there first, StoreError for anything else.
        """
        payload = tasks_to_json(tasks)
        now = time.time()
        new_version = int(expected_version) + 1

        conn = self._get_conn()
        try:
            if expected_version == 0:
                cur = conn.execute(
                    """
                    INSERT OR IGNORE INTO task_lists(conversation_id, version, tasks, updated_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (conversation_id, new_version, payload, now),
                )
            else:
                cur = conn.execute(
                    """
                    UPDATE task_lists
                    SET tasks = ?, version = ?, updated_at = ?
                    WHERE conversation_id = ?
                      AND version = ?
                    """,
                    (payload, new_version, now, conversation_id, int(expected_version)),
                )
            conn.commit()
            claimed = cur.rowcount == 1
        except sqlite3.Error as e:
            raise StoreError(f"save failed for {conversation_id!r}: {e}") from e
        finally:
            conn.close()

        if not claimed:
            raise VersionConflict(conversation_id, expected_version)

        logger.debug(
            "Task list saved conversation=%s version=%s tasks=%d",
            conversation_id,
            new_version,
            len(tasks),
        )
        return new_version
