# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from datetime import timedelta
from pathlib import Path

import pytest

from todo_companion.todo.task_models import Task, TaskStatus
from todo_companion.todo.task_store import StoreError, TaskListStore, VersionConflict


def test_load_missing_conversation_is_empty(store: TaskListStore) -> None:
    stored = store.load("C-nobody")
    assert stored.tasks == []
    assert stored.version == 0


def test_save_load_roundtrip_preserves_every_field(store: TaskListStore, t0) -> None:
    tasks = [
        Task(content="plain", status=TaskStatus.PENDING, created_at=t0),
        Task(
            content="timed",
            status=TaskStatus.DONE,
            created_at=t0,
            assignee_name="Alice",
            executor_name="Bob",
            completed_by_name="Carol",
            start_time=t0 + timedelta(minutes=1),
            end_time=t0 + timedelta(minutes=3, seconds=5),
        ),
    ]
    v1 = store.save("C1", tasks, expected_version=0)
    assert v1 == 1

    first = store.load("C1")
    assert first.tasks == tasks
    assert first.tasks[0].assignee_name is None
    assert first.tasks[0].start_time is None

    # save(load()) with nothing in between changes nothing but the version
    v2 = store.save("C1", first.tasks, expected_version=first.version)
    second = store.load("C1")
    assert second.version == v2 == 2
    assert second.tasks == first.tasks


def test_stale_version_is_rejected(store: TaskListStore, t0) -> None:
    store.save("C1", [Task(content="a", status=TaskStatus.PENDING, created_at=t0)], expected_version=0)
    reader_a = store.load("C1")
    reader_b = store.load("C1")

    store.save("C1", [*reader_a.tasks, Task(content="b", status=TaskStatus.PENDING, created_at=t0)],
               expected_version=reader_a.version)

    with pytest.raises(VersionConflict):
        store.save("C1", [*reader_b.tasks, Task(content="c", status=TaskStatus.PENDING, created_at=t0)],
                   expected_version=reader_b.version)

    assert [t.content for t in store.load("C1").tasks] == ["a", "b"]


def test_two_first_writers_cannot_both_create(store: TaskListStore, t0) -> None:
    store.save("C1", [Task(content="a", status=TaskStatus.PENDING, created_at=t0)], expected_version=0)
    with pytest.raises(VersionConflict):
        store.save("C1", [], expected_version=0)


def test_conversations_are_isolated(store: TaskListStore, t0) -> None:
    store.save("group", [Task(content="g", status=TaskStatus.PENDING, created_at=t0)], expected_version=0)
    assert store.load("room").tasks == []
    assert store.count_lists() == 1


def test_unknown_status_decodes_as_pending(tmp_path: Path) -> None:
    db = tmp_path / "legacy.sqlite3"
    store = TaskListStore(db)
    conn = sqlite3.connect(str(db))
    conn.execute(
        "INSERT INTO task_lists(conversation_id, version, tasks, updated_at) VALUES (?, ?, ?, ?)",
        ("C1", 3, '[{"id": "x1", "content": "old", "status": "archived", '
                  '"created_at": "2024-01-01T00:00:00+00:00"}]', 0.0),
    )
    conn.commit()
    conn.close()

    stored = store.load("C1")
    assert stored.version == 3
    assert stored.tasks[0].status == TaskStatus.PENDING
    assert stored.tasks[0].executor_name is None


def test_corrupt_row_raises_store_error(tmp_path: Path) -> None:
    db = tmp_path / "corrupt.sqlite3"
    store = TaskListStore(db)
    conn = sqlite3.connect(str(db))
    conn.execute(
        "INSERT INTO task_lists(conversation_id, version, tasks, updated_at) VALUES ('C1', 1, 'not json', 0)"
    )
    conn.commit()
    conn.close()

    with pytest.raises(StoreError):
        store.load("C1")
