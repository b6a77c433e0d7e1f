# tests/test_engine.py

from __future__ import annotations

from copy import deepcopy
from datetime import datetime, timedelta

import pytest

from todo_companion.todo import engine
from todo_companion.todo.parser import Add, Done, Help, Invalid, List, Start, Unknown, ValidationFailure
from todo_companion.todo.task_models import Task, TaskStatus


def _task(content: str, t0: datetime, status: TaskStatus = TaskStatus.PENDING, **kw) -> Task:
    return Task(content=content, status=status, created_at=t0, **kw)


def test_add_appends_pending_task(t0) -> None:
    before = [_task("old", t0)]
    res = engine.apply(before, Add("buy milk"), "Ann", t0)

    assert res.changed
    assert len(res.tasks) == len(before) + 1
    new = res.tasks[-1]
    assert new.content == "buy milk"
    assert new.status == TaskStatus.PENDING
    assert new.created_at == t0
    assert new.start_time is None and new.end_time is None
    assert new.executor_name is None and new.completed_by_name is None
    assert new.id and new.id != before[0].id
    assert "buy milk" in res.reply
    assert "Assigned" not in res.reply
    assert len(before) == 1


def test_add_with_assignee_mentions_it(t0) -> None:
    res = engine.apply([], Add("fix sink", assignee_name="Bob"), "Ann", t0)
    assert res.tasks[0].assignee_name == "Bob"
    assert "Assigned to: Bob" in res.reply


def test_start_sets_executor_and_timer(t0) -> None:
    tasks = [_task("a", t0), _task("b", t0)]
    res = engine.apply(tasks, Start(2), "Bob", t0)

    assert res.changed
    started = res.tasks[1]
    assert started.status == TaskStatus.EXECUTING
    assert started.start_time == t0
    assert started.executor_name == "Bob"
    assert "Bob" in res.reply and '"b"' in res.reply
    # input list untouched
    assert tasks[1].status == TaskStatus.PENDING


@pytest.mark.parametrize("index", [0, 3])
def test_start_out_of_range_is_invalid_and_changes_nothing(t0, index: int) -> None:
    tasks = [_task("a", t0), _task("b", t0)]
    snapshot = deepcopy(tasks)

    res = engine.apply(tasks, Start(index), "Bob", t0)

    assert not res.changed
    assert res.tasks == snapshot
    assert res.reply == engine.INVALID_PENDING_INDEX_TEXT


def test_start_then_done_index_follows_current_view(t0) -> None:
    tasks = [_task("first", t0), _task("second", t0)]

    after_start = engine.apply(tasks, Start(1), "Bob", t0)
    assert len(engine.pending_view(after_start.tasks)) == 1

    # Open view is now [first (executing), second (pending)]; a fresh start(1) means "second".
    res = engine.apply(after_start.tasks, Start(1), "Ann", t0)
    assert res.tasks[1].status == TaskStatus.EXECUTING
    assert res.tasks[1].executor_name == "Ann"

    res = engine.apply(after_start.tasks, Done(1), "Bob", t0 + timedelta(seconds=5))
    assert res.tasks[0].status == TaskStatus.DONE
    assert res.tasks[1].status == TaskStatus.PENDING


def test_done_reports_elapsed_minutes_and_seconds(t0) -> None:
    tasks = [
        _task("paint", t0, TaskStatus.EXECUTING, start_time=t0, executor_name="Bob"),
    ]
    end = t0 + timedelta(milliseconds=125000)

    res = engine.apply(tasks, Done(1), "Carol", end)

    done = res.tasks[0]
    assert done.status == TaskStatus.DONE
    assert done.end_time == end
    assert done.completed_by_name == "Carol"
    assert done.start_time == t0
    assert "2 minutes 5 seconds" in res.reply


def test_done_without_start_omits_elapsed(t0) -> None:
    res = engine.apply([_task("water plants", t0)], Done(1), "Ann", t0)
    assert res.tasks[0].status == TaskStatus.DONE
    assert res.tasks[0].start_time is None
    assert "Time spent" not in res.reply


@pytest.mark.parametrize("index", [0, 3])
def test_done_out_of_range_over_mixed_view_changes_nothing(t0, index: int) -> None:
    tasks = [
        _task("waiting", t0),
        _task("running", t0, TaskStatus.EXECUTING, start_time=t0, executor_name="Bob"),
        _task("closed", t0, TaskStatus.DONE, end_time=t0),
    ]
    snapshot = deepcopy(tasks)

    res = engine.apply(tasks, Done(index), "Ann", t0)

    assert not res.changed
    assert res.tasks == snapshot
    assert res.reply == engine.INVALID_OPEN_INDEX_TEXT


def test_done_out_of_range(t0) -> None:
    tasks = [_task("x", t0, TaskStatus.DONE, end_time=t0)]
    res = engine.apply(tasks, Done(1), "Ann", t0)
    assert not res.changed
    assert res.reply == engine.INVALID_OPEN_INDEX_TEXT


def test_elapsed_rounds_half_up() -> None:
    start = datetime(2024, 1, 1)
    assert engine.format_elapsed(start, start + timedelta(milliseconds=59500)) == "1 minutes 0 seconds"
    assert engine.format_elapsed(start, start + timedelta(milliseconds=1499)) == "0 minutes 1 seconds"
    assert engine.format_elapsed(start, start - timedelta(seconds=3)) == "0 minutes 0 seconds"


def test_duplicate_content_resolves_by_position_not_content(t0) -> None:
    tasks = [_task("same", t0), _task("same", t0)]
    res = engine.apply(tasks, Start(2), "Bob", t0)
    assert [t.status for t in res.tasks] == [TaskStatus.PENDING, TaskStatus.EXECUTING]
    assert res.tasks[1].id == tasks[1].id


def test_list_groups_executing_before_pending(t0) -> None:
    tasks = [
        _task("pending one", t0),
        _task("finished", t0, TaskStatus.DONE, end_time=t0),
        _task("doing", t0, TaskStatus.EXECUTING, assignee_name="Alice", executor_name="Bob", start_time=t0),
    ]
    res = engine.apply(tasks, List(), "Ann", t0)

    assert not res.changed
    lines = res.reply.splitlines()
    assert "#1: doing (@Alice) [executing by Bob]" in lines
    assert "#2: pending one" in lines
    assert "finished" not in res.reply


def test_list_empty_when_everything_done(t0) -> None:
    res = engine.apply([_task("x", t0, TaskStatus.DONE)], List(), "Ann", t0)
    assert res.reply == engine.EMPTY_LIST_TEXT
    assert engine.apply([], List(), "Ann", t0).reply == engine.EMPTY_LIST_TEXT


def test_help_never_mutates(t0) -> None:
    tasks = [_task("a", t0), _task("b", t0, TaskStatus.EXECUTING, start_time=t0)]
    snapshot = deepcopy(tasks)
    res = engine.apply(tasks, Help(), "Ann", t0)
    assert not res.changed
    assert res.tasks == snapshot
    for word in ("add", "list", "start", "done", "help"):
        assert word in res.reply


def test_unknown_and_invalid_reply_without_change(t0) -> None:
    tasks = [_task("a", t0)]
    unknown = engine.apply(tasks, Unknown(), "Ann", t0)
    assert not unknown.changed
    assert "help" in unknown.reply

    empty = engine.apply(tasks, Invalid(ValidationFailure.EMPTY_CONTENT), "Ann", t0)
    assert not empty.changed
    assert empty.reply == engine.EMPTY_CONTENT_TEXT

    bad = engine.apply(tasks, Invalid(ValidationFailure.INVALID_INDEX), "Ann", t0)
    assert not bad.changed
    assert bad.tasks == tasks
