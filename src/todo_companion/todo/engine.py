# src/todo_companion/todo/engine.py

"""
Task list engine.

apply() is a pure transition: it never mutates the list it is given and has
no I/O. Changed tasks are replaced by copies, so the caller can still compare
against (or retry from) the original list.

Index addressing: "start N" counts pending tasks only, "done N" counts
pending + executing tasks. Views are rebuilt on every call, so the same number
may point at a different task after any change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from . import parser as cmd
from .task_models import Task, TaskList, TaskStatus

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "Todo bot commands:\n"
    "1. add <task> [@name]: add a to-do item (optionally assigned to @name).\n"
    "2. list: show all open items (executing first, then pending).\n"
    "3. start <n>: start the timer on pending item n.\n"
    "4. done <n>: mark open item n as done (pending or executing).\n"
    "5. help: show this message."
)
EMPTY_LIST_TEXT = "The to-do list is empty!"
UNKNOWN_TEXT = "Command not recognized. Type 'help' to see what I can do."
INVALID_PENDING_INDEX_TEXT = "Invalid pending-item number (e.g. start 1). Type 'list' to see the items."
INVALID_OPEN_INDEX_TEXT = "Invalid open-item number (e.g. done 1). Type 'list' to see the items."
EMPTY_CONTENT_TEXT = "Please write what to add, e.g. add buy milk @alice"
LIST_FOOTER_TEXT = "Type 'start <n>' to start a pending item or 'done <n>' to finish one."


@dataclass(slots=True, frozen=True)
class ApplyResult:
    tasks: TaskList
    reply: str
    changed: bool = False


# ---- views ----


def _view(tasks: TaskList, *statuses: TaskStatus) -> list[Task]:
    return [t for t in tasks if t.status in statuses]


def pending_view(tasks: TaskList) -> list[Task]:
    return _view(tasks, TaskStatus.PENDING)


def open_view(tasks: TaskList) -> list[Task]:
    return _view(tasks, TaskStatus.PENDING, TaskStatus.EXECUTING)


def _resolve(view: list[Task], index: int) -> Task | None:
    if 1 <= index <= len(view):
        return view[index - 1]
    return None


def _replace_by_id(tasks: TaskList, updated: Task) -> TaskList:
    return [updated if t.id == updated.id else t for t in tasks]


# ---- formatting ----


def format_elapsed(start: datetime, end: datetime) -> str:
    # Half-up rounding to whole seconds; clock skew never yields negative time.
    total = max(0, int((end - start).total_seconds() + 0.5))
    minutes, seconds = divmod(total, 60)
    return f"{minutes} minutes {seconds} seconds"


def format_task_line(n: int, task: Task) -> str:
    line = f"#{n}: {task.content}"
    if task.assignee_name:
        line += f" (@{task.assignee_name})"
    if task.status == TaskStatus.EXECUTING and task.executor_name:
        line += f" [executing by {task.executor_name}]"
    return line


def render_list(tasks: TaskList) -> str:
    executing = _view(tasks, TaskStatus.EXECUTING)
    pending = pending_view(tasks)
    if not executing and not pending:
        return EMPTY_LIST_TEXT

    lines = [format_task_line(n, t) for n, t in enumerate(executing + pending, start=1)]
    return "📜 To-do list:\n" + "\n".join(lines) + "\n\n" + LIST_FOOTER_TEXT


# ---- transitions ----


def _apply_add(tasks: TaskList, command: cmd.Add, now: datetime) -> ApplyResult:
    task = Task(
        content=command.content,
        status=TaskStatus.PENDING,
        created_at=now,
        assignee_name=command.assignee_name,
    )
    reply = f"✅ Added to-do item: {task.content}"
    if task.assignee_name:
        reply += f"\n👤 Assigned to: {task.assignee_name}"
    return ApplyResult(tasks=[*tasks, task], reply=reply, changed=True)


def _apply_start(tasks: TaskList, command: cmd.Start, actor_name: str, now: datetime) -> ApplyResult:
    target = _resolve(pending_view(tasks), command.index)
    if target is None:
        return ApplyResult(tasks=tasks, reply=INVALID_PENDING_INDEX_TEXT)

    started = replace(
        target,
        status=TaskStatus.EXECUTING,
        start_time=now,
        executor_name=actor_name,
    )
    reply = f'▶️ {actor_name} started "{started.content}". The timer is running.'
    return ApplyResult(tasks=_replace_by_id(tasks, started), reply=reply, changed=True)


def _apply_done(tasks: TaskList, command: cmd.Done, actor_name: str, now: datetime) -> ApplyResult:
    target = _resolve(open_view(tasks), command.index)
    if target is None:
        return ApplyResult(tasks=tasks, reply=INVALID_OPEN_INDEX_TEXT)

    finished = replace(
        target,
        status=TaskStatus.DONE,
        end_time=now,
        completed_by_name=actor_name,
    )
    reply = f'✅ Item #{command.index} "{finished.content}" marked as done by {actor_name}.'
    if finished.start_time is not None:
        reply += f"\n⏱ Time spent: {format_elapsed(finished.start_time, now)}."
    return ApplyResult(tasks=_replace_by_id(tasks, finished), reply=reply, changed=True)


def _invalid_reply(failure: cmd.ValidationFailure) -> str:
    if failure == cmd.ValidationFailure.EMPTY_CONTENT:
        return EMPTY_CONTENT_TEXT
    return "Please give an item number, e.g. start 1 or done 1."


def apply(tasks: TaskList, command: cmd.Command, actor_name: str, now: datetime) -> ApplyResult:
    """Apply one command to a conversation's list and build the reply."""
    if isinstance(command, cmd.Add):
        return _apply_add(tasks, command, now)
    if isinstance(command, cmd.Start):
        return _apply_start(tasks, command, actor_name, now)
    if isinstance(command, cmd.Done):
        return _apply_done(tasks, command, actor_name, now)
    if isinstance(command, cmd.List):
        return ApplyResult(tasks=tasks, reply=render_list(tasks))
    if isinstance(command, cmd.Help):
        return ApplyResult(tasks=tasks, reply=HELP_TEXT)
    if isinstance(command, cmd.Invalid):
        logger.debug("Validation failure: %s", command.failure.value)
        return ApplyResult(tasks=tasks, reply=_invalid_reply(command.failure))
    return ApplyResult(tasks=tasks, reply=UNKNOWN_TEXT)
