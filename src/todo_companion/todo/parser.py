# src/todo_companion/todo/parser.py

"""
Text -> command parsing.

The parser only checks syntax. Anything that depends on the current list
(e.g. whether item #3 exists) is decided by the engine.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

_ASSIGNEE_RE = re.compile(r"@(\S+)")
_INDEX_RE = re.compile(r"[0-9]+")

ADD_PREFIX_LEN = len("add ")


class ValidationFailure(str, Enum):
    INVALID_INDEX = "invalid_index"
    EMPTY_CONTENT = "empty_content"


@dataclass(slots=True, frozen=True)
class Add:
    content: str
    assignee_name: str | None = None


@dataclass(slots=True, frozen=True)
class Start:
    index: int


@dataclass(slots=True, frozen=True)
class Done:
    index: int


@dataclass(slots=True, frozen=True)
class List:
    pass


@dataclass(slots=True, frozen=True)
class Help:
    pass


@dataclass(slots=True, frozen=True)
class Unknown:
    pass


@dataclass(slots=True, frozen=True)
class Invalid:
    """Recognized keyword, unusable arguments."""

    failure: ValidationFailure


Command = Add | Start | Done | List | Help | Unknown | Invalid


def _parse_add(text: str, tokens: list[str]) -> Command:
    rest = text[ADD_PREFIX_LEN:].strip()
    assignee: str | None = None

    # Only the first @mention is the assignee; later ones stay in the text.
    m = _ASSIGNEE_RE.search(rest)
    if m:
        assignee = m.group(1).strip()
        left = rest[: m.start()].strip()
        right = rest[m.end() :].strip()
        # Rejoin with a single space so "call @x about" reads "call about", not "call  about".
        rest = " ".join(part for part in (left, right) if part)

    if not rest:
        return Invalid(ValidationFailure.EMPTY_CONTENT)
    return Add(content=rest, assignee_name=assignee or None)


def _parse_index(tokens: list[str]) -> int | None:
    if len(tokens) < 2 or not _INDEX_RE.fullmatch(tokens[1]):
        return None
    try:
        return int(tokens[1], 10)
    except ValueError:
        # Past the int-conversion digit limit; no list is that long anyway.
        return None


def _parse_start(text: str, tokens: list[str]) -> Command:
    index = _parse_index(tokens)
    if index is None:
        return Invalid(ValidationFailure.INVALID_INDEX)
    return Start(index)


def _parse_done(text: str, tokens: list[str]) -> Command:
    index = _parse_index(tokens)
    if index is None:
        return Invalid(ValidationFailure.INVALID_INDEX)
    return Done(index)


def _parse_list(text: str, tokens: list[str]) -> Command:
    return List() if text.lower() == "list" else Unknown()


def _parse_help(text: str, tokens: list[str]) -> Command:
    return Help() if text.lower() == "help" else Unknown()


_PARSERS: dict[str, Callable[[str, list[str]], Command]] = {
    "add": _parse_add,
    "start": _parse_start,
    "done": _parse_done,
    "list": _parse_list,
    "help": _parse_help,
}


def parse(raw_text: str) -> Command:
    text = (raw_text or "").strip()
    tokens = text.split()
    if not tokens:
        return Unknown()

    handler = _PARSERS.get(tokens[0].lower())
    if handler is None:
        return Unknown()
    return handler(text, tokens)
