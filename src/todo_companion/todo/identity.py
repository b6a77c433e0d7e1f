# src/todo_companion/todo/identity.py

from __future__ import annotations

from dataclasses import dataclass

UNKNOWN_CONVERSATION = "unknown"


@dataclass(slots=True, frozen=True)
class SourceDescriptor:
    """Where a message came from. Connectors fill whatever their platform knows."""

    group_id: str | None = None
    room_id: str | None = None
    user_id: str | None = None


def conversation_id(source: SourceDescriptor) -> str:
    """Pick the conversation key: group wins over room, room over user."""
    for candidate in (source.group_id, source.room_id, source.user_id):
        if candidate and candidate.strip():
            return candidate.strip()
    return UNKNOWN_CONVERSATION
