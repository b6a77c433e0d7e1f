# src/todo_companion/core/service.py

"""
Message handling boundary.

Transport-agnostic:
- connectors build a MessageEvent and deliver whatever text comes back,
- this module resolves the conversation, runs load -> parse -> apply -> save,
- nothing raised below it (store errors included) escapes as an exception.

Concurrency: saves are versioned; a VersionConflict re-runs the whole cycle
against the fresh list, so concurrent messages never overwrite each other.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from ..todo import engine
from ..todo.identity import SourceDescriptor, conversation_id
from ..todo.parser import parse
from ..todo.task_store import StoreError, VersionConflict
from .ports import ProfileLookup
from .state import AppState

logger = logging.getLogger(__name__)

STORE_FAILURE_TEXT = "Sorry, I could not update the to-do list right now. Please try again later."
INTERNAL_ERROR_TEXT = "Internal error while handling the message. Please try again later."

DEFAULT_MAX_RETRIES = 5


@dataclass(slots=True, frozen=True)
class MessageEvent:
    source: SourceDescriptor
    sender_id: str
    text: str
    reply_address: str | None = None


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def resolve_actor_name(sender_id: str, profiles: ProfileLookup | None) -> str:
    if profiles is not None:
        try:
            name = profiles.display_name(sender_id)
        except Exception:
            logger.warning("Profile lookup failed for %s; using raw id.", sender_id, exc_info=True)
            name = None
        if name and name.strip():
            return name.strip()
    return sender_id or "someone"


def _max_retries(state: AppState) -> int:
    raw = getattr(state.settings, "store_max_retries", DEFAULT_MAX_RETRIES)
    try:
        return max(1, int(raw))
    except (TypeError, ValueError):
        return DEFAULT_MAX_RETRIES


def _run_cycle(state: AppState, conv_id: str, text: str, actor_name: str) -> str:
    """load -> parse -> apply -> save, retried on version conflicts."""
    command = parse(text)
    attempts = _max_retries(state)

    for attempt in range(1, attempts + 1):
        stored = state.task_store.load(conv_id)
        result = engine.apply(stored.tasks, command, actor_name, _utc_now())
        if not result.changed:
            return result.reply

        try:
            state.task_store.save(conv_id, result.tasks, expected_version=stored.version)
        except VersionConflict:
            logger.info(
                "Version conflict conversation=%s attempt=%d/%d; retrying",
                conv_id,
                attempt,
                attempts,
            )
            continue
        return result.reply

    raise StoreError(f"gave up on {conv_id!r} after {attempts} version conflicts")


def handle_message(
    state: AppState,
    event: MessageEvent,
    profiles: ProfileLookup | None = None,
) -> str | None:
    """
    Handle one inbound text message.

    Returns the reply text (always a reply for non-empty text), or None when
    there is nothing to answer.
    """
    text = (event.text or "").strip()
    if not text:
        return None

    conv_id = "?"
    try:
        conv_id = conversation_id(event.source)
        actor_name = resolve_actor_name(event.sender_id, profiles)
        logger.debug("Message conversation=%s sender=%s text=%r", conv_id, event.sender_id, text)
        reply = _run_cycle(state, conv_id, text, actor_name)
    except StoreError:
        logger.exception("Task store failure conversation=%s", conv_id)
        return STORE_FAILURE_TEXT
    except Exception:
        logger.exception("Message handler crashed conversation=%s", conv_id)
        return INTERNAL_ERROR_TEXT

    logger.info("Handled message conversation=%s sender=%s", conv_id, event.sender_id)
    return reply
