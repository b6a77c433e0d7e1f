# src/todo_companion/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from datetime import datetime

from ..core.service import MessageEvent, handle_message
from ..core.state import AppState
from ..todo.identity import SourceDescriptor

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    if sys.stdout.isatty():
        sys.stdout.write("\033[1A\033[2K\r")
        sys.stdout.write(line + "\n")
        sys.stdout.flush()
    else:
        print(line)


class ConsoleProfiles:
    """The console has a single participant; its display name is the configured user."""

    def __init__(self, user: str) -> None:
        self._user = user

    def display_name(self, sender_id: str) -> str | None:
        return self._user if sender_id == self._user else None


def run_console_loop(state: AppState, read_line: Callable[[str], str] = input) -> None:
    user = str(getattr(state.settings, "console_user", "console") or "console")
    app_name = str(getattr(state.settings, "app_name", "todo"))
    profiles = ConsoleProfiles(user)
    source = SourceDescriptor(user_id=user)

    logger.info("Console connector started (user=%s).", user)
    print(f"[{_ts_local()}] [CONSOLE] Type 'help' for commands. Use /exit to quit.\n")

    while True:
        try:
            user_input = read_line(f">>> {user}: ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if read_line is input:
            _rewrite_prev_line(f"[{_ts_local()}] >>> {user}: {user_input}")

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        event = MessageEvent(source=source, sender_id=user, text=user_input, reply_address=user)
        reply = handle_message(state, event, profiles)
        if reply:
            print(f"[{_ts_local()}] <<< {app_name}: {reply}\n")

    logger.info("Console connector finished.")
