# src/todo_companion/connectors/matrix_client.py

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from nio import AsyncClient, AsyncClientConfig, LoginResponse

logger = logging.getLogger(__name__)

SESSION_FIELDS = ("access_token", "user_id", "device_id")


def session_path(store_dir: Path) -> Path:
    return store_dir / "session.json"


def read_session(path: Path) -> dict[str, str] | None:
    """Return the saved session, or None if it is missing or incomplete."""
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text("utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Unreadable Matrix session file %s: %r", path, e)
        return None
    if not isinstance(data, dict) or not all(data.get(k) for k in SESSION_FIELDS):
        logger.warning("Matrix session file %s is missing required fields", path)
        return None
    return {k: str(data[k]) for k in SESSION_FIELDS}


def write_session(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False), "utf-8")
    os.replace(tmp, path)
    try:
        # Holds an access token.
        os.chmod(path, 0o600)
    except OSError:
        pass


async def create_matrix_client(settings) -> AsyncClient | None:
    """
    Build a logged-in Matrix client.

    The first run logs in with the password and saves session.json under the
    (gitignored) store dir; later runs reuse the saved token and device id.
    """
    homeserver = (getattr(settings, "matrix_homeserver", "") or "").strip()
    user_id = (getattr(settings, "matrix_user_id", "") or "").strip()
    password = (getattr(settings, "matrix_password", "") or "").strip()
    store_dir = Path(getattr(settings, "matrix_store_path", Path(".local/todo/matrix_store")))

    if not homeserver or not user_id:
        logger.error("Matrix is not configured: set TODO_MATRIX_HOMESERVER and TODO_MATRIX_USER_ID")
        return None

    client = AsyncClient(
        homeserver,
        user_id,
        config=AsyncClientConfig(store_sync_tokens=True),
    )

    session_file = session_path(store_dir)
    session = read_session(session_file)
    if session is not None:
        client.access_token = session["access_token"]
        client.user_id = session["user_id"]
        client.device_id = session["device_id"]
        logger.info("Matrix session restored for %s", client.user_id)
        return client

    if not password:
        logger.error(
            "Matrix session.json not found and password is not set. "
            "Set TODO_MATRIX_PASSWORD once to bootstrap a session."
        )
        await client.close()
        return None

    device_name = f"{getattr(settings, 'app_name', 'todo')} (Python)"
    logger.info("Logging in to Matrix to bootstrap a new session (device_name=%r)...", device_name)
    resp = await client.login(password=password, device_name=device_name)

    if not isinstance(resp, LoginResponse):
        logger.error("Matrix login failed: %r", resp)
        await client.close()
        return None

    try:
        write_session(
            session_file,
            {"access_token": resp.access_token, "user_id": resp.user_id, "device_id": resp.device_id},
        )
        logger.info("Matrix session saved to %s (user=%s)", session_file, resp.user_id)
    except OSError as e:
        # The login itself worked; the next start will just log in again.
        logger.error("Failed to write Matrix session.json (%s): %r", session_file, e)

    return client
