# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use:
- .env (local, gitignored)
- config_local.py (local safe overrides, gitignored)
"""

ENV_VARS = {
    # App / logging
    "TODO_APP_NAME": "App display name (default: todo).",
    "TODO_LOG_LEVEL": "Console logging level (default: INFO).",
    # Connectors
    "TODO_CONSOLE_ENABLED": "Enable console connector (true/false, default: true).",
    "TODO_CONSOLE_USER": "Name used for the console participant and its list (default: console).",
    "TODO_MATRIX_ENABLED": "Enable Matrix connector (true/false, default: false).",
    # Matrix
    "TODO_MATRIX_HOMESERVER": "Matrix homeserver URL.",
    "TODO_MATRIX_USER_ID": "Matrix user ID (bot).",
    "TODO_MATRIX_PASSWORD": "Password for first login (session stored locally).",
    "TODO_MATRIX_ROOMS": "Optional allowlist of room IDs (empty => all rooms).",
    # Paths (gitignored)
    "TODO_DATA_DIR": "Local data directory, also holds todo.log (default: .local/todo).",
    "TODO_MATRIX_STORE_PATH": "Matrix session dir (default: <data_dir>/matrix_store).",
    "TODO_TASKS_DB_PATH": "Task list SQLite path (default: <data_dir>/tasks.sqlite3).",
    # Store
    "TODO_STORE_MAX_RETRIES": "Attempts per message when concurrent writers collide (default: 5).",
}
