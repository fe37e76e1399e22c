# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file)
by task_sync.config.Settings.from_env(). Keep .env local and gitignored.
"""

ENV_VARS = {
    # App / logging
    "TASKSYNC_APP_NAME": "App display name (default: task-sync).",
    "TASKSYNC_LOG_LEVEL": "Console logging level (default: INFO). The file log always gets DEBUG.",
    # Console
    "TASKSYNC_CONSOLE_ENABLED": "Run the interactive console (true/false, default: true).",
    # Paths (gitignored)
    "TASKSYNC_DATA_DIR": "Local data directory (default: .local/task_sync).",
    "TASKSYNC_DB_PATH": "SQLite file with tasks and the sync queue (default: <data_dir>/tasks.sqlite3).",
    # Remote authority
    "TASKSYNC_API_BASE_URL": "Remote base URL; /health and /batch are resolved under it "
    "(default: http://localhost:3000/api). Legacy name: API_BASE_URL.",
    "TASKSYNC_HEALTH_TIMEOUT_SECONDS": "Connectivity probe timeout (default: 5).",
    "TASKSYNC_BATCH_TIMEOUT_SECONDS": "Batch request timeout (default: 20).",
    # Sync tuning
    "TASKSYNC_SYNC_BATCH_SIZE": "Queue entries per batch request, min 1 (default: 50). "
    "Legacy name: SYNC_BATCH_SIZE.",
    "TASKSYNC_SYNC_RETRY_ATTEMPTS": "Failed attempts before an entry stops being dispatched, min 1 "
    "(default: 3). Legacy name: SYNC_RETRY_ATTEMPTS.",
    "TASKSYNC_SYNC_INTERVAL_SECONDS": "Background sync period; 0 disables it (default: 0).",
}
