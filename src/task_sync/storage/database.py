# src/task_sync/storage/database.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path

logger = logging.getLogger(__name__)


class Database:
    """
    SQLite file shared by TaskStore and SyncQueue.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - every call opens its own SQLite connection

    Atomicity:
    - writes go through transaction(), so a task change and its queue change
      commit or roll back together
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._closed = False
        self._ensure_schema()
        logger.info("Database ready db=%s", self._db_path)

    @property
    def path(self) -> Path:
        return self._db_path

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """
        Checkpoint the WAL into the main file and refuse new connections.

        Safe to call twice. Any later connect() raises sqlite3.ProgrammingError.
        """
        if self._closed:
            return
        conn = self.connect()
        try:
            conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
        finally:
            conn.close()
        self._closed = True
        logger.info("Database closed db=%s", self._db_path)

    # ---- connections ----

    def connect(self) -> sqlite3.Connection:
        if self._closed:
            raise sqlite3.ProgrammingError(f"Database is closed: {self._db_path}")
        # isolation_level=None: we issue BEGIN/COMMIT ourselves in transaction().
        conn = sqlite3.connect(str(self._db_path), timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Yield a connection inside BEGIN IMMEDIATE.

        Commits when the block exits normally, rolls back on any exception
        (which is re-raised), always closes the connection.
        """
        conn = self.connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    @contextlib.contextmanager
    def reader(self) -> Iterator[sqlite3.Connection]:
        conn = self.connect()
        try:
            yield conn
        finally:
            conn.close()

    # ---- schema ----

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT,
                    completed INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    is_deleted INTEGER NOT NULL DEFAULT 0,
                    sync_status TEXT NOT NULL DEFAULT 'pending',
                    server_id TEXT,
                    last_synced_at REAL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sync_queue (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    task_id TEXT NOT NULL,
                    operation TEXT NOT NULL,
                    data TEXT NOT NULL,
                    created_at REAL NOT NULL,
                    retry_count INTEGER NOT NULL DEFAULT 0,
                    error_message TEXT
                )
                """
            )

            def add_col(table: str, name: str, decl: str) -> None:
                cols = {row["name"] for row in conn.execute(f"PRAGMA table_info({table})")}
                if name in cols:
                    return
                conn.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                logger.info("Database migration: added column %s.%s", table, name)

            # Older databases predate server-side bookkeeping.
            add_col("tasks", "server_id", "TEXT")
            add_col("tasks", "last_synced_at", "REAL")
            add_col("sync_queue", "error_message", "TEXT")

            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_sync_status ON tasks(sync_status)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_updated ON tasks(is_deleted, updated_at)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_queue_order ON sync_queue(created_at, seq)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_queue_task ON sync_queue(task_id)")
