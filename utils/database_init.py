import os
import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

LOGGER = logging.getLogger(__name__)

DB_FILENAME = "app.db"
BUSY_TIMEOUT_MS = 5000

ACTION_TABLES = {
    "click": ("click_actions", "xpath"),
    "wait": ("wait_actions", "duration"),
    "message": ("message_actions", "message"),
    "complete": ("complete_actions", "message"),
}

_SESSION_TABLE = """
CREATE TABLE IF NOT EXISTS task_sessions (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    completed_at TEXT,
    status TEXT NOT NULL DEFAULT 'active'
)
"""

_ACTION_TABLE = """
CREATE TABLE IF NOT EXISTS {table} (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL REFERENCES task_sessions(id),
    {field} {field_type} NOT NULL,
    reasoning TEXT,
    page_url TEXT,
    page_html TEXT,
    page_format TEXT NOT NULL DEFAULT 'html',
    position INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
)
"""


def schema_statements() -> list:
    """Return the CREATE statements for the session and action tables."""
    statements = [_SESSION_TABLE]
    for action_type, (table, field) in ACTION_TABLES.items():
        field_type = "INTEGER" if action_type == "wait" else "TEXT"
        statements.append(_ACTION_TABLE.format(table=table, field=field, field_type=field_type))
        statements.append(
            f"CREATE INDEX IF NOT EXISTS idx_{table}_session "
            f"ON {table} (session_id, created_at, position)"
        )
    return statements


async def _add_status_column(db: aiosqlite.Connection) -> None:
    """Bring a task_sessions table created before the status column up to date."""
    cur = await db.execute("PRAGMA table_info(task_sessions)")
    columns = {row[1] for row in await cur.fetchall()}
    if "status" in columns:
        return
    LOGGER.info("Adding status column to task_sessions")
    await db.execute("ALTER TABLE task_sessions ADD COLUMN status TEXT NOT NULL DEFAULT 'active'")
    await db.execute("UPDATE task_sessions SET status = 'completed' WHERE completed_at IS NOT NULL")


class AsyncDatabaseInitializer:
    """
    Manage the async SQLite database backing sessions and action logs.

    - The database file is located at: <db_dir>/app.db. When `db_dir` is not
      given, the DATABASE_DIR environment variable is used. A RuntimeError is
      raised if neither is set or the path is not a usable directory.
    - On the first call to `ensure_database()` for a given instance the schema
      is created if missing. With `reset=True` any existing file is deleted
      first.
    - Subsequent calls to `ensure_database()` on the same instance are no-ops,
      so it is safe for `connection()` to call it.
    """

    def __init__(self, db_dir: Optional[Path | str] = None, *, reset: bool = False) -> None:
        raw_dir = str(db_dir) if db_dir is not None else os.getenv("DATABASE_DIR")

        if raw_dir is None or not raw_dir.strip():
            raise RuntimeError(
                "DATABASE_DIR environment variable must be set to a writable "
                "directory path where the SQLite database file will be stored."
            )

        path = Path(raw_dir).expanduser()

        if path.exists() and not path.is_dir():
            raise RuntimeError(
                f"DATABASE_DIR={raw_dir!r} points to a file, not a directory "
                f"({path}). Please set DATABASE_DIR to a directory path."
            )

        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise RuntimeError(
                f"Failed to create or access database directory at {path}"
            ) from exc

        self.db_dir = path
        self.db_path = self.db_dir / DB_FILENAME
        self.reset = reset

        self._initialized = False
        self._lock = asyncio.Lock()

    def _wal_files(self):
        return (self.db_path.with_name(self.db_path.name + suffix) for suffix in ("-wal", "-shm"))

    async def ensure_database(self) -> None:
        """
        Ensure the SQLite database and its schema exist at `self.db_path`.

        Subsequent calls on the same instance are no-ops.
        """
        if self._initialized:
            return

        async with self._lock:
            if self._initialized:
                return

            if self.reset and self.db_path.exists():
                LOGGER.warning("Resetting database at %s", self.db_path)
                for path in (self.db_path, *self._wal_files()):
                    try:
                        path.unlink(missing_ok=True)
                    except OSError as exc:
                        raise RuntimeError(
                            f"Failed to delete existing database at {path}"
                        ) from exc

            max_attempts = 3
            for attempt in range(1, max_attempts + 1):
                try:
                    async with aiosqlite.connect(self.db_path) as db:
                        await db.execute("PRAGMA journal_mode=WAL")
                        for statement in schema_statements():
                            await db.execute(statement)
                        await _add_status_column(db)
                        await db.commit()
                    break
                except (FileNotFoundError, aiosqlite.OperationalError) as exc:
                    # A freshly created file or a competing writer can fail transiently.
                    if attempt >= max_attempts:
                        raise
                    LOGGER.warning("Database init attempt %d failed: %s", attempt, exc)
                    await asyncio.sleep(0.1 * attempt)

            LOGGER.info("SQLite database ready at %s", self.db_path)
            self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Async context manager yielding an `aiosqlite.Connection`.

        Foreign keys are enforced on every connection. The schema is created
        on first use via `ensure_database()`.
        """
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            await conn.execute("PRAGMA foreign_keys = ON")
            await conn.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")
            yield conn
        finally:
            await conn.close()
