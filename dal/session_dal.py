"""Async Data Access Layer for the task_sessions table."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

import aiosqlite

from models.session_models import SESSION_COMPLETED, SESSION_FAILED, SessionRecord
from utils.database_init import AsyncDatabaseInitializer


def to_db_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Serialize an aware UTC datetime so that string order matches time order."""
    if value is None:
        return None
    return value.isoformat(timespec="microseconds")


def from_db_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


class SessionDAL:
    """Data access layer for task session rows.

    `insert` and `update` run on a caller-supplied connection and never
    commit, so they can take part in a turn transaction.
    """

    _COLUMNS = ("id", "title", "created_at", "updated_at", "completed_at", "status")
    _COLUMN_LIST = ", ".join(_COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def insert(self, conn: aiosqlite.Connection, record: SessionRecord) -> None:
        await conn.execute(
            f"INSERT INTO task_sessions ({self._COLUMN_LIST}) VALUES (?, ?, ?, ?, ?, ?)",
            (
                record.id,
                record.title,
                to_db_timestamp(record.created_at),
                to_db_timestamp(record.updated_at),
                to_db_timestamp(record.completed_at),
                record.status,
            ),
        )

    async def update(self, conn: aiosqlite.Connection, record: SessionRecord) -> bool:
        """Bump `updated_at` and set `completed_at` once. Returns True if the row exists.

        A row that is already completed keeps its completed status.
        """
        cur = await conn.execute(
            "UPDATE task_sessions SET updated_at = ?, completed_at = COALESCE(completed_at, ?), "
            "status = CASE WHEN completed_at IS NOT NULL THEN ? ELSE ? END WHERE id = ?",
            (
                to_db_timestamp(record.updated_at),
                to_db_timestamp(record.completed_at),
                SESSION_COMPLETED,
                record.status,
                record.id,
            ),
        )
        return cur.rowcount > 0

    async def mark_failed(self, session_id: str) -> bool:
        """Set status to failed unless the session already completed. Returns True if a row changed."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "UPDATE task_sessions SET status = ? WHERE id = ? AND completed_at IS NULL",
                (SESSION_FAILED, session_id),
            )
            await conn.commit()
            return cur.rowcount > 0

    async def fetch(self, conn: aiosqlite.Connection, session_id: str) -> Optional[SessionRecord]:
        cur = await conn.execute(
            f"SELECT {self._COLUMN_LIST} FROM task_sessions WHERE id = ?",
            (session_id,),
        )
        row = await cur.fetchone()
        return self._row_to_record(row) if row else None

    async def create_session(self, record: SessionRecord) -> None:
        """Insert a new session row in its own transaction."""
        async with self._db.connection() as conn:
            await self.insert(conn, record)
            await conn.commit()

    async def get_session(self, session_id: str) -> Optional[SessionRecord]:
        """Return the SessionRecord for `session_id`, or None if not found."""
        async with self._db.connection() as conn:
            return await self.fetch(conn, session_id)

    async def update_session(self, record: SessionRecord) -> bool:
        async with self._db.connection() as conn:
            changed = await self.update(conn, record)
            await conn.commit()
            return changed

    @staticmethod
    def _row_to_record(row: Sequence[object]) -> SessionRecord:
        """Convert a DB row tuple into a SessionRecord."""
        return SessionRecord(
            id=row[0],
            title=row[1],
            created_at=from_db_timestamp(row[2]),
            updated_at=from_db_timestamp(row[3]),
            completed_at=from_db_timestamp(row[4]),
            status=row[5],
        )
