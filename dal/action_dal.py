"""Async Data Access Layer for the per-type action tables.

Each action variant lives in its own append-only table. Reads merge the
tables with UNION ALL and order by `(created_at, position)`.
"""

from __future__ import annotations

from typing import List, Sequence

import aiosqlite

from dal.session_dal import from_db_timestamp, to_db_timestamp
from models.actions import ACTION_ADAPTER
from models.page_state import PageFormatType
from models.session_models import ActionRecord
from utils.database_init import ACTION_TABLES, AsyncDatabaseInitializer


def _select_for(action_type: str) -> str:
    table, field = ACTION_TABLES[action_type]
    return (
        f"SELECT id, session_id, '{action_type}' AS action_type, {field} AS value, reasoning, "
        f"page_url, page_html, page_format, position, created_at FROM {table} WHERE session_id = ?"
    )


_MERGED_SELECT = " UNION ALL ".join(_select_for(t) for t in ACTION_TABLES)


class ActionDAL:
    """Data access layer for the action log."""

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def insert(self, conn: aiosqlite.Connection, record: ActionRecord) -> None:
        """Insert one action row on `conn` without committing."""
        table, field = ACTION_TABLES[record.action_type]
        value = getattr(record.action, field)
        await conn.execute(
            f"INSERT INTO {table} (id, session_id, {field}, reasoning, page_url, page_html, "
            "page_format, position, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                record.id,
                record.session_id,
                value,
                record.action.reasoning,
                record.page_url,
                record.page_html,
                record.page_format.value,
                record.position,
                to_db_timestamp(record.created_at),
            ),
        )

    async def append_action(self, record: ActionRecord) -> None:
        async with self._db.connection() as conn:
            await self.insert(conn, record)
            await conn.commit()

    async def list_recent_history(self, session_id: str, limit: int = 10) -> List[ActionRecord]:
        """Return the latest `limit` actions of a session, oldest first."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"{_MERGED_SELECT} ORDER BY created_at DESC, position DESC LIMIT ?",
                (session_id,) * len(ACTION_TABLES) + (limit,),
            )
            rows = await cur.fetchall()
        return [self._row_to_record(r) for r in reversed(rows)]

    async def list_actions(self, session_id: str) -> List[ActionRecord]:
        """Return every action of a session ordered by `(created_at, position)`."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"{_MERGED_SELECT} ORDER BY created_at, position",
                (session_id,) * len(ACTION_TABLES),
            )
            rows = await cur.fetchall()
        return [self._row_to_record(r) for r in rows]

    @staticmethod
    def _row_to_record(row: Sequence[object]) -> ActionRecord:
        """Convert a merged DB row into an ActionRecord."""
        action_type = row[2]
        _, field = ACTION_TABLES[action_type]
        created_at = from_db_timestamp(row[9])
        action = ACTION_ADAPTER.validate_python(
            {"action_type": action_type, field: row[3], "reasoning": row[4], "timestamp": created_at}
        )
        return ActionRecord(
            id=row[0],
            session_id=row[1],
            action=action,
            created_at=created_at,
            position=row[8],
            page_url=row[5],
            page_html=row[6],
            page_format=PageFormatType(row[7]),
        )
