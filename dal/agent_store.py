"""SQLite-backed session store and action log."""

from __future__ import annotations

import logging
from typing import List, Optional

import aiosqlite

from dal.action_dal import ActionDAL
from dal.session_dal import SessionDAL
from models.session_models import ActionRecord, SessionRecord, TurnWrite
from services.agent.errors import StoreError, TransientStoreError
from utils.database_init import AsyncDatabaseInitializer

LOGGER = logging.getLogger(__name__)

_TRANSIENT_MARKERS = ("locked", "busy")


def translate_error(exc: aiosqlite.Error) -> StoreError:
    """Map a driver error to the store error taxonomy."""
    message = str(exc)
    if isinstance(exc, aiosqlite.OperationalError) and any(m in message.lower() for m in _TRANSIENT_MARKERS):
        return TransientStoreError(message)
    return StoreError(message)


class SqliteAgentStore:
    """Session store whose turn commits run in a single SQLite transaction."""

    backend_name = "sqlite"
    supports_transactions = True

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer
        self.sessions = SessionDAL(db_initializer)
        self.actions = ActionDAL(db_initializer)

    async def initialize(self) -> None:
        try:
            await self._db.ensure_database()
        except aiosqlite.Error as exc:
            raise translate_error(exc) from exc

    async def create_session(self, record: SessionRecord) -> None:
        try:
            await self.sessions.create_session(record)
        except aiosqlite.Error as exc:
            raise translate_error(exc) from exc

    async def get_session(self, session_id: str) -> Optional[SessionRecord]:
        try:
            return await self.sessions.get_session(session_id)
        except aiosqlite.Error as exc:
            raise translate_error(exc) from exc

    async def update_session(self, record: SessionRecord) -> None:
        try:
            changed = await self.sessions.update_session(record)
        except aiosqlite.Error as exc:
            raise translate_error(exc) from exc
        if not changed:
            raise StoreError(f"Session {record.id} does not exist")

    async def mark_session_failed(self, session_id: str) -> None:
        try:
            await self.sessions.mark_failed(session_id)
        except aiosqlite.Error as exc:
            raise translate_error(exc) from exc

    async def append_action(self, record: ActionRecord) -> None:
        try:
            await self.actions.append_action(record)
        except aiosqlite.Error as exc:
            raise translate_error(exc) from exc

    async def list_recent_history(self, session_id: str, limit: int = 10) -> List[ActionRecord]:
        try:
            return await self.actions.list_recent_history(session_id, limit)
        except aiosqlite.Error as exc:
            raise translate_error(exc) from exc

    async def list_actions(self, session_id: str) -> List[ActionRecord]:
        try:
            return await self.actions.list_actions(session_id)
        except aiosqlite.Error as exc:
            raise translate_error(exc) from exc

    async def commit_turn(self, write: TurnWrite) -> None:
        """Write the session insert/update and every action row atomically.

        Raises:
            TransientStoreError: The database was locked or busy; nothing was written.
            StoreError: Any other failure; nothing was written.
        """
        try:
            async with self._db.connection() as conn:
                await conn.execute("BEGIN IMMEDIATE")
                try:
                    if write.is_new_session:
                        await self.sessions.insert(conn, write.session)
                    elif not await self.sessions.update(conn, write.session):
                        raise StoreError(f"Session {write.session.id} does not exist")
                    for record in write.actions:
                        await self.actions.insert(conn, record)
                    await conn.commit()
                except Exception:
                    await conn.rollback()
                    raise
        except aiosqlite.Error as exc:
            raise translate_error(exc) from exc
        LOGGER.debug("Committed %d action(s) for session %s", len(write.actions), write.session.id)
