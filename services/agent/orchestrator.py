"""Turn orchestration: resolve session, ask the model, extract actions, commit."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Protocol

from models.actions import MESSAGE_MAX_LENGTH, Action
from models.page_state import PageState
from models.session_models import (
    SESSION_ACTIVE,
    SESSION_COMPLETED,
    ActionRecord,
    SessionRecord,
    TurnResult,
    TurnWrite,
    utc_now,
)
from services.agent.action_schema import RESPONSE_SCHEMA
from services.agent.context_builder import HISTORY_LIMIT, build_context
from services.agent.errors import (
    InvalidSessionStateError,
    ModelCallError,
    PersistenceFailureError,
    SessionNotFoundError,
    StoreError,
    TransientStoreError,
)
from services.agent.llm_client import LLMClient
from services.agent.response_parser import extract_actions
from utils.config import AgentSettings
from utils.text import truncate_for_storage

LOGGER = logging.getLogger(__name__)


class AgentStore(Protocol):
    """Persistence operations the orchestrator relies on."""

    backend_name: str
    supports_transactions: bool

    async def create_session(self, record: SessionRecord) -> None: ...

    async def get_session(self, session_id: str) -> Optional[SessionRecord]: ...

    async def update_session(self, record: SessionRecord) -> None: ...

    async def mark_session_failed(self, session_id: str) -> None: ...

    async def append_action(self, record: ActionRecord) -> None: ...

    async def list_recent_history(self, session_id: str, limit: int = HISTORY_LIMIT) -> List[ActionRecord]: ...

    async def list_actions(self, session_id: str) -> List[ActionRecord]: ...


class TurnOrchestrator:
    """Run one conversation turn end to end.

    Every check that can reject a request happens before the model is
    called, and nothing is written until the turn's single commit.
    """

    def __init__(self, store: AgentStore, llm_client: LLMClient, settings: Optional[AgentSettings] = None) -> None:
        self.store = store
        self.llm_client = llm_client
        self.settings = settings or AgentSettings(storage_backend="memory")

    async def process_turn(
        self,
        page_state: PageState,
        *,
        session_id: Optional[str] = None,
        title: Optional[str] = None,
    ) -> TurnResult:
        """Process one page observation and return the next actions.

        Args:
            page_state: Current page observation from the extension.
            session_id: Existing session to continue. When omitted a new session is created.
            title: Goal for a new session. Ignored when continuing.

        Raises:
            SessionNotFoundError: `session_id` is unknown.
            InvalidSessionStateError: The session is completed, or the goal is missing on create.
            ModelCallError: The model could not be reached.
            PersistenceFailureError: The turn could not be committed.

        An existing session whose turn fails with either of the last two
        errors is marked failed before the error propagates.
        """
        session, is_new = await self._resolve_session(session_id, title)
        if is_new:
            LOGGER.info("Creating session %s for goal %r", session.id, session.title[:80])
            history: List[ActionRecord] = []
        else:
            LOGGER.info("Continuing session %s at %s", session.id, page_state.url)
            history = await self._load_history(session.id)

        try:
            result = await self._run_turn(session, is_new, page_state, history)
        except (ModelCallError, PersistenceFailureError):
            if not is_new:
                await self._mark_failed(session.id)
            raise

        LOGGER.info(
            "Session %s turn committed: %d action(s), complete=%s",
            session.id,
            len(result.actions),
            result.complete,
        )
        return result

    async def _run_turn(
        self,
        session: SessionRecord,
        is_new: bool,
        page_state: PageState,
        history: List[ActionRecord],
    ) -> TurnResult:
        transcript = build_context(
            session,
            page_state,
            history,
            include_screenshot=self.settings.include_screenshot,
        )
        completion = await self.llm_client.complete(transcript.messages, response_schema=RESPONSE_SCHEMA)
        actions = extract_actions(completion.text)

        now = utc_now()
        actions = [a.model_copy(update={"timestamp": now}) for a in actions]
        result = TurnResult.from_actions(session.id, actions)

        write = self._build_write(session, is_new, page_state, actions, now, result.complete)
        await asyncio.shield(self._commit(write))
        return result

    async def _mark_failed(self, session_id: str) -> None:
        try:
            await self.store.mark_session_failed(session_id)
        except StoreError as exc:
            LOGGER.error("Could not mark session %s as failed: %s", session_id, exc)
        else:
            LOGGER.info("Session %s marked failed", session_id)

    async def get_session(self, session_id: str) -> SessionRecord:
        session = await self._read(self.store.get_session(session_id))
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return session

    async def list_actions(self, session_id: str) -> List[ActionRecord]:
        """Return the full action log of a session, oldest first."""
        await self.get_session(session_id)
        return await self._read(self.store.list_actions(session_id))

    async def _resolve_session(self, session_id: Optional[str], title: Optional[str]):
        if session_id:
            session = await self.get_session(session_id)
            if not session.is_active:
                raise InvalidSessionStateError(f"Session {session_id} is already completed")
            return session, False

        goal = (title or "").strip()
        if not goal:
            raise InvalidSessionStateError("A title is required to start a new session")
        if len(goal) > MESSAGE_MAX_LENGTH:
            raise InvalidSessionStateError(f"Title must be at most {MESSAGE_MAX_LENGTH} characters")
        return SessionRecord.new(goal), True

    async def _load_history(self, session_id: str) -> List[ActionRecord]:
        return await self._read(self.store.list_recent_history(session_id, limit=HISTORY_LIMIT))

    @staticmethod
    async def _read(awaitable):
        try:
            return await awaitable
        except StoreError as exc:
            raise PersistenceFailureError(f"Store read failed: {exc}") from exc

    @staticmethod
    def _build_write(
        session: SessionRecord,
        is_new: bool,
        page_state: PageState,
        actions: List[Action],
        now: datetime,
        complete: bool,
    ) -> TurnWrite:
        updated = replace(session, updated_at=now, status=SESSION_ACTIVE)
        if is_new:
            updated.created_at = now
        if complete and updated.completed_at is None:
            updated.completed_at = now
        if updated.completed_at is not None:
            updated.status = SESSION_COMPLETED

        page_content = truncate_for_storage(page_state.content_for_storage())
        records = [
            ActionRecord(
                session_id=session.id,
                action=action,
                created_at=now,
                position=position,
                page_url=page_state.url,
                page_html=page_content,
                page_format=page_state.format_type,
            )
            for position, action in enumerate(actions)
        ]
        return TurnWrite(session=updated, is_new_session=is_new, actions=records)

    async def _commit(self, write: TurnWrite) -> None:
        if not getattr(self.store, "supports_transactions", False):
            await self._commit_sequential(write)
            return

        attempts = self.settings.commit_attempts
        for attempt in range(1, attempts + 1):
            try:
                await self.store.commit_turn(write)
                return
            except TransientStoreError as exc:
                if attempt >= attempts:
                    LOGGER.error("Commit for session %s failed after %d attempts: %s", write.session.id, attempt, exc)
                    raise PersistenceFailureError(f"Turn commit failed after {attempt} attempts: {exc}") from exc
                LOGGER.warning("Commit attempt %d for session %s hit a busy store: %s", attempt, write.session.id, exc)
                await asyncio.sleep(self.settings.commit_backoff_seconds * attempt)
            except StoreError as exc:
                LOGGER.error("Commit for session %s failed: %s", write.session.id, exc)
                raise PersistenceFailureError(f"Turn commit failed: {exc}") from exc

    async def _commit_sequential(self, write: TurnWrite) -> None:
        LOGGER.warning(
            "Store %s has no transactions; applying turn writes for session %s one by one (not atomic).",
            getattr(self.store, "backend_name", type(self.store).__name__),
            write.session.id,
        )
        try:
            if write.is_new_session:
                await self.store.create_session(write.session)
            for record in write.actions:
                await self.store.append_action(record)
            if not write.is_new_session:
                await self.store.update_session(write.session)
        except StoreError as exc:
            raise PersistenceFailureError(f"Turn commit failed: {exc}") from exc
