"""Simple in-memory store for agent sessions and their action logs."""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional

from models.session_models import SESSION_COMPLETED, SESSION_FAILED, ActionRecord, SessionRecord
from services.agent.errors import StoreError


class InMemoryAgentStore:
	"""Keep sessions and actions in process memory.

	Writes are applied one at a time with no transaction, so a failure
	halfway through a turn leaves the earlier writes in place. Meant for
	tests and local development only.
	"""

	backend_name = "memory"
	supports_transactions = False

	def __init__(self) -> None:
		self._sessions: Dict[str, SessionRecord] = {}
		self._actions: Dict[str, List[ActionRecord]] = {}

	async def initialize(self) -> None:
		return None

	async def create_session(self, record: SessionRecord) -> None:
		"""Store a new session; raises StoreError on a duplicate id."""
		if record.id in self._sessions:
			raise StoreError(f"Session {record.id} already exists")
		self._sessions[record.id] = replace(record)
		self._actions[record.id] = []

	async def get_session(self, session_id: str) -> Optional[SessionRecord]:
		"""Return a copy of the session, or None if missing."""
		state = self._sessions.get(session_id)
		return replace(state) if state is not None else None

	async def update_session(self, record: SessionRecord) -> None:
		"""Bump `updated_at`; `completed_at` is only set the first time."""
		state = self._sessions.get(record.id)
		if state is None:
			raise StoreError(f"Session {record.id} does not exist")
		state.updated_at = record.updated_at
		if state.completed_at is None:
			state.completed_at = record.completed_at
		state.status = SESSION_COMPLETED if state.completed_at is not None else record.status

	async def mark_session_failed(self, session_id: str) -> None:
		state = self._sessions.get(session_id)
		if state is not None and state.completed_at is None:
			state.status = SESSION_FAILED

	async def append_action(self, record: ActionRecord) -> None:
		if record.session_id not in self._sessions:
			raise StoreError(f"Session {record.session_id} does not exist")
		self._actions[record.session_id].append(record)

	async def list_actions(self, session_id: str) -> List[ActionRecord]:
		"""Return every action of a session ordered by `(created_at, position)`."""
		records = self._actions.get(session_id, [])
		return sorted(records, key=lambda r: (r.created_at, r.position))

	async def list_recent_history(self, session_id: str, limit: int = 10) -> List[ActionRecord]:
		"""Return the most recent actions, oldest first."""
		ordered = await self.list_actions(session_id)
		return ordered[-limit:] if limit else ordered
