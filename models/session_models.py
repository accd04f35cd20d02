"""Session domain models for conversation turns."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from models.actions import Action, is_terminal
from models.page_state import PageFormatType


SESSION_ACTIVE = "active"
SESSION_COMPLETED = "completed"
SESSION_FAILED = "failed"


def utc_now() -> datetime:
	"""Return the current time as an aware UTC datetime."""
	return datetime.now(timezone.utc)


@dataclass
class SessionRecord:
	"""In-memory representation of a row in the task_sessions table.

	Attributes:
		id: UUID string identifying the session.
		title: User goal for the session.
		created_at: When the session was created.
		updated_at: When the last turn was committed.
		completed_at: Set once, when a turn returned a complete action.
		status: One of the SESSION_* values. "failed" marks a session whose last
			turn hit a model or commit error; it can still be retried.
	"""

	id: str
	title: str
	created_at: datetime
	updated_at: datetime
	completed_at: Optional[datetime] = None
	status: str = SESSION_ACTIVE

	@classmethod
	def new(cls, title: str) -> "SessionRecord":
		now = utc_now()
		return cls(id=str(uuid4()), title=title, created_at=now, updated_at=now)

	@property
	def is_active(self) -> bool:
		return self.completed_at is None


@dataclass
class ActionRecord:
	"""One append-only action log entry tied to a session.

	`position` is the index of the action within its turn; together with
	`created_at` it gives a deterministic ordering across action tables.
	"""

	session_id: str
	action: Action
	created_at: datetime
	position: int = 0
	page_url: Optional[str] = None
	page_html: Optional[str] = None
	page_format: PageFormatType = PageFormatType.HTML
	id: str = field(default_factory=lambda: str(uuid4()))

	@property
	def action_type(self) -> str:
		return self.action.action_type


@dataclass
class TurnWrite:
	"""Everything a single turn commits as one unit."""

	session: SessionRecord
	is_new_session: bool
	actions: List[ActionRecord] = field(default_factory=list)


@dataclass
class TurnResult:
	"""Normalized result of a processed turn."""

	session_id: str
	actions: List[Action]
	complete: bool

	@classmethod
	def from_actions(cls, session_id: str, actions: List[Action]) -> "TurnResult":
		return cls(session_id=session_id, actions=list(actions), complete=any(is_terminal(a) for a in actions))
