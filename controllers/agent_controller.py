"""Conversation turn handlers for the browser agent."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request

from models.actions import ACTION_ADAPTER
from models.page_state import PageState
from models.session_models import ActionRecord, SessionRecord, TurnResult
from services.agent.errors import (
	AgentError,
	InvalidSessionStateError,
	SessionNotFoundError,
)
from services.agent.orchestrator import TurnOrchestrator

LOGGER = logging.getLogger(__name__)


def error_detail(message: str, error_code: str) -> Dict[str, str]:
	return {"message": message, "error_code": error_code}


def to_http_exception(exc: AgentError) -> HTTPException:
	"""Translate an agent error into the HTTP status and error code the extension expects."""
	if isinstance(exc, SessionNotFoundError):
		status = 404
	elif isinstance(exc, InvalidSessionStateError):
		status = 400
	else:
		status = 500
		LOGGER.error("Conversation turn failed: %s", exc)
	return HTTPException(status_code=status, detail=error_detail(str(exc), exc.error_code))


def _orchestrator(request: Request) -> TurnOrchestrator:
	return request.app.state.orchestrator


def serialize_turn(result: TurnResult) -> Dict[str, Any]:
	return {
		"session_id": result.session_id,
		"actions": [ACTION_ADAPTER.dump_python(a, mode="json") for a in result.actions],
		"complete": result.complete,
	}


def serialize_session(session: SessionRecord) -> Dict[str, Any]:
	return {
		"session_id": session.id,
		"title": session.title,
		"created_at": session.created_at,
		"updated_at": session.updated_at,
		"completed_at": session.completed_at,
		"status": session.status,
		"complete": not session.is_active,
	}


def serialize_action_record(record: ActionRecord) -> Dict[str, Any]:
	payload = ACTION_ADAPTER.dump_python(record.action, mode="json")
	payload.update(
		{
			"id": record.id,
			"position": record.position,
			"page_url": record.page_url,
			"page_format": record.page_format.value,
			"created_at": record.created_at,
		}
	)
	return payload


async def run_turn(
	request: Request,
	page_state: PageState,
	*,
	session_id: Optional[str] = None,
	title: Optional[str] = None,
) -> Dict[str, Any]:
	"""Create a session or continue an existing one, and return the next actions."""
	try:
		result = await _orchestrator(request).process_turn(page_state, session_id=session_id, title=title)
	except AgentError as exc:
		raise to_http_exception(exc) from exc
	return serialize_turn(result)


async def get_session(request: Request, session_id: str) -> Dict[str, Any]:
	try:
		session = await _orchestrator(request).get_session(session_id)
	except AgentError as exc:
		raise to_http_exception(exc) from exc
	return serialize_session(session)


async def list_session_actions(request: Request, session_id: str) -> List[Dict[str, Any]]:
	"""Return every action recorded for the session, oldest first."""
	try:
		records = await _orchestrator(request).list_actions(session_id)
	except AgentError as exc:
		raise to_http_exception(exc) from exc
	return [serialize_action_record(r) for r in records]
