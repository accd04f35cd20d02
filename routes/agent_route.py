"""FastAPI routes for browser agent conversations."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from controllers.agent_controller import error_detail, get_session, list_session_actions, run_turn
from models.actions import Action
from models.page_state import PageState

router = APIRouter(prefix="/api/v1/agent")


class ConversationRequest(BaseModel):
	title: Optional[str] = None
	session_id: Optional[UUID] = None
	page_state: PageState


class ContinueConversationRequest(BaseModel):
	page_state: PageState


class AgentResponse(BaseModel):
	session_id: str
	actions: List[Action]
	complete: bool


class SessionResponse(BaseModel):
	session_id: str
	title: str
	created_at: datetime
	updated_at: datetime
	completed_at: Optional[datetime] = None
	status: str
	complete: bool


def _internal_error(exc: Exception) -> HTTPException:
	return HTTPException(status_code=500, detail=error_detail(str(exc), "CONVERSATION_FAILED"))


@router.post("/conversations", response_model=AgentResponse)
async def conversation_route(request: Request, payload: ConversationRequest):
	session_id = str(payload.session_id) if payload.session_id else None
	try:
		return await run_turn(request, payload.page_state, session_id=session_id, title=payload.title)
	except HTTPException:
		raise
	except Exception as exc:
		raise _internal_error(exc)


@router.post("/conversations/{session_id}/continue", response_model=AgentResponse)
async def continue_conversation_route(request: Request, session_id: UUID, payload: ContinueConversationRequest):
	try:
		return await run_turn(request, payload.page_state, session_id=str(session_id))
	except HTTPException:
		raise
	except Exception as exc:
		raise _internal_error(exc)


@router.get("/conversations/{session_id}", response_model=SessionResponse)
async def get_conversation_route(request: Request, session_id: UUID):
	try:
		return await get_session(request, str(session_id))
	except HTTPException:
		raise
	except Exception as exc:
		raise _internal_error(exc)


@router.get("/conversations/{session_id}/actions")
async def list_actions_route(request: Request, session_id: UUID):
	try:
		return await list_session_actions(request, str(session_id))
	except HTTPException:
		raise
	except Exception as exc:
		raise _internal_error(exc)
