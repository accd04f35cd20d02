"""
Shared fixtures: a scripted model client, stores and page states.
"""

import json
from typing import Any, Dict, List, Optional

import pytest

from dal.agent_store import SqliteAgentStore
from models.page_state import PageState
from services.agent.llm_client import LLMCompletion
from services.session_store import InMemoryAgentStore
from utils.database_init import AsyncDatabaseInitializer


class FakeLLMClient:
    """Returns queued responses in order; an empty queue yields empty text."""

    model = "fake-model"

    def __init__(self, responses: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.responses = list(responses or [])
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, messages, *, response_schema=None) -> LLMCompletion:
        self.calls.append({"messages": list(messages), "response_schema": response_schema})
        if self.error is not None:
            raise self.error
        text = self.responses.pop(0) if self.responses else ""
        return LLMCompletion(text=text, usage={"input_tokens": 10, "output_tokens": 5})


def actions_json(*actions: Dict[str, Any]) -> str:
    return json.dumps({"actions": list(actions)})


def click(xpath: str = "//a[@id='go']", reasoning: str = "open it") -> Dict[str, Any]:
    return {"action_type": "click", "xpath": xpath, "reasoning": reasoning}


def wait(duration: int = 2, reasoning: str = "loading") -> Dict[str, Any]:
    return {"action_type": "wait", "duration": duration, "reasoning": reasoning}


def message(text: str = "Looking for the cart", reasoning: Optional[str] = None) -> Dict[str, Any]:
    return {"action_type": "message", "message": text, "reasoning": reasoning}


def complete(text: str = "Done") -> Dict[str, Any]:
    return {"action_type": "complete", "message": text, "reasoning": "goal reached"}


@pytest.fixture
def page_state() -> PageState:
    return PageState(url="https://shop.example.com/", html="<html><body><a id='go'>Go</a></body></html>")


@pytest.fixture
def memory_store() -> InMemoryAgentStore:
    return InMemoryAgentStore()


@pytest.fixture
def sqlite_store(tmp_path) -> SqliteAgentStore:
    return SqliteAgentStore(AsyncDatabaseInitializer(tmp_path))


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    """Run the test against both store backends."""
    if request.param == "memory":
        return InMemoryAgentStore()
    return SqliteAgentStore(AsyncDatabaseInitializer(tmp_path))
