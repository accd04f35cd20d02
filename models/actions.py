"""Browser action types returned to the extension on every turn.

Actions form a closed tagged union keyed by ``action_type``. Use
``ACTION_ADAPTER`` to validate or dump a single action of unknown type.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

XPATH_MAX_LENGTH = 500
MESSAGE_MAX_LENGTH = 1000
WAIT_MAX_SECONDS = 300


class _ActionFields(BaseModel):
    """Fields shared by every action variant."""

    reasoning: Optional[str] = None
    timestamp: Optional[datetime] = None


class ClickAction(_ActionFields):
    """Click the element located by an XPath expression."""

    action_type: Literal["click"] = "click"
    xpath: str = Field(..., min_length=1, max_length=XPATH_MAX_LENGTH)


class WaitAction(_ActionFields):
    """Pause for a number of seconds before the next page state is sent."""

    action_type: Literal["wait"] = "wait"
    duration: int = Field(..., ge=0, le=WAIT_MAX_SECONDS)


class MessageAction(_ActionFields):
    """Show a message to the user. Non-terminal."""

    action_type: Literal["message"] = "message"
    message: str = Field(..., min_length=1, max_length=MESSAGE_MAX_LENGTH)


class CompleteAction(_ActionFields):
    """Mark the task as finished. Terminal for the session."""

    action_type: Literal["complete"] = "complete"
    message: str = Field(..., min_length=1, max_length=MESSAGE_MAX_LENGTH)


Action = Annotated[
    Union[ClickAction, WaitAction, MessageAction, CompleteAction],
    Field(discriminator="action_type"),
]

ACTION_ADAPTER: TypeAdapter = TypeAdapter(Action)

ACTION_TYPES = ("click", "wait", "message", "complete")


def is_terminal(action: Action) -> bool:
    """Return True when the action ends the session."""
    return isinstance(action, CompleteAction)


def describe_action(action: Action) -> str:
    """Short description of an action for history lines."""
    if isinstance(action, ClickAction):
        return f"click on {action.xpath}"
    if isinstance(action, WaitAction):
        return f"wait {action.duration}s"
    if isinstance(action, CompleteAction):
        return f"complete: {action.message}"
    return f"message: {action.message}"
