"""Action vocabulary and structured output schema for the browser agent."""

from typing import Any, Dict, List, NamedTuple

from models.actions import WAIT_MAX_SECONDS

CAPABILITIES_VERSION = "2025-01-18"


class Capability(NamedTuple):
    action_type: str
    signature: str
    description: str


ACTION_CAPABILITIES = (
    Capability(
        "click",
        "ClickElement(xpath, reasoning)",
        "Click an element on the page using an XPath expression "
        "(e.g., '//button[@id=\"login\"]', '//a[@href=\"/login\"]').",
    ),
    Capability(
        "wait",
        "Wait(seconds, reasoning)",
        "ONLY use when absolutely necessary: to let dynamic content load after an action, "
        "for an animation to finish, or for an explicit time-based delay. Never wait to analyze "
        "static page content; the HTML is already provided.",
    ),
    Capability(
        "message",
        "Message(message)",
        "Display a message to the user (non-terminal: the extension keeps sending page states).",
    ),
    Capability(
        "complete",
        "Complete(message)",
        "Mark the task as complete (terminal: the extension stops sending page states).",
    ),
)

SCHEMA_NAME = "browser_actions"


def _variant(action_type: str, field_name: str, field_schema: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "action_type": {"type": "string", "enum": [action_type]},
            field_name: field_schema,
            "reasoning": {
                "type": ["string", "null"],
                "description": "Brief explanation of why this action is being taken.",
            },
        },
        "required": ["action_type", field_name, "reasoning"],
        "additionalProperties": False,
    }


ACTION_VARIANTS: List[Dict[str, Any]] = [
    _variant(
        "click",
        "xpath",
        {"type": "string", "description": "XPath expression for the element to click (max 500 characters)."},
    ),
    _variant(
        "wait",
        "duration",
        {
            "type": "integer",
            "description": "Duration in seconds to wait.",
            "minimum": 0,
            "maximum": WAIT_MAX_SECONDS,
        },
    ),
    _variant(
        "message",
        "message",
        {"type": "string", "description": "Message to display to the user (max 1000 characters)."},
    ),
    _variant(
        "complete",
        "message",
        {"type": "string", "description": "Summary of what was accomplished (max 1000 characters)."},
    ),
]

RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "actions": {
            "type": "array",
            "description": "List of actions to execute, in order.",
            "items": {"anyOf": ACTION_VARIANTS},
        },
    },
    "required": ["actions"],
    "additionalProperties": False,
}
