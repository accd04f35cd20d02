"""Helpers to extract browser actions from raw model output.

Extraction runs an ordered chain of parsers. Each parser returns an empty
list when it finds nothing usable; the first non-empty result wins. When
every parser comes back empty a single explanatory message action is
synthesized, so a turn always yields at least one action.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from models.actions import (
    ACTION_ADAPTER,
    ACTION_TYPES,
    MESSAGE_MAX_LENGTH,
    WAIT_MAX_SECONDS,
    XPATH_MAX_LENGTH,
    Action,
    ClickAction,
    CompleteAction,
    MessageAction,
    WaitAction,
)
from utils.text import preview

LOGGER = logging.getLogger(__name__)

REASONING_PREVIEW_LENGTH = 200
LOG_PREVIEW_LENGTH = 500

NO_ACTION_MESSAGE = (
    "I received your page state but couldn't determine the next action. "
    "Please check the model response format."
)

_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?```$", re.DOTALL)

_FLAGS = re.IGNORECASE | re.DOTALL
_COMPLETE_RE = re.compile(
    r"\bcomplete\s*\(\s*(?:message\s*=\s*)?(?:(['\"])(.*?)\1|([^'\")]+?))\s*(?:,[^)]*)?\)", _FLAGS
)
_CLICK_RE = re.compile(
    r"\b(?:clickelement|click)\s*\(\s*(?:(?:xpath|selector)\s*=\s*)?(['\"])(.+?)\1"
    r"\s*(?:,\s*(?:reasoning\s*=\s*)?(['\"])(.*?)\3\s*)?\)",
    _FLAGS,
)
_MESSAGE_RE = re.compile(
    r"\bmessage\s*\(\s*(?:message\s*=\s*)?(?:(['\"])(.*?)\1|([^'\")]+?))\s*(?:,[^)]*)?\)", _FLAGS
)
_WAIT_RE = re.compile(
    r"\bwait\s*\(\s*(?:(?:seconds|duration)\s*=\s*)?(\d+)"
    r"\s*(?:,\s*(?:reasoning\s*=\s*)?(['\"])(.*?)\2\s*)?\)",
    _FLAGS,
)


# ---------------------------------------------------------------------------
# Structured (JSON) parser
# ---------------------------------------------------------------------------


def _strip_code_fence(text: str) -> str:
    match = _FENCE_RE.match(text)
    return match.group(1).strip() if match else text


def _load_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Return the JSON object in `text`, or None if there is none."""
    candidate = _strip_code_fence(text.strip())
    try:
        data = json.loads(candidate)
    except (ValueError, RecursionError):
        start, end = candidate.find("{"), candidate.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            data = json.loads(candidate[start : end + 1])
        except (ValueError, RecursionError):
            return None
    return data if isinstance(data, dict) else None


def parse_structured_actions(raw_text: str) -> List[Action]:
    """Parse `{"actions": [...]}` output, skipping entries that fail validation."""
    if not raw_text or not raw_text.strip():
        return []
    data = _load_json_object(raw_text)
    if data is None:
        LOGGER.debug("Model output is not a JSON object; skipping structured parser.")
        return []
    items = data.get("actions")
    if not isinstance(items, list):
        LOGGER.warning("Model output has no 'actions' array.")
        return []

    actions: List[Action] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            LOGGER.warning("Skipping action %d: not an object.", index)
            continue
        action_type = item.get("action_type")
        if not isinstance(action_type, str) or not action_type:
            LOGGER.warning("Skipping action %d: missing action_type.", index)
            continue
        action_type = action_type.strip().lower()
        if action_type not in ACTION_TYPES:
            LOGGER.warning("Skipping action %d: unknown action_type %r.", index, action_type)
            continue
        try:
            actions.append(ACTION_ADAPTER.validate_python({**item, "action_type": action_type}))
        except ValidationError as exc:
            LOGGER.warning("Skipping %s action %d: %s", action_type, index, exc.errors(include_url=False))
    return actions


# ---------------------------------------------------------------------------
# Call-syntax fallback parser
# ---------------------------------------------------------------------------


def _quoted_or_bare(match: re.Match) -> str:
    value = match.group(2) if match.group(1) else match.group(3)
    return (value or "").strip()


def _clip(text: str, limit: int) -> str:
    return text[:limit]


def _match_complete(match: re.Match, raw_text: str) -> Optional[Action]:
    message = _quoted_or_bare(match)
    if not message:
        return None
    return CompleteAction(
        message=_clip(message, MESSAGE_MAX_LENGTH),
        reasoning=preview(raw_text, REASONING_PREVIEW_LENGTH),
    )


def _match_click(match: re.Match, raw_text: str) -> Optional[Action]:
    xpath = match.group(2).strip()
    if not xpath or len(xpath) > XPATH_MAX_LENGTH:
        return None
    reasoning = match.group(4) or preview(raw_text, REASONING_PREVIEW_LENGTH)
    return ClickAction(xpath=xpath, reasoning=reasoning)


def _match_message(match: re.Match, raw_text: str) -> Optional[Action]:
    message = _quoted_or_bare(match)
    if not message:
        return None
    return MessageAction(
        message=_clip(message, MESSAGE_MAX_LENGTH),
        reasoning=preview(raw_text, REASONING_PREVIEW_LENGTH),
    )


def _match_wait(match: re.Match, raw_text: str) -> Optional[Action]:
    seconds = min(int(match.group(1)), WAIT_MAX_SECONDS)
    return WaitAction(duration=seconds, reasoning=match.group(3) or "Waiting as requested")


_CALL_PATTERNS: Tuple[Tuple[re.Pattern, Callable[[re.Match, str], Optional[Action]]], ...] = (
    (_CLICK_RE, _match_click),
    (_MESSAGE_RE, _match_message),
    (_WAIT_RE, _match_wait),
)


def parse_call_actions(raw_text: str) -> List[Action]:
    """Scan free text for call-like actions such as ``ClickElement('//a', 'why')``.

    A `Complete(...)` call wins outright and is returned alone. Otherwise the
    first match of each verb is returned in order of appearance.
    """
    if not raw_text:
        return []

    for match in _COMPLETE_RE.finditer(raw_text):
        action = _match_complete(match, raw_text)
        if action is not None:
            return [action]

    found: List[Tuple[int, Action]] = []
    for pattern, build in _CALL_PATTERNS:
        for match in pattern.finditer(raw_text):
            action = build(match, raw_text)
            if action is not None:
                found.append((match.start(), action))
                break
    found.sort(key=lambda pair: pair[0])
    return [action for _, action in found]


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------

PARSER_CHAIN: Sequence[Callable[[str], List[Action]]] = (
    parse_structured_actions,
    parse_call_actions,
)


def no_action_message(raw_text: Optional[str]) -> MessageAction:
    """Message returned when the model output held no usable action."""
    snippet = preview(raw_text, REASONING_PREVIEW_LENGTH) or "(empty)"
    return MessageAction(
        message=NO_ACTION_MESSAGE,
        reasoning=f"Model response did not contain valid actions. Response preview: {snippet}",
    )


def extract_actions(raw_text: Optional[str]) -> List[Action]:
    """Return the actions in `raw_text`; never empty."""
    text = raw_text or ""
    for parser in PARSER_CHAIN:
        actions = parser(text)
        if actions:
            LOGGER.debug("%s extracted %d action(s).", parser.__name__, len(actions))
            return actions

    LOGGER.warning(
        "No actions extracted from model response. Response content: %s",
        preview(text, LOG_PREVIEW_LENGTH) or "(empty)",
    )
    return [no_action_message(text)]
