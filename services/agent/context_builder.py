"""Assemble the bounded transcript sent to the language model for one turn."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from models.actions import describe_action
from models.page_state import PageState, StructuredPageData
from models.session_models import ActionRecord, SessionRecord
from services.agent.prompts import (
    build_goal_prompt,
    build_history_prompt,
    build_page_prompt,
    build_system_prompt,
)
from utils.text import PREVIEW_MAX_LENGTH, truncate_text

HISTORY_LIMIT = 10
FULL_TEXT_PREVIEW_LENGTH = 1_000


@dataclass
class TranscriptMessage:
    """Role-tagged text block, optionally carrying a base64 image."""

    role: str
    text: str
    image: Optional[str] = None


@dataclass
class Transcript:
    messages: List[TranscriptMessage] = field(default_factory=list)
    history_count: int = 0

    @property
    def is_first_turn(self) -> bool:
        return self.history_count == 0


def order_history(history: Iterable[ActionRecord], limit: int = HISTORY_LIMIT) -> List[ActionRecord]:
    """Return the most recent `limit` records, oldest first."""
    ordered = sorted(history, key=lambda r: (r.created_at, r.position))
    return ordered[-limit:] if limit else ordered


def history_line(record: ActionRecord) -> str:
    reasoning = record.action.reasoning or ""
    return f"- {record.action_type} ({describe_action(record.action)}): {reasoning}"


def _element_line(element) -> str:
    parts = [f"[{element.index}]"]
    if element.tag:
        parts.append(f"<{element.tag}>")
    if element.text:
        parts.append(repr(element.text.strip()[:120]))
    if element.selector:
        parts.append(f"selector={element.selector}")
    if element.href:
        parts.append(f"href={element.href}")
    if element.type:
        parts.append(f"type={element.type}")
    if element.placeholder:
        parts.append(f"placeholder={element.placeholder!r}")
    flags = []
    if element.is_visible:
        flags.append("visible")
    if element.is_interactive:
        flags.append("interactive")
    if flags:
        parts.append(f"({', '.join(flags)})")
    return " ".join(parts)


def render_structured_page(data: StructuredPageData) -> str:
    """Render structured page data as compact text for the model."""
    lines = []
    if data.title:
        lines.append(f"Title: {data.title}")
    if data.meta_description:
        lines.append(f"Description: {data.meta_description}")
    if data.viewport:
        lines.append(f"Viewport: {data.viewport.width}x{data.viewport.height}")
    if data.summary:
        s = data.summary
        lines.append(
            f"Summary: {s.total_elements} elements, {s.interactive_elements} interactive, "
            f"{s.headings} headings, {s.links} links, {s.buttons} buttons, "
            f"{s.inputs} inputs, {s.images} images"
        )
    elements = [e for e in data.elements if e.is_visible or e.is_interactive]
    if elements:
        lines.append("Elements:")
        lines.extend(_element_line(e) for e in elements)
    if data.full_text:
        lines.append("Page text: " + truncate_text(data.full_text, FULL_TEXT_PREVIEW_LENGTH))
    return "\n".join(lines)


def render_page_context(page_state: PageState) -> str:
    """Render the current observation, bounded to the preview length."""
    if page_state.structured_data is not None:
        body = truncate_text(render_structured_page(page_state.structured_data), PREVIEW_MAX_LENGTH)
        return f"Current page URL: {page_state.url}\nStructured page data (truncated):\n{body}"
    body = truncate_text(page_state.html, PREVIEW_MAX_LENGTH)
    return f"Current page URL: {page_state.url}\nHTML content (truncated): {body}"


def build_context(
    session: SessionRecord,
    page_state: PageState,
    history: Iterable[ActionRecord],
    *,
    include_screenshot: bool = False,
) -> Transcript:
    """Build the transcript for a turn.

    Args:
        session: Session being continued or created.
        page_state: Current page observation.
        history: Prior action records; only the latest `HISTORY_LIMIT` are used.
        include_screenshot: Attach `page_state.screenshot` to the page message.
    """
    recent = order_history(history)
    messages = [
        TranscriptMessage("system", build_system_prompt(session.title, session.id, page_state.url)),
    ]
    if recent:
        messages.append(TranscriptMessage("user", build_history_prompt([history_line(r) for r in recent])))

    image = page_state.screenshot if include_screenshot and page_state.screenshot else None
    messages.append(TranscriptMessage("user", build_page_prompt(render_page_context(page_state)), image=image))

    if not recent:
        messages.append(TranscriptMessage("user", build_goal_prompt(session.title)))

    return Transcript(messages=messages, history_count=len(recent))
