from datetime import datetime, timedelta, timezone

from models.actions import ClickAction, WaitAction
from models.page_state import PageState, StructuredPageData
from models.session_models import ActionRecord, SessionRecord
from services.agent.action_schema import ACTION_CAPABILITIES
from services.agent.context_builder import (
    HISTORY_LIMIT,
    build_context,
    order_history,
    render_page_context,
)
from utils.text import PREVIEW_MAX_LENGTH, TRUNCATION_MARKER

BASE = datetime(2025, 1, 18, 9, 0, tzinfo=timezone.utc)


def _session() -> SessionRecord:
    return SessionRecord(id="s-1", title="Buy a kettle", created_at=BASE, updated_at=BASE)


def _history(clicks: int, waits: int):
    records = []
    for i in range(clicks):
        records.append(
            ActionRecord("s-1", ClickAction(xpath=f"//a[{i}]", reasoning=f"c{i}"), BASE + timedelta(minutes=2 * i))
        )
    for i in range(waits):
        records.append(
            ActionRecord("s-1", WaitAction(duration=i, reasoning=f"w{i}"), BASE + timedelta(minutes=2 * i + 1))
        )
    return records


def test_first_turn_has_goal_and_no_history(page_state):
    transcript = build_context(_session(), page_state, [])
    roles = [m.role for m in transcript.messages]
    assert roles == ["system", "user", "user"]
    assert transcript.is_first_turn
    assert transcript.messages[-1].text == "User goal: Buy a kettle"
    assert all("Previous actions:" not in m.text for m in transcript.messages)


def test_system_prompt_lists_capabilities(page_state):
    system = build_context(_session(), page_state, []).messages[0].text
    assert "Buy a kettle" in system
    assert "s-1" in system
    assert page_state.url in system
    for capability in ACTION_CAPABILITIES:
        assert capability.signature in system


def test_history_is_bounded_to_latest_merged_entries(page_state):
    transcript = build_context(_session(), page_state, _history(clicks=7, waits=7))
    history_text = transcript.messages[1].text
    lines = history_text.splitlines()[1:]
    assert transcript.history_count == HISTORY_LIMIT
    assert len(lines) == HISTORY_LIMIT
    # The oldest four entries (c0, w0, c1, w1) fall out of the window.
    assert lines[0].endswith(": c2")
    assert lines[-1].endswith(": w6")
    assert "User goal:" not in transcript.messages[-1].text


def test_history_ties_broken_by_position():
    same_time = [
        ActionRecord("s-1", WaitAction(duration=1, reasoning="second"), BASE, position=1),
        ActionRecord("s-1", ClickAction(xpath="//a", reasoning="first"), BASE, position=0),
    ]
    ordered = order_history(same_time)
    assert [r.action.reasoning for r in ordered] == ["first", "second"]


def test_history_line_format(page_state):
    records = [ActionRecord("s-1", ClickAction(xpath="//a[@id='x']", reasoning="open"), BASE)]
    history_text = build_context(_session(), page_state, records).messages[1].text
    assert history_text == "Previous actions:\n- click (click on //a[@id='x']): open"


def test_page_preview_is_bounded():
    state = PageState(url="https://example.com", html="<p>" + "x" * 20_000 + "</p>")
    rendered = render_page_context(state)
    body = rendered.split("HTML content (truncated): ", 1)[1]
    assert len(body) == PREVIEW_MAX_LENGTH
    assert body.endswith(TRUNCATION_MARKER)


def test_structured_page_rendering_skips_hidden_elements():
    data = StructuredPageData(
        url="https://example.com",
        title="Shop",
        summary={"total_elements": 2, "interactive_elements": 1},
        elements=[
            {"index": 0, "tag": "button", "text": "Add to cart", "selector": "#add", "is_visible": True, "is_interactive": True},
            {"index": 1, "tag": "span", "text": "hidden tracker", "is_visible": False, "is_interactive": False},
        ],
    )
    rendered = render_page_context(PageState(url="https://example.com", structured_data=data))
    assert rendered.startswith("Current page URL: https://example.com\nStructured page data (truncated):")
    assert "Title: Shop" in rendered
    assert "Add to cart" in rendered
    assert "hidden tracker" not in rendered


def test_screenshot_attached_only_when_enabled():
    state = PageState(url="https://example.com", html="<p></p>", screenshot="aGVsbG8=")
    without = build_context(_session(), state, [])
    with_image = build_context(_session(), state, [], include_screenshot=True)
    assert all(m.image is None for m in without.messages)
    assert [m.image for m in with_image.messages if m.image] == ["aGVsbG8="]
