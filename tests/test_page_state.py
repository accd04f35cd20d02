import json

import pytest
from pydantic import ValidationError

from models.page_state import PageFormatType, PageState, StructuredPageData


def _structured() -> StructuredPageData:
    return StructuredPageData(
        url="https://example.com",
        title="Example",
        elements=[{"index": 0, "tag": "a", "text": "Home", "is_visible": True, "is_interactive": True}],
    )


def test_html_page_state():
    state = PageState(url="https://example.com", html="<p>hi</p>")
    assert state.format_type is PageFormatType.HTML
    assert state.content_for_storage() == "<p>hi</p>"


def test_structured_page_state_stores_json():
    state = PageState(url="https://example.com", structured_data=_structured())
    assert state.format_type is PageFormatType.STRUCTURED_JSON
    stored = json.loads(state.content_for_storage())
    assert stored["title"] == "Example"
    assert stored["elements"][0]["text"] == "Home"


def test_both_representations_rejected():
    with pytest.raises(ValidationError):
        PageState(url="https://example.com", html="<p></p>", structured_data=_structured())


def test_missing_representation_rejected():
    with pytest.raises(ValidationError):
        PageState(url="https://example.com")


def test_url_bounds():
    with pytest.raises(ValidationError):
        PageState(url="", html="<p></p>")
    with pytest.raises(ValidationError):
        PageState(url="https://example.com/" + "a" * 2000, html="<p></p>")


def test_empty_html_is_still_a_representation():
    state = PageState(url="https://example.com", html="")
    assert state.content_for_storage() == ""
