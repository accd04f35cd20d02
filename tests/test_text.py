import pytest

from utils.text import (
    STORAGE_MAX_LENGTH,
    TRUNCATION_MARKER,
    preview,
    truncate_for_storage,
    truncate_text,
)


def test_short_text_unchanged():
    assert truncate_text("hello", 100) == "hello"


def test_text_at_cap_unchanged():
    text = "a" * 50
    assert truncate_text(text, 50) == text


def test_truncated_text_respects_cap_and_ends_with_marker():
    result = truncate_text("a" * 100, 50)
    assert len(result) == 50
    assert result.endswith(TRUNCATION_MARKER)
    assert result.startswith("a" * (50 - len(TRUNCATION_MARKER)))


def test_storage_cap():
    result = truncate_for_storage("<div>" * 20_000)
    assert len(result) == STORAGE_MAX_LENGTH
    assert result.endswith(TRUNCATION_MARKER)


def test_non_ascii_text_is_cut_on_characters():
    result = truncate_text("é" * 100, 40)
    assert len(result) == 40
    assert set(result[: 40 - len(TRUNCATION_MARKER)]) == {"é"}


def test_empty_and_none():
    assert truncate_text("", 50) == ""
    assert truncate_text(None, 50) == ""


def test_cap_smaller_than_marker_raises():
    with pytest.raises(ValueError):
        truncate_text("abc", len(TRUNCATION_MARKER) - 1)


def test_preview():
    assert preview("x" * 300) == "x" * 200
    assert preview(None) == ""
