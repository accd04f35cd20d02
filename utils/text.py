"""Text helpers for bounding page content."""

from typing import Optional

TRUNCATION_MARKER = "... [truncated]"

# Audit copy of page content stored with each action.
STORAGE_MAX_LENGTH = 50_000
# Page content shown to the model.
PREVIEW_MAX_LENGTH = 5_000


def truncate_text(text: Optional[str], max_length: int, marker: str = TRUNCATION_MARKER) -> str:
    """Cut `text` to at most `max_length` characters, ending with `marker` when cut.

    The marker is counted inside the limit, so the result never exceeds
    `max_length`.

    Raises:
        ValueError: If `max_length` cannot hold the marker.
    """
    if max_length < len(marker):
        raise ValueError("max_length must be at least as long as the truncation marker.")
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[: max_length - len(marker)] + marker


def truncate_for_storage(text: Optional[str]) -> str:
    return truncate_text(text, STORAGE_MAX_LENGTH)


def preview(text: Optional[str], limit: int = 200) -> str:
    """Plain head of `text` for log lines and debugging rationale."""
    if not text:
        return ""
    return text[:limit]
