"""Helpers to build Responses API inputs and read its outputs."""

from typing import Any, Dict, List, Optional


def to_image_data_url(image_b64: str) -> str:
    """Return a data URL for a base64 screenshot, leaving existing data URLs untouched."""
    if image_b64.startswith("data:"):
        return image_b64
    return f"data:image/png;base64,{image_b64}"


def build_message(role: str, text: str, image: Optional[str] = None) -> Dict[str, Any]:
    """Build one Responses API message entry with text and an optional image."""
    content: List[Dict[str, Any]] = [{"type": "input_text", "text": text}]
    if image:
        content.append({"type": "input_image", "image_url": to_image_data_url(image)})
    return {"type": "message", "role": role, "content": content}


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def extract_text(response: Any) -> str:
    """Return the concatenated output text of a response, or an empty string."""
    text = getattr(response, "output_text", None)
    if isinstance(text, str) and text:
        return text
    parts: List[str] = []
    for item in getattr(response, "output", None) or []:
        if _field(item, "type") != "message":
            continue
        for content in _field(item, "content") or []:
            if _field(content, "type") == "output_text":
                parts.append(_field(content, "text") or "")
    return "".join(parts)


def extract_usage(response: Any) -> Dict[str, Optional[int]]:
    """Return token usage information from the response, if present."""
    usage = getattr(response, "usage", None)
    return {
        "input_tokens": getattr(usage, "input_tokens", None) if usage else None,
        "output_tokens": getattr(usage, "output_tokens", None) if usage else None,
    }
