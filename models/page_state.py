"""Page observation submitted by the extension on each turn."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

URL_MAX_LENGTH = 2000


class PageFormatType(str, Enum):
    """Representation used for the page content."""

    HTML = "html"
    STRUCTURED_JSON = "structured_json"


class Viewport(BaseModel):
    width: int
    height: int


class PageSummary(BaseModel):
    total_elements: int = 0
    interactive_elements: int = 0
    headings: int = 0
    links: int = 0
    buttons: int = 0
    inputs: int = 0
    images: int = 0


class PageElement(BaseModel):
    """A single parsed element from the page."""

    index: int
    selector: Optional[str] = None
    tag: Optional[str] = None
    is_visible: bool = False
    is_interactive: bool = False
    text: Optional[str] = None
    href: Optional[str] = None
    type: Optional[str] = None
    placeholder: Optional[str] = None


class StructuredPageData(BaseModel):
    """Parsed page content with element list, counts and metadata."""

    url: str = Field(..., min_length=1, max_length=URL_MAX_LENGTH)
    title: Optional[str] = None
    meta_description: Optional[str] = None
    full_text: Optional[str] = None
    timestamp: Optional[datetime] = None
    viewport: Optional[Viewport] = None
    summary: Optional[PageSummary] = None
    elements: List[PageElement] = Field(default_factory=list)


class PageState(BaseModel):
    """Current state of the browser page.

    Exactly one of ``html`` or ``structured_data`` must be present.
    """

    url: str = Field(..., min_length=1, max_length=URL_MAX_LENGTH)
    html: Optional[str] = None
    structured_data: Optional[StructuredPageData] = None
    screenshot: Optional[str] = None

    @model_validator(mode="after")
    def _check_single_representation(self) -> "PageState":
        has_html = self.html is not None
        has_structured = self.structured_data is not None
        if has_html == has_structured:
            raise ValueError("Exactly one of 'html' or 'structured_data' must be provided")
        return self

    @property
    def format_type(self) -> PageFormatType:
        if self.structured_data is not None:
            return PageFormatType.STRUCTURED_JSON
        return PageFormatType.HTML

    def content_for_storage(self) -> str:
        """Return the page content as text for the audit copy."""
        if self.structured_data is not None:
            return self.structured_data.model_dump_json(exclude_none=True)
        return self.html or ""
