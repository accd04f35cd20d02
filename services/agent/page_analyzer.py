"""One-shot page analysis: answer a free-form question about a screenshot and its HTML."""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from services.agent.context_builder import TranscriptMessage
from services.agent.errors import ModelCallError
from services.agent.llm_client import LLMClient
from services.agent.prompts import build_analysis_prompt
from utils.text import truncate_for_storage

LOGGER = logging.getLogger(__name__)

IMAGE_MIME_TYPES = ("image/png", "image/jpeg", "image/jpg", "image/webp", "image/gif")


@dataclass
class AnalysisResult:
    success: bool
    result: Optional[str] = None
    error: Optional[str] = None
    tokens_used: Optional[int] = None


def strip_data_url(image_base64: str) -> str:
    """Return the bare base64 payload of a plain or ``data:`` encoded image."""
    value = image_base64.strip()
    if value.startswith("data:") and "," in value:
        return value.split(",", 1)[1]
    return value


def _total_tokens(usage: dict) -> Optional[int]:
    input_tokens = usage.get("input_tokens")
    output_tokens = usage.get("output_tokens")
    if input_tokens is None and output_tokens is None:
        return None
    return (input_tokens or 0) + (output_tokens or 0)


class PageAnalyzer:
    """Send a prompt, the page markup and a screenshot to the model in one user message."""

    def __init__(self, llm_client: LLMClient) -> None:
        if llm_client is None:
            raise ValueError("A language model client must be provided.")
        self.llm_client = llm_client

    async def analyze(
        self,
        prompt: str,
        html_content: str,
        image_base64: str,
        image_mime_type: str = "image/png",
    ) -> AnalysisResult:
        """Run the analysis. Model failures come back as ``success=False`` instead of raising."""
        start = time.time()
        LOGGER.info("Starting page analysis. Prompt length: %d, HTML length: %d", len(prompt), len(html_content))

        payload = strip_data_url(image_base64)
        if not payload:
            return AnalysisResult(success=False, error="Invalid base64 image data")

        text = build_analysis_prompt(prompt, truncate_for_storage(html_content))
        image = f"data:{image_mime_type.lower()};base64,{payload}"
        try:
            completion = await self.llm_client.complete([TranscriptMessage("user", text, image=image)])
        except ModelCallError as exc:
            LOGGER.error("Page analysis failed after %.3fs: %s", time.time() - start, exc)
            return AnalysisResult(success=False, error=f"Analysis failed: {exc}")

        tokens = _total_tokens(completion.usage or {})
        LOGGER.info(
            "Page analysis completed in %.3fs. Response length: %d, Tokens: %s",
            time.time() - start,
            len(completion.text),
            tokens,
        )
        return AnalysisResult(success=True, result=completion.text, tokens_used=tokens)
