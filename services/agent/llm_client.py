"""Language model client backed by OpenAI's Responses API."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

import openai
from openai import AsyncOpenAI

from services.agent.action_schema import SCHEMA_NAME
from services.agent.context_builder import TranscriptMessage
from services.agent.cost_generator import CostGenerator
from services.agent.errors import ModelCallError
from services.agent.response_utils import build_message, extract_text, extract_usage

LOGGER = logging.getLogger(__name__)


@dataclass
class LLMCompletion:
    """Raw model output plus call metadata."""

    text: str
    usage: Dict[str, Optional[int]] = field(default_factory=dict)
    latency: float = 0.0
    cost: Optional[dict] = None


class LLMClient(Protocol):
    """Anything that can turn a transcript into raw text."""

    model: str

    async def complete(
        self,
        messages: Sequence[TranscriptMessage],
        *,
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> LLMCompletion:
        ...


class OpenAIResponsesClient:
    """Send transcripts to the Responses API and return the raw text output."""

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        model: str = "gpt-5",
        max_output_tokens: int = 8192,
        cost_generator: Optional[CostGenerator] = None,
    ) -> None:
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.model = model
        self.max_output_tokens = max_output_tokens
        self.cost_generator = cost_generator or CostGenerator()

    @staticmethod
    def build_inputs(messages: Sequence[TranscriptMessage]) -> List[Dict[str, Any]]:
        return [build_message(m.role, m.text, m.image) for m in messages]

    async def complete(
        self,
        messages: Sequence[TranscriptMessage],
        *,
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> LLMCompletion:
        """Run one model call.

        An empty text output is returned as-is; only transport and API
        failures raise `ModelCallError`.
        """
        start = time.time()
        request: Dict[str, Any] = {
            "model": self.model,
            "input": self.build_inputs(messages),
            "max_output_tokens": self.max_output_tokens,
        }
        if response_schema is not None:
            request["text"] = {
                "format": {
                    "type": "json_schema",
                    "name": SCHEMA_NAME,
                    "schema": response_schema,
                    "strict": True,
                }
            }

        try:
            response = await self.client.responses.create(**request)
        except openai.OpenAIError as exc:
            LOGGER.error("Error during OpenAI Responses API call: %s", exc)
            raise ModelCallError(f"Language model call failed: {exc}") from exc

        latency = time.time() - start
        text = extract_text(response)
        usage = extract_usage(response)
        cost = self.cost_generator.try_estimate(usage, self.model)
        LOGGER.info(
            "Model %s responded in %.3fs (input_tokens=%s, output_tokens=%s, est_cost=%s)",
            self.model,
            latency,
            usage.get("input_tokens"),
            usage.get("output_tokens"),
            cost["total_cost"] if cost else "n/a",
        )
        if not text:
            LOGGER.warning("Model returned an empty text output (status=%s).", getattr(response, "status", None))
        return LLMCompletion(text=text, usage=usage, latency=latency, cost=cost)
