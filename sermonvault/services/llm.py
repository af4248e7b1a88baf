"""
Anthropic Claude Client

One process-wide AsyncAnthropic client, created on first use and reused by
every request. It holds credentials and an HTTP connection pool, and has no
per-request state.

LLMService wraps the three call shapes the app needs:
- complete(): one-shot text answer (classification, metadata JSON)
- call_tool(): tool-use request returning the chosen tool and its input
- stream(): async generator of answer text as it is produced

SDK exceptions are translated into the SermonVaultError hierarchy here, so
callers never import anthropic themselves.
"""

import json
import re
from collections.abc import AsyncIterator
from typing import Any

import anthropic
from anthropic import AsyncAnthropic

from sermonvault.core.config import settings
from sermonvault.core.errors import LLMError, RateLimitError
from sermonvault.core.logging import get_logger

logger = get_logger(__name__)

_JSON_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)


def translate_anthropic_error(error: Exception) -> LLMError:
    """Map an anthropic SDK exception to LLMError / RateLimitError."""
    if isinstance(error, anthropic.RateLimitError):
        return RateLimitError(
            "Anthropic rate limit or quota exceeded",
            provider_name="anthropic",
        )
    if isinstance(error, anthropic.APIStatusError) and error.status_code == 529:
        return RateLimitError("Anthropic API overloaded", provider_name="anthropic")
    return LLMError(f"Anthropic request failed: {error}", provider_name="anthropic")


def parse_json_object(text: str) -> dict[str, Any]:
    """
    Parse the first JSON object in a model reply.

    Tolerates ```json fences and prose around the object.

    Raises:
        ValueError: no JSON object could be decoded
    """
    cleaned = _JSON_FENCE.sub("", text.strip())
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("No JSON object in model response")

    data = json.loads(cleaned[start:end + 1])
    if not isinstance(data, dict):
        raise ValueError("Model response JSON is not an object")
    return data


class LLMService:
    """
    Thin async facade over the Anthropic Messages API.

    Usage:
    ------
    llm = get_llm_service()
    label = await llm.complete(system="...", messages=[{"role": "user", "content": q}])
    async for text in llm.stream(system="...", messages=[...]):
        ...
    """

    def __init__(self, client: AsyncAnthropic | None = None, model: str | None = None):
        if client is None:
            if not settings.ANTHROPIC_API_KEY:
                raise LLMError("ANTHROPIC_API_KEY not configured", provider_name="anthropic")
            # No SDK-level retries: failures surface to the caller, who decides
            client = AsyncAnthropic(
                api_key=settings.ANTHROPIC_API_KEY,
                timeout=settings.LLM_TIMEOUT_SECONDS,
                max_retries=0,
            )
        self.client = client
        self.model = model or settings.ANTHROPIC_MODEL

    async def complete(
        self,
        system: str,
        messages: list[dict[str, str]],
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float = 0.0,
    ) -> str:
        """Return the concatenated text blocks of a single reply."""
        try:
            response = await self.client.messages.create(
                model=model or self.model,
                max_tokens=max_tokens or settings.ANTHROPIC_MAX_TOKENS,
                temperature=temperature,
                system=system,
                messages=messages,
            )
        except anthropic.APIError as e:
            raise translate_anthropic_error(e) from e

        return "".join(
            block.text for block in response.content if block.type == "text"
        ).strip()

    async def complete_json(
        self,
        system: str,
        messages: list[dict[str, str]],
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> dict[str, Any]:
        """complete() and parse the reply as a JSON object."""
        text = await self.complete(system, messages, model=model, max_tokens=max_tokens)
        try:
            return parse_json_object(text)
        except ValueError as e:
            logger.warning("llm_invalid_json", error=str(e), preview=text[:200])
            raise LLMError(f"Model returned invalid JSON: {e}", provider_name="anthropic") from e

    async def call_tool(
        self,
        system: str,
        messages: list[dict[str, str]],
        tools: list[dict[str, Any]],
        model: str | None = None,
    ) -> tuple[str, dict[str, Any]] | None:
        """
        Ask the model to pick one of the given tools.

        Returns:
            (tool_name, tool_input) for the first tool_use block, or None
            when the model answered without calling a tool
        """
        try:
            response = await self.client.messages.create(
                model=model or self.model,
                max_tokens=1024,
                temperature=0.0,
                system=system,
                messages=messages,
                tools=tools,
                tool_choice={"type": "auto"},
            )
        except anthropic.APIError as e:
            raise translate_anthropic_error(e) from e

        for block in response.content:
            if block.type == "tool_use":
                return block.name, dict(block.input or {})
        return None

    async def stream(
        self,
        system: str,
        messages: list[dict[str, str]],
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float = 0.7,
    ) -> AsyncIterator[str]:
        """Yield answer text as the model streams it."""
        try:
            async with self.client.messages.stream(
                model=model or self.model,
                max_tokens=max_tokens or settings.ANTHROPIC_MAX_TOKENS,
                temperature=temperature,
                system=system,
                messages=messages,
            ) as stream:
                async for text in stream.text_stream:
                    yield text
        except anthropic.APIError as e:
            raise translate_anthropic_error(e) from e


# ================================
# Global Instance (Singleton)
# ================================

_llm_service: LLMService | None = None


def get_llm_service() -> LLMService:
    """Return the process-wide LLMService, creating it on first call."""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
        logger.info("llm_client_initialized", model=_llm_service.model)
    return _llm_service
