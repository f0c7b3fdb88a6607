import time

import anthropic

from ..errors import MalformedOutputError, ProviderError
from ..logger import get_logger
from .base import GenerationOptions, LLMProvider

logger = get_logger(__name__)


class AnthropicProvider(LLMProvider):
    """Messages API backend."""

    name = "anthropic"

    def __init__(self, api_key: str, client=None):
        self.client = client or anthropic.AsyncAnthropic(api_key=api_key)

    async def generate(self, prompt: str, options: GenerationOptions) -> str:
        request_payload = {
            "model": options.model,
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if options.system_prompt:
            request_payload["system"] = options.system_prompt

        t0 = time.perf_counter()
        try:
            response = await self.client.messages.create(**request_payload)
        except anthropic.AnthropicError as e:
            raise ProviderError(f"Anthropic request failed: {e}", provider=self.name) from e

        dt_ms = (time.perf_counter() - t0) * 1000.0
        # Only text blocks carry the answer
        text = "".join(
            getattr(block, "text", "") for block in (response.content or [])
            if getattr(block, "type", "text") == "text"
        )
        if not text:
            raise MalformedOutputError("Anthropic returned no text content", provider=self.name)
        logger.info(
            f"[provider] anthropic model={options.model} prompt_chars={len(prompt)} latency_ms={dt_ms:.1f}"
        )
        return text

    async def aclose(self) -> None:
        await self.client.close()
