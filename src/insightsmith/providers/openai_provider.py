import time

import openai

from ..errors import MalformedOutputError, ProviderError
from ..logger import get_logger
from .base import GenerationOptions, LLMProvider

logger = get_logger(__name__)


class OpenAIProvider(LLMProvider):
    """Chat Completions backend."""

    name = "openai"

    def __init__(self, api_key: str, client=None):
        self.client = client or openai.AsyncOpenAI(api_key=api_key)

    async def generate(self, prompt: str, options: GenerationOptions) -> str:
        messages = []
        if options.system_prompt:
            messages.append({"role": "system", "content": options.system_prompt})
        messages.append({"role": "user", "content": prompt})

        t0 = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(
                model=options.model,
                messages=messages,
                temperature=options.temperature,
                max_tokens=options.max_tokens,
            )
        except openai.OpenAIError as e:
            raise ProviderError(f"OpenAI request failed: {e}", provider=self.name) from e

        dt_ms = (time.perf_counter() - t0) * 1000.0
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise MalformedOutputError("OpenAI returned an empty completion", provider=self.name)
        logger.info(
            f"[provider] openai model={options.model} prompt_chars={len(prompt)} latency_ms={dt_ms:.1f}"
        )
        return content

    async def aclose(self) -> None:
        await self.client.close()
