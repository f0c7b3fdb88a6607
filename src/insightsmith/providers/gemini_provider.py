import time
from typing import Callable, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from ..errors import MalformedOutputError, ProviderError
from ..logger import get_logger
from .base import GenerationOptions, LLMProvider

logger = get_logger(__name__)


class GeminiProvider(LLMProvider):
    """Google Gemini backend (google-generativeai)."""

    name = "gemini"

    def __init__(self, api_key: str, model_factory: Optional[Callable] = None):
        genai.configure(api_key=api_key)
        self._model_factory = model_factory or genai.GenerativeModel

    async def generate(self, prompt: str, options: GenerationOptions) -> str:
        if options.system_prompt:
            model = self._model_factory(options.model, system_instruction=options.system_prompt)
        else:
            model = self._model_factory(options.model)
        generation_config = {
            "temperature": options.temperature,
            "max_output_tokens": options.max_tokens,
        }

        t0 = time.perf_counter()
        try:
            response = await model.generate_content_async(prompt, generation_config=generation_config)
            text = response.text
        except google_exceptions.GoogleAPIError as e:
            raise ProviderError(f"Gemini request failed: {e}", provider=self.name) from e
        except ValueError as e:
            # response.text raises when the candidate was blocked or empty
            raise MalformedOutputError(f"Gemini returned no text: {e}", provider=self.name) from e

        dt_ms = (time.perf_counter() - t0) * 1000.0
        if not text:
            raise MalformedOutputError("Gemini returned an empty response", provider=self.name)
        logger.info(
            f"[provider] gemini model={options.model} prompt_chars={len(prompt)} latency_ms={dt_ms:.1f}"
        )
        return text
