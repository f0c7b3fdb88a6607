"""
Deterministic offline provider.

Used when ``provider_backend`` is ``fake`` and throughout the test-suite.
Output depends only on the prompt, so responses are reproducible.
"""

import asyncio
import json
import re
from typing import List, Optional, Tuple

from ..errors import ProviderError
from ..query_processing.prompts import SQL_RESPONSE_FORMAT
from .base import GenerationOptions, LLMProvider

_WS_RE = re.compile(r"\s+")
FAKE_SQL = "SELECT 1"


class FakeProvider(LLMProvider):
    """Echoes the prompt back as an insight, or returns a fixed SQL payload."""

    def __init__(
        self,
        name: str = "fake",
        fail: bool = False,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        response: Optional[str] = None,
    ):
        self.name = name
        self.fail = fail
        self.error = error
        self.delay = delay
        self.response = response
        self.calls: List[Tuple[str, GenerationOptions]] = []

    async def generate(self, prompt: str, options: GenerationOptions) -> str:
        self.calls.append((prompt, options))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.fail:
            raise ProviderError(f"{self.name} is configured to fail", provider=self.name)
        if self.response is not None:
            return self.response
        if SQL_RESPONSE_FORMAT in prompt:
            return json.dumps({
                "sql": FAKE_SQL,
                "explanation": f"Deterministic SQL from {self.name}",
                "confidence": 0.8,
            })
        return "Deterministic insight: " + _WS_RE.sub(" ", prompt).strip()

    @property
    def call_count(self) -> int:
        return len(self.calls)
