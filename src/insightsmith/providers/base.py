"""Common interface for text-generation backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..models import ProviderDescriptor


@dataclass
class GenerationOptions:
    """Per-call options passed to a provider."""
    model: str
    temperature: float = 0.7
    max_tokens: int = 1000
    system_prompt: Optional[str] = None

    @classmethod
    def from_descriptor(
        cls,
        descriptor: ProviderDescriptor,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> "GenerationOptions":
        return cls(
            model=descriptor.model,
            temperature=descriptor.temperature if temperature is None else temperature,
            max_tokens=descriptor.max_tokens,
            system_prompt=system_prompt,
        )


class LLMProvider(ABC):
    """An interchangeable language-model backend."""

    name: str = "provider"

    @abstractmethod
    async def generate(self, prompt: str, options: GenerationOptions) -> str:
        """
        Generate text for a prompt.

        Args:
            prompt: Full user prompt
            options: Model, sampling and system prompt settings

        Returns:
            Generated text

        Raises:
            ProviderError: the backend failed or returned nothing usable
        """

    async def aclose(self) -> None:
        """Release client resources. Default is a no-op."""
        return None
