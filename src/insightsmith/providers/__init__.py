"""Language-model provider backends."""

from .base import GenerationOptions, LLMProvider
from .fake import FakeProvider
from .registry import KNOWN_PROVIDERS, ProviderRegistry

__all__ = [
    "GenerationOptions",
    "LLMProvider",
    "FakeProvider",
    "KNOWN_PROVIDERS",
    "ProviderRegistry",
]
