from typing import Dict, List

from ..config import Settings
from ..errors import ProviderUnavailableError
from ..logger import get_logger
from .base import LLMProvider

logger = get_logger(__name__)

KNOWN_PROVIDERS = ("openai", "anthropic", "gemini")


class ProviderRegistry:
    """Name -> provider lookup used by the executor."""

    def __init__(self):
        self._providers: Dict[str, LLMProvider] = {}

    def register(self, name: str, provider: LLMProvider) -> None:
        self._providers[name] = provider
        logger.debug(f"[provider] registered {name} -> {type(provider).__name__}")

    def get(self, name: str) -> LLMProvider:
        provider = self._providers.get(name)
        if provider is None:
            raise ProviderUnavailableError(f"No provider registered under '{name}'", provider=name)
        return provider

    def has(self, name: str) -> bool:
        return name in self._providers

    def names(self) -> List[str]:
        return sorted(self._providers)

    async def aclose(self) -> None:
        for provider in self._providers.values():
            await provider.aclose()

    @classmethod
    def build_from_settings(cls, settings: Settings) -> "ProviderRegistry":
        """
        Register a provider for every backend that can be served.

        In ``fake`` mode every known name gets a FakeProvider; in ``live`` mode
        only backends with an API key are registered, so routing to a missing
        one raises ProviderUnavailableError and takes the fallback path.
        """
        registry = cls()
        backend = settings.provider_backend.lower()

        if backend == "fake":
            from .fake import FakeProvider

            names = set(KNOWN_PROVIDERS) | {
                settings.deep_provider, settings.deep_fallback_provider,
                settings.fast_provider, settings.fast_fallback_provider,
                settings.balanced_provider, settings.balanced_fallback_provider,
            }
            for name in sorted(names):
                registry.register(name, FakeProvider(name=name))
            logger.info(f"Provider registry initialized with fake backends: {registry.names()}")
            return registry

        if settings.openai_api_key:
            from .openai_provider import OpenAIProvider
            registry.register("openai", OpenAIProvider(api_key=settings.openai_api_key))
        if settings.anthropic_api_key:
            from .anthropic_provider import AnthropicProvider
            registry.register("anthropic", AnthropicProvider(api_key=settings.anthropic_api_key))
        if settings.gemini_api_key:
            from .gemini_provider import GeminiProvider
            registry.register("gemini", GeminiProvider(api_key=settings.gemini_api_key))

        if not registry.names():
            logger.warning("No provider API keys configured; every query will be served degraded")
        else:
            logger.info(f"Provider registry initialized: {registry.names()}")
        return registry
