"""Pytest configuration and shared fixtures for InsightSmith tests."""

from pathlib import Path

import pytest

from insightsmith.app import InsightSmithApp
from insightsmith.config import Settings
from insightsmith.providers import FakeProvider, ProviderRegistry


class FakeClock:
    """Manually advanced seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def project_root():
    """Project root (parent of tests/)."""
    return Path(__file__).parent.parent


@pytest.fixture
def settings():
    """Settings with the offline provider backend and no external services."""
    return Settings(
        _env_file=None,
        provider_backend="fake",
        database_url=None,
        enable_redis=False,
        single_flight=False,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_providers():
    """One FakeProvider per backend name, shared with the registry."""
    return {
        "openai": FakeProvider(name="openai"),
        "anthropic": FakeProvider(name="anthropic"),
        "gemini": FakeProvider(name="gemini"),
    }


@pytest.fixture
def registry(fake_providers):
    reg = ProviderRegistry()
    for name, provider in fake_providers.items():
        reg.register(name, provider)
    return reg


@pytest.fixture
def app(settings, registry, clock):
    """A fresh application context wired to fake providers and a fake clock."""
    return InsightSmithApp(settings, registry=registry, clock=clock)
