"""
Error taxonomy for the query orchestration layer.

Only ``ProviderError`` and its subclasses change control flow (they trigger
the single fallback attempt). The remaining errors are non-fatal and are
absorbed where they are raised.
"""

from typing import Optional


class InsightSmithError(Exception):
    """Base class for all InsightSmith errors."""


class ClassificationAmbiguity(InsightSmithError):
    """No intent pattern set clearly won; carries the type to default to."""

    def __init__(self, message: str, fallback_type: str, tied_types: Optional[list] = None):
        super().__init__(message)
        self.fallback_type = fallback_type
        self.tied_types = tied_types or []


class TemplateMismatch(InsightSmithError):
    """A requested or candidate template does not apply."""


class ProviderError(InsightSmithError):
    """A language-model backend failed (network, quota, malformed output)."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class ProviderTimeoutError(ProviderError):
    """A provider call exceeded its time budget."""


class ProviderUnavailableError(ProviderError):
    """No backend is registered (or configured) under the requested name."""


class MalformedOutputError(ProviderError):
    """Provider output could not be parsed or failed validation."""


class SchemaOrPromptError(ProviderError):
    """Prompt construction or generated-SQL execution failed."""


class CacheReadAnomaly(InsightSmithError):
    """A cache entry could not be read back; treated as a miss."""


__all__ = [
    "InsightSmithError",
    "ClassificationAmbiguity",
    "TemplateMismatch",
    "ProviderError",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "MalformedOutputError",
    "SchemaOrPromptError",
    "CacheReadAnomaly",
]
