"""Provider routing and cache policy."""

from .router import (
    CACHE_TTL_SECONDS,
    DEFAULT_CACHE_TTL_SECONDS,
    ProviderRouter,
    RoutingRule,
    RuleKind,
    build_default_rules,
    canonical_fingerprint,
)

__all__ = [
    "CACHE_TTL_SECONDS",
    "DEFAULT_CACHE_TTL_SECONDS",
    "ProviderRouter",
    "RoutingRule",
    "RuleKind",
    "build_default_rules",
    "canonical_fingerprint",
]
