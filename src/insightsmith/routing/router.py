"""
Provider routing.

An ordered list of rules maps a query to a primary provider descriptor, a
same-role fallback descriptor and an optional cache-key function. Rules are
evaluated top to bottom and the first matching predicate wins; the last
rule is always a catch-all so every query resolves to exactly one provider.
"""

import hashlib
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional, Sequence

from ..config import Settings
from ..logger import get_logger
from ..models import Complexity, Priority, ProviderDescriptor, Query, QueryType

logger = get_logger(__name__)

# Seconds; looked up by template id first, then by query type. 0 disables caching.
CACHE_TTL_SECONDS: Dict[str, int] = {
    "priceSensitivity": 86400,
    "substitutionMap": 43200,
    "basketComposition": 21600,
    "peakHourAnalysis": 3600,
    "demandForecast": 3600,
    "stockoutPrediction": 1800,
    QueryType.ALERT.value: 0,
    QueryType.CHAT.value: 0,
}
DEFAULT_CACHE_TTL_SECONDS = 3600

SPECIALIST_TYPES = frozenset({QueryType.SUBSTITUTION, QueryType.DEMOGRAPHIC, QueryType.FORECAST})


class RuleKind(str, Enum):
    DEEP_ANALYSIS = "deep"
    SPECIALIST = "specialist"
    REALTIME = "realtime"
    ALERT = "alert"
    DEFAULT = "default"


CacheKeyFn = Callable[[Query], str]
Predicate = Callable[[Query], bool]


# Predicates

def is_deep_analysis(query: Query) -> bool:
    return query.complexity == Complexity.HIGH or query.type == QueryType.INSIGHT


def is_specialist(query: Query) -> bool:
    return query.type in SPECIALIST_TYPES


def is_realtime(query: Query) -> bool:
    return query.realtime or query.type == QueryType.CHAT


def is_alert(query: Query) -> bool:
    return query.type == QueryType.ALERT or query.priority == Priority.URGENT


def always(query: Query) -> bool:
    return True


# Cache keys

def canonical_fingerprint(query: Query) -> str:
    """SHA-256 over the routing-relevant fields in canonical JSON form."""
    payload = {
        "type": query.type.value,
        "template": query.template_id,
        "text": None if query.template_id else (query.text or "").strip().lower(),
        "filters": query.filters or {},
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def prefixed_key(prefix: str) -> CacheKeyFn:
    def _key(query: Query) -> str:
        return f"{prefix}:{canonical_fingerprint(query)}"
    return _key


def realtime_key(query: Query) -> Optional[str]:
    # Open chat must always be fresh
    if query.type == QueryType.CHAT:
        return None
    return f"{RuleKind.REALTIME.value}:{canonical_fingerprint(query)}"


@dataclass(frozen=True)
class RoutingRule:
    kind: RuleKind
    predicate: Predicate
    provider: ProviderDescriptor
    fallback: ProviderDescriptor
    cache_key: Optional[Callable[[Query], Optional[str]]] = None
    catch_all: bool = False
    description: str = field(default="", compare=False)

    def matches(self, query: Query) -> bool:
        return self.catch_all or self.predicate(query)


def _descriptor(settings: Settings, name: str, model: str, tier: str, bonus: float) -> ProviderDescriptor:
    return ProviderDescriptor(
        name=name,
        model=model,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        tier=tier,
        confidence_bonus=bonus,
    )


def build_default_rules(settings: Settings) -> Sequence[RoutingRule]:
    """The standard rule table, with providers and models taken from settings."""
    deep = _descriptor(settings, settings.deep_provider, settings.deep_model, "deep", 0.15)
    deep_fallback = _descriptor(
        settings, settings.deep_fallback_provider, settings.deep_fallback_model, "deep", 0.10
    )
    fast = _descriptor(settings, settings.fast_provider, settings.fast_model, "fast", 0.10)
    fast_fallback = _descriptor(
        settings, settings.fast_fallback_provider, settings.fast_fallback_model, "fast", 0.05
    )
    balanced = _descriptor(settings, settings.balanced_provider, settings.balanced_model, "balanced", 0.10)
    balanced_fallback = _descriptor(
        settings, settings.balanced_fallback_provider, settings.balanced_fallback_model, "balanced", 0.05
    )

    return (
        RoutingRule(
            kind=RuleKind.DEEP_ANALYSIS,
            predicate=is_deep_analysis,
            provider=deep,
            fallback=deep_fallback,
            cache_key=prefixed_key(RuleKind.DEEP_ANALYSIS.value),
            description="high complexity or insight queries",
        ),
        RoutingRule(
            kind=RuleKind.SPECIALIST,
            predicate=is_specialist,
            provider=deep,
            fallback=deep_fallback,
            cache_key=prefixed_key(RuleKind.SPECIALIST.value),
            description="substitution, demographic and forecast queries",
        ),
        RoutingRule(
            kind=RuleKind.REALTIME,
            predicate=is_realtime,
            provider=fast,
            fallback=fast_fallback,
            cache_key=realtime_key,
            description="realtime or conversational queries",
        ),
        RoutingRule(
            kind=RuleKind.ALERT,
            predicate=is_alert,
            provider=fast,
            fallback=fast_fallback,
            cache_key=None,
            description="alerts and urgent requests",
        ),
        RoutingRule(
            kind=RuleKind.DEFAULT,
            predicate=always,
            provider=balanced,
            fallback=balanced_fallback,
            cache_key=prefixed_key(RuleKind.DEFAULT.value),
            catch_all=True,
            description="everything else",
        ),
    )


class ProviderRouter:
    """First-match-wins evaluation of an ordered rule list."""

    def __init__(
        self,
        rules: Sequence[RoutingRule],
        ttl_table: Optional[Dict[str, int]] = None,
        default_ttl: int = DEFAULT_CACHE_TTL_SECONDS,
    ):
        rules = tuple(rules)
        if not rules or not rules[-1].catch_all:
            raise ValueError("routing table must end with a catch-all rule")
        self.rules = rules
        self.ttl_table = dict(CACHE_TTL_SECONDS if ttl_table is None else ttl_table)
        self.default_ttl = default_ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProviderRouter":
        return cls(build_default_rules(settings), default_ttl=settings.cache_default_ttl_seconds)

    def select_rule(self, query: Query) -> RoutingRule:
        for rule in self.rules:
            if rule.matches(query):
                logger.debug(f"[router] query={query.id} rule={rule.kind.value}")
                return rule
        # Unreachable while the last rule is a catch-all
        return self.rules[-1]

    def select_provider(self, query: Query) -> ProviderDescriptor:
        return self.select_rule(query).provider

    def fallback_for(self, query: Query) -> ProviderDescriptor:
        return self.select_rule(query).fallback

    def cache_key(self, query: Query) -> Optional[str]:
        """Deterministic cache key, or None when the matching rule must stay fresh."""
        rule = self.select_rule(query)
        if rule.cache_key is None:
            return None
        return rule.cache_key(query)

    def cache_ttl(self, query: Query) -> int:
        """TTL in seconds by template id, then type, then the default."""
        if query.template_id and query.template_id in self.ttl_table:
            return self.ttl_table[query.template_id]
        return self.ttl_table.get(query.type.value, self.default_ttl)
