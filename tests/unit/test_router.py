"""Tests for provider routing, cache keys and TTL policy."""

import itertools

import pytest

from insightsmith.models import Complexity, Priority, Query, QueryType
from insightsmith.routing import (
    CACHE_TTL_SECONDS,
    ProviderRouter,
    RuleKind,
    build_default_rules,
    canonical_fingerprint,
)


@pytest.fixture
def router(settings):
    return ProviderRouter.from_settings(settings)


def test_every_combination_resolves_to_a_provider(router):
    combos = itertools.product(
        list(QueryType),
        [None] + list(Complexity),
        [False, True],
        list(Priority),
    )
    for qtype, complexity, realtime, priority in combos:
        query = Query(type=qtype, complexity=complexity, realtime=realtime, priority=priority, text="x")
        descriptor = router.select_provider(query)
        assert descriptor.name
        assert descriptor.model
        assert router.fallback_for(query).name


def test_insight_goes_to_deep_tier(router):
    rule = router.select_rule(Query(type=QueryType.INSIGHT, template_id="priceSensitivity"))
    assert rule.kind == RuleKind.DEEP_ANALYSIS
    assert rule.provider.name == "anthropic"
    assert "opus" in rule.provider.model
    assert rule.provider.confidence_bonus == 0.15
    assert rule.fallback.name == "openai"


def test_high_complexity_goes_to_deep_tier(router):
    rule = router.select_rule(Query(type=QueryType.ANALYTICAL, complexity=Complexity.HIGH))
    assert rule.kind == RuleKind.DEEP_ANALYSIS


def test_specialist_types(router):
    for qtype in (QueryType.FORECAST, QueryType.SUBSTITUTION, QueryType.DEMOGRAPHIC):
        assert router.select_rule(Query(type=qtype)).kind == RuleKind.SPECIALIST


def test_chat_is_fast_and_never_keyed(router):
    query = Query(type=QueryType.CHAT, text="hi")
    rule = router.select_rule(query)
    assert rule.kind == RuleKind.REALTIME
    assert rule.provider.name == "openai"
    assert router.cache_key(query) is None


def test_realtime_is_fast_and_keyed(router):
    query = Query(type=QueryType.ANALYTICAL, realtime=True, text="current sales")
    assert router.select_rule(query).kind == RuleKind.REALTIME
    assert router.cache_key(query).startswith("realtime:")


def test_alerts_and_urgent_are_never_cached(router):
    alert = Query(type=QueryType.ALERT, text="stock out")
    urgent = Query(type=QueryType.OPERATIONAL, priority=Priority.URGENT, text="stock out")
    assert router.select_rule(alert).kind == RuleKind.ALERT
    assert router.select_rule(urgent).kind == RuleKind.ALERT
    assert router.cache_key(alert) is None
    assert router.cache_key(urgent) is None


def test_everything_else_hits_catch_all(router):
    query = Query(type=QueryType.ANALYTICAL, complexity=Complexity.LOW, text="sales by store")
    rule = router.select_rule(query)
    assert rule.kind == RuleKind.DEFAULT
    assert rule.catch_all
    assert "sonnet" in rule.provider.model
    assert router.cache_key(query).startswith("default:")


class TestCacheKeys:
    def test_same_fields_same_key(self, router):
        a = Query(type=QueryType.INSIGHT, template_id="peakHourAnalysis", filters={"region": "NCR"})
        b = Query(type=QueryType.INSIGHT, template_id="peakHourAnalysis", filters={"region": "NCR"})
        assert a.id != b.id
        assert router.cache_key(a) == router.cache_key(b)

    def test_filter_order_does_not_matter(self):
        a = Query(type=QueryType.ANALYTICAL, text="x", filters={"a": 1, "b": 2})
        b = Query(type=QueryType.ANALYTICAL, text="x", filters={"b": 2, "a": 1})
        assert canonical_fingerprint(a) == canonical_fingerprint(b)

    def test_filters_change_key(self, router):
        a = Query(type=QueryType.INSIGHT, template_id="peakHourAnalysis", filters={"region": "NCR"})
        b = Query(type=QueryType.INSIGHT, template_id="peakHourAnalysis", filters={"region": "Visayas"})
        assert router.cache_key(a) != router.cache_key(b)

    def test_templates_do_not_collide(self, router):
        a = Query(type=QueryType.INSIGHT, template_id="peakHourAnalysis")
        b = Query(type=QueryType.INSIGHT, template_id="priceSensitivity")
        assert router.cache_key(a) != router.cache_key(b)

    def test_text_distinguishes_free_form_questions(self, router):
        a = Query(type=QueryType.ANALYTICAL, text="sales by store")
        b = Query(type=QueryType.ANALYTICAL, text="sales by brand")
        assert router.cache_key(a) != router.cache_key(b)


class TestCacheTtl:
    def test_template_ttls(self, router):
        assert router.cache_ttl(Query(type=QueryType.INSIGHT, template_id="priceSensitivity")) == 86400
        assert router.cache_ttl(Query(type=QueryType.INSIGHT, template_id="substitutionMap")) == 43200
        assert router.cache_ttl(Query(type=QueryType.INSIGHT, template_id="basketComposition")) == 21600
        assert router.cache_ttl(Query(type=QueryType.INSIGHT, template_id="peakHourAnalysis")) == 3600
        assert router.cache_ttl(Query(type=QueryType.INSIGHT, template_id="stockoutPrediction")) == 1800

    def test_zero_ttl_types(self, router):
        assert router.cache_ttl(Query(type=QueryType.ALERT)) == 0
        assert router.cache_ttl(Query(type=QueryType.CHAT)) == 0

    def test_default_ttl(self, router):
        assert router.cache_ttl(Query(type=QueryType.ANALYTICAL)) == 3600
        assert router.cache_ttl(Query(type=QueryType.INSIGHT, template_id="churnRiskAnalysis")) == 3600

    def test_table_is_exposed(self):
        assert CACHE_TTL_SECONDS["alert"] == 0


def test_router_requires_catch_all(settings):
    rules = list(build_default_rules(settings))[:-1]
    with pytest.raises(ValueError):
        ProviderRouter(rules)


def test_models_come_from_settings(settings):
    custom = settings.model_copy(update={"balanced_model": "gpt-4.1", "balanced_provider": "openai"})
    router = ProviderRouter.from_settings(custom)
    descriptor = router.select_provider(Query(type=QueryType.ANALYTICAL))
    assert (descriptor.name, descriptor.model) == ("openai", "gpt-4.1")
