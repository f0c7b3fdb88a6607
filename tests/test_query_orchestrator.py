"""
Tests for Query Orchestrator.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from insightsmith.app import InsightSmithApp
from insightsmith.models import Complexity, Priority, QueryRequest, QueryType
from insightsmith.query_orchestrator import FilterSnapshotProvider, StaticFilterProvider, merge_filters
from insightsmith.telemetry import QUERY_COMPLETED, QUERY_ERROR, HealthStatus


def run(coro):
    return asyncio.run(coro)


class TestNormalize:
    def test_bare_string_is_classified(self, app):
        query = app.orchestrator.normalize("What are the sales trends for JTI in NCR?")
        assert query.type == QueryType.ANALYTICAL
        assert query.text == "What are the sales trends for JTI in NCR?"
        assert "jti" in query.intent.entities
        assert "ncr" in query.intent.entities
        assert query.id.startswith("q_")

    def test_explicit_type_wins(self, app):
        query = app.orchestrator.normalize({"type": "forecast", "text": "sales trend"})
        assert query.type == QueryType.FORECAST
        assert query.intent.type == QueryType.ANALYTICAL

    def test_template_implies_insight(self, app):
        query = app.orchestrator.normalize({"templateId": "peakHourAnalysis"})
        assert query.type == QueryType.INSIGHT
        assert query.template_id == "peakHourAnalysis"
        assert query.intent is None

    def test_empty_request_is_chat(self, app):
        assert app.orchestrator.normalize({}).type == QueryType.CHAT

    def test_snake_case_and_request_objects(self, app):
        query = app.orchestrator.normalize(QueryRequest(
            template_id="basketComposition", complexity=Complexity.HIGH, priority=Priority.URGENT,
        ))
        assert query.template_id == "basketComposition"
        assert query.complexity == Complexity.HIGH
        assert query.priority == Priority.URGENT

    def test_invalid_type_is_rejected(self, app):
        with pytest.raises(ValidationError):
            app.orchestrator.normalize({"type": "bogus"})

    def test_queries_are_immutable(self, app):
        query = app.orchestrator.normalize("sales")
        with pytest.raises(ValidationError):
            query.text = "changed"


class TestFilters:
    def test_merge_drops_empty_globals_and_request_wins(self):
        merged = merge_filters(
            {"region": "NCR", "brand": "", "stores": [], "period": "30d"},
            {"region": "Visayas", "category": "snacks"},
        )
        assert merged == {"region": "Visayas", "period": "30d", "category": "snacks"}

    def test_static_provider_satisfies_protocol(self):
        provider = StaticFilterProvider({"region": "NCR"})
        assert isinstance(provider, FilterSnapshotProvider)
        provider.update(brand="JTI")
        snapshot = provider.snapshot()
        snapshot["region"] = "mutated"
        assert provider.snapshot() == {"region": "NCR", "brand": "JTI"}
        provider.replace({})
        assert provider.snapshot() == {}

    def test_global_filters_are_included(self, settings, registry, clock):
        filters = StaticFilterProvider({"region": "NCR", "brand": None})
        app = InsightSmithApp(settings, registry=registry, clock=clock, filter_provider=filters)
        query = app.orchestrator.normalize({"text": "sales", "filters": {"store": 5}})
        assert query.filters == {"region": "NCR", "store": 5}

    def test_unavailable_global_filters_fall_back_to_request_filters(self, settings, registry, clock):
        class BrokenFilters:
            def snapshot(self):
                raise RuntimeError("filter store unavailable")

        app = InsightSmithApp(settings, registry=registry, clock=clock, filter_provider=BrokenFilters())

        query = app.orchestrator.normalize({"text": "sales", "filters": {"store": 5}})
        assert query.filters == {"store": 5}

        response = run(app.orchestrator.process_query({"type": "chat", "text": "hi", "filters": {"store": 5}}))
        assert response.error is None
        assert response.provider.name == "openai"
        assert app.telemetry.count(QUERY_ERROR) == 0

    def test_auto_include_can_be_disabled(self, settings, registry, clock):
        filters = StaticFilterProvider({"region": "NCR"})
        app = InsightSmithApp(
            settings.model_copy(update={"auto_include_filters": False}),
            registry=registry,
            clock=clock,
            filter_provider=filters,
        )
        assert app.orchestrator.normalize("sales").filters == {}


class TestProcessQuery:
    def test_never_raises_on_invalid_request(self, app):
        response = run(app.orchestrator.process_query({"type": "bogus"}))
        assert response.provider.name == "canned"
        assert response.error
        assert app.telemetry.count(QUERY_ERROR) == 1
        assert app.orchestrator.last_error == response.error

    def test_executor_crash_becomes_degraded(self, app):
        app.orchestrator.executor = SimpleNamespace(run=AsyncMock(side_effect=RuntimeError("boom")))
        response = run(app.orchestrator.process_query({"type": "forecast", "text": "next week"}))
        assert response.error == "boom"
        assert response.confidence == 0.65
        assert "forecast" in response.content
        outcome = app.telemetry.events(QUERY_COMPLETED)[-1].payload["outcome"]
        assert outcome == "degraded"

    def test_history_is_newest_first_and_limited(self, app):
        for text in ("first question", "second question", "third question"):
            run(app.orchestrator.process_query({"type": "chat", "text": text}))
        history = app.orchestrator.get_history(limit=2)
        assert [h.query.text for h in history] == ["third question", "second question"]
        assert len(app.orchestrator.get_history()) == 3
        assert app.orchestrator.last_response is history[0].response

    def test_history_is_bounded(self, settings, registry, clock):
        app = InsightSmithApp(settings.model_copy(update={"history_size": 2}), registry=registry, clock=clock)
        for i in range(4):
            run(app.orchestrator.process_query({"type": "chat", "text": f"q{i}"}))
        assert [h.query.text for h in app.orchestrator.get_history()] == ["q3", "q2"]

    def test_clear_history(self, app):
        run(app.orchestrator.process_query("hello there"))
        app.orchestrator.clear_history()
        assert app.orchestrator.get_history() == []
        assert app.orchestrator.last_response is None

    def test_retry_last_query(self, app, fake_providers):
        assert run(app.orchestrator.retry_last_query()) is None
        run(app.orchestrator.process_query({"type": "chat", "text": "hi"}))
        retried = run(app.orchestrator.retry_last_query())
        assert retried.error is None
        assert fake_providers["openai"].call_count == 2
        assert len(app.orchestrator.get_history()) == 2


class TestBatch:
    def test_bad_items_do_not_stop_the_batch(self, app):
        results = run(app.orchestrator.process_batch([
            "Show me the daily sales trend",
            {"type": "bogus"},
            {"templateId": "peakHourAnalysis"},
        ]))
        assert [r.ok for r in results] == [True, False, True]
        assert results[0].response.provider.name == "template"
        assert results[1].response is None
        assert results[2].response.template == "peakHourAnalysis"
        assert len(app.orchestrator.get_history()) == 2

    def test_items_run_in_order(self, app, fake_providers):
        run(app.orchestrator.process_batch([
            {"type": "chat", "text": "one"},
            {"type": "chat", "text": "two"},
        ]))
        prompts = [prompt for prompt, _ in fake_providers["openai"].calls]
        assert '"one"' in prompts[0]
        assert '"two"' in prompts[1]


class TestMetrics:
    def test_metrics_follow_health_checks(self, app, fake_providers):
        assert app.orchestrator.metrics.total_queries == 0
        fake_providers["anthropic"].fail = True
        fake_providers["openai"].fail = True
        run(app.orchestrator.process_query({"templateId": "peakHourAnalysis"}))
        app.health.check()
        metrics = app.orchestrator.metrics
        assert metrics.total_queries == 1
        assert metrics.status == HealthStatus.UNHEALTHY
        assert metrics.fallback_rate == 1.0

    def test_summary(self, app):
        run(app.orchestrator.process_query("hello"))
        summary = app.orchestrator.summary()
        assert summary["history_size"] == 1
        assert summary["health"]["status"] == "healthy"
