from __future__ import annotations

import asyncio
from typing import Dict, Optional

from langgraph.graph import END, StateGraph

from ..config import Settings
from ..database import RowStore
from ..logger import get_logger
from ..models import Query, Response, new_response_id, now_ms
from ..providers import ProviderRegistry
from ..query_processing import PromptBuilder, TemplateMatcher
from ..routing import ProviderRouter
from ..telemetry import OUTCOME_CACHED, QUERY_COMPLETED, TelemetryRecorder
from ..utils.caching import ResponseCache
from .nodes import ExecutionNodes, ExecutionState

logger = get_logger(__name__)


def _after_cache_check(state: ExecutionState) -> str:
    return "hit" if state.response is not None else "miss"


def _after_template_check(state: ExecutionState) -> str:
    return "match" if state.response is not None else "none"


def _after_execute(state: ExecutionState) -> str:
    return "success" if state.response is not None else "fail"


class GenerationExecutor:
    """LangGraph state machine driving the fast path, provider call and single fallback."""

    def __init__(
        self,
        *,
        settings: Settings,
        router: ProviderRouter,
        registry: ProviderRegistry,
        cache: ResponseCache,
        telemetry: TelemetryRecorder,
        matcher: TemplateMatcher,
        prompts: PromptBuilder,
        row_store: Optional[RowStore] = None,
    ) -> None:
        self.settings = settings
        self.router = router
        self.telemetry = telemetry
        self.nodes = ExecutionNodes(
            settings=settings,
            router=router,
            registry=registry,
            cache=cache,
            telemetry=telemetry,
            matcher=matcher,
            prompts=prompts,
            row_store=row_store,
        )
        self._inflight: Dict[str, asyncio.Task] = {}
        logger.info(
            "[executor] building generation graph "
            "(cache_check -> template_check -> enrich -> route -> execute -> cache_write | fallback)"
        )
        self.graph = self._build_graph()

    def _build_graph(self):
        g = StateGraph(ExecutionState)

        # Define nodes
        g.add_node("cache_check", self.nodes.cache_check)
        g.add_node("template_check", self.nodes.template_check)
        g.add_node("enrich", self.nodes.enrich)
        g.add_node("route", self.nodes.route)
        g.add_node("execute", self.nodes.execute)
        g.add_node("cache_write", self.nodes.cache_write)
        g.add_node("fallback", self.nodes.fallback)

        # Edges
        g.add_conditional_edges("cache_check", _after_cache_check, {"hit": END, "miss": "template_check"})
        g.add_conditional_edges("template_check", _after_template_check, {"match": END, "none": "enrich"})
        g.add_edge("enrich", "route")
        g.add_edge("route", "execute")
        g.add_conditional_edges("execute", _after_execute, {"success": "cache_write", "fail": "fallback"})
        g.add_edge("cache_write", END)
        g.add_edge("fallback", END)

        # Entry
        g.set_entry_point("cache_check")
        return g.compile()

    async def _run_graph(self, query: Query) -> Response:
        state = ExecutionState(query=query, start_ms=now_ms())
        result = await self.graph.ainvoke(state)
        final = ExecutionState(**result) if isinstance(result, dict) else result

        self.telemetry.record(QUERY_COMPLETED, {
            "query_id": query.id,
            "type": query.type.value,
            "outcome": final.outcome,
            "rule": final.rule,
            "duration_ms": final.response.timing.duration,
        })
        logger.info(
            f"[executor] query={query.id} outcome={final.outcome} "
            f"duration_ms={final.response.timing.duration:.1f}"
        )
        return final.response

    async def run(self, query: Query) -> Response:
        """
        Execute one query through the generation graph.

        When single-flight is enabled, concurrent queries sharing a cache key
        wait for the first one and receive a copy of its response. If that
        first query is cancelled, each waiter runs the graph on its own.
        """
        key = self.router.cache_key(query) if self.settings.single_flight else None
        if key is None:
            return await self._run_graph(query)

        leader = self._inflight.get(key)
        if leader is not None:
            logger.info(f"[single-flight] query={query.id} joined in-flight key={key[:24]}")
            start = now_ms()
            try:
                shared = await asyncio.shield(leader)
            except asyncio.CancelledError:
                # the follower itself was cancelled
                if not leader.cancelled():
                    raise
                logger.warning(f"[single-flight] leader for key={key[:24]} was cancelled, running query={query.id}")
                return await self._run_graph(query)
            response = shared.model_copy(update={"id": new_response_id(), "query_id": query.id})
            self.telemetry.record(QUERY_COMPLETED, {
                "query_id": query.id,
                "type": query.type.value,
                "outcome": OUTCOME_CACHED,
                "rule": None,
                "duration_ms": now_ms() - start,
            })
            return response

        task = asyncio.ensure_future(self._run_graph(query))
        self._inflight[key] = task
        try:
            return await task
        finally:
            self._inflight.pop(key, None)
