from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from ..config import Settings
from ..database import RowStore
from ..errors import CacheReadAnomaly, ProviderError, ProviderTimeoutError, TemplateMismatch
from ..logger import get_logger
from ..models import (
    TEMPLATE_PROVIDER,
    Complexity,
    ProviderDescriptor,
    Query,
    QueryType,
    Response,
    Timing,
    new_response_id,
    now_ms,
)
from ..providers import GenerationOptions, ProviderRegistry
from ..query_processing import (
    SQL_QUERY_TYPES,
    TEMPLATE_CONFIDENCE,
    TEMPLATE_EXPLANATION,
    GenerationMode,
    PromptBuilder,
    TemplateMatcher,
    detect_best_template,
    get_insight_template,
    parse_sql_generation,
)
from ..routing import ProviderRouter
from ..telemetry import (
    CACHE_ANOMALY,
    CACHE_HIT,
    FALLBACK_FAILED,
    FALLBACK_SUCCESS,
    OUTCOME_CACHED,
    OUTCOME_DEGRADED,
    OUTCOME_FALLBACK,
    OUTCOME_LIVE,
    OUTCOME_TEMPLATE,
    PROVIDER_CALL,
    QUERY_ERROR,
    QUERY_SUCCESS,
    TEMPLATE_MATCH,
    TelemetryRecorder,
)
from ..utils.caching import ResponseCache
from .presentation import (
    build_actions,
    build_suggestions,
    build_visualizations,
    confidence_for,
    degraded_response,
)

logger = get_logger(__name__)

HIGH_COMPLEXITY_TYPES = (QueryType.FORECAST, QueryType.SUBSTITUTION, QueryType.DEMOGRAPHIC)
MEDIUM_COMPLEXITY_TYPES = (QueryType.INSIGHT, QueryType.ANALYSIS)


class ExecutionState(BaseModel):
    query: Query
    start_ms: float = Field(default_factory=now_ms)
    enriched: Optional[Query] = None
    cache_key: Optional[str] = None
    ttl: int = 0
    rule: Optional[str] = None
    provider: Optional[ProviderDescriptor] = None
    fallback: Optional[ProviderDescriptor] = None
    mode: Optional[GenerationMode] = None
    response: Optional[Response] = None
    outcome: Optional[str] = None
    error: Optional[str] = None


def infer_complexity(query: Query) -> Complexity:
    data_keys = len(query.data or {})
    if query.type in HIGH_COMPLEXITY_TYPES or data_keys > 10 or len(query.text or "") > 200:
        return Complexity.HIGH
    if query.type in MEDIUM_COMPLEXITY_TYPES or len(query.filters or {}) > 3:
        return Complexity.MEDIUM
    return Complexity.LOW


class ExecutionNodes:
    """Graph nodes. Each returns a partial state update."""

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
        self.registry = registry
        self.cache = cache
        self.telemetry = telemetry
        self.matcher = matcher
        self.prompts = prompts
        self.row_store = row_store

    # Node: cache lookup
    async def cache_check(self, state: ExecutionState) -> Dict[str, Any]:
        query = state.query
        key = self.router.cache_key(query)
        ttl = self.router.cache_ttl(query)
        update: Dict[str, Any] = {"cache_key": key, "ttl": ttl}
        if key is None or ttl <= 0:
            logger.debug(f"[cache-skip] query={query.id} key={key} ttl={ttl}")
            return update

        try:
            cached = self.cache.get(key)
        except CacheReadAnomaly as e:
            logger.warning(f"[cache-anomaly] query={query.id}: {e}")
            self.telemetry.record(CACHE_ANOMALY, {"key": key, "error": str(e)})
            return update

        if cached is None:
            logger.debug(f"[cache-miss] query={query.id}")
            return update

        response = cached.model_copy(update={
            "id": new_response_id(),
            "query_id": query.id,
            "cached": True,
            "timing": Timing.since(state.start_ms),
        })
        self.telemetry.record(CACHE_HIT, {"key": key, "type": query.type.value, "template": query.template_id})
        logger.info(f"[cache-hit] query={query.id} key={key[:24]}")
        update.update({"response": response, "outcome": OUTCOME_CACHED})
        return update

    # Node: SQL template fast path
    async def template_check(self, state: ExecutionState) -> Dict[str, Any]:
        query = state.query
        match = self.matcher.match(query.text)
        if match is None:
            return {}

        template = match.template
        response = Response(
            query_id=query.id,
            content=template.description or TEMPLATE_EXPLANATION,
            sql=template.sql,
            explanation=TEMPLATE_EXPLANATION,
            confidence=TEMPLATE_CONFIDENCE,
            provider=TEMPLATE_PROVIDER,
            template=template.id.value,
            suggestions=build_suggestions(query),
            timing=Timing.since(state.start_ms),
            intent=query.intent,
        )
        self.telemetry.record(TEMPLATE_MATCH, {
            "template": template.id.value,
            "keywords": list(match.matched_keywords),
            "type": query.type.value,
        })
        return {"response": response, "outcome": OUTCOME_TEMPLATE}

    # Node: fill missing complexity, template and timestamp
    async def enrich(self, state: ExecutionState) -> Dict[str, Any]:
        query = state.query
        updates: Dict[str, Any] = {}
        if query.complexity is None:
            updates["complexity"] = infer_complexity(query)
        if query.type == QueryType.INSIGHT and not query.template_id:
            updates["template_id"] = detect_best_template(query)
        if query.timestamp is None:
            updates["timestamp"] = datetime.now(timezone.utc)
        enriched = query.model_copy(update=updates)
        logger.debug(
            f"[enrich] query={query.id} complexity={enriched.complexity.value} template={enriched.template_id}"
        )
        return {"enriched": enriched}

    # Node: route
    async def route(self, state: ExecutionState) -> Dict[str, Any]:
        query = state.enriched or state.query
        rule = self.router.select_rule(query)

        mode = GenerationMode.QUESTION
        if query.template_id:
            try:
                get_insight_template(query.template_id)
                mode = GenerationMode.INSIGHT
            except TemplateMismatch as e:
                logger.info(f"[router] {e}; answering as a free-form question")
        elif query.type in SQL_QUERY_TYPES and query.text:
            mode = GenerationMode.SQL

        logger.info(
            f"[router] query={query.id} rule={rule.kind.value} provider={rule.provider.name}/{rule.provider.model} "
            f"mode={mode.value}"
        )
        return {"rule": rule.kind.value, "provider": rule.provider, "fallback": rule.fallback, "mode": mode}

    async def _call(
        self,
        descriptor: ProviderDescriptor,
        prompt: str,
        options: GenerationOptions,
        parse: Optional[Callable[[str], Any]] = None,
    ) -> Any:
        """
        One provider call, bounded by the configured timeout.

        Any backend failure surfaces as ProviderError, and every call records
        a provider_call event. When ``parse`` is given its result is returned
        and a parse failure counts as a failed call.
        """
        t0 = time.perf_counter()
        error: Optional[str] = None
        try:
            provider = self.registry.get(descriptor.name)
            try:
                text = await asyncio.wait_for(
                    provider.generate(prompt, options), timeout=self.settings.provider_timeout_seconds
                )
            except asyncio.TimeoutError as e:
                raise ProviderTimeoutError(
                    f"{descriptor.name} timed out after {self.settings.provider_timeout_seconds}s",
                    provider=descriptor.name,
                ) from e
            except ProviderError:
                raise
            except Exception as e:
                raise ProviderError(f"{descriptor.name} failed: {e}", provider=descriptor.name) from e
            return parse(text) if parse is not None else text
        except asyncio.CancelledError:
            error = "cancelled"
            raise
        except ProviderError as e:
            error = str(e)
            raise
        finally:
            self.telemetry.record(PROVIDER_CALL, {
                "provider": descriptor.name,
                "model": descriptor.model,
                "latency_ms": round((time.perf_counter() - t0) * 1000.0, 2),
                "success": error is None,
                "error": error,
            })

    async def _narrate_rows(
        self, descriptor: ProviderDescriptor, query: Query, rows: List[Dict[str, Any]]
    ) -> Optional[str]:
        """Second call turning executed rows into a narrative; None when it fails."""
        options = GenerationOptions.from_descriptor(
            descriptor, system_prompt=self.prompts.system_prompt(GenerationMode.INSIGHT)
        )
        try:
            text = await self._call(descriptor, self.prompts.build_data_insight_prompt(query, rows), options)
        except ProviderError as e:
            logger.warning(f"[executor] row narrative from {descriptor.name} failed for query={query.id}: {e}")
            return None
        return text.strip() or None

    async def _attempt(
        self, descriptor: ProviderDescriptor, query: Query, mode: GenerationMode, start_ms: float
    ) -> Response:
        if mode == GenerationMode.INSIGHT:
            prompt = self.prompts.build_insight_prompt(get_insight_template(query.template_id), query)
        elif mode == GenerationMode.SQL:
            prompt = self.prompts.build_sql_prompt(query)
        else:
            prompt = self.prompts.build_question_prompt(query)
        options = GenerationOptions.from_descriptor(
            descriptor,
            system_prompt=self.prompts.system_prompt(mode),
            temperature=self.settings.sql_temperature if mode == GenerationMode.SQL else None,
        )

        sql = None
        explanation = None
        data = None
        rows = None
        if mode == GenerationMode.SQL:
            result = await self._call(
                descriptor, prompt, options,
                parse=lambda text: parse_sql_generation(text, provider=descriptor.name),
            )
            sql = result.sql
            explanation = result.explanation or None
            content = result.explanation or "Generated SQL for your question"
            if self.row_store is not None and self.settings.execute_generated_sql:
                data = await self.row_store.fetch_rows(sql)
                rows = data.get("rows")
                if rows:
                    content = await self._narrate_rows(descriptor, query, rows) or content
        else:
            content = (await self._call(descriptor, prompt, options)).strip()

        return Response(
            query_id=query.id,
            content=content,
            sql=sql,
            data=data,
            explanation=explanation,
            confidence=confidence_for(descriptor.confidence_bonus, query),
            provider=descriptor,
            template=query.template_id,
            suggestions=build_suggestions(query),
            visualizations=build_visualizations(query, rows),
            actions=build_actions(query),
            timing=Timing.since(start_ms),
            cached=False,
            intent=query.intent,
        )


    # Node: primary provider
    async def execute(self, state: ExecutionState) -> Dict[str, Any]:
        query = state.enriched or state.query
        try:
            response = await self._attempt(state.provider, query, state.mode, state.start_ms)
        except ProviderError as e:
            logger.warning(f"[executor] primary {state.provider.name} failed for query={query.id}: {e}")
            self.telemetry.record(QUERY_ERROR, {
                "query_id": query.id,
                "provider": state.provider.name,
                "error": str(e),
                "type": query.type.value,
            })
            return {"error": str(e)}

        self.telemetry.record(QUERY_SUCCESS, {
            "query_id": query.id,
            "provider": state.provider.name,
            "type": query.type.value,
            "duration_ms": response.timing.duration,
        })
        return {"response": response, "outcome": OUTCOME_LIVE}

    # Node: store a live response
    async def cache_write(self, state: ExecutionState) -> Dict[str, Any]:
        if state.cache_key and state.ttl > 0 and state.response is not None:
            self.cache.set(state.cache_key, state.response, state.ttl)
            logger.debug(f"[cache-write] key={state.cache_key[:24]} ttl={state.ttl}s")
        return {}

    # Node: single fallback attempt, then the canned response
    async def fallback(self, state: ExecutionState) -> Dict[str, Any]:
        query = state.enriched or state.query
        descriptor = state.fallback
        try:
            response = await self._attempt(descriptor, query, state.mode, state.start_ms)
        except ProviderError as e:
            logger.error(f"[executor] fallback {descriptor.name} failed for query={query.id}: {e}")
            self.telemetry.record(FALLBACK_FAILED, {
                "query_id": query.id,
                "provider": descriptor.name,
                "error": str(e),
            })
            return {
                "response": degraded_response(query, state.error or str(e), state.start_ms),
                "outcome": OUTCOME_DEGRADED,
            }

        logger.info(f"[executor] fallback {descriptor.name} served query={query.id}")
        self.telemetry.record(FALLBACK_SUCCESS, {"query_id": query.id, "provider": descriptor.name})
        return {"response": response, "outcome": OUTCOME_FALLBACK}
