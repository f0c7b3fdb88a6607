"""
Public entry point for query processing.

Normalizes a bare string or structured request into an immutable Query,
drives the generation executor and keeps a bounded, newest-first history.
``process_query`` never raises: every failure becomes a degraded Response.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from ..config import Settings
from ..errors import InsightSmithError
from ..execution import GenerationExecutor, degraded_response
from ..logger import get_logger
from ..models import Query, QueryRequest, QueryType, Response, now_ms
from ..query_processing import IntentClassifier
from ..telemetry import OUTCOME_DEGRADED, QUERY_COMPLETED, QUERY_ERROR, HealthMetrics, HealthMonitor, TelemetryRecorder
from .filters import FilterSnapshotProvider, merge_filters

logger = get_logger(__name__)

RequestLike = Union[str, QueryRequest, Mapping[str, Any]]


@dataclass
class HistoryEntry:
    query: Query
    response: Response
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class BatchItemResult:
    request: Any
    response: Optional[Response] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class QueryOrchestrator:
    """Composes classification, execution, history and health for callers."""

    def __init__(
        self,
        *,
        settings: Settings,
        classifier: IntentClassifier,
        executor: GenerationExecutor,
        telemetry: TelemetryRecorder,
        health: HealthMonitor,
        filter_provider: Optional[FilterSnapshotProvider] = None,
    ):
        self.settings = settings
        self.classifier = classifier
        self.executor = executor
        self.telemetry = telemetry
        self.health = health
        self.filter_provider = filter_provider
        self._history: Deque[HistoryEntry] = deque(maxlen=settings.history_size)
        self._last_request: Optional[RequestLike] = None
        self.last_response: Optional[Response] = None
        self.last_error: Optional[str] = None

    def normalize(self, request: RequestLike) -> Query:
        """
        Build an immutable Query from a string or structured request.

        Raises:
            ValidationError: the structured request is malformed
        """
        if isinstance(request, str):
            req = QueryRequest(text=request)
        elif isinstance(request, QueryRequest):
            req = request
        else:
            req = QueryRequest.model_validate(request)

        text = req.text.strip() if req.text else None
        intent = self.classifier.classify(text) if text else None

        if req.type is not None:
            query_type = req.type
        elif req.template_id:
            query_type = QueryType.INSIGHT
        elif intent is not None:
            query_type = intent.type
        else:
            query_type = QueryType.CHAT

        filters = dict(req.filters or {})
        if self.settings.auto_include_filters and self.filter_provider is not None:
            filters = merge_filters(self._global_filters(), req.filters)

        return Query(
            text=text,
            type=query_type,
            template_id=req.template_id,
            context=dict(req.context or {}),
            filters=filters,
            data=dict(req.data or {}),
            complexity=req.complexity,
            realtime=req.realtime,
            priority=req.priority,
            intent=intent,
        )

    def _global_filters(self) -> Dict[str, Any]:
        try:
            return self.filter_provider.snapshot()
        except Exception as e:
            logger.warning(f"[orchestrator] global filters unavailable, using request filters only: {e}")
            return {}

    def _degraded(self, query: Query, error: Exception, start_ms: float) -> Response:
        response = degraded_response(query, str(error) or type(error).__name__, start_ms)
        self.telemetry.record(QUERY_ERROR, {"query_id": query.id, "error": response.error, "type": query.type.value})
        self.telemetry.record(QUERY_COMPLETED, {
            "query_id": query.id,
            "type": query.type.value,
            "outcome": OUTCOME_DEGRADED,
            "rule": None,
            "duration_ms": response.timing.duration,
        })
        return response

    async def _execute(self, query: Query) -> Response:
        start = now_ms()
        try:
            response = await self.executor.run(query)
        except Exception as e:
            logger.error(f"[orchestrator] query={query.id} failed: {e}", exc_info=True)
            response = self._degraded(query, e, start)
        self._remember(query, response)
        return response

    def _remember(self, query: Query, response: Response) -> None:
        self._history.appendleft(HistoryEntry(query=query, response=response))
        self.last_response = response
        self.last_error = response.error

    async def process_query(self, request: RequestLike) -> Response:
        """Process one request. Never raises."""
        self._last_request = request
        start = now_ms()
        try:
            query = self.normalize(request)
        except (ValidationError, InsightSmithError) as e:
            logger.warning(f"[orchestrator] invalid request: {e}")
            query = Query(text=request if isinstance(request, str) else None)
            response = self._degraded(query, e, start)
            self._remember(query, response)
            return response
        logger.info(f"[orchestrator] query={query.id} type={query.type.value} template={query.template_id}")
        return await self._execute(query)

    async def process_batch(self, requests: Iterable[RequestLike]) -> List[BatchItemResult]:
        """Process requests strictly one at a time; a bad item is recorded and the batch continues."""
        results: List[BatchItemResult] = []
        for request in requests:
            try:
                query = self.normalize(request)
            except (ValidationError, InsightSmithError) as e:
                logger.warning(f"[orchestrator] batch item rejected: {e}")
                results.append(BatchItemResult(request=request, error=str(e)))
                continue
            response = await self._execute(query)
            results.append(BatchItemResult(request=request, response=response))
        logger.info(
            f"[orchestrator] batch complete: {sum(1 for r in results if r.ok)}/{len(results)} processed"
        )
        return results

    async def retry_last_query(self) -> Optional[Response]:
        if self._last_request is None:
            logger.warning("[orchestrator] no previous query to retry")
            return None
        return await self.process_query(self._last_request)

    def get_history(self, limit: int = 10) -> List[HistoryEntry]:
        return list(self._history)[:max(limit, 0)]

    def clear_history(self) -> None:
        self._history.clear()
        self.last_response = None
        self.last_error = None

    @property
    def metrics(self) -> HealthMetrics:
        return self.health.latest

    def summary(self) -> Dict[str, Any]:
        return {
            "history_size": len(self._history),
            "last_error": self.last_error,
            "health": self.metrics.model_dump(mode="json"),
        }
