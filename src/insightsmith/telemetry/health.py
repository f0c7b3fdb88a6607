import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable, Optional

from pydantic import BaseModel

from ..config import Settings
from ..logger import get_logger
from ..models import TelemetryEvent
from .recorder import QUERY_COMPLETED, TelemetryRecorder

logger = get_logger(__name__)

# query_completed outcomes
OUTCOME_CACHED = "cached"
OUTCOME_TEMPLATE = "template"
OUTCOME_LIVE = "live"
OUTCOME_FALLBACK = "fallback"
OUTCOME_DEGRADED = "degraded"


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass(frozen=True)
class HealthThresholds:
    unhealthy_latency_ms: float = 10000.0
    degraded_latency_ms: float = 5000.0
    unhealthy_error_rate: float = 0.5
    degraded_fallback_rate: float = 0.3

    @classmethod
    def from_settings(cls, settings: Settings) -> "HealthThresholds":
        return cls(
            unhealthy_latency_ms=settings.unhealthy_latency_ms,
            degraded_latency_ms=settings.degraded_latency_ms,
            unhealthy_error_rate=settings.unhealthy_error_rate,
            degraded_fallback_rate=settings.degraded_fallback_rate,
        )


class HealthMetrics(BaseModel):
    status: HealthStatus = HealthStatus.HEALTHY
    avg_processing_time_ms: float = 0.0
    success_rate: float = 1.0
    error_rate: float = 0.0
    fallback_rate: float = 0.0
    total_queries: int = 0
    last_check: Optional[datetime] = None


def compute_health(
    completed: Iterable[TelemetryEvent],
    thresholds: HealthThresholds = HealthThresholds(),
) -> HealthMetrics:
    """
    Classify health from ``query_completed`` events.

    A degraded outcome counts as an error; both fallback and degraded
    outcomes count as fallback usage. No events means healthy.
    """
    events = list(completed)
    total = len(events)
    if total == 0:
        return HealthMetrics(last_check=datetime.now(timezone.utc))

    durations = [float(e.payload.get("duration_ms", 0.0)) for e in events]
    outcomes = [e.payload.get("outcome") for e in events]
    errors = sum(1 for o in outcomes if o == OUTCOME_DEGRADED)
    fallbacks = sum(1 for o in outcomes if o in (OUTCOME_FALLBACK, OUTCOME_DEGRADED))

    avg = sum(durations) / total
    error_rate = errors / total
    fallback_rate = fallbacks / total

    if avg > thresholds.unhealthy_latency_ms or error_rate > thresholds.unhealthy_error_rate:
        status = HealthStatus.UNHEALTHY
    elif avg > thresholds.degraded_latency_ms or fallback_rate > thresholds.degraded_fallback_rate:
        status = HealthStatus.DEGRADED
    else:
        status = HealthStatus.HEALTHY

    return HealthMetrics(
        status=status,
        avg_processing_time_ms=round(avg, 2),
        success_rate=round(1.0 - error_rate, 4),
        error_rate=round(error_rate, 4),
        fallback_rate=round(fallback_rate, 4),
        total_queries=total,
        last_check=datetime.now(timezone.utc),
    )


class HealthMonitor:
    """Recomputes health from the recorder on a fixed polling interval."""

    def __init__(
        self,
        recorder: TelemetryRecorder,
        thresholds: HealthThresholds = HealthThresholds(),
        window_seconds: float = 3600.0,
        interval_seconds: float = 30.0,
        clock: Callable[[], float] = time.time,
    ):
        self.recorder = recorder
        self.thresholds = thresholds
        self.window_seconds = window_seconds
        self.interval_seconds = interval_seconds
        self.clock = clock
        self._latest = HealthMetrics()
        self._task: Optional[asyncio.Task] = None

    @property
    def latest(self) -> HealthMetrics:
        return self._latest

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def check(self) -> HealthMetrics:
        cutoff_ms = (self.clock() - self.window_seconds) * 1000.0
        metrics = compute_health(self.recorder.since(QUERY_COMPLETED, cutoff_ms), self.thresholds)
        if metrics.status != self._latest.status:
            logger.info(f"[health] status {self._latest.status.value} -> {metrics.status.value}")
        self._latest = metrics
        return metrics

    async def _poll(self) -> None:
        while True:
            self.check()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        """Start polling on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._poll())
        logger.info(f"[health] monitor started, interval={self.interval_seconds}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("[health] monitor stopped")
