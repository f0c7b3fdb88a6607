"""Telemetry event log and health scoring."""

from .health import (
    HealthMetrics,
    HealthMonitor,
    HealthStatus,
    HealthThresholds,
    OUTCOME_CACHED,
    OUTCOME_DEGRADED,
    OUTCOME_FALLBACK,
    OUTCOME_LIVE,
    OUTCOME_TEMPLATE,
    compute_health,
)
from .recorder import (
    CACHE_ANOMALY,
    CACHE_HIT,
    FALLBACK_FAILED,
    FALLBACK_SUCCESS,
    PROVIDER_CALL,
    QUERY_COMPLETED,
    QUERY_ERROR,
    QUERY_SUCCESS,
    TEMPLATE_MATCH,
    TelemetryRecorder,
    date_bucket,
)

__all__ = [
    "HealthMetrics",
    "HealthMonitor",
    "HealthStatus",
    "HealthThresholds",
    "OUTCOME_CACHED",
    "OUTCOME_DEGRADED",
    "OUTCOME_FALLBACK",
    "OUTCOME_LIVE",
    "OUTCOME_TEMPLATE",
    "compute_health",
    "CACHE_ANOMALY",
    "CACHE_HIT",
    "FALLBACK_FAILED",
    "FALLBACK_SUCCESS",
    "PROVIDER_CALL",
    "QUERY_COMPLETED",
    "QUERY_ERROR",
    "QUERY_SUCCESS",
    "TEMPLATE_MATCH",
    "TelemetryRecorder",
    "date_bucket",
]
