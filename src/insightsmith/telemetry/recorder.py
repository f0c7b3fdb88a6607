"""
Append-only telemetry log.

Events are grouped into per-day buckets keyed ``"<event>:<YYYY-MM-DD>"``
(UTC). Nothing is ever removed except by ``clear()``.
"""

import time
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..logger import get_logger
from ..models import TelemetryEvent

logger = get_logger(__name__)

CACHE_HIT = "cache_hit"
CACHE_ANOMALY = "cache_anomaly"
TEMPLATE_MATCH = "template_match"
PROVIDER_CALL = "provider_call"
QUERY_SUCCESS = "query_success"
QUERY_ERROR = "query_error"
FALLBACK_SUCCESS = "fallback_success"
FALLBACK_FAILED = "fallback_failed"
QUERY_COMPLETED = "query_completed"


def date_bucket(timestamp_s: float) -> str:
    return datetime.fromtimestamp(timestamp_s, tz=timezone.utc).strftime("%Y-%m-%d")


class TelemetryRecorder:
    """In-memory event log with simple aggregate queries."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._buckets: Dict[str, List[TelemetryEvent]] = defaultdict(list)

    def record(self, event: str, payload: Optional[Dict[str, Any]] = None) -> TelemetryEvent:
        now = self.clock()
        item = TelemetryEvent(
            event=event,
            date=date_bucket(now),
            payload=dict(payload or {}),
            timestamp=now * 1000.0,
        )
        self._buckets[f"{event}:{item.date}"].append(item)
        logger.debug(f"[telemetry] {event} {item.payload}")
        return item

    def events(self, event: str, date: Optional[str] = None) -> List[TelemetryEvent]:
        """Events of one name; a single day when ``date`` is given, else every day."""
        if date is not None:
            return list(self._buckets.get(f"{event}:{date}", []))
        prefix = f"{event}:"
        result: List[TelemetryEvent] = []
        for key in sorted(self._buckets):
            if key.startswith(prefix):
                result.extend(self._buckets[key])
        return result

    def since(self, event: str, cutoff_ms: float) -> List[TelemetryEvent]:
        return [e for e in self.events(event) if e.timestamp >= cutoff_ms]

    def count(self, event: str, date: Optional[str] = None) -> int:
        return len(self.events(event, date))

    def dump(self) -> Dict[str, List[Dict[str, Any]]]:
        return {key: [e.model_dump() for e in items] for key, items in sorted(self._buckets.items())}

    def provider_usage(self) -> Dict[str, Dict[str, Any]]:
        """Per-provider call count, failures and average latency."""
        usage: Dict[str, Dict[str, Any]] = {}
        for e in self.events(PROVIDER_CALL):
            name = e.payload.get("provider", "unknown")
            stats = usage.setdefault(name, {"calls": 0, "failures": 0, "total_latency_ms": 0.0})
            stats["calls"] += 1
            if not e.payload.get("success", False):
                stats["failures"] += 1
            stats["total_latency_ms"] += float(e.payload.get("latency_ms", 0.0))
        for stats in usage.values():
            total = stats.pop("total_latency_ms")
            stats["avg_latency_ms"] = round(total / stats["calls"], 2) if stats["calls"] else 0.0
        return usage

    def clear(self) -> None:
        self._buckets.clear()
