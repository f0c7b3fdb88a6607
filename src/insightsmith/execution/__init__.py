"""Generation executor: cache, template fast path, providers and fallback."""

from .executor import GenerationExecutor
from .nodes import ExecutionNodes, ExecutionState, infer_complexity
from .presentation import (
    CANNED_INSIGHTS,
    DEFAULT_CANNED_INSIGHT,
    DEGRADED_CONFIDENCE,
    build_actions,
    build_suggestions,
    build_visualizations,
    confidence_for,
    degraded_response,
)

__all__ = [
    "GenerationExecutor",
    "ExecutionNodes",
    "ExecutionState",
    "infer_complexity",
    "CANNED_INSIGHTS",
    "DEFAULT_CANNED_INSIGHT",
    "DEGRADED_CONFIDENCE",
    "build_actions",
    "build_suggestions",
    "build_visualizations",
    "confidence_for",
    "degraded_response",
]
