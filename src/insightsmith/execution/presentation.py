"""Presentation extras attached to responses: suggestions, chart hints, actions."""

from typing import Any, Dict, List, Optional

from ..errors import TemplateMismatch
from ..models import (
    CANNED_PROVIDER,
    Action,
    ActionType,
    Priority,
    Query,
    QueryType,
    Response,
    Timing,
)
from ..query_processing.insight_templates import get_insight_template

MAX_SUGGESTIONS = 3
DEGRADED_CONFIDENCE = 0.65

CANNED_INSIGHTS: Dict[QueryType, str] = {
    QueryType.FORECAST: "expect moderate growth of 5-10% based on seasonal trends",
    QueryType.SUBSTITUTION: "customers typically switch to similar price-point alternatives",
    QueryType.DEMOGRAPHIC: "purchase patterns vary significantly by age and location",
    QueryType.INSIGHT: "this metric shows typical performance for your market segment",
}
DEFAULT_CANNED_INSIGHT = "please try again with a more specific query"

_TYPE_SUGGESTIONS: Dict[QueryType, List[str]] = {
    QueryType.FORECAST: ["Compare with historical trends", "Adjust forecast parameters"],
    QueryType.SUBSTITUTION: ["View brand loyalty metrics", "Analyze price impact"],
    QueryType.DEMOGRAPHIC: ["Segment by region", "View purchase patterns"],
}

_TIME_COLUMNS = ("date", "day", "hour", "month", "week", "timestamp", "time")
_GEO_COLUMNS = ("region", "city", "province", "barangay")


def confidence_for(provider_bonus: float, query: Query) -> float:
    """0.75 base plus provider, template and data-richness bonuses, capped at 0.95."""
    confidence = 0.75 + provider_bonus
    if query.template_id:
        confidence += 0.05
    if query.data and len(query.data) > 5:
        confidence += 0.05
    return round(min(confidence, 0.95), 4)


def build_suggestions(query: Query) -> List[str]:
    suggestions: List[str] = []
    if query.template_id:
        try:
            template = get_insight_template(query.template_id)
            suggestions.append(f"Explore more {template.category} insights")
        except TemplateMismatch:
            pass
    suggestions.extend(_TYPE_SUGGESTIONS.get(query.type, []))
    suggestions.append("Export detailed report")
    return suggestions[:MAX_SUGGESTIONS]


def _row_shape_hint(rows: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not rows:
        return None
    columns = [c.lower() for c in rows[0].keys()]
    if any(c in _TIME_COLUMNS for c in columns):
        return {"type": "line", "title": "Trend over time", "data": "rows"}
    if any(c in _GEO_COLUMNS for c in columns):
        return {"type": "map", "title": "Geographic breakdown", "data": "rows"}
    if len(columns) == 2:
        return {"type": "bar", "title": "Comparison", "data": "rows"}
    return {"type": "table", "title": "Query results", "data": "rows"}


def build_visualizations(query: Query, rows: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
    visualizations: List[Dict[str, Any]] = []
    if query.type in (QueryType.ANALYSIS, QueryType.INSIGHT):
        if query.type == QueryType.ANALYSIS or query.template_id == "priceSensitivity":
            visualizations.append({"type": "line", "title": "Price vs Demand Curve", "data": "priceDemandData"})
        if query.template_id == "substitutionMap":
            visualizations.append({"type": "sankey", "title": "Brand Switching Flow", "data": "substitutionFlows"})
        if query.template_id == "genderPreference":
            visualizations.append({"type": "bar", "title": "Purchase by Gender", "data": "genderPurchaseData"})
    hint = _row_shape_hint(rows or [])
    if hint is not None:
        visualizations.append(hint)
    return visualizations


def build_actions(query: Query) -> List[Action]:
    if query.type != QueryType.ALERT and query.priority != Priority.URGENT:
        return []
    actions: List[Action] = []
    if query.type == QueryType.ALERT or query.template_id == "stockoutPrediction":
        actions.append(Action(
            type=ActionType.ALERT,
            label="Create Stock Alert",
            params={"severity": "high", "notify": ["manager", "supplier"]},
        ))
    if query.template_id == "promotionEffectiveness":
        actions.append(Action(type=ActionType.NAVIGATE, label="View Promotion Details", params={"page": "/promotions"}))
    actions.append(Action(
        type=ActionType.EXPORT,
        label="Export Analysis",
        params={"format": "pdf", "include": ["charts", "data"]},
    ))
    return actions


def degraded_response(query: Query, error: str, start_ms: float) -> Response:
    """Canned narrative used when both the primary and the fallback provider failed."""
    insight = CANNED_INSIGHTS.get(query.type, DEFAULT_CANNED_INSIGHT)
    content = (
        f"I encountered an issue processing your {query.type.value} request. "
        f"Using cached insights: Based on historical patterns, {insight}"
    )
    return Response(
        query_id=query.id,
        content=content,
        confidence=DEGRADED_CONFIDENCE,
        provider=CANNED_PROVIDER,
        template=query.template_id,
        timing=Timing.since(start_ms),
        cached=True,
        error=error or "unknown error",
        intent=query.intent,
    )
