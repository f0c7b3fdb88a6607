"""
Data models for query orchestration.
"""

import time
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class QueryType(str, Enum):
    """Classified intent types plus the task-specific assistant variants."""
    ANALYTICAL = "analytical"
    OPERATIONAL = "operational"
    PREDICTIVE = "predictive"
    COMPARATIVE = "comparative"
    INSIGHT = "insight"
    CHAT = "chat"
    ALERT = "alert"
    ANALYSIS = "analysis"
    FORECAST = "forecast"
    SUBSTITUTION = "substitution"
    DEMOGRAPHIC = "demographic"


class Complexity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Priority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class ActionType(str, Enum):
    FILTER = "filter"
    NAVIGATE = "navigate"
    EXPORT = "export"
    ALERT = "alert"


def now_ms() -> float:
    """Current wall-clock time in epoch milliseconds."""
    return time.time() * 1000.0


def new_query_id() -> str:
    return f"q_{int(now_ms())}_{uuid.uuid4().hex[:9]}"


def new_response_id() -> str:
    return f"r_{int(now_ms())}_{uuid.uuid4().hex[:9]}"


class Intent(BaseModel):
    """Classified purpose of a natural-language question."""
    model_config = ConfigDict(frozen=True)

    type: QueryType = QueryType.ANALYTICAL
    entities: List[str] = Field(default_factory=list)
    metrics: List[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class QueryRequest(BaseModel):
    """Caller-facing request shape; accepts camelCase or snake_case keys."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    text: Optional[str] = None
    type: Optional[QueryType] = None
    template_id: Optional[str] = Field(default=None, alias="templateId")
    context: Dict[str, Any] = Field(default_factory=dict)
    filters: Optional[Dict[str, Any]] = None
    data: Optional[Dict[str, Any]] = None
    complexity: Optional[Complexity] = None
    realtime: bool = False
    priority: Priority = Priority.NORMAL


class Query(BaseModel):
    """A single request after normalization. Never mutated; enrichment copies."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_query_id)
    text: Optional[str] = None
    type: QueryType = QueryType.CHAT
    template_id: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)
    filters: Dict[str, Any] = Field(default_factory=dict)
    data: Dict[str, Any] = Field(default_factory=dict)
    complexity: Optional[Complexity] = None
    realtime: bool = False
    priority: Priority = Priority.NORMAL
    timestamp: Optional[datetime] = None
    intent: Optional[Intent] = None


class ProviderDescriptor(BaseModel):
    """Which backend and model serve a routed query."""
    model_config = ConfigDict(frozen=True)

    name: str
    model: str
    temperature: float = 0.7
    max_tokens: int = 1000
    tier: str = "balanced"
    confidence_bonus: float = Field(default=0.0, ge=0.0, le=0.15)


TEMPLATE_PROVIDER = ProviderDescriptor(name="template", model="sql-template-library", tier="template")
CANNED_PROVIDER = ProviderDescriptor(name="canned", model="static-fallback", tier="degraded")


class Timing(BaseModel):
    """Start/end in epoch milliseconds, duration in milliseconds."""
    start: float
    end: float
    duration: float

    @classmethod
    def since(cls, start: float) -> "Timing":
        end = now_ms()
        return cls(start=start, end=end, duration=max(0.0, end - start))


class Action(BaseModel):
    type: ActionType
    label: str
    params: Dict[str, Any] = Field(default_factory=dict)


class Response(BaseModel):
    """Unified response envelope returned for every executed query."""
    id: str = Field(default_factory=new_response_id)
    query_id: str
    content: str
    sql: Optional[str] = None
    data: Optional[Any] = None
    explanation: Optional[str] = None
    confidence: float = Field(ge=0.0, le=1.0)
    provider: ProviderDescriptor
    template: Optional[str] = None
    suggestions: List[str] = Field(default_factory=list)
    visualizations: List[Dict[str, Any]] = Field(default_factory=list)
    actions: List[Action] = Field(default_factory=list)
    timing: Timing
    cached: bool = False
    error: Optional[str] = None
    intent: Optional[Intent] = None


class CacheEntry(BaseModel):
    key: str
    response: Response
    expires_at: float


class TelemetryEvent(BaseModel):
    event: str
    date: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: float


__all__ = [
    "QueryType",
    "Complexity",
    "Priority",
    "ActionType",
    "Intent",
    "QueryRequest",
    "Query",
    "ProviderDescriptor",
    "TEMPLATE_PROVIDER",
    "CANNED_PROVIDER",
    "Timing",
    "Action",
    "Response",
    "CacheEntry",
    "TelemetryEvent",
    "now_ms",
    "new_query_id",
    "new_response_id",
]
