from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request, Response
from pydantic import BaseModel, Field

from insightsmith.app import InsightSmithApp
from insightsmith.logger import bind_request_id, clear_request_id, get_logger
from insightsmith.models import QueryRequest
from insightsmith.models import Response as QueryResponse

logger = get_logger(__name__)

app = FastAPI(title="InsightSmith API", version="0.1.0")


class BatchRequest(BaseModel):
    requests: List[Dict[str, Any]] = Field(default_factory=list)


class BatchItem(BaseModel):
    response: Optional[QueryResponse] = None
    error: Optional[str] = None


# Initialized on startup
is_app: Optional[InsightSmithApp] = None


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or uuid4().hex
    bind_request_id(rid)
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()
    response.headers["X-Request-ID"] = rid
    return response


@app.on_event("startup")
async def startup_event() -> None:
    global is_app
    try:
        is_app = InsightSmithApp(configure_logging=True)
        await is_app.start()
    except Exception as e:
        # The API still answers /health and reports 503 elsewhere
        logger.error(f"[api] initialization failed: {e}", exc_info=True)
        is_app = None


@app.on_event("shutdown")
async def shutdown_event() -> None:
    global is_app
    if is_app is not None:
        await is_app.shutdown()
    is_app = None


def _require_app() -> InsightSmithApp:
    if is_app is None:
        raise HTTPException(status_code=503, detail="InsightSmith not initialized")
    return is_app


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/ready")
def ready() -> Dict[str, Any]:
    components = {
        "app": is_app is not None,
        "providers": bool(is_app and is_app.registry.names()),
        "health_monitor": bool(is_app and is_app.health.running),
    }
    if not all(components.values()):
        raise HTTPException(status_code=503, detail={"ready": False, "components": components})
    return {"ready": True, "components": components}


@app.post("/query", response_model=QueryResponse)
async def query(req: QueryRequest) -> QueryResponse:
    current = _require_app()
    logger.info("[api] /query delegating to orchestrator")
    return await current.orchestrator.process_query(req)


@app.post("/batch", response_model=List[BatchItem])
async def batch(req: BatchRequest) -> List[BatchItem]:
    current = _require_app()
    results = await current.orchestrator.process_batch(req.requests)
    return [BatchItem(response=r.response, error=r.error) for r in results]


@app.get("/metrics")
def metrics() -> Dict[str, Any]:
    current = _require_app()
    return {
        "health": current.health.check().model_dump(mode="json"),
        "cache": current.cache.summary(),
        "providers": current.telemetry.provider_usage(),
    }


@app.get("/telemetry")
def telemetry(event: Optional[str] = None, date: Optional[str] = None) -> Dict[str, Any]:
    current = _require_app()
    if event:
        return {"event": event, "events": [e.model_dump() for e in current.telemetry.events(event, date)]}
    return {"buckets": current.telemetry.dump()}


@app.get("/history")
def history(limit: int = 10) -> Dict[str, Any]:
    current = _require_app()
    entries = current.orchestrator.get_history(limit)
    return {
        "history": [
            {
                "query": e.query.text,
                "type": e.query.type.value,
                "timestamp": e.timestamp.isoformat(),
                "response": e.response.model_dump(mode="json"),
            }
            for e in entries
        ]
    }


@app.delete("/cache")
def clear_cache() -> Dict[str, Any]:
    current = _require_app()
    current.cache.clear()
    return {"cleared": True}
