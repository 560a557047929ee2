"""
Probes and counters for whoever runs the service.

None of these routes need an API key. Readiness looks at the record store
and at whether Gemini is configured; it never calls Gemini, since every call
is billed.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional

from fastapi import APIRouter, Response
from pydantic import BaseModel

from core.config import settings
from core.middleware import get_metrics_collector

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health & Observability"])

SERVICE_VERSION = "1.0.0"
PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: str


class DependencyStatus(BaseModel):
    name: str
    status: str  # ok | degraded | unavailable
    latency_ms: Optional[float] = None
    message: Optional[str] = None


class ReadyResponse(BaseModel):
    status: str  # ready | degraded | not_ready
    dependencies: List[DependencyStatus]
    timestamp: str


class MetricsResponse(BaseModel):
    http_requests_total: int
    http_requests_2xx_total: int
    http_requests_4xx_total: int
    http_requests_5xx_total: int
    http_request_duration_ms_p50: float
    http_request_duration_ms_p95: float
    http_request_duration_ms_p99: float
    ai_calls_success_total: int
    ai_calls_failure_total: int


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _probe_record_store() -> DependencyStatus:
    # Resolved at call time so a replaced factory is honoured.
    from core.dependencies import get_database

    started = time.perf_counter()
    try:
        conn = get_database().get_connection()
        try:
            conn.execute("SELECT 1")
        finally:
            conn.close()
    except Exception as e:
        logger.error("Record store probe failed", extra={"error": str(e)})
        return DependencyStatus(
            name="database",
            status="unavailable",
            latency_ms=round((time.perf_counter() - started) * 1000, 2),
            message=f"Connection failed: {type(e).__name__}",
        )
    return DependencyStatus(
        name="database",
        status="ok",
        latency_ms=round((time.perf_counter() - started) * 1000, 2),
        message="Record store reachable",
    )


def _probe_gemini() -> DependencyStatus:
    if not settings.gemini_api_key:
        return DependencyStatus(
            name="gemini",
            status="degraded",
            latency_ms=0,
            message="GEMINI_API_KEY not set; assessment, chat and OCR are off",
        )
    return DependencyStatus(
        name="gemini",
        status="ok",
        latency_ms=0,
        message=f"Model {settings.gemini_model}",
    )


@router.get("/health", response_model=HealthResponse, summary="Liveness probe")
async def health_check() -> HealthResponse:
    """Answers as long as the process is up."""
    return HealthResponse(status="healthy", version=SERVICE_VERSION, timestamp=_now())


@router.get("/ready", response_model=ReadyResponse, summary="Readiness probe")
async def readiness_check(response: Response) -> ReadyResponse:
    """
    ``ready`` when both probes pass, ``degraded`` when Gemini is not
    configured (records and exports still work), ``not_ready`` with a 503
    when the record store cannot be reached.
    """
    store = _probe_record_store()
    gemini = _probe_gemini()

    if store.status == "unavailable":
        response.status_code = 503
        overall = "not_ready"
    elif gemini.status != "ok":
        overall = "degraded"
    else:
        overall = "ready"

    return ReadyResponse(status=overall, dependencies=[store, gemini], timestamp=_now())


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics() -> Response:
    """HTTP counts, latency percentiles and ``ai_calls_total`` per operation."""
    return Response(
        content=get_metrics_collector().get_prometheus_format(),
        media_type=PROMETHEUS_CONTENT_TYPE,
    )


@router.get("/metrics/json", response_model=MetricsResponse, summary="JSON metrics")
async def get_metrics_json() -> MetricsResponse:
    return MetricsResponse(**get_metrics_collector().get_summary())


@router.get("/", summary="API root")
async def root() -> Dict[str, Any]:
    return {
        "service": "Pregnancy Health Service API",
        "version": SERVICE_VERSION,
        "docs": "/docs",
        "health": "/health",
        "ready": "/ready",
        "metrics": "/metrics",
    }
