"""
Request tracing and in-process counters.

Every request gets a short id that is attached to log lines (through the
logging context) and echoed back in ``X-Request-ID``. Latency and status
classes are kept in memory alongside the outcome of each Gemini call
(assessment, chat, OCR) and exported by the health router.
"""

import logging
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Deque, Dict

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from core.logging_config import set_request_id, clear_request_id

logger = logging.getLogger(__name__)

# Probes and docs are counted but not logged.
QUIET_PATHS = frozenset({
    "/health", "/ready", "/metrics", "/metrics/json",
    "/docs", "/redoc", "/openapi.json",
})

LATENCY_WINDOW = 1000


@dataclass
class RequestMetrics:
    timestamp: datetime
    method: str
    path: str
    status_code: int
    duration_ms: float
    request_id: str


def _status_class(status_code: int) -> str:
    return f"{status_code // 100}xx"


@dataclass
class MetricsCollector:
    """
    Counters for HTTP traffic and AI calls.

    Latency percentiles are computed over the most recent ``LATENCY_WINDOW``
    requests only.
    """
    _window: Deque[RequestMetrics] = field(
        default_factory=lambda: deque(maxlen=LATENCY_WINDOW)
    )
    total_requests: int = 0
    by_status: Dict[str, int] = field(
        default_factory=lambda: {"2xx": 0, "4xx": 0, "5xx": 0}
    )
    # operation -> count
    ai_success: Dict[str, int] = field(default_factory=dict)
    ai_failure: Dict[str, int] = field(default_factory=dict)

    def record_request(self, metrics: RequestMetrics) -> None:
        self._window.append(metrics)
        self.total_requests += 1
        bucket = _status_class(metrics.status_code)
        if bucket in self.by_status:
            self.by_status[bucket] += 1

    def record_ai_call(self, operation: str, success: bool) -> None:
        """Count one Gemini call for ``operation`` as succeeded or failed."""
        counts = self.ai_success if success else self.ai_failure
        counts[operation] = counts.get(operation, 0) + 1

    def get_latency_percentiles(self) -> Dict[str, float]:
        durations = sorted(m.duration_ms for m in self._window)
        if not durations:
            return {"p50": 0, "p95": 0, "p99": 0}
        last = len(durations) - 1
        return {
            f"p{q}": round(durations[min(len(durations) * q // 100, last)], 2)
            for q in (50, 95, 99)
        }

    def get_summary(self) -> Dict:
        latency = self.get_latency_percentiles()
        summary = {"http_requests_total": self.total_requests}
        for bucket, count in self.by_status.items():
            summary[f"http_requests_{bucket}_total"] = count
        for q, value in latency.items():
            summary[f"http_request_duration_ms_{q}"] = value
        summary["ai_calls_success_total"] = sum(self.ai_success.values())
        summary["ai_calls_failure_total"] = sum(self.ai_failure.values())
        return summary

    def get_prometheus_format(self) -> str:
        """Render the counters as Prometheus exposition text."""
        latency = self.get_latency_percentiles()
        out = [
            "# HELP http_requests_total Total HTTP requests",
            "# TYPE http_requests_total counter",
            f"http_requests_total {self.total_requests}",
            "",
            "# HELP http_requests_by_status HTTP requests by status class",
            "# TYPE http_requests_by_status counter",
        ]
        out += [
            f'http_requests_by_status{{status="{bucket}"}} {count}'
            for bucket, count in self.by_status.items()
        ]
        out += [
            "",
            "# HELP http_request_duration_ms Request latency over the recent window",
            "# TYPE http_request_duration_ms gauge",
            f'http_request_duration_ms{{quantile="0.5"}} {latency["p50"]}',
            f'http_request_duration_ms{{quantile="0.95"}} {latency["p95"]}',
            f'http_request_duration_ms{{quantile="0.99"}} {latency["p99"]}',
            "",
            "# HELP ai_calls_total Gemini calls by operation and result",
            "# TYPE ai_calls_total counter",
        ]
        for operation in sorted(set(self.ai_success) | set(self.ai_failure)):
            for result, counts in (("success", self.ai_success), ("failure", self.ai_failure)):
                out.append(
                    f'ai_calls_total{{operation="{operation}",result="{result}"}} '
                    f"{counts.get(operation, 0)}"
                )
        return "\n".join(out) + "\n"


metrics_collector = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    return metrics_collector


class LoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id, logs it and records its latency."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = uuid.uuid4().hex[:8]
        set_request_id(request_id)
        path = request.url.path
        quiet = path in QUIET_PATHS
        started = time.perf_counter()

        if not quiet:
            logger.info(
                "Request started",
                extra={
                    "method": request.method,
                    "path": path,
                    "query": str(request.query_params) or None,
                },
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "Unhandled error while serving request",
                extra={"method": request.method, "path": path, "error": str(e)},
            )
            raise
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            clear_request_id()

        metrics_collector.record_request(RequestMetrics(
            timestamp=datetime.now(timezone.utc),
            method=request.method,
            path=path,
            status_code=response.status_code,
            duration_ms=elapsed_ms,
            request_id=request_id,
        ))

        if not quiet:
            logger.log(
                logging.WARNING if response.status_code >= 400 else logging.INFO,
                "Request completed",
                extra={
                    "method": request.method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": round(elapsed_ms, 2),
                },
            )

        response.headers["X-Request-ID"] = request_id
        return response
