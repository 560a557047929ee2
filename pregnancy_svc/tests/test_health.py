"""
Probes and metrics. None of these routes need credentials.
"""
from unittest.mock import patch

from core.middleware import MetricsCollector, RequestMetrics, get_metrics_collector
from core.datetime_utils import utc_now


def _ready_dependency(data, name):
    return next(dep for dep in data["dependencies"] if dep["name"] == name)


class TestProbes:

    def test_root_describes_service(self, client):
        data = client.get("/").json()

        assert data["service"] == "Pregnancy Health Service API"
        assert data["version"] == "1.0.0"
        assert {"docs", "health", "ready", "metrics"} <= set(data)

    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["timestamp"].endswith("Z")

    def test_readiness_lists_store_and_gemini(self, client):
        response = client.get("/ready")

        assert response.status_code == 200
        assert response.json()["status"] in ("ready", "degraded")
        assert _ready_dependency(response.json(), "database")["status"] == "ok"
        assert _ready_dependency(response.json(), "gemini")

    def test_readiness_degraded_without_gemini_key(self, client):
        with patch("api.routers.health.settings") as fake_settings:
            fake_settings.gemini_api_key = ""
            response = client.get("/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert _ready_dependency(response.json(), "gemini")["status"] == "degraded"

    def test_readiness_fails_when_store_unreachable(self, client):
        with patch("core.dependencies.get_database", side_effect=RuntimeError("disk gone")):
            response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"
        assert _ready_dependency(response.json(), "database")["message"] == "Connection failed: RuntimeError"


class TestMetrics:

    def test_prometheus_text_includes_ai_calls(self, client):
        get_metrics_collector().record_ai_call("assessment", success=True)

        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "http_requests_total" in response.text
        assert 'ai_calls_total{operation="assessment",result="success"}' in response.text

    def test_json_summary(self, client):
        data = client.get("/metrics/json").json()

        assert data["http_requests_total"] >= 0
        assert "http_request_duration_ms_p99" in data
        assert data["ai_calls_failure_total"] >= 0

    def test_collector_counts_by_status_and_operation(self):
        collector = MetricsCollector()
        for status_code, duration in ((200, 10.0), (404, 20.0), (502, 30.0)):
            collector.record_request(RequestMetrics(
                timestamp=utc_now(), method="GET", path="/x",
                status_code=status_code, duration_ms=duration, request_id="r",
            ))
        collector.record_ai_call("chat", success=False)
        collector.record_ai_call("chat", success=False)

        summary = collector.get_summary()

        assert summary["http_requests_total"] == 3
        assert summary["http_requests_2xx_total"] == 1
        assert summary["http_requests_4xx_total"] == 1
        assert summary["http_requests_5xx_total"] == 1
        assert summary["http_request_duration_ms_p50"] == 20.0
        assert summary["ai_calls_failure_total"] == 2
        assert 'ai_calls_total{operation="chat",result="failure"} 2' in collector.get_prometheus_format()
