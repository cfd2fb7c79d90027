from __future__ import annotations

from fastapi.testclient import TestClient


def test_health_without_database(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "checks": {"database": "not_configured"}}


def test_ready_without_database(client: TestClient) -> None:
    assert client.get("/ready").status_code == 200


def test_metrics_exposes_engine_counters(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "text/plain" in resp.headers["content-type"]
    assert "http_requests_total" in resp.text
    assert "access_decisions_total" in resp.text
    assert "enrollments_created_total" in resp.text
