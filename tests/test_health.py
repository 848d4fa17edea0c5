"""
tests/test_health.py -- Integration tests for GET /health.

Covers:
  - 200 response with status, version, and components fields
  - components.database reports 'ok', or 'error' with a degraded status
  - No authentication required
"""

from __future__ import annotations

from api.main import API_VERSION


def test_health_returns_200_with_components(api_client):
    """Health endpoint returns 200 with status, version, and components."""
    client, token, _ = api_client
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["version"] == API_VERSION
    assert data["components"]["app"] == "ok"
    assert data["components"]["database"] == "ok"


def test_health_reports_database_failure(api_client, monkeypatch):
    client, _, _ = api_client
    monkeypatch.setattr(client.app.state.user_store, "ping", lambda: False)
    data = client.get("/health").json()
    assert data["status"] == "degraded"
    assert data["components"]["database"] == "error"


def test_health_no_auth_required(api_client):
    """Health endpoint is accessible without any authentication headers."""
    client, _, _ = api_client
    client.cookies.clear()
    resp = client.get("/health", headers={})
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
