"""
tests/test_health.py -- Integration tests for GET /api/v1/health.

Covers:
  - 200 response with status, version, and components fields
  - components.database reports 'ok' / 'error'
  - No authentication required
"""

from __future__ import annotations

from unittest.mock import patch

from sqlalchemy.exc import OperationalError


def test_health_returns_200_with_components(client):
    """Health endpoint returns 200 with status, version, and components."""
    c, _, _ = client
    resp = c.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert data["components"]["app"] == "ok"
    assert data["components"]["database"] == "ok"


def test_health_reports_database_error(client):
    """An unreachable credential store degrades the status instead of failing the request."""
    c, store, _ = client
    with patch.object(store, "ping", side_effect=OperationalError("SELECT 1", {}, Exception("down"))):
        data = c.get("/api/v1/health").json()
    assert data["status"] == "degraded"
    assert data["components"]["database"] == "error"


def test_health_no_auth_required(client):
    """Health endpoint is accessible without a session cookie."""
    c, _, _ = client
    resp = c.get("/api/v1/health", headers={})
    assert resp.status_code == 200
