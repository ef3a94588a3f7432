"""Integration tests for health check endpoints."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_returns_healthy_status(self, client: TestClient) -> None:
        """Test that /health endpoint returns healthy status."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["timestamp"] is not None
        assert data["version"] == "0.1.0"


class TestReadinessEndpoint:
    """Tests for /health/ready endpoint."""

    def test_readiness_returns_200_when_healthy(
        self, client: TestClient, mock_supabase_client: MagicMock
    ) -> None:
        """Test that /health/ready returns 200 when the database answers."""
        response = client.get("/health/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        db_check = next(c for c in data["checks"] if c["name"] == "database")
        assert db_check["healthy"] is True
        assert db_check["latency_ms"] is not None
        mock_supabase_client.table.assert_called_with("orders")

    def test_readiness_returns_503_when_database_unhealthy(
        self, client: TestClient, mock_supabase_client: MagicMock
    ) -> None:
        """Test that /health/ready returns 503 when the database is unreachable."""
        mock_supabase_client.table.return_value.select.return_value.limit.return_value.execute.side_effect = (
            Exception("Connection refused")
        )

        response = client.get("/health/ready")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        db_check = next(c for c in data["checks"] if c["name"] == "database")
        assert db_check["healthy"] is False
        assert "Connection refused" in db_check["error"]

    @patch("src.api.routes.health.check_database_connection", new_callable=AsyncMock)
    def test_readiness_reports_check_error(self, mock_check: AsyncMock, client: TestClient) -> None:
        """Test that the check's error message is surfaced."""
        mock_check.return_value = {"healthy": False, "error": "timeout"}

        response = client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["checks"][0]["error"] == "timeout"


class TestLatencyEndpoint:
    """Tests for /health/latency endpoint."""

    def test_reports_recent_requests(self, client: TestClient) -> None:
        """Test that order traffic shows up grouped by route."""
        client.get("/api/v1/orders/public-status/POSH000000404")

        response = client.get("/health/latency")

        assert response.status_code == 200
        data = response.json()
        assert data["overall"]["total_requests"] >= 1
        assert "/api/v1/orders/public-status/{orderNumber}" in data["by_path"]

    def test_hidden_in_production(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that latency internals are not exposed in production."""
        from src.core.config import get_settings

        monkeypatch.setenv("APP_ENV", "production")
        get_settings.cache_clear()
        try:
            response = client.get("/health/latency")
        finally:
            monkeypatch.setenv("APP_ENV", "test")
            get_settings.cache_clear()

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
