"""
Main Application Unit Tests

Tests for application startup and health endpoints with mocked infrastructure.
Runs without Docker - the database check is mocked.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from brainer.main import app


def test_health_check():
    """
    Verify /health endpoint returns correct response structure.

    TestClient triggers the lifespan handler, so the DB check must be mocked.
    """
    with patch("brainer.main.wait_for_db", new_callable=AsyncMock) as mock_db:
        mock_db.return_value = True

        with TestClient(app) as client:
            response = client.get("/health")

            assert response.status_code == 200
            data = response.json()

            assert data["status"] == "ok"
            assert data["service"] == "brainer"
            assert "environment" in data
            assert data["transcription"] in ("configured", "disabled")


def test_startup_fails_without_database():
    """Lifespan refuses to start when Postgres never becomes reachable."""
    with patch("brainer.main.wait_for_db", new_callable=AsyncMock) as mock_db:
        mock_db.return_value = False

        with pytest.raises(RuntimeError, match="Database connection failed"):
            with TestClient(app):
                pass
