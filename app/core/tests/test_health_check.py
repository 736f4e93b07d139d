"""Tests for the health check endpoint."""

from unittest.mock import patch

import pytest
from django.db import OperationalError
from django.urls import reverse


@pytest.mark.django_db
class TestHealthCheck:
    """Tests for GET /health/."""

    def test_healthy(self, api_client):
        response = api_client.get(reverse("health_check"))

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "database": "connected",
            "cache": "connected",
        }

    def test_database_down(self, api_client):
        with patch("core.views.connection") as mock_connection:
            mock_connection.cursor.side_effect = OperationalError("refused")
            response = api_client.get(reverse("health_check"))

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"

    def test_cache_down(self, api_client):
        with patch("core.views.caches") as mock_caches:
            mock_caches.__getitem__.return_value.set.side_effect = ConnectionError("redis gone")
            response = api_client.get(reverse("health_check"))

        assert response.status_code == 503
        assert response.json()["cache"] == "disconnected"
