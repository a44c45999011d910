"""
Integration tests for System API endpoints.

Tests health check, unknown routes and the HTTP middleware stack.
"""

import logging
from unittest.mock import patch

import pytest


class TestHealthCheck:
    """Tests for system health endpoints."""

    @pytest.mark.api
    def test_health_endpoint(self, api_client):
        """Test /health endpoint."""
        response = api_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "servipro-api"
        assert data["storage"] == "memory"

    @pytest.mark.api
    def test_health_degraded(self, api_client, services):
        with patch.object(services.store, "ping", return_value=False):
            response = api_client.get("/health")

        assert response.json()["status"] == "degraded"

    @pytest.mark.api
    def test_root_endpoint(self, api_client):
        """Test root endpoint."""
        response = api_client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "SERVIPRO API"
        assert "version" in data


class TestUnknownRoutes:

    @pytest.mark.api
    def test_not_found(self, api_client):
        response = api_client.get("/api/no-existe")

        assert response.status_code == 404
        assert response.json() == {
            "exito": False,
            "mensaje": "Ruta no encontrada",
            "codigo": "RUTA_NO_ENCONTRADA",
            "datos": None
        }

    @pytest.mark.api
    def test_wrong_method(self, api_client):
        response = api_client.get("/api/autenticacion/login")

        assert response.status_code == 405
        assert response.json()["codigo"] == "METODO_NO_PERMITIDO"
        assert response.json()["datos"] is None

    @pytest.mark.api
    def test_unhandled_error(self, api_app, services):
        from fastapi.testclient import TestClient

        with patch("api.deps.get_services", return_value=services), \
                patch.object(services.store, "ping", side_effect=RuntimeError("boom")):
            response = TestClient(api_app, raise_server_exceptions=False).get("/health")

        assert response.status_code == 500
        assert response.json() == {
            "exito": False,
            "mensaje": "Error interno del servidor",
            "codigo": "ERROR_INTERNO",
            "datos": None
        }


class TestMiddleware:
    """Response hardening, compression and request logging."""

    @pytest.mark.api
    @pytest.mark.parametrize("path", ["/health", "/api/no-existe"])
    def test_security_headers(self, api_client, path):
        response = api_client.get(path)

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
        assert response.headers["Strict-Transport-Security"].startswith("max-age=")
        assert response.headers["Referrer-Policy"] == "no-referrer"

    @pytest.mark.api
    def test_large_responses_gzipped(self, api_client):
        response = api_client.get("/openapi.json", headers={"Accept-Encoding": "gzip"})

        assert response.status_code == 200
        assert response.headers["content-encoding"] == "gzip"
        assert response.json()["info"]["title"] == "SERVIPRO API"

    @pytest.mark.api
    def test_small_responses_not_gzipped(self, api_client):
        response = api_client.get("/health", headers={"Accept-Encoding": "gzip"})

        assert "content-encoding" not in response.headers

    @pytest.mark.api
    def test_requests_logged(self, api_client, caplog):
        with caplog.at_level(logging.INFO, logger="api.main"):
            api_client.get("/api/no-existe")

        messages = [r.getMessage() for r in caplog.records if r.name == "api.main"]
        assert any(m.startswith("GET /api/no-existe 404 ") and m.endswith("ms") for m in messages)


class TestPurgeJob:

    @pytest.mark.unit
    def test_purge_expired_documents(self, services, clock, test_config):
        from api.main import purge_expired_documents

        services.verifications.issue(test_config["test_phone"], "123456")
        clock.advance(301)

        with patch("api.main.get_services", return_value=services):
            purge_expired_documents()

        assert services.store.collection("codigos_verificacion").dump() == []


class TestLifespan:

    @pytest.mark.api
    def test_startup_and_shutdown(self, api_app):
        """Services come from the environment; the purge job runs for in-process stores."""
        import api.main
        from fastapi.testclient import TestClient

        with TestClient(api_app) as client:
            assert api.main.scheduler is not None
            assert api.main.scheduler.get_job("purge_expired") is not None
            assert client.get("/health").json()["storage"] == "memory"

        assert api.main.scheduler is None
