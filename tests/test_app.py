"""
Tests for the application shell: health probes, CSRF token endpoint and the
error envelope.
"""

import socket
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError, OperationalError

from app.error_handlers import GENERIC_ERROR_MESSAGE
from tests.helpers import inquiry_payload


class TestHealth:
    def test_healthy(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["environment"] == "testing"
        assert "timestamp" in body

    def test_unhealthy_when_database_does_not_answer(self, client, app):
        app.state.database.ping = AsyncMock(return_value=False)

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"

    def test_ready(self, client):
        assert client.get("/ready").json() == {"ready": True}

    def test_not_ready_before_probe_succeeds(self, client, app):
        app.state.database.is_connected = False

        response = client.get("/ready")

        assert response.status_code == 503
        assert response.json() == {"ready": False, "reason": "Database not connected"}


class TestCsrfTokenEndpoint:
    def test_body_matches_header(self, client):
        response = client.get("/api/csrf-token")

        assert response.json()["csrfToken"] == response.headers["X-CSRF-Token"]

    def test_token_is_stable_per_session(self, client):
        first = client.get("/api/csrf-token").json()["csrfToken"]
        second = client.get("/api/csrf-token").json()["csrfToken"]
        assert first == second


class TestErrorEnvelope:
    def test_unknown_route(self, client):
        response = client.get("/api/does-not-exist")

        assert response.status_code == 404
        assert response.json() == {"error": "Route /api/does-not-exist not found"}

    def test_validation_failure(self, client, anon_headers):
        response = client.post("/api/inquiries", json={"name": "S"}, headers=anon_headers)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        fields = {detail["field"] for detail in body["details"]}
        assert {"name", "email", "subject", "message"} <= fields

    def test_authentication_is_checked_before_body(self, client, anon_headers):
        response = client.post("/api/products", json={}, headers=anon_headers)

        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required"}


@pytest.fixture
def failing_app(app):
    async def boom():
        raise RuntimeError("kaboom")

    async def duplicate():
        raise IntegrityError("INSERT INTO products", {}, Exception("UNIQUE constraint failed: products.sku"))

    async def unreachable():
        raise OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))

    app.add_api_route("/api/test/boom", boom)
    app.add_api_route("/api/test/duplicate", duplicate)
    async def refused():
        raise ConnectionRefusedError(111, "Connect call failed")

    async def unknown_host():
        raise socket.gaierror(-2, "Name or service not known")

    async def missing_file():
        raise FileNotFoundError(2, "No such file", "/tmp/catalog.csv")

    app.add_api_route("/api/test/unreachable", unreachable)
    app.add_api_route("/api/test/refused", refused)
    app.add_api_route("/api/test/unknown-host", unknown_host)
    app.add_api_route("/api/test/missing-file", missing_file)
    return app


@pytest.fixture
def failing_client(failing_app):
    with TestClient(failing_app, raise_server_exceptions=False) as test_client:
        yield test_client


class TestUnhandledErrors:
    def test_development_response_includes_stack(self, failing_client):
        response = failing_client.get("/api/test/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "kaboom"
        assert "RuntimeError" in body["stack"]

    def test_production_hides_details(self, failing_app, failing_client, settings):
        failing_app.state.settings = settings.model_copy(update={"environment": "production"})

        response = failing_client.get("/api/test/boom")

        assert response.status_code == 500
        assert response.json() == {"error": GENERIC_ERROR_MESSAGE}


class TestDatabaseErrors:
    def test_constraint_violation_is_conflict(self, failing_client):
        response = failing_client.get("/api/test/duplicate")

        assert response.status_code == 409
        assert "already exists" in response.json()["error"]

    def test_connection_failure_is_unavailable(self, failing_client):
        response = failing_client.get("/api/test/unreachable")

        assert response.status_code == 503
        assert response.json() == {"error": "Database temporarily unavailable. Please try again."}

    @pytest.mark.parametrize("path", ["/api/test/refused", "/api/test/unknown-host"])
    def test_raw_socket_error_is_unavailable(self, failing_client, path):
        response = failing_client.get(path)

        assert response.status_code == 503
        assert response.json() == {"error": "Database temporarily unavailable. Please try again."}

    def test_other_os_error_is_internal(self, failing_client):
        response = failing_client.get("/api/test/missing-file")

        assert response.status_code == 500
        assert "No such file" in response.json()["error"]
