"""Unit tests for AdminAuthMiddleware and the error envelope."""

from unittest.mock import patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from legacy_letters.api.middleware.admin_auth import AdminAuthMiddleware
from legacy_letters.api.middleware.error_handler import register_error_handlers
from legacy_letters.core.exceptions import SubmissionNotFoundError, UnauthenticatedError


def _create_test_app() -> FastAPI:
    """Create a minimal FastAPI app with the admin middleware and error handlers."""
    app = FastAPI()
    app.add_middleware(AdminAuthMiddleware)
    register_error_handlers(app)

    @app.get("/api/v1/admin/submissions")
    async def submissions():
        return []

    @app.get("/api/v1/sections")
    async def sections():
        return []

    @app.get("/api/v1/questionnaire")
    async def questionnaire():
        raise UnauthenticatedError(login_url="/signin")

    @app.get("/api/v1/missing")
    async def missing():
        raise SubmissionNotFoundError("abc")

    @app.get("/api/v1/crash")
    async def crash():
        raise RuntimeError("secret stack detail")

    return app


@pytest.fixture
def client():
    transport = ASGITransport(app=_create_test_app(), raise_app_exceptions=False)
    return AsyncClient(transport=transport, base_url="http://test")


class TestAdminAuthNoKey:
    @patch("legacy_letters.api.middleware.admin_auth.get_settings")
    async def test_admin_closed(self, mock_settings, client):
        mock_settings.return_value.admin_api_key = ""
        resp = await client.get("/api/v1/admin/submissions")
        assert resp.status_code == 403
        assert resp.json()["code"] == "ADMIN_DISABLED"

    @patch("legacy_letters.api.middleware.admin_auth.get_settings")
    async def test_other_routes_open(self, mock_settings, client):
        mock_settings.return_value.admin_api_key = ""
        resp = await client.get("/api/v1/sections")
        assert resp.status_code == 200


class TestAdminAuthWithKey:
    @patch("legacy_letters.api.middleware.admin_auth.get_settings")
    async def test_missing_header(self, mock_settings, client):
        mock_settings.return_value.admin_api_key = "secret"
        resp = await client.get("/api/v1/admin/submissions")
        assert resp.status_code == 401
        assert resp.json()["code"] == "ADMIN_AUTH_REQUIRED"

    @patch("legacy_letters.api.middleware.admin_auth.get_settings")
    async def test_wrong_scheme(self, mock_settings, client):
        mock_settings.return_value.admin_api_key = "secret"
        resp = await client.get(
            "/api/v1/admin/submissions", headers={"Authorization": "Basic secret"}
        )
        assert resp.status_code == 401

    @patch("legacy_letters.api.middleware.admin_auth.get_settings")
    async def test_valid_key(self, mock_settings, client):
        mock_settings.return_value.admin_api_key = "secret"
        resp = await client.get(
            "/api/v1/admin/submissions", headers={"Authorization": "Bearer secret"}
        )
        assert resp.status_code == 200


class TestErrorEnvelope:
    async def test_unauthenticated_carries_login_url(self, client):
        resp = await client.get("/api/v1/questionnaire")
        assert resp.status_code == 401
        body = resp.json()
        assert body["code"] == "AUTH_REQUIRED"
        assert body["login_url"] == "/signin"
        assert "timestamp" in body

    async def test_domain_error(self, client):
        resp = await client.get("/api/v1/missing")
        assert resp.status_code == 404
        assert resp.json()["code"] == "SUBMISSION_NOT_FOUND"
        assert "login_url" not in resp.json()

    async def test_unhandled_error_hidden(self, client):
        resp = await client.get("/api/v1/crash")
        assert resp.status_code == 500
        assert resp.json() == {
            "detail": "Internal server error",
            "code": "INTERNAL_ERROR",
            "timestamp": resp.json()["timestamp"],
        }

    async def test_unknown_route_uses_envelope(self, client):
        resp = await client.get("/api/v1/nope")
        assert resp.status_code == 404
        assert resp.json()["code"] == "NOT_FOUND"
