"""
Tests for HTTP middlewares, request correlation and the commit helper.
"""

import pytest
from unittest.mock import MagicMock
from fastapi import FastAPI
from fastapi.testclient import TestClient

from rest_api.core.middlewares import (
    SecurityHeadersMiddleware,
    ContentTypeValidationMiddleware,
    register_middlewares,
)
from shared.infrastructure.correlation import (
    CorrelationIdMiddleware,
    CorrelationIdFilter,
    request_id_var,
)
from shared.infrastructure.db import safe_commit


@pytest.fixture
def app_with_middlewares():
    app = FastAPI()
    register_middlewares(app)

    @app.get("/ping")
    def ping():
        return {"ok": True}

    @app.post("/echo")
    def echo():
        return {"ok": True}

    return TestClient(app)


# =============================================================================
# Middleware Tests
# =============================================================================

class TestSecurityHeadersMiddleware:

    def test_adds_hardening_headers(self, app_with_middlewares):
        response = app_with_middlewares.get("/ping")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Cache-Control"] == "no-store"


class TestContentTypeValidationMiddleware:

    def test_allows_json(self, app_with_middlewares):
        response = app_with_middlewares.post("/echo", json={"a": 1})
        assert response.status_code == 200

    def test_allows_post_without_body(self, app_with_middlewares):
        response = app_with_middlewares.post("/echo")
        assert response.status_code == 200

    def test_rejects_other_content_types(self, app_with_middlewares):
        response = app_with_middlewares.post(
            "/echo",
            content="a=1",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        assert response.status_code == 415


class TestCorrelationIdMiddleware:

    def test_generates_request_id(self, app_with_middlewares):
        response = app_with_middlewares.get("/ping")
        assert len(response.headers["X-Request-ID"]) == 36

    def test_echoes_provided_request_id(self, app_with_middlewares):
        response = app_with_middlewares.get("/ping", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"

    @pytest.mark.parametrize("header", ["bad id!", "x" * 65, "a\"b"])
    def test_replaces_unusable_request_id(self, app_with_middlewares, header):
        response = app_with_middlewares.get("/ping", headers={"X-Request-ID": header})
        returned = response.headers["X-Request-ID"]
        assert returned != header
        assert len(returned) == 36


class TestCorrelationIdFilter:

    def test_adds_request_id_to_log_record(self):
        token = request_id_var.set("test-request-123")
        try:
            record = MagicMock()
            assert CorrelationIdFilter().filter(record) is True
            assert record.request_id == "test-request-123"
        finally:
            request_id_var.reset(token)

    def test_uses_dash_when_no_request_id(self):
        token = request_id_var.set("")
        try:
            record = MagicMock()
            CorrelationIdFilter().filter(record)
            assert record.request_id == "-"
        finally:
            request_id_var.reset(token)


# =============================================================================
# safe_commit Tests
# =============================================================================

class TestSafeCommit:

    def test_commits_successfully(self):
        mock_db = MagicMock()
        safe_commit(mock_db)
        mock_db.commit.assert_called_once()
        mock_db.rollback.assert_not_called()

    def test_rollbacks_and_reraises(self):
        class CustomDBError(Exception):
            pass

        mock_db = MagicMock()
        mock_db.commit.side_effect = CustomDBError("Custom error")

        with pytest.raises(CustomDBError):
            safe_commit(mock_db)
        mock_db.rollback.assert_called_once()


class TestRegisterMiddlewares:

    def test_registers_all_middlewares(self):
        app = FastAPI()
        register_middlewares(app)

        middleware_classes = [m.cls for m in app.user_middleware]
        assert SecurityHeadersMiddleware in middleware_classes
        assert ContentTypeValidationMiddleware in middleware_classes
        assert CorrelationIdMiddleware in middleware_classes
