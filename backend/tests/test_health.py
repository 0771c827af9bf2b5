"""
Tests for health check endpoints.
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.orm import sessionmaker

from shared.infrastructure.events import health_checks
from shared.utils.health import (
    HealthStatus,
    aggregate_health_checks,
    health_check_with_timeout,
    order_feed_check,
)
from rest_api.routers.public import health as health_router


@pytest.fixture
def database_up(monkeypatch, db_session):
    """Point the database check at the test engine."""
    monkeypatch.setattr(health_router, "SessionLocal", sessionmaker(bind=db_session.get_bind()))


@pytest.fixture
def redis_up(monkeypatch):
    pool = MagicMock()
    pool.ping = AsyncMock(return_value=True)
    monkeypatch.setattr(health_checks, "get_redis_pool", AsyncMock(return_value=pool))
    return pool


@pytest.fixture
def redis_down(monkeypatch):
    pool = MagicMock()
    pool.ping = AsyncMock(side_effect=ConnectionError("Connection refused"))
    monkeypatch.setattr(health_checks, "get_redis_pool", AsyncMock(return_value=pool))
    return pool


class TestHealthEndpoints:
    """Test health check API endpoints."""

    def test_health_check(self, client):
        """Basic health check should return healthy status."""
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "rest-api"

    def test_detailed_health_all_up(self, client, database_up, redis_up, make_order):
        make_order("4")
        response = client.get("/api/health/detailed")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["dependencies"]["database"]["status"] == "healthy"
        assert data["dependencies"]["database"]["details"]["live_orders"] == 1
        assert data["dependencies"]["redis"]["status"] == "healthy"
        assert "state" in data["event_circuit_breaker"]

    def test_detailed_health_degraded_without_redis(self, client, database_up, redis_down):
        response = client.get("/api/health/detailed")
        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "degraded"
        assert "Connection refused" in data["dependencies"]["redis"]["error"]


class TestHealthHelpers:

    def test_order_feed_degraded_while_disconnected(self):
        result = order_feed_check(connected=False, stale=True, last_refreshed_at=None, order_count=3)
        assert result.status == HealthStatus.DEGRADED
        assert result.error == "orders feed disconnected"
        assert result.to_dict()["details"]["order_count"] == 3

    def test_order_feed_healthy_after_refresh(self):
        refreshed = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        result = order_feed_check(connected=True, stale=False, last_refreshed_at=refreshed, order_count=0)
        assert result.healthy
        assert result.details["last_refreshed_at"] == refreshed.isoformat()

    @pytest.mark.asyncio
    async def test_aggregate_mixes_ready_and_pending_checks(self):
        @health_check_with_timeout(timeout=0.05, component="slow")
        async def check_slow():
            await asyncio.sleep(5)

        result = await aggregate_health_checks([
            check_slow(),
            order_feed_check(connected=True, stale=False, last_refreshed_at=None, order_count=1),
        ])

        assert result["status"] == "degraded"
        assert result["components"]["slow"]["error"] == "timeout after 0.05s"
        assert result["components"]["order_feed"]["status"] == "healthy"
