"""
Health endpoints for the REST API.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import func, select

from shared.config.settings import settings
from shared.infrastructure.db import SessionLocal, engine
from shared.infrastructure.events import check_redis_async_health, get_event_circuit_breaker
from shared.utils.health import HealthStatus, health_check_with_timeout, aggregate_health_checks
from rest_api.models import LiveOrder


router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health_check():
    """Liveness only; dependencies are not contacted."""
    return {
        "status": "healthy",
        "service": "rest-api",
        "environment": settings.environment,
    }


@health_check_with_timeout(timeout=3.0, component="database")
async def check_database_health() -> dict:
    """Round-trip to the order store; reports how many orders are live."""
    with SessionLocal() as db:
        live_orders = db.scalar(select(func.count()).select_from(LiveOrder))
    return {"dialect": engine.dialect.name, "live_orders": live_orders}


@router.get("/health/detailed")
async def detailed_health_check():
    """Database and Redis status. 503 if either is down."""
    health_results = await aggregate_health_checks([
        check_database_health(),
        check_redis_async_health(),
    ])

    checks = {
        "service": "rest-api",
        "environment": settings.environment,
        "status": health_results["status"],
        "dependencies": health_results["components"],
        "event_circuit_breaker": get_event_circuit_breaker().get_stats(),
    }

    if health_results["status"] != HealthStatus.HEALTHY.value:
        return JSONResponse(content=checks, status_code=503)
    return checks
