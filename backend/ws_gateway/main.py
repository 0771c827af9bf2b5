"""
WebSocket Gateway main application.

Pushes the live order set to staff boards and customer devices, takes
staff commands, and runs customer session timers.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, Query
from fastapi.responses import JSONResponse

from shared.config.settings import settings
from shared.config.logging import setup_logging, ws_gateway_logger as logger
from shared.infrastructure.events import (
    check_redis_async_health,
    close_redis_pool,
    get_event_circuit_breaker,
)
from shared.utils.health import HealthStatus, aggregate_health_checks, order_feed_check
from rest_api.core.cors import configure_cors
from rest_api.core.dependencies import get_session_service
from rest_api.services.events import get_order_publisher
from rest_api.services.order_commands import OrderCommands
from ws_gateway.connection_manager import ConnectionManager
from ws_gateway.redis_subscriber import run_subscriber
from ws_gateway.components.core.constants import WSConstants
from ws_gateway.components.endpoints.handlers import DinerEndpoint, StaffEndpoint
from ws_gateway.components.orders import LiveOrderStore, SnapshotBroadcaster


# Process-wide state: one connection manager, one feed subscription
manager = ConnectionManager()
commands = OrderCommands(get_order_publisher())
store = LiveOrderStore(commands)


# =============================================================================
# Lifespan and background tasks
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Starts:
    - Redis subscriber task feeding the live order store
    - Heartbeat cleanup task for stale connections
    """
    setup_logging()
    logger.info(
        "Starting WebSocket Gateway",
        port=settings.ws_gateway_port,
        env=settings.environment,
    )

    unsubscribe = store.subscribe(SnapshotBroadcaster(manager))
    subscriber_task = asyncio.create_task(start_order_feed(), name="order_feed")
    cleanup_task = asyncio.create_task(start_heartbeat_cleanup(), name="heartbeat_cleanup")

    yield

    logger.info("Shutting down WebSocket Gateway")
    unsubscribe()
    subscriber_task.cancel()
    cleanup_task.cancel()

    try:
        await subscriber_task
    except asyncio.CancelledError:
        pass
    try:
        await cleanup_task
    except asyncio.CancelledError:
        pass

    await manager.shutdown()
    await close_redis_pool()
    logger.info("Redis connection pool closed")


async def start_heartbeat_cleanup():
    """Periodically close connections without recent heartbeats."""
    while True:
        try:
            await asyncio.sleep(WSConstants.CLEANUP_INTERVAL)
            stale_cleaned = await manager.cleanup_stale_connections()
            if stale_cleaned > 0:
                logger.info("Cleaned up stale connections", count=stale_cleaned)
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.error("Error in heartbeat cleanup", error=str(e))


async def start_order_feed():
    """Run the orders channel subscription that keeps the live store current."""
    await run_subscriber(
        store.handle_event,
        on_connected=store.on_feed_connected,
        on_disconnected=store.on_feed_disconnected,
    )


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Order Board WebSocket Gateway",
    description="Live order feed for staff boards and customer devices",
    version="0.1.0",
    lifespan=lifespan,
)

configure_cors(app, methods=["GET", "OPTIONS"], headers=["Content-Type"])


# =============================================================================
# Health Check
# =============================================================================


@app.get("/ws/health")
def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "service": "ws-gateway",
        "version": app.version,
        "environment": settings.environment,
        "feed_connected": store.feed_connected,
        "snapshot_stale": store.is_stale,
        **manager.get_stats(),
    }


@app.get("/ws/health/detailed")
async def detailed_health_check():
    """Redis and order feed status. 503 when degraded."""
    health_results = await aggregate_health_checks([
        check_redis_async_health(),
        order_feed_check(
            connected=store.feed_connected,
            stale=store.is_stale,
            last_refreshed_at=store.last_refreshed_at,
            order_count=len(store.orders),
        ),
    ])

    checks = {
        "service": "ws-gateway",
        "environment": settings.environment,
        "status": health_results["status"],
        "connections": manager.get_stats(),
        "dependencies": health_results["components"],
        "event_circuit_breaker": get_event_circuit_breaker().get_stats(),
    }

    if health_results["status"] != HealthStatus.HEALTHY.value:
        return JSONResponse(content=checks, status_code=503)
    return checks


# =============================================================================
# WebSocket Endpoints
# =============================================================================


@app.websocket("/ws/staff")
async def staff_websocket(websocket: WebSocket):
    """Staff board: BOARD_SNAPSHOT pushes and lifecycle commands."""
    endpoint = StaffEndpoint(websocket, manager, store, commands)
    await endpoint.run()


@app.websocket("/ws/diner")
async def diner_websocket(
    websocket: WebSocket,
    table_id: str | None = Query(default=None, description="Table id; blank means takeaway"),
    device_id: str | None = Query(default=None, description="Customer device id"),
):
    """Customer device: own table's orders and the session countdown."""
    session_service = await get_session_service()
    endpoint = DinerEndpoint(websocket, manager, store, session_service, table_id, device_id)
    await endpoint.run()


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ws_gateway.main:app",
        host="0.0.0.0",
        port=settings.ws_gateway_port,
        reload=True,
    )
