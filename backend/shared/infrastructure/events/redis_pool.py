"""
Process-wide async Redis client.

The REST API, the WS Gateway subscriber and the customer session store all
share one connection pool per process.
"""

from __future__ import annotations

import asyncio
from typing import Any

import redis.asyncio as redis

from shared.config.settings import settings, REDIS_URL
from shared.config.logging import get_logger

logger = get_logger(__name__)

_client: redis.Redis | None = None
_init_lock: asyncio.Lock | None = None


def _lock() -> asyncio.Lock:
    # Created on first use so it belongs to the running loop
    global _init_lock
    if _init_lock is None:
        _init_lock = asyncio.Lock()
    return _init_lock


def _create_client() -> redis.Redis:
    client = redis.from_url(
        REDIS_URL,
        max_connections=settings.redis_pool_max_connections,
        decode_responses=True,
        socket_connect_timeout=settings.redis_socket_timeout,
        health_check_interval=30,
    )
    logger.info(
        "Redis pool created",
        max_connections=settings.redis_pool_max_connections,
        connect_timeout=settings.redis_socket_timeout,
    )
    return client


async def get_redis_pool() -> redis.Redis:
    """Shared client, created on first call."""
    global _client
    if _client is None:
        async with _lock():
            if _client is None:
                _client = _create_client()
    return _client


def redis_pool_stats() -> dict[str, Any]:
    """Connection counts of the shared pool, for health output."""
    if _client is None:
        return {"initialized": False, "max_connections": settings.redis_pool_max_connections}
    pool = _client.connection_pool
    return {
        "initialized": True,
        "max_connections": settings.redis_pool_max_connections,
        "in_use": len(getattr(pool, "_in_use_connections", ())),
        "idle": len(getattr(pool, "_available_connections", ())),
    }


async def close_redis_pool() -> None:
    """Close the shared client on shutdown. Safe to call when it was never created."""
    global _client, _init_lock
    client, _client = _client, None
    _init_lock = None
    if client is None:
        return
    try:
        await client.aclose()
        logger.info("Redis pool closed")
    except Exception as e:
        logger.warning("Error closing Redis pool", error=str(e))
