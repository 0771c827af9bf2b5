"""
Redis health check shared by both services.
"""

from __future__ import annotations

from typing import Any

from shared.utils.health import health_check_with_timeout
from .redis_pool import get_redis_pool, redis_pool_stats


@health_check_with_timeout(timeout=3.0, component="redis")
async def check_redis_async_health() -> dict[str, Any]:
    """PING through the shared pool; details carry the pool's connection counts."""
    client = await get_redis_pool()
    await client.ping()
    return redis_pool_stats()
