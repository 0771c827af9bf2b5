"""
Health check helpers.

Every dependency check produces a HealthCheckResult; the detailed health
endpoints of both services aggregate them into one response with a single
healthy/degraded verdict.

Usage:
    @health_check_with_timeout(timeout=3.0, component="redis")
    async def check_redis():
        await client.ping()
        return {"max_connections": 50}
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable

from shared.config.logging import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class HealthCheckResult:
    status: HealthStatus
    component: str
    latency_ms: float | None = None
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status.value, "component": self.component}
        if self.latency_ms is not None:
            data["latency_ms"] = round(self.latency_ms, 2)
        if self.error:
            data["error"] = self.error
        if self.details:
            data["details"] = self.details
        return data


def health_check_with_timeout(timeout: float = 5.0, component: str | None = None):
    """
    Wrap an async check so it always returns a HealthCheckResult.

    The check returns optional details; a timeout or any exception marks
    the component unhealthy instead of propagating.
    """
    def decorator(
        func: Callable[..., Awaitable[dict[str, Any] | None]]
    ) -> Callable[..., Awaitable[HealthCheckResult]]:
        name = component or func.__name__.removeprefix("check_").removesuffix("_health")

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> HealthCheckResult:
            started = time.perf_counter()
            error: str | None = None
            details: Any = None
            try:
                details = await asyncio.wait_for(func(*args, **kwargs), timeout=timeout)
            except asyncio.TimeoutError:
                error = f"timeout after {timeout}s"
            except Exception as e:
                error = str(e)
            latency_ms = (time.perf_counter() - started) * 1000

            if error is not None:
                logger.warning("Health check failed", component=name, error=error)
                return HealthCheckResult(HealthStatus.UNHEALTHY, name, latency_ms, error=error)
            return HealthCheckResult(
                HealthStatus.HEALTHY,
                name,
                latency_ms,
                details=details if isinstance(details, dict) else {},
            )

        return wrapper
    return decorator


def order_feed_check(
    connected: bool,
    stale: bool,
    last_refreshed_at: datetime | None,
    order_count: int,
) -> HealthCheckResult:
    """The gateway's view of the live order set: degraded while it may be out of date."""
    details = {
        "connected": connected,
        "stale": stale,
        "last_refreshed_at": last_refreshed_at.isoformat() if last_refreshed_at else None,
        "order_count": order_count,
    }
    if stale:
        reason = "orders feed disconnected" if not connected else "no snapshot read yet"
        return HealthCheckResult(HealthStatus.DEGRADED, "order_feed", error=reason, details=details)
    return HealthCheckResult(HealthStatus.HEALTHY, "order_feed", details=details)


async def aggregate_health_checks(
    checks: list[Awaitable[HealthCheckResult] | HealthCheckResult],
) -> dict[str, Any]:
    """
    Await the pending checks concurrently and combine them with the ready ones.

    Returns {"status": "healthy" | "degraded", "components": {name: result}}.
    """
    pending = [check for check in checks if inspect.isawaitable(check)]
    awaited = iter(await asyncio.gather(*pending, return_exceptions=True))
    results = [next(awaited) if inspect.isawaitable(check) else check for check in checks]

    components: dict[str, dict[str, Any]] = {}
    for result in results:
        if isinstance(result, BaseException):
            result = HealthCheckResult(HealthStatus.UNHEALTHY, "unknown", error=str(result))
        components[result.component] = result.to_dict()

    all_healthy = all(
        component["status"] == HealthStatus.HEALTHY.value for component in components.values()
    )
    return {
        "status": (HealthStatus.HEALTHY if all_healthy else HealthStatus.DEGRADED).value,
        "components": components,
    }
