"""
Customer session persistence.

A session is identified by (table_id, device_id) and stores only its start
time in epoch milliseconds. Both stores implement set-if-absent so that
concurrent first accesses agree on a single start time.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

import redis.asyncio as redis

from shared.config.settings import settings
from shared.config.logging import get_logger
from shared.infrastructure.events.channels import key_customer_session

logger = get_logger(__name__)


class SessionStore(Protocol):
    """Persistence medium for customer session start times."""

    async def get_start_time(self, table_id: str, device_id: str) -> int | None:
        ...

    async def set_start_time_if_absent(self, table_id: str, device_id: str, start_time: int) -> int:
        """Store start_time unless one exists; return the effective start time."""
        ...

    async def delete(self, table_id: str, device_id: str) -> None:
        ...


class InMemorySessionStore:
    """Process-local store. Used in tests and single-process development."""

    def __init__(self) -> None:
        self._start_times: dict[tuple[str, str], int] = {}
        self._lock = asyncio.Lock()

    async def get_start_time(self, table_id: str, device_id: str) -> int | None:
        return self._start_times.get((table_id, device_id))

    async def set_start_time_if_absent(self, table_id: str, device_id: str, start_time: int) -> int:
        async with self._lock:
            return self._start_times.setdefault((table_id, device_id), start_time)

    async def delete(self, table_id: str, device_id: str) -> None:
        self._start_times.pop((table_id, device_id), None)


class RedisSessionStore:
    """
    Redis-backed store shared by the REST API and WS Gateway.

    Keys are removed when the timer destroys an expired session. Their TTL
    (settings.session_record_ttl, a day by default) only clears sessions
    nobody came back to, and is far longer than a session so that a late
    return still finds the old start time and expires instead of restarting.
    """

    def __init__(self, redis_client: redis.Redis, ttl_seconds: int | None = None) -> None:
        self._redis = redis_client
        self._ttl_seconds = ttl_seconds or settings.session_record_ttl

    async def get_start_time(self, table_id: str, device_id: str) -> int | None:
        value = await self._redis.get(key_customer_session(table_id, device_id))
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(
                "Discarding unparseable session start time",
                table_id=table_id,
                device_id=device_id,
                value=value,
            )
            await self.delete(table_id, device_id)
            return None

    async def set_start_time_if_absent(self, table_id: str, device_id: str, start_time: int) -> int:
        key = key_customer_session(table_id, device_id)
        created = await self._redis.set(key, str(start_time), nx=True, ex=self._ttl_seconds)
        if created:
            return start_time
        existing = await self.get_start_time(table_id, device_id)
        if existing is None:
            # Expired between SET NX and GET
            await self._redis.set(key, str(start_time), ex=self._ttl_seconds)
            return start_time
        return existing

    async def delete(self, table_id: str, device_id: str) -> None:
        await self._redis.delete(key_customer_session(table_id, device_id))
