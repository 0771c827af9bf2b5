"""
Session Timer.

Drives one customer session on a socket. Every tick recomputes time left
from the persisted start time and the wall clock, so a reconnect picks up
where the previous socket left off. When time runs out:

1. on_expire runs (the caller clears the cart), exactly once
2. the persisted session is destroyed, so the next access starts fresh
3. after the grace delay, on_reset tells the client to start over

A session found already expired at start() expires on the first tick.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable

from shared.config.settings import settings
from shared.config.logging import get_logger
from rest_api.services.domain.session_service import CustomerSession, CustomerSessionService

logger = get_logger(__name__)

Callback = Callable[..., Awaitable[None] | None]
Sleep = Callable[[float], Awaitable[Any]]


class SessionTimer:
    """
    Usage:
        timer = SessionTimer(service, "4", device_id, on_tick=send_tick, on_expire=clear_cart)
        await timer.start()
        ...
        await timer.stop()
    """

    def __init__(
        self,
        service: CustomerSessionService,
        table_id: str,
        device_id: str,
        *,
        on_tick: Callback | None = None,
        on_expire: Callback | None = None,
        on_reset: Callback | None = None,
        tick_interval: float | None = None,
        grace: float | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._service = service
        self.table_id = table_id
        self.device_id = device_id
        self._on_tick = on_tick
        self._on_expire = on_expire
        self._on_reset = on_reset
        self._tick_interval = tick_interval or settings.session_tick_interval
        self._grace = settings.session_expiry_grace if grace is None else grace
        self._sleep = sleep

        self._session: CustomerSession | None = None
        self._expired = False
        self._stopped = False
        self._tick_task: asyncio.Task | None = None
        self._reset_task: asyncio.Task | None = None

    @property
    def session(self) -> CustomerSession | None:
        return self._session

    @property
    def expired(self) -> bool:
        return self._expired

    @property
    def stopped(self) -> bool:
        return self._stopped

    async def start(self) -> CustomerSession:
        """Open (or resume) the session and start ticking."""
        self._session = await self._service.create(self.table_id, self.device_id)
        self._tick_task = asyncio.create_task(
            self._run(), name=f"session_timer:{self.table_id}:{self.device_id}"
        )
        return self._session

    def time_left(self) -> int:
        if self._session is None or self._expired:
            return 0
        return self._session.time_left(self._service.now())

    async def poll(self) -> int:
        """
        One tick: report time left, or expire once it reaches zero.

        Safe to call any number of times; expiry runs only once.
        """
        if self._stopped or self._session is None:
            return 0
        left = self.time_left()
        if left > 0:
            await self._fire("on_tick", self._on_tick, left)
            return left
        await self._expire()
        return 0

    async def _expire(self) -> None:
        # Set before the first await so concurrent polls see it
        if self._expired:
            return
        self._expired = True

        logger.info("Customer session expired", table_id=self.table_id, device_id=self.device_id)
        await self._fire("on_expire", self._on_expire)
        try:
            await self._service.destroy(self.table_id, self.device_id)
        except Exception as e:
            logger.error(
                "Failed to destroy expired session",
                table_id=self.table_id,
                device_id=self.device_id,
                error=str(e),
            )
        if not self._stopped:
            self._reset_task = asyncio.create_task(
                self._reset_after_grace(), name=f"session_reset:{self.table_id}:{self.device_id}"
            )

    async def _reset_after_grace(self) -> None:
        await self._sleep(self._grace)
        if not self._stopped:
            await self._fire("on_reset", self._on_reset)

    async def _run(self) -> None:
        while not self._stopped and not self._expired:
            await self.poll()
            if self._expired:
                break
            await self._sleep(self._tick_interval)

    async def _fire(self, name: str, callback: Callback | None, *args: Any) -> None:
        if callback is None or self._stopped:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(
                "Session timer callback failed",
                callback=name,
                table_id=self.table_id,
                error=str(e),
                exc_info=True,
            )

    async def stop(self) -> None:
        """Cancel pending work. No callback fires after this returns."""
        self._stopped = True
        current = asyncio.current_task()
        for task in (self._tick_task, self._reset_task):
            if task is None or task.done() or task is current:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tick_task = None
        self._reset_task = None
