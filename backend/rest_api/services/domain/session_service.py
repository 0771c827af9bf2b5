"""
Customer Session Domain Service.

A customer session is a bounded cart lifetime keyed by (table, device).
Only the start time is persisted; time left is always recomputed from the
wall clock so reloads and reconnects never reset or stretch it.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from shared.config.settings import settings
from shared.config.logging import get_logger
from shared.infrastructure.session_store import SessionStore
from shared.utils.schemas import SessionOutput

logger = get_logger(__name__)

Clock = Callable[[], int]


def now_ms() -> int:
    """Wall clock in epoch milliseconds."""
    return int(time.time() * 1000)


def compute_time_left(start_time: int, duration_ms: int, now: int) -> int:
    return max(0, start_time + duration_ms - now)


def format_time_left(ms: int) -> str:
    """Render milliseconds as MM:SS, flooring to the whole second."""
    total_seconds = max(0, ms) // 1000
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"


@dataclass(frozen=True)
class CustomerSession:
    table_id: str
    device_id: str
    start_time: int
    duration_ms: int

    def time_left(self, now: int) -> int:
        return compute_time_left(self.start_time, self.duration_ms, now)

    def is_expired(self, now: int) -> bool:
        return self.time_left(now) <= 0

    def to_output(self, now: int) -> SessionOutput:
        left = self.time_left(now)
        return SessionOutput(
            table_id=self.table_id,
            device_id=self.device_id,
            start_time=self.start_time,
            duration_ms=self.duration_ms,
            time_left_ms=left,
            time_left=format_time_left(left),
            expired=left <= 0,
        )


class CustomerSessionService:
    """
    create / read / destroy over an injected SessionStore.

    create() is create-or-read: an existing session, even an expired one,
    is returned as is so that its expiry still fires exactly once.
    """

    def __init__(
        self,
        store: SessionStore,
        clock: Clock = now_ms,
        duration_ms: int | None = None,
    ):
        self._store = store
        self._clock = clock
        self._duration_ms = duration_ms or settings.session_duration_ms

    @property
    def duration_ms(self) -> int:
        return self._duration_ms

    def now(self) -> int:
        return self._clock()

    def _session(self, table_id: str, device_id: str, start_time: int) -> CustomerSession:
        return CustomerSession(table_id, device_id, start_time, self._duration_ms)

    async def create(self, table_id: str, device_id: str) -> CustomerSession:
        start_time = await self._store.set_start_time_if_absent(table_id, device_id, self._clock())
        session = self._session(table_id, device_id, start_time)
        logger.debug(
            "Customer session opened",
            table_id=table_id,
            device_id=device_id,
            time_left_ms=session.time_left(self._clock()),
        )
        return session

    async def read(self, table_id: str, device_id: str) -> CustomerSession | None:
        start_time = await self._store.get_start_time(table_id, device_id)
        if start_time is None:
            return None
        return self._session(table_id, device_id, start_time)

    async def destroy(self, table_id: str, device_id: str) -> None:
        await self._store.delete(table_id, device_id)
        logger.info("Customer session destroyed", table_id=table_id, device_id=device_id)
