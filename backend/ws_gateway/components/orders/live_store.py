"""
Live Order Store.

In-memory projection of every live order, kept in step with the database
through the change feed. Each notification triggers a full re-read; the
new snapshot replaces the old one wholesale and is pushed to every
listener. Writes go to the database through OrderCommands and only show up
here after the next notification.

If the feed drops, the last snapshot is kept and marked stale until the
subscription is back and a fresh read succeeds.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from shared.config.logging import get_logger
from shared.utils.schemas import Order
from rest_api.services.order_commands import OrderCommands

logger = get_logger(__name__)


@dataclass(frozen=True)
class LiveSnapshot:
    """One full read of the live order set, newest first."""

    orders: list[Order] = field(default_factory=list)
    refreshed_at: datetime | None = None
    stale: bool = True

    def for_table(self, table_id: str) -> list[Order]:
        return [order for order in self.orders if order.table_id == table_id]


Listener = Callable[[LiveSnapshot], Awaitable[None] | None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LiveOrderStore:
    """
    Usage:
        store = LiveOrderStore(commands)
        unsubscribe = store.subscribe(on_snapshot)
        await store.refresh()
        ...
        unsubscribe()
    """

    def __init__(self, commands: OrderCommands, clock: Callable[[], datetime] = _utcnow):
        self._commands = commands
        self._clock = clock
        self._listeners: list[Listener] = []
        self._snapshot = LiveSnapshot()
        self._feed_connected = False
        self._refresh_lock = asyncio.Lock()

    # =========================================================================
    # State
    # =========================================================================

    @property
    def snapshot(self) -> LiveSnapshot:
        return self._snapshot

    @property
    def orders(self) -> list[Order]:
        return self._snapshot.orders

    @property
    def feed_connected(self) -> bool:
        return self._feed_connected

    @property
    def last_refreshed_at(self) -> datetime | None:
        return self._snapshot.refreshed_at

    @property
    def is_stale(self) -> bool:
        return not self._feed_connected or self._snapshot.refreshed_at is None

    # =========================================================================
    # Subscription
    # =========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a function that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def _notify(self) -> None:
        snapshot = self._snapshot
        for listener in list(self._listeners):
            try:
                result = listener(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    "Live order listener failed",
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(e),
                    exc_info=True,
                )

    # =========================================================================
    # Feed
    # =========================================================================

    async def refresh(self) -> bool:
        """
        Re-read every live order and deliver the snapshot.

        Returns False if the read failed; the previous snapshot is kept.
        """
        async with self._refresh_lock:
            try:
                orders = await self._commands.list_live_orders()
            except Exception as e:
                logger.error("Failed to refresh live orders", error=str(e), exc_info=True)
                return False
            self._snapshot = LiveSnapshot(
                orders=orders,
                refreshed_at=self._clock(),
                stale=not self._feed_connected,
            )
            logger.debug("Live orders refreshed", order_count=len(orders))
            # Delivery stays under the lock so listeners see snapshots in read order
            await self._notify()
        return True

    async def handle_event(self, event: dict[str, Any]) -> None:
        """Feed callback: any change notification triggers a full re-read."""
        logger.debug(
            "Order change received",
            event_type=event.get("type"),
            order_ids=event.get("order_ids"),
        )
        await self.refresh()

    async def on_feed_connected(self) -> None:
        """Events may have been missed while disconnected, so re-read."""
        self._feed_connected = True
        logger.info("Order feed connected")
        await self.refresh()

    async def on_feed_disconnected(self) -> None:
        if not self._feed_connected:
            return
        self._feed_connected = False
        async with self._refresh_lock:
            self._snapshot = LiveSnapshot(
                orders=self._snapshot.orders,
                refreshed_at=self._snapshot.refreshed_at,
                stale=True,
            )
            logger.warning("Order feed disconnected, snapshot is stale")
            await self._notify()

    # =========================================================================
    # Mutations
    # =========================================================================

    async def set_order_status(self, order_id: str, new_status: str, *, actor: str) -> Order:
        """Errors propagate; the cached snapshot is not touched."""
        return await self._commands.set_order_status(order_id, new_status, actor=actor)

    async def set_item_status(
        self, order_id: str, item_index: int, new_status: str, *, actor: str
    ) -> Order:
        return await self._commands.set_item_status(order_id, item_index, new_status, actor=actor)

    async def set_help_requested(self, order_id: str, flag: bool, *, actor: str) -> Order:
        return await self._commands.set_help_requested(order_id, flag, actor=actor)
