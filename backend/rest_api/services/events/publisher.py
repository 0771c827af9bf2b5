"""
Order Event Publisher.

Publishes one change notification per committed write to the orders
channel. Notifications only tell consumers to re-read; a lost one delays
a refresh but never corrupts state, so failures are logged, not raised.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

import redis.asyncio as redis

from shared.config.constants import Actors
from shared.config.logging import get_logger
from shared.infrastructure.events import (
    Event,
    EventPublishError,
    channel_orders,
    get_redis_pool,
    publish_event,
    ORDER_CREATED,
    ORDER_STATUS_CHANGED,
    ORDER_ITEM_SERVED,
    ORDER_HELP_CHANGED,
    ORDERS_ARCHIVED,
    ORDER_ITEMS_ARCHIVED,
)
from shared.utils.schemas import ArchiveResult, Order

logger = get_logger(__name__)

RedisGetter = Callable[[], Awaitable[redis.Redis]]


class OrderEventPublisher:
    """
    Publisher for live order change notifications.

    Usage:
        publisher = get_order_publisher()
        await publisher.status_changed(order, actor=Actors.STAFF)
    """

    def __init__(self, redis_getter: RedisGetter = get_redis_pool, channel: str | None = None):
        self._redis_getter = redis_getter
        self._channel = channel

    @property
    def channel(self) -> str:
        return self._channel or channel_orders()

    async def publish(
        self,
        event_type: str,
        order_ids: list[str],
        table_id: str | None = None,
        entity: dict[str, Any] | None = None,
        actor: str | None = None,
    ) -> bool:
        """Returns False if the notification could not be delivered."""
        try:
            event = Event(
                type=event_type,
                order_ids=order_ids,
                table_id=table_id,
                entity=entity or {},
                actor={"kind": actor} if actor else {},
            )
            redis_client = await self._redis_getter()
            receivers = await publish_event(redis_client, self.channel, event)
        except (EventPublishError, ValueError) as e:
            logger.error(
                "Failed to publish order event",
                event_type=event_type,
                order_ids=order_ids,
                error=str(e),
            )
            return False
        except Exception as e:
            logger.error(
                "Unexpected error publishing order event",
                event_type=event_type,
                order_ids=order_ids,
                error=str(e),
                exc_info=True,
            )
            return False

        logger.debug(
            "Order event published",
            event_type=event_type,
            order_ids=order_ids,
            receivers=receivers,
        )
        return True

    async def order_created(self, order: Order) -> bool:
        return await self.publish(
            ORDER_CREATED,
            [order.id],
            order.table_id,
            {"order_number": order.order_number, "status": order.status},
            actor=Actors.CUSTOMER,
        )

    async def order_changed(self, event_type: str, order: Order, actor: str, **entity: Any) -> bool:
        return await self.publish(
            event_type,
            [order.id],
            order.table_id,
            {"status": order.status, "version": order.version, **entity},
            actor=actor,
        )

    async def status_changed(self, order: Order, actor: str) -> bool:
        return await self.order_changed(ORDER_STATUS_CHANGED, order, actor)

    async def item_served(self, order: Order, item_index: int, actor: str) -> bool:
        return await self.order_changed(ORDER_ITEM_SERVED, order, actor, item_index=item_index)

    async def help_changed(self, order: Order, actor: str) -> bool:
        return await self.order_changed(
            ORDER_HELP_CHANGED, order, actor, help_requested=order.help_requested
        )

    async def archived(self, result: ArchiveResult, actor: str) -> bool:
        """Nothing is published for a nothing-to-archive result."""
        if result.nothing_to_archive:
            return False
        return await self.publish(
            ORDERS_ARCHIVED,
            result.archived_ids,
            result.table_id,
            {"history_ids": result.history_ids},
            actor=actor,
        )

    async def items_archived(self, order_id: str, result: ArchiveResult, actor: str) -> bool:
        if result.nothing_to_archive:
            return False
        return await self.publish(
            ORDER_ITEMS_ARCHIVED,
            [order_id],
            result.table_id,
            {"history_ids": result.history_ids, "order_removed": bool(result.archived_ids)},
            actor=actor,
        )


_publisher: OrderEventPublisher | None = None


def get_order_publisher() -> OrderEventPublisher:
    """FastAPI dependency returning the process-wide publisher."""
    global _publisher
    if _publisher is None:
        _publisher = OrderEventPublisher()
    return _publisher
