"""
Redis pub/sub subscriber for the WebSocket gateway.
Listens on the orders channel and hands each change notification to a callback.

The subscription reconnects with exponential backoff. on_connected and
on_disconnected let the live store track whether its snapshot is stale.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable

import redis.asyncio as redis

from shared.config.settings import settings
from shared.config.logging import get_logger
from shared.infrastructure.events import ALL_ORDER_EVENTS, channel_orders, get_redis_pool

logger = get_logger(__name__)

REQUIRED_EVENT_FIELDS = {"type", "order_ids"}

MessageHandler = Callable[[dict[str, Any]], Awaitable[None]]
LinkHandler = Callable[[], Awaitable[None]]


def validate_event_schema(data: Any) -> tuple[bool, str | None]:
    """
    Validate an incoming event.

    Returns (is_valid, error_message).
    """
    if not isinstance(data, dict):
        return False, "Event must be a dictionary"

    missing = REQUIRED_EVENT_FIELDS - set(data.keys())
    if missing:
        return False, f"Missing required fields: {sorted(missing)}"

    event_type = data.get("type")
    if event_type not in ALL_ORDER_EVENTS:
        # Unknown types still trigger a refresh; a newer publisher may emit them
        logger.warning("Unknown event type received", event_type=event_type)

    order_ids = data.get("order_ids")
    if not isinstance(order_ids, list):
        return False, f"order_ids must be a list, got {type(order_ids).__name__}"

    table_id = data.get("table_id")
    if table_id is not None and not isinstance(table_id, str):
        return False, f"table_id must be a string, got {type(table_id).__name__}"

    return True, None


async def _listen(
    redis_client: redis.Redis,
    channel: str,
    on_message: MessageHandler,
    on_connected: LinkHandler | None,
) -> None:
    pubsub = redis_client.pubsub()
    await pubsub.subscribe(channel)
    logger.info("Redis subscriber started", channel=channel)

    try:
        if on_connected is not None:
            await on_connected()

        async for msg in pubsub.listen():
            if msg is None:
                continue

            # Skip subscription confirmation messages
            if msg.get("type") != "message":
                continue

            try:
                data = json.loads(msg["data"])
            except (json.JSONDecodeError, TypeError) as e:
                logger.warning("Failed to parse Redis message", error=str(e))
                continue

            is_valid, error = validate_event_schema(data)
            if not is_valid:
                logger.warning("Invalid event schema", error=error, channel=channel)
                continue

            try:
                await on_message(data)
            except Exception as e:
                logger.error("Error handling Redis message", error=str(e), exc_info=True)
    finally:
        try:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
        except Exception as e:
            logger.debug("Error closing pubsub", error=str(e))


async def run_subscriber(
    on_message: MessageHandler,
    *,
    channel: str | None = None,
    on_connected: LinkHandler | None = None,
    on_disconnected: LinkHandler | None = None,
    redis_getter: Callable[[], Awaitable[redis.Redis]] = get_redis_pool,
) -> None:
    """
    Subscribe to the orders channel and dispatch messages until cancelled.

    Connection errors are logged and the subscription is re-established
    after a backoff that doubles up to redis_subscriber_max_reconnect_delay.

    Args:
        on_message: Async callback receiving each validated event dict.
        channel: Channel name (defaults to the configured orders channel).
        on_connected: Called after every successful (re)subscribe.
        on_disconnected: Called whenever the subscription is lost.
    """
    channel = channel or channel_orders()
    delay = settings.redis_subscriber_reconnect_delay

    while True:
        try:
            redis_client = await redis_getter()
            await _listen(redis_client, channel, on_message, on_connected)
            # listen() only ends when the connection is closed underneath us
            logger.warning("Redis subscription ended", channel=channel)
        except asyncio.CancelledError:
            logger.info("Redis subscriber cancelled")
            raise
        except Exception as e:
            logger.error(
                "Redis subscriber connection error",
                channel=channel,
                error=str(e),
                retry_in=delay,
            )
        else:
            delay = settings.redis_subscriber_reconnect_delay

        if on_disconnected is not None:
            try:
                await on_disconnected()
            except Exception as e:
                logger.error("on_disconnected callback failed", error=str(e))

        await asyncio.sleep(delay)
        delay = min(delay * 2, settings.redis_subscriber_max_reconnect_delay)
