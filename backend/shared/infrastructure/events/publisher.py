"""
Publishing to the orders feed.

Each notification is size-checked, then sent with a bounded number of
attempts behind the shared circuit breaker.
"""

from __future__ import annotations

import asyncio

import redis.asyncio as redis

from shared.config.settings import settings
from shared.config.logging import get_logger
from shared.infrastructure.correlation import get_request_id
from .event_types import MAX_EVENT_SIZE
from .event_schema import Event
from .circuit_breaker import get_event_circuit_breaker, calculate_retry_delay_with_jitter

logger = get_logger(__name__)


class EventPublishError(Exception):
    """The breaker is open, or every attempt failed."""


def encode_event(event: Event) -> str:
    """
    JSON payload for `event`, tagged with the current request id.

    Raises ValueError if the payload is larger than MAX_EVENT_SIZE.
    """
    if event.request_id is None:
        event.request_id = get_request_id()
    payload = event.to_json()
    size = len(payload.encode("utf-8"))
    if size > MAX_EVENT_SIZE:
        raise ValueError(f"Event {event.type} is {size} bytes, limit is {MAX_EVENT_SIZE}")
    return payload


async def publish_event(redis_client: redis.Redis, channel: str, event: Event) -> int:
    """
    Publish `event` on `channel`.

    Returns:
        Number of subscribers that received it.

    Raises:
        ValueError: payload too large (not retried).
        EventPublishError: breaker open or attempts exhausted.
    """
    payload = encode_event(event)

    breaker = get_event_circuit_breaker()
    if not breaker.can_execute():
        raise EventPublishError(f"Circuit breaker open, {event.type} dropped")

    attempts = settings.redis_publish_max_retries
    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            receivers = await redis_client.publish(channel, payload)
        except Exception as e:
            last_error = e
            if attempt == attempts:
                break
            delay = calculate_retry_delay_with_jitter(attempt - 1, settings.redis_publish_retry_delay)
            logger.warning(
                "Orders feed publish failed, retrying",
                event_type=event.type,
                attempt=attempt,
                of=attempts,
                retry_in=round(delay, 2),
                error=str(e),
            )
            await asyncio.sleep(delay)
        else:
            breaker.record_success()
            return receivers

    breaker.record_failure()
    raise EventPublishError(
        f"{event.type} not published on {channel} after {attempts} attempts"
    ) from last_error
