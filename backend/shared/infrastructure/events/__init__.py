"""
Event System for the live orders feed via Redis pub/sub.

This package provides:
- circuit_breaker.py: Circuit breaker and retry jitter for publishing
- event_types.py: Change notification type constants
- event_schema.py: Event dataclass with validation
- channels.py: Channel and key naming
- redis_pool.py: Connection pool management
- health_checks.py: Redis health check
- publisher.py: publish_event with retry
"""

from .circuit_breaker import (
    CircuitState,
    EventCircuitBreaker,
    get_event_circuit_breaker,
    calculate_retry_delay_with_jitter,
)
from .event_types import (
    ORDER_CREATED,
    ORDER_STATUS_CHANGED,
    ORDER_ITEM_SERVED,
    ORDER_HELP_CHANGED,
    ORDERS_ARCHIVED,
    ORDER_ITEMS_ARCHIVED,
    ALL_ORDER_EVENTS,
    MAX_EVENT_SIZE,
)
from .event_schema import Event
from .channels import channel_orders, key_customer_session
from .redis_pool import (
    get_redis_pool,
    redis_pool_stats,
    close_redis_pool,
)
from .health_checks import check_redis_async_health
from .publisher import encode_event, publish_event, EventPublishError

__all__ = [
    # Circuit Breaker
    "CircuitState",
    "EventCircuitBreaker",
    "get_event_circuit_breaker",
    "calculate_retry_delay_with_jitter",
    # Event Types
    "ORDER_CREATED",
    "ORDER_STATUS_CHANGED",
    "ORDER_ITEM_SERVED",
    "ORDER_HELP_CHANGED",
    "ORDERS_ARCHIVED",
    "ORDER_ITEMS_ARCHIVED",
    "ALL_ORDER_EVENTS",
    "MAX_EVENT_SIZE",
    # Event Schema
    "Event",
    # Channels
    "channel_orders",
    "key_customer_session",
    # Redis Pool
    "get_redis_pool",
    "redis_pool_stats",
    "close_redis_pool",
    # Health Checks
    "check_redis_async_health",
    # Publishing
    "encode_event",
    "publish_event",
    "EventPublishError",
]
