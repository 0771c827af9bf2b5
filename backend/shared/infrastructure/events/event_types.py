"""
Event Type Constants.

Defines the change notifications published on the orders feed.
Notifications only announce that the live order set changed; consumers
re-read the snapshot from the store.
"""

from shared.config.settings import settings

# =============================================================================
# Order lifecycle events
# Flow: Pending -> Received -> Ready -> Served -> archived
# =============================================================================

ORDER_CREATED = "ORDER_CREATED"
ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED"
ORDER_ITEM_SERVED = "ORDER_ITEM_SERVED"
ORDER_HELP_CHANGED = "ORDER_HELP_CHANGED"

# =============================================================================
# Archive events
# =============================================================================

ORDERS_ARCHIVED = "ORDERS_ARCHIVED"
ORDER_ITEMS_ARCHIVED = "ORDER_ITEMS_ARCHIVED"

ALL_ORDER_EVENTS = frozenset({
    ORDER_CREATED,
    ORDER_STATUS_CHANGED,
    ORDER_ITEM_SERVED,
    ORDER_HELP_CHANGED,
    ORDERS_ARCHIVED,
    ORDER_ITEMS_ARCHIVED,
})

# =============================================================================
# Size limits
# =============================================================================

# Maximum message size for events (same as WebSocket limit)
MAX_EVENT_SIZE = settings.ws_max_message_size
