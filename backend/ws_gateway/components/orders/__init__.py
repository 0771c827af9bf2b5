"""
Live order projection for the WebSocket gateway.
"""

from ws_gateway.components.orders.live_store import LiveOrderStore, LiveSnapshot
from ws_gateway.components.orders.broadcaster import (
    SnapshotBroadcaster,
    board_message,
    table_message,
)

__all__ = [
    "LiveOrderStore",
    "LiveSnapshot",
    "SnapshotBroadcaster",
    "board_message",
    "table_message",
]
