"""
Snapshot Broadcaster.

Live order store listener that fans a snapshot out to connected clients:
staff boards get every table, customer sockets get only their own table.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from shared.config.logging import get_logger
from rest_api.services.domain.table_board import build_board_output
from ws_gateway.components.core.constants import BOARD_SNAPSHOT, ORDERS_SNAPSHOT
from ws_gateway.components.orders.live_store import LiveSnapshot

if TYPE_CHECKING:
    from ws_gateway.connection_manager import ConnectionManager

logger = get_logger(__name__)


def board_message(snapshot: LiveSnapshot) -> dict[str, Any]:
    board = build_board_output(snapshot.orders)
    return {
        "type": BOARD_SNAPSHOT,
        "stale": snapshot.stale,
        "refreshed_at": snapshot.refreshed_at.isoformat() if snapshot.refreshed_at else None,
        "board": board.model_dump(mode="json"),
    }


def table_message(snapshot: LiveSnapshot, table_id: str) -> dict[str, Any]:
    return {
        "type": ORDERS_SNAPSHOT,
        "table_id": table_id,
        "stale": snapshot.stale,
        "orders": [order.model_dump(mode="json") for order in snapshot.for_table(table_id)],
    }


class SnapshotBroadcaster:
    """
    Usage:
        unsubscribe = store.subscribe(SnapshotBroadcaster(manager))
    """

    def __init__(self, manager: "ConnectionManager"):
        self._manager = manager

    async def __call__(self, snapshot: LiveSnapshot) -> None:
        sent = 0
        if self._manager.staff:
            sent += await self._manager.send_to_staff(board_message(snapshot))
        for table_id in self._manager.tables_with_diners():
            sent += await self._manager.send_to_table(table_id, table_message(snapshot, table_id))
        logger.debug("Snapshot broadcast", order_count=len(snapshot.orders), delivered=sent)
