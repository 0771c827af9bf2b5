"""
WebSocket connection manager.
Tracks active connections: staff boards, and customer sockets by table.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from shared.config.settings import settings
from shared.config.logging import get_logger

logger = get_logger(__name__)


def _is_ws_connected(ws: WebSocket) -> bool:
    """True if the connection is ready to send/receive messages."""
    return ws.client_state == WebSocketState.CONNECTED and ws.application_state == WebSocketState.CONNECTED


class ConnectionManager:
    """
    Manages WebSocket connections for the live order feed.

    Connections are indexed by:
    - staff: every staff board (receives the full board)
    - by_table: customer sockets per table key (receive their table's orders)

    Dict modifications are guarded by an asyncio.Lock.
    """

    HEARTBEAT_TIMEOUT = 60  # Consider connection dead after 60s without any message

    def __init__(self, max_connections: int | None = None):
        self._shutdown = False
        self._max_connections = max_connections or settings.ws_max_connections
        self.staff: set[WebSocket] = set()
        self.by_table: dict[str, set[WebSocket]] = {}
        self._ws_to_table: dict[WebSocket, str] = {}
        self._last_heartbeat: dict[WebSocket, float] = {}
        self._lock = asyncio.Lock()

    @property
    def total_connections(self) -> int:
        return len(self._last_heartbeat)

    async def _accept(self, websocket: WebSocket, timeout: float) -> None:
        if self._shutdown:
            raise ConnectionError("Server is shutting down")
        if self.total_connections >= self._max_connections:
            raise ConnectionError(f"Connection limit reached ({self._max_connections})")
        try:
            await asyncio.wait_for(websocket.accept(), timeout=timeout)
        except asyncio.TimeoutError:
            raise ConnectionError("WebSocket accept timed out")

    async def connect_staff(self, websocket: WebSocket, timeout: float = 5.0) -> None:
        """Accept and register a staff board connection."""
        await self._accept(websocket, timeout)
        async with self._lock:
            self._last_heartbeat[websocket] = time.time()
            self.staff.add(websocket)

    async def connect_diner(self, websocket: WebSocket, table_id: str, timeout: float = 5.0) -> None:
        """Accept and register a customer connection for one table."""
        await self._accept(websocket, timeout)
        async with self._lock:
            self._last_heartbeat[websocket] = time.time()
            self.by_table.setdefault(table_id, set()).add(websocket)
            self._ws_to_table[websocket] = table_id

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a connection from every index. Safe to call twice."""
        async with self._lock:
            self._last_heartbeat.pop(websocket, None)
            self.staff.discard(websocket)
            table_id = self._ws_to_table.pop(websocket, None)
            if table_id is not None:
                sockets = self.by_table.get(table_id)
                if sockets is not None:
                    sockets.discard(websocket)
                    if not sockets:
                        del self.by_table[table_id]

    def tables_with_diners(self) -> list[str]:
        return list(self.by_table.keys())

    # =========================================================================
    # Sending
    # =========================================================================

    async def send(self, websocket: WebSocket, payload: dict[str, Any]) -> bool:
        """Send to one socket with a timeout. Returns False if it failed."""
        if not _is_ws_connected(websocket):
            return False
        try:
            await asyncio.wait_for(websocket.send_json(payload), timeout=settings.ws_send_timeout)
            return True
        except Exception as e:
            logger.warning(
                "Failed to send WebSocket message",
                message_type=payload.get("type"),
                error=str(e),
            )
            return False

    async def _send_many(self, sockets: list[WebSocket], payload: dict[str, Any]) -> int:
        results = await asyncio.gather(*(self.send(ws, payload) for ws in sockets))
        return sum(1 for ok in results if ok)

    async def send_to_staff(self, payload: dict[str, Any]) -> int:
        """Send a message to every staff board. Returns the delivery count."""
        return await self._send_many(list(self.staff), payload)

    async def send_to_table(self, table_id: str, payload: dict[str, Any]) -> int:
        """Send a message to every customer socket at a table."""
        return await self._send_many(list(self.by_table.get(table_id, ())), payload)

    # =========================================================================
    # Heartbeat and lifecycle
    # =========================================================================

    def record_heartbeat(self, websocket: WebSocket) -> None:
        """Record activity from a connection."""
        if websocket in self._last_heartbeat:
            self._last_heartbeat[websocket] = time.time()

    def get_stale_connections(self) -> list[WebSocket]:
        """Connections silent for longer than HEARTBEAT_TIMEOUT."""
        now = time.time()
        return [
            ws for ws, last_time in list(self._last_heartbeat.items())
            if now - last_time > self.HEARTBEAT_TIMEOUT
        ]

    async def cleanup_stale_connections(self) -> int:
        """Close and remove stale connections."""
        stale = self.get_stale_connections()
        for ws in stale:
            try:
                await ws.close(code=1001, reason="Heartbeat timeout")
            except Exception as e:
                logger.warning("Failed to close stale connection", error=str(e))
            await self.disconnect(ws)
        return len(stale)

    async def shutdown(self) -> int:
        """Reject new connections and close the existing ones."""
        self._shutdown = True
        logger.info("WebSocket manager shutting down")

        async with self._lock:
            all_connections = list(self._last_heartbeat.keys())

        closed = 0
        for ws in all_connections:
            try:
                await ws.close(code=1001, reason="Server shutdown")
                closed += 1
            except Exception as e:
                logger.warning("Failed to close connection during shutdown", error=str(e))
            await self.disconnect(ws)

        logger.info("WebSocket shutdown complete", closed=closed)
        return closed

    def is_shutting_down(self) -> bool:
        return self._shutdown

    def get_stats(self) -> dict[str, Any]:
        return {
            "total_connections": self.total_connections,
            "staff_connections": len(self.staff),
            "tables_with_diners": len(self.by_table),
            "diner_connections": sum(len(s) for s in self.by_table.values()),
        }
