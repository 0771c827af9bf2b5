"""
WebSocket Endpoint Base Class.

Connection lifecycle shared by the staff and diner endpoints.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from fastapi import WebSocket, WebSocketDisconnect

from shared.config.settings import settings
from shared.config.logging import get_logger
from ws_gateway.components.core.constants import (
    WSCloseCode,
    WSConstants,
    MSG_PING_PLAIN,
    MSG_PING_JSON,
    MSG_PONG_JSON,
)
from ws_gateway.components.core.context import WebSocketContext, sanitize_log_data

if TYPE_CHECKING:
    from ws_gateway.connection_manager import ConnectionManager

logger = get_logger(__name__)


class WebSocketEndpointBase(ABC):
    """
    Base class for WebSocket endpoints.

    Subclasses implement:
    - create_context(): validate the connection and describe it, or close and return None
    - register_connection(): register with ConnectionManager
    - unregister_connection(): undo registration and stop per-socket work
    - handle_message(): process non-heartbeat messages

    Usage:
        endpoint = StaffEndpoint(websocket, manager, store, commands)
        await endpoint.run()
    """

    def __init__(
        self,
        websocket: WebSocket,
        manager: "ConnectionManager",
        endpoint_name: str,
        receive_timeout: float = WSConstants.WS_RECEIVE_TIMEOUT,
    ):
        self.websocket = websocket
        self.manager = manager
        self.endpoint_name = endpoint_name
        self.receive_timeout = receive_timeout

        self.context: WebSocketContext | None = None
        self._is_running = False

    @abstractmethod
    async def create_context(self) -> WebSocketContext | None:
        pass

    @abstractmethod
    async def register_connection(self, context: WebSocketContext) -> None:
        """Raises ConnectionError if the connection is refused."""

    @abstractmethod
    async def unregister_connection(self, context: WebSocketContext) -> None:
        pass

    async def on_connected(self) -> None:
        """Hook run once after registration (initial snapshot, timers)."""

    async def handle_message(self, data: str) -> None:
        logger.debug(
            "Unknown message received",
            endpoint=self.endpoint_name,
            identifier=self.context.identifier if self.context else "unknown",
            message=sanitize_log_data(data),
        )

    def stop(self) -> None:
        """Make the message loop exit after the current receive."""
        self._is_running = False

    async def run(self) -> None:
        """
        Main entry point - run the WebSocket endpoint.

        1. Create context (validates the connection)
        2. Register connection
        3. Message loop
        4. Unregister on disconnect
        """
        self.context = await self.create_context()
        if self.context is None:
            return

        try:
            await self.register_connection(self.context)
        except ConnectionError as e:
            self.context.audit("REJECTED", reason=str(e))
            try:
                await self.websocket.close(code=WSCloseCode.SERVER_OVERLOADED, reason=str(e))
            except Exception as close_error:
                logger.debug("Close after rejection failed", error=str(close_error))
            return

        self.context.audit("CONNECT")
        self._is_running = True
        try:
            await self.on_connected()
            await self._message_loop()
        except WebSocketDisconnect:
            self.context.audit("DISCONNECT", reason="client_disconnect")
        except Exception as e:
            logger.error(
                "WebSocket endpoint error",
                endpoint=self.endpoint_name,
                identifier=self.context.identifier,
                error=str(e),
                exc_info=True,
            )
        finally:
            self._is_running = False
            await self.unregister_connection(self.context)

    async def _message_loop(self) -> None:
        while self._is_running:
            data = await self._receive_with_timeout()
            if not self._is_running:
                break
            if data is None:
                logger.info(
                    "Connection timed out (no messages)",
                    endpoint=self.endpoint_name,
                    identifier=self.context.identifier if self.context else "unknown",
                    timeout=self.receive_timeout,
                )
                await self.websocket.close(code=WSCloseCode.NORMAL, reason="Connection timeout")
                break

            if len(data) > settings.ws_max_message_size:
                logger.warning(
                    "Message too large",
                    endpoint=self.endpoint_name,
                    size=len(data),
                )
                await self.websocket.close(code=WSCloseCode.MESSAGE_TOO_BIG, reason="Message too large")
                break

            self.manager.record_heartbeat(self.websocket)

            if data in (MSG_PING_PLAIN, MSG_PING_JSON):
                await self.websocket.send_text(MSG_PONG_JSON)
                continue

            await self.handle_message(data)

    async def _receive_with_timeout(self) -> str | None:
        """Returns None on timeout."""
        try:
            return await asyncio.wait_for(
                self.websocket.receive_text(),
                timeout=self.receive_timeout,
            )
        except asyncio.TimeoutError:
            return None
