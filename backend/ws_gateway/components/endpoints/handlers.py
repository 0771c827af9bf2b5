"""
Concrete WebSocket Endpoint Implementations.

StaffEndpoint: full board plus lifecycle commands.
DinerEndpoint: own table's orders plus the customer session timer.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal

from fastapi import HTTPException, WebSocket
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, model_validator

from shared.config.constants import Actors, ItemStatus, OrderStatus
from shared.config.logging import get_logger
from shared.utils.exceptions import OrderNotFoundError, ValidationError
from rest_api.core.dependencies import validate_session_identity
from rest_api.services.domain.session_service import CustomerSessionService, format_time_left
from rest_api.services.order_commands import OrderCommands
from ws_gateway.components.core.constants import (
    WSCloseCode,
    COMMAND_ACCEPTED,
    COMMAND_FAILED,
    SESSION_TICK,
    SESSION_EXPIRED,
    SESSION_RESET,
)
from ws_gateway.components.core.context import WebSocketContext, sanitize_log_data
from ws_gateway.components.endpoints.base import WebSocketEndpointBase
from ws_gateway.components.orders.broadcaster import board_message, table_message
from ws_gateway.components.orders.live_store import LiveOrderStore
from ws_gateway.components.session.timer import SessionTimer

if TYPE_CHECKING:
    from ws_gateway.connection_manager import ConnectionManager

logger = get_logger(__name__)


# =============================================================================
# Command messages
# =============================================================================


class StaffCommand(BaseModel):
    action: Literal[
        "approve",
        "ready",
        "serve",
        "serve_item",
        "resolve_help",
        "archive_order",
        "archive_table",
    ]
    order_id: str | None = None
    item_index: int | None = Field(default=None, ge=0)
    table_key: str | None = None
    request_id: str | None = None

    @model_validator(mode="after")
    def _required_fields(self) -> "StaffCommand":
        if self.action != "archive_table" and not self.order_id:
            raise ValueError(f"{self.action} requires order_id")
        if self.action == "serve_item" and self.item_index is None:
            raise ValueError("serve_item requires item_index")
        return self


class DinerCommand(BaseModel):
    action: Literal["request_help"]
    order_id: str
    request_id: str | None = None


def _result_payload(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    return result


class CommandReplyMixin:
    """COMMAND_ACCEPTED / COMMAND_FAILED replies for endpoints that take commands."""

    websocket: WebSocket
    manager: "ConnectionManager"
    endpoint_name: str

    def _parse(self, data: str, model: type[BaseModel]) -> BaseModel:
        try:
            raw = json.loads(data)
        except json.JSONDecodeError:
            raise ValidationError("Message is not valid JSON", message=sanitize_log_data(data))
        try:
            return model.model_validate(raw)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid command: {e.errors()[0].get('msg', 'invalid')}",
                message=sanitize_log_data(data),
            )

    async def _reply(self, message_type: str, request_id: str | None, **payload: Any) -> None:
        await self.manager.send(
            self.websocket,
            {"type": message_type, "request_id": request_id, **payload},
        )

    async def _execute(
        self,
        data: str,
        model: type[BaseModel],
        dispatch: Callable[[Any], Awaitable[Any]],
    ) -> None:
        """Parse, dispatch and reply. Failures never close the socket."""
        request_id = None
        action = None
        try:
            command = self._parse(data, model)
            request_id = command.request_id
            action = command.action
            result = await dispatch(command)
        except HTTPException as e:
            await self._reply(
                COMMAND_FAILED,
                request_id,
                action=action,
                status_code=e.status_code,
                detail=e.detail,
            )
            return
        except Exception as e:
            logger.error(
                "Command failed unexpectedly",
                endpoint=self.endpoint_name,
                action=action,
                error=str(e),
                exc_info=True,
            )
            await self._reply(
                COMMAND_FAILED, request_id, action=action, status_code=500, detail="Internal error"
            )
            return

        await self._reply(COMMAND_ACCEPTED, request_id, action=action, result=_result_payload(result))


# =============================================================================
# Staff
# =============================================================================


class StaffEndpoint(CommandReplyMixin, WebSocketEndpointBase):
    """
    WebSocket endpoint for the staff board.

    Receives a BOARD_SNAPSHOT on connect and after every change.
    Commands change the database; the result reaches every board,
    including this one, through the next snapshot.
    """

    def __init__(
        self,
        websocket: WebSocket,
        manager: "ConnectionManager",
        store: LiveOrderStore,
        commands: OrderCommands,
    ):
        super().__init__(websocket=websocket, manager=manager, endpoint_name="/ws/staff")
        self.store = store
        self.commands = commands

    async def create_context(self) -> WebSocketContext:
        return WebSocketContext(
            endpoint=self.endpoint_name,
            origin=self.websocket.headers.get("origin"),
        )

    async def register_connection(self, context: WebSocketContext) -> None:
        await self.manager.connect_staff(self.websocket)

    async def unregister_connection(self, context: WebSocketContext) -> None:
        await self.manager.disconnect(self.websocket)

    async def on_connected(self) -> None:
        await self.manager.send(self.websocket, board_message(self.store.snapshot))

    async def handle_message(self, data: str) -> None:
        await self._execute(data, StaffCommand, self._dispatch)

    async def _dispatch(self, command: StaffCommand) -> Any:
        staff = Actors.STAFF
        if command.action == "approve":
            return await self.store.set_order_status(command.order_id, OrderStatus.RECEIVED, actor=staff)
        if command.action == "ready":
            return await self.store.set_order_status(command.order_id, OrderStatus.READY, actor=staff)
        if command.action == "serve":
            return await self.store.set_order_status(command.order_id, OrderStatus.SERVED, actor=staff)
        if command.action == "serve_item":
            return await self.store.set_item_status(
                command.order_id, command.item_index, ItemStatus.SERVED, actor=staff
            )
        if command.action == "resolve_help":
            return await self.store.set_help_requested(command.order_id, False, actor=staff)
        if command.action == "archive_order":
            return await self.commands.archive_order(command.order_id)
        return await self.commands.archive_table(command.table_key)


# =============================================================================
# Diner
# =============================================================================


class DinerEndpoint(CommandReplyMixin, WebSocketEndpointBase):
    """
    WebSocket endpoint for customers.

    Identity comes from the table_id and device_id query parameters.
    Runs a SessionTimer for the socket's lifetime and pushes
    SESSION_TICK, SESSION_EXPIRED and SESSION_RESET messages.
    """

    def __init__(
        self,
        websocket: WebSocket,
        manager: "ConnectionManager",
        store: LiveOrderStore,
        session_service: CustomerSessionService,
        table_id: str | None,
        device_id: str | None,
    ):
        super().__init__(websocket=websocket, manager=manager, endpoint_name="/ws/diner")
        self.store = store
        self.session_service = session_service
        self._raw_table_id = table_id
        self._raw_device_id = device_id
        self.table_id = ""
        self.device_id = ""
        self.timer: SessionTimer | None = None

    async def create_context(self) -> WebSocketContext | None:
        try:
            self.table_id, self.device_id = validate_session_identity(
                self._raw_table_id, self._raw_device_id
            )
        except ValidationError as e:
            WebSocketContext(endpoint=self.endpoint_name).audit("REJECTED", reason=e.detail)
            await self.websocket.close(code=WSCloseCode.INVALID_IDENTITY, reason=e.detail)
            return None
        return WebSocketContext(
            endpoint=self.endpoint_name,
            table_id=self.table_id,
            device_id=self.device_id,
            origin=self.websocket.headers.get("origin"),
        )

    async def register_connection(self, context: WebSocketContext) -> None:
        await self.manager.connect_diner(self.websocket, self.table_id)

    async def unregister_connection(self, context: WebSocketContext) -> None:
        if self.timer is not None:
            await self.timer.stop()
        await self.manager.disconnect(self.websocket)

    async def on_connected(self) -> None:
        await self.manager.send(self.websocket, table_message(self.store.snapshot, self.table_id))
        self.timer = SessionTimer(
            self.session_service,
            self.table_id,
            self.device_id,
            on_tick=self._on_tick,
            on_expire=self._on_expire,
            on_reset=self._on_reset,
        )
        await self.timer.start()

    async def _on_tick(self, time_left_ms: int) -> None:
        await self.manager.send(
            self.websocket,
            {
                "type": SESSION_TICK,
                "time_left_ms": time_left_ms,
                "time_left": format_time_left(time_left_ms),
            },
        )

    async def _on_expire(self) -> None:
        # Client clears its cart on this message
        await self.manager.send(self.websocket, {"type": SESSION_EXPIRED, "time_left_ms": 0})

    async def _on_reset(self) -> None:
        await self.manager.send(self.websocket, {"type": SESSION_RESET})
        self.stop()
        try:
            await self.websocket.close(code=WSCloseCode.SESSION_EXPIRED, reason="Session expired")
        except Exception as e:
            logger.debug("Close after session reset failed", error=str(e))

    async def handle_message(self, data: str) -> None:
        await self._execute(data, DinerCommand, self._dispatch)

    async def _dispatch(self, command: DinerCommand) -> Any:
        own_ids = {order.id for order in self.store.snapshot.for_table(self.table_id)}
        if command.order_id not in own_ids:
            raise OrderNotFoundError(command.order_id, table_id=self.table_id)
        return await self.store.set_help_requested(command.order_id, True, actor=Actors.CUSTOMER)
