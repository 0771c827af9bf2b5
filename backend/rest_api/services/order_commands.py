"""
Order Commands.

Async entry point to the order services for callers that are not FastAPI
request handlers (the WebSocket gateway). Each command runs the sync
domain service on its own DB session in a worker thread, then publishes
the change notification. Nothing is published when the write fails.
"""

from __future__ import annotations

import asyncio
from typing import Callable, TypeVar

from sqlalchemy.orm import Session

from shared.config.constants import Actors, OrderStatus, ItemStatus
from shared.infrastructure.db import SessionLocal
from shared.utils.schemas import ArchiveResult, Order, SubmitOrderRequest
from rest_api.services.domain import ArchiveService, OrderService
from rest_api.services.events import OrderEventPublisher

T = TypeVar("T")


class OrderCommands:
    """
    Usage:
        commands = OrderCommands(get_order_publisher())
        order = await commands.set_order_status(order_id, OrderStatus.RECEIVED, actor=Actors.STAFF)
    """

    def __init__(
        self,
        publisher: OrderEventPublisher,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self._publisher = publisher
        self._session_factory = session_factory

    async def _run(self, fn: Callable[[Session], T]) -> T:
        def call() -> T:
            with self._session_factory() as db:
                return fn(db)

        return await asyncio.to_thread(call)

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_live_orders(self, table_id: str | None = None) -> list[Order]:
        return await self._run(lambda db: OrderService(db).list_live_orders(table_id))

    # =========================================================================
    # Order mutations
    # =========================================================================

    async def submit_order(self, request: SubmitOrderRequest) -> Order:
        order = await self._run(lambda db: OrderService(db).create_order(request))
        await self._publisher.order_created(order)
        return order

    async def set_order_status(self, order_id: str, new_status: str, *, actor: str) -> Order:
        order = await self._run(
            lambda db: OrderService(db).set_order_status(order_id, new_status, actor=actor)
        )
        await self._publisher.status_changed(order, actor)
        return order

    async def set_item_status(
        self, order_id: str, item_index: int, new_status: str = ItemStatus.SERVED, *, actor: str
    ) -> Order:
        order = await self._run(
            lambda db: OrderService(db).set_item_status(order_id, item_index, new_status, actor=actor)
        )
        await self._publisher.item_served(order, item_index, actor)
        return order

    async def set_help_requested(self, order_id: str, flag: bool, *, actor: str) -> Order:
        order = await self._run(
            lambda db: OrderService(db).set_help_requested(order_id, flag, actor=actor)
        )
        await self._publisher.help_changed(order, actor)
        return order

    async def approve(self, order_id: str) -> Order:
        return await self.set_order_status(order_id, OrderStatus.RECEIVED, actor=Actors.STAFF)

    async def mark_ready(self, order_id: str) -> Order:
        return await self.set_order_status(order_id, OrderStatus.READY, actor=Actors.STAFF)

    async def mark_served(self, order_id: str) -> Order:
        return await self.set_order_status(order_id, OrderStatus.SERVED, actor=Actors.STAFF)

    # =========================================================================
    # Archive
    # =========================================================================

    async def archive_order(self, order_id: str) -> ArchiveResult:
        result = await self._run(lambda db: ArchiveService(db).archive_order(order_id))
        await self._publisher.archived(result, Actors.STAFF)
        return result

    async def archive_table(self, table_key: str | None) -> ArchiveResult:
        result = await self._run(lambda db: ArchiveService(db).archive_table(table_key))
        await self._publisher.archived(result, Actors.STAFF)
        return result

    async def serve_and_archive(self, order_id: str) -> ArchiveResult:
        result = await self._run(lambda db: ArchiveService(db).serve_and_archive(order_id))
        await self._publisher.archived(result, Actors.STAFF)
        return result

    async def archive_served_items(self, order_id: str) -> ArchiveResult:
        result = await self._run(lambda db: ArchiveService(db).archive_served_items(order_id))
        await self._publisher.items_archived(order_id, result, Actors.STAFF)
        return result
