"""
Staff orders router.
Snapshot reads and lifecycle commands for the fulfillment board.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.config.constants import Actors, OrderStatus
from shared.config.logging import staff_logger as logger
from shared.infrastructure.db import get_db
from shared.utils.schemas import ArchiveResult, Order
from rest_api.services.domain import ArchiveService, OrderService
from rest_api.services.events import OrderEventPublisher, get_order_publisher


router = APIRouter(prefix="/api/staff/orders", tags=["staff"])


@router.get("", response_model=list[Order])
def list_live_orders(db: Session = Depends(get_db)) -> list[Order]:
    """Every live order, newest first."""
    return OrderService(db).list_live_orders()


async def _advance(
    order_id: str,
    new_status: str,
    db: Session,
    publisher: OrderEventPublisher,
) -> Order:
    order = OrderService(db).set_order_status(order_id, new_status, actor=Actors.STAFF)
    await publisher.status_changed(order, Actors.STAFF)
    return order


@router.post("/{order_id}/approve", response_model=Order)
async def approve_order(
    order_id: str,
    db: Session = Depends(get_db),
    publisher: OrderEventPublisher = Depends(get_order_publisher),
) -> Order:
    """Pending -> Received."""
    return await _advance(order_id, OrderStatus.RECEIVED, db, publisher)


@router.post("/{order_id}/ready", response_model=Order)
async def mark_order_ready(
    order_id: str,
    db: Session = Depends(get_db),
    publisher: OrderEventPublisher = Depends(get_order_publisher),
) -> Order:
    """Received -> Ready."""
    return await _advance(order_id, OrderStatus.READY, db, publisher)


@router.post("/{order_id}/serve", response_model=Order)
async def mark_order_served(
    order_id: str,
    db: Session = Depends(get_db),
    publisher: OrderEventPublisher = Depends(get_order_publisher),
) -> Order:
    """Ready -> Served; every item is marked Served too."""
    return await _advance(order_id, OrderStatus.SERVED, db, publisher)


@router.post("/{order_id}/items/{item_index}/serve", response_model=Order)
async def serve_item(
    order_id: str,
    item_index: int,
    db: Session = Depends(get_db),
    publisher: OrderEventPublisher = Depends(get_order_publisher),
) -> Order:
    """
    Serve one item of a Received or Ready order.

    Serving the last pending item moves the order to Served.
    """
    order = OrderService(db).serve_item(order_id, item_index)
    await publisher.item_served(order, item_index, Actors.STAFF)
    return order


@router.post("/{order_id}/help/resolve", response_model=Order)
async def resolve_help(
    order_id: str,
    db: Session = Depends(get_db),
    publisher: OrderEventPublisher = Depends(get_order_publisher),
) -> Order:
    order = OrderService(db).set_help_requested(order_id, False, actor=Actors.STAFF)
    await publisher.help_changed(order, Actors.STAFF)
    return order


@router.post("/{order_id}/archive", response_model=ArchiveResult)
async def archive_order(
    order_id: str,
    db: Session = Depends(get_db),
    publisher: OrderEventPublisher = Depends(get_order_publisher),
) -> ArchiveResult:
    """
    Move a Served order into history.

    A non-Served order is left alone and reported with nothing_to_archive.
    """
    result = ArchiveService(db).archive_order(order_id)
    await publisher.archived(result, Actors.STAFF)
    return result


@router.post("/{order_id}/serve-and-archive", response_model=ArchiveResult)
async def serve_and_archive(
    order_id: str,
    db: Session = Depends(get_db),
    publisher: OrderEventPublisher = Depends(get_order_publisher),
) -> ArchiveResult:
    """Ready -> Served -> history in one transaction."""
    result = ArchiveService(db).serve_and_archive(order_id, actor=Actors.STAFF)
    await publisher.archived(result, Actors.STAFF)
    logger.info("Order served from board", order_id=order_id)
    return result


@router.post("/{order_id}/items/archive", response_model=ArchiveResult)
async def archive_served_items(
    order_id: str,
    db: Session = Depends(get_db),
    publisher: OrderEventPublisher = Depends(get_order_publisher),
) -> ArchiveResult:
    """Move served items into history, keeping the rest of the order live."""
    result = ArchiveService(db).archive_served_items(order_id)
    await publisher.items_archived(order_id, result, Actors.STAFF)
    return result
