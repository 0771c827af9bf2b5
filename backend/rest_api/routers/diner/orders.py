"""
Diner orders router.
Order submission, the customer's own table snapshot and help requests.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shared.config.constants import Actors
from shared.config.logging import diner_logger as logger
from shared.infrastructure.db import get_db
from shared.utils.schemas import Order, SubmitOrderRequest
from rest_api.services.domain import OrderService, normalize_table_key
from rest_api.services.events import OrderEventPublisher, get_order_publisher


router = APIRouter(prefix="/api/diner", tags=["diner"])


@router.post("/orders", response_model=Order, status_code=status.HTTP_201_CREATED)
async def submit_order(
    body: SubmitOrderRequest,
    db: Session = Depends(get_db),
    publisher: OrderEventPublisher = Depends(get_order_publisher),
) -> Order:
    """
    Submit the cart as a new order.

    The order starts Pending with every item Pending. A blank table_id
    files it under Takeaway.
    """
    order = OrderService(db).create_order(body)
    await publisher.order_created(order)
    logger.info("Order submitted", order_id=order.id, table_id=order.table_id)
    return order


@router.get("/orders", response_model=list[Order])
def list_table_orders(
    table_id: str | None = Query(default=None, max_length=32),
    db: Session = Depends(get_db),
) -> list[Order]:
    """Live orders of one table, newest first."""
    return OrderService(db).list_live_orders(normalize_table_key(table_id))


@router.post("/orders/{order_id}/help", response_model=Order)
async def request_help(
    order_id: str,
    db: Session = Depends(get_db),
    publisher: OrderEventPublisher = Depends(get_order_publisher),
) -> Order:
    """Flag the order so staff see the table needs attention."""
    order = OrderService(db).set_help_requested(order_id, True, actor=Actors.CUSTOMER)
    await publisher.help_changed(order, Actors.CUSTOMER)
    return order
