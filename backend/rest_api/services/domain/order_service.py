"""
Order Domain Service.

Submission, snapshot reads and the single-document mutations of live
orders. Every mutation is a conditional UPDATE on (id, expected status,
expected version): a writer that read stale state matches zero rows and
gets ConcurrentModificationError instead of overwriting.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from shared.config.constants import Actors, OrderStatus, ItemStatus
from shared.config.settings import settings
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import (
    ConcurrentModificationError,
    ItemNotFoundError,
    MalformedOrderError,
    OrderNotFoundError,
)
from shared.utils.schemas import Order, SubmitOrderRequest
from rest_api.models import LiveOrder, OrderHistory
from rest_api.services.domain.order_state import (
    check_help_change,
    check_item_transition,
    check_order_transition,
    derive_order_status,
    with_all_items_served,
)
from rest_api.services.domain.table_board import normalize_table_key

logger = get_logger(__name__)


def compute_total_price(items: list[dict[str, Any]]) -> float:
    return round(sum(item["quantity"] * item["unit_price"] for item in items), 2)


class OrderService:
    """
    Domain service for LiveOrder operations.

    The only writer of the `orders` table besides ArchiveService.
    """

    def __init__(self, db: Session):
        self._db = db

    # =========================================================================
    # Reads
    # =========================================================================

    def _get_row(self, order_id: str) -> LiveOrder:
        row = self._db.scalar(select(LiveOrder).where(LiveOrder.id == order_id))
        if row is None:
            raise OrderNotFoundError(order_id)
        return row

    def get_order(self, order_id: str) -> Order:
        return Order.from_row(self._get_row(order_id))

    def list_live_orders(self, table_id: str | None = None) -> list[Order]:
        """
        Full live snapshot, newest first.

        Rows that fail validation are logged and left out.
        """
        stmt = select(LiveOrder).order_by(LiveOrder.timestamp.desc(), LiveOrder.order_number.desc())
        if table_id is not None:
            stmt = stmt.where(LiveOrder.table_id == normalize_table_key(table_id))

        orders = []
        for row in self._db.execute(stmt).scalars().all():
            try:
                orders.append(Order.from_row(row))
            except MalformedOrderError as e:
                logger.warning("Skipping malformed order", order_id=e.order_id, reason=e.reason)
        return orders

    def next_order_number(self) -> int:
        """
        Number following the most recently placed order, live or archived.

        Wraps back to 1 after settings.order_number_max. The number is for
        display only and not unique: two concurrent submissions can read the
        same predecessor and share a number. Orders are keyed by id.
        """
        live = self._db.execute(
            select(LiveOrder.timestamp, LiveOrder.order_number)
            .order_by(LiveOrder.timestamp.desc())
            .limit(1)
        ).first()
        archived = self._db.execute(
            select(OrderHistory.placed_at, OrderHistory.order_number)
            .order_by(OrderHistory.placed_at.desc(), OrderHistory.archived_at.desc())
            .limit(1)
        ).first()

        candidates = [row for row in (live, archived) if row is not None]
        if not candidates:
            return 1
        last_number = max(candidates, key=lambda row: row[0])[1]
        return 1 if last_number >= settings.order_number_max else last_number + 1

    # =========================================================================
    # Submission
    # =========================================================================

    def create_order(self, request: SubmitOrderRequest) -> Order:
        """Submit a new order in Pending with every item Pending."""
        items = [
            {
                "name": item.name.strip(),
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "status": ItemStatus.PENDING,
            }
            for item in request.items
        ]
        row = LiveOrder(
            table_id=normalize_table_key(request.table_id),
            order_number=self.next_order_number(),
            items=items,
            status=OrderStatus.PENDING,
            help_requested=False,
            total_price=compute_total_price(items),
            version=1,
        )
        self._db.add(row)
        safe_commit(self._db)
        self._db.refresh(row)

        logger.info(
            "Order created",
            order_id=row.id,
            order_number=row.order_number,
            table_id=row.table_id,
            item_count=len(items),
            total_price=row.total_price,
        )
        return Order.from_row(row)

    # =========================================================================
    # Mutations
    # =========================================================================

    def _conditional_update(self, row: LiveOrder, **values: Any) -> Order:
        """
        UPDATE ... WHERE id, status and version still match what `row` holds.

        Zero matched rows means someone else wrote (or archived) first.
        """
        order_id, expected_status, expected_version = row.id, row.status, row.version
        result = self._db.execute(
            update(LiveOrder)
            .where(
                LiveOrder.id == order_id,
                LiveOrder.status == expected_status,
                LiveOrder.version == expected_version,
            )
            .values(version=expected_version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self._db.rollback()
            still_live = self._db.scalar(select(LiveOrder.id).where(LiveOrder.id == order_id))
            if still_live is None:
                raise OrderNotFoundError(order_id)
            raise ConcurrentModificationError(
                order_id, expected_status=expected_status, expected_version=expected_version
            )

        safe_commit(self._db)
        return self.get_order(order_id)

    def set_order_status(self, order_id: str, new_status: str, *, actor: str) -> Order:
        """Advance the aggregate one step. Served also serves every item."""
        row = self._get_row(order_id)
        check_order_transition(order_id, row.status, new_status, actor)

        values: dict[str, Any] = {"status": new_status}
        if new_status == OrderStatus.SERVED:
            values["items"] = with_all_items_served(row.items)

        previous_status = row.status
        order = self._conditional_update(row, **values)
        logger.info(
            "Order status changed",
            order_id=order_id,
            table_id=order.table_id,
            from_status=previous_status,
            to_status=new_status,
            actor=actor,
        )
        return order

    def set_item_status(self, order_id: str, item_index: int, new_status: str, *, actor: str) -> Order:
        """Read-modify-write of the item array; aggregate recomputed."""
        row = self._get_row(order_id)
        if not 0 <= item_index < len(row.items):
            raise ItemNotFoundError(order_id, item_index)

        current_item_status = row.items[item_index]["status"]
        check_item_transition(order_id, row.status, item_index, current_item_status, new_status, actor)

        items = [dict(item) for item in row.items]
        items[item_index]["status"] = new_status
        aggregate = derive_order_status(items, row.status)

        order = self._conditional_update(row, items=items, status=aggregate)
        logger.info(
            "Order item status changed",
            order_id=order_id,
            item_index=item_index,
            item_status=new_status,
            order_status=aggregate,
            actor=actor,
        )
        return order

    def set_help_requested(self, order_id: str, flag: bool, *, actor: str) -> Order:
        """Customer raises the help flag; staff clears it."""
        row = self._get_row(order_id)
        check_help_change(order_id, flag, actor)

        order = self._conditional_update(row, help_requested=flag)
        logger.info(
            "Order help flag changed",
            order_id=order_id,
            table_id=order.table_id,
            help_requested=flag,
            actor=actor,
        )
        return order

    def approve(self, order_id: str) -> Order:
        return self.set_order_status(order_id, OrderStatus.RECEIVED, actor=Actors.STAFF)

    def mark_ready(self, order_id: str) -> Order:
        return self.set_order_status(order_id, OrderStatus.READY, actor=Actors.STAFF)

    def mark_served(self, order_id: str) -> Order:
        return self.set_order_status(order_id, OrderStatus.SERVED, actor=Actors.STAFF)

    def serve_item(self, order_id: str, item_index: int) -> Order:
        return self.set_item_status(order_id, item_index, ItemStatus.SERVED, actor=Actors.STAFF)
