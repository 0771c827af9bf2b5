"""
Order State Machine.

Legal order and item status transitions, who may trigger them, and the
derivation of the aggregate status from item statuses. Pure functions;
OrderService applies them inside conditional writes.
"""

from __future__ import annotations

from typing import Any, Iterable

from shared.config.constants import (
    Actors,
    OrderStatus,
    ItemStatus,
    ORDER_TRANSITION_ACTORS,
    ITEM_TRANSITION_ACTORS,
    HELP_FLAG_ACTORS,
    validate_order_transition,
    validate_item_transition,
)
from shared.utils.exceptions import ActorNotAllowedError, InvalidTransitionError


def check_actor(actor: str) -> None:
    if actor not in Actors.ALL:
        raise ActorNotAllowedError(actor, "act on orders")


def check_order_transition(order_id: str, current_status: str, new_status: str, actor: str) -> None:
    """Raise unless `actor` may move the order from current_status to new_status."""
    check_actor(actor)
    if not validate_order_transition(current_status, new_status):
        raise InvalidTransitionError(
            "Order", current_status, new_status, order_id=order_id
        )
    allowed = ORDER_TRANSITION_ACTORS.get((current_status, new_status), frozenset())
    if actor not in allowed:
        raise ActorNotAllowedError(
            actor, f"move order to {new_status}", order_id=order_id
        )


def check_item_transition(
    order_id: str,
    order_status: str,
    item_index: int,
    current_status: str,
    new_status: str,
    actor: str,
) -> None:
    """Items can only be served while the order is Received or Ready."""
    check_actor(actor)
    if actor not in ITEM_TRANSITION_ACTORS:
        raise ActorNotAllowedError(actor, "serve items", order_id=order_id)
    if order_status not in OrderStatus.ITEM_SERVICE:
        raise InvalidTransitionError(
            f"item {item_index} (order is {order_status})",
            current_status,
            new_status,
            order_id=order_id,
        )
    if not validate_item_transition(current_status, new_status):
        raise InvalidTransitionError(
            f"item {item_index}", current_status, new_status, order_id=order_id
        )


def check_help_change(order_id: str, new_flag: bool, actor: str) -> None:
    """Customers raise the help flag, staff clear it."""
    check_actor(actor)
    if actor not in HELP_FLAG_ACTORS[new_flag]:
        action = "request help" if new_flag else "resolve help requests"
        raise ActorNotAllowedError(actor, action, order_id=order_id)


def derive_order_status(items: Iterable[dict[str, Any]], current_status: str) -> str:
    """
    Aggregate status after an item-level change.

    Served iff every item is Served; otherwise the current status stands.
    """
    if all(item["status"] == ItemStatus.SERVED for item in items):
        return OrderStatus.SERVED
    return current_status


def with_all_items_served(items: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Copy of `items` with every status set to Served."""
    return [{**item, "status": ItemStatus.SERVED} for item in items]


def is_archivable(status: str) -> bool:
    return status == OrderStatus.SERVED


def status_rank(status: str) -> int:
    """Position of `status` in the lifecycle; used to assert monotonicity."""
    return OrderStatus.SEQUENCE.index(status)
