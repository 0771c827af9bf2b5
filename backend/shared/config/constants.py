"""
Centralized constants for the backend application.

Usage:
    from shared.config.constants import OrderStatus, ItemStatus, Actors, validate_order_transition

    if validate_order_transition(OrderStatus.PENDING, new_status):
        ...
"""

from typing import Final


# =============================================================================
# Actors
# =============================================================================


class Actors:
    """Who issued a command against an order."""

    CUSTOMER: Final[str] = "CUSTOMER"
    STAFF: Final[str] = "STAFF"

    ALL: Final[list[str]] = [CUSTOMER, STAFF]


# =============================================================================
# Order lifecycle
# Flow: Pending -> Received -> Ready -> Served
# =============================================================================


class OrderStatus:
    """Aggregate order status constants."""

    PENDING: Final[str] = "Pending"
    RECEIVED: Final[str] = "Received"
    READY: Final[str] = "Ready"
    SERVED: Final[str] = "Served"

    # Lifecycle order; index is the advancement rank
    SEQUENCE: Final[tuple[str, ...]] = (PENDING, RECEIVED, READY, SERVED)
    ACTIVE: Final[list[str]] = [PENDING, RECEIVED, READY]
    # Statuses from which individual items may be served
    ITEM_SERVICE: Final[list[str]] = [RECEIVED, READY]


class ItemStatus:
    """Per-item status constants."""

    PENDING: Final[str] = "Pending"
    SERVED: Final[str] = "Served"

    SEQUENCE: Final[tuple[str, ...]] = (PENDING, SERVED)


class HistoryKind:
    """What a history record is a snapshot of."""

    ORDER: Final[str] = "order"
    ITEM: Final[str] = "item"


# Terminal marker written on every history record
FINAL_STATUS_COMPLETED: Final[str] = "Completed"


# =============================================================================
# Limits
# =============================================================================


class Limits:
    """Input limits shared by schemas and services."""

    MAX_ITEM_QUANTITY: Final[int] = 99
    MAX_ITEMS_PER_ORDER: Final[int] = 50
    MAX_ITEM_NAME_LENGTH: Final[int] = 120
    MAX_TABLE_ID_LENGTH: Final[int] = 32


# =============================================================================
# Status Transitions
# =============================================================================

# Valid order status transitions (from -> [allowed to states])
# Flow: Pending → Received → Ready → Served
ORDER_TRANSITIONS: Final[dict[str, list[str]]] = {
    OrderStatus.PENDING: [OrderStatus.RECEIVED],  # Staff approves
    OrderStatus.RECEIVED: [OrderStatus.READY],
    OrderStatus.READY: [OrderStatus.SERVED],
    OrderStatus.SERVED: [],  # Terminal state, archival precondition
}

# Actor-based transition restrictions
# Format: (from_status, to_status) -> allowed actors
ORDER_TRANSITION_ACTORS: Final[dict[tuple[str, str], frozenset[str]]] = {
    (OrderStatus.PENDING, OrderStatus.RECEIVED): frozenset({Actors.STAFF}),
    (OrderStatus.RECEIVED, OrderStatus.READY): frozenset({Actors.STAFF}),
    (OrderStatus.READY, OrderStatus.SERVED): frozenset({Actors.STAFF}),
}

ITEM_TRANSITIONS: Final[dict[str, list[str]]] = {
    ItemStatus.PENDING: [ItemStatus.SERVED],
    ItemStatus.SERVED: [],
}

ITEM_TRANSITION_ACTORS: Final[frozenset[str]] = frozenset({Actors.STAFF})

# Help flag: new value -> actor allowed to set it
HELP_FLAG_ACTORS: Final[dict[bool, frozenset[str]]] = {
    True: frozenset({Actors.CUSTOMER}),
    False: frozenset({Actors.STAFF}),
}


def validate_order_transition(current_status: str, new_status: str) -> bool:
    """
    Validate that an order status transition is allowed.

    Returns True if transition is valid, False otherwise.
    """
    allowed = ORDER_TRANSITIONS.get(current_status, [])
    return new_status in allowed


def validate_item_transition(current_status: str, new_status: str) -> bool:
    """Validate that an item status transition is allowed."""
    return new_status in ITEM_TRANSITIONS.get(current_status, [])


def get_allowed_order_transitions(current_status: str, actor: str) -> list[str]:
    """
    Get allowed order transitions for a given status and actor.

    Returns list of status values the actor can transition to.
    """
    return [
        new_status
        for new_status in ORDER_TRANSITIONS.get(current_status, [])
        if actor in ORDER_TRANSITION_ACTORS.get((current_status, new_status), frozenset())
    ]
