"""
Utilities module: Exceptions, schemas, health checks.
"""

from shared.utils.exceptions import (
    NotFoundError,
    OrderNotFoundError,
    ForbiddenError,
    ActorNotAllowedError,
    ValidationError,
    InvalidTransitionError,
    ConflictError,
    ConcurrentModificationError,
    ArchiveFailedError,
    MalformedOrderError,
)
from shared.utils.schemas import ErrorResponse, Order, OrderItem

__all__ = [
    # exceptions
    "NotFoundError",
    "OrderNotFoundError",
    "ForbiddenError",
    "ActorNotAllowedError",
    "ValidationError",
    "InvalidTransitionError",
    "ConflictError",
    "ConcurrentModificationError",
    "ArchiveFailedError",
    "MalformedOrderError",
    # schemas
    "ErrorResponse",
    "Order",
    "OrderItem",
]
