"""
HTTP errors raised by the order lifecycle.

Each error logs itself once when raised, with the keyword context given to
it, and reaches the client as a FastAPI HTTPException:

    raise OrderNotFoundError(order_id)                        # 404
    raise InvalidTransitionError("Order", "Pending", "Served")  # 400
    raise ConcurrentModificationError(order_id)               # 409

The WS Gateway catches AppException in its command handlers and turns it
into a command_failed reply carrying the same status code and detail.
"""

from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """Base class: subclasses pick the status code and the log level."""

    status_code_default: int = status.HTTP_400_BAD_REQUEST
    log_level: str = "warning"

    def __init__(
        self,
        detail: str,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        code = status_code or self.status_code_default
        getattr(logger, self.log_level)(detail, status_code=code, exc_type=type(self).__name__, **log_context)
        super().__init__(status_code=code, detail=detail, headers=headers)


# 400

class ValidationError(AppException):
    """Rejected input: ids, message shape, item lists."""


class InvalidTransitionError(ValidationError):
    def __init__(self, entity: str, from_status: str, to_status: str, **log_context: Any):
        super().__init__(
            f"Invalid transition from '{from_status}' to '{to_status}' for {entity}",
            entity=entity,
            from_status=from_status,
            to_status=to_status,
            **log_context,
        )


# 403

class ForbiddenError(AppException):
    status_code_default = status.HTTP_403_FORBIDDEN

    def __init__(self, action: str | None = None, **log_context: Any):
        super().__init__(f"Not allowed to {action}" if action else "Access denied", action=action, **log_context)


class ActorNotAllowedError(ForbiddenError):
    """A customer tried a staff transition, or the other way round."""

    def __init__(self, actor: str, action: str, **log_context: Any):
        super().__init__(f"{action} as {actor}", actor=actor, **log_context)


# 404

class NotFoundError(AppException):
    status_code_default = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        detail = f"{entity} with ID {entity_id} not found" if entity_id is not None else f"{entity} not found"
        super().__init__(detail, entity=entity, entity_id=entity_id, **log_context)


class OrderNotFoundError(NotFoundError):
    """No live order with that id: it never existed or is already archived."""

    def __init__(self, order_id: str | None = None, **log_context: Any):
        super().__init__("Order", order_id, **log_context)


class ItemNotFoundError(NotFoundError):
    def __init__(self, order_id: str, item_index: int, **log_context: Any):
        super().__init__(f"Item {item_index} of order", order_id, item_index=item_index, **log_context)


# 409

class ConflictError(AppException):
    status_code_default = status.HTTP_409_CONFLICT


class ConcurrentModificationError(ConflictError):
    """A conditional write found the order changed since it was read."""

    def __init__(self, order_id: str, **log_context: Any):
        super().__init__(
            f"Order {order_id} was modified concurrently, reload and retry",
            order_id=order_id,
            **log_context,
        )


# 500

class InternalError(AppException):
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    log_level = "error"

    def __init__(self, detail: str = "Internal server error", **log_context: Any):
        super().__init__(detail, **log_context)


class ArchiveFailedError(InternalError):
    """The archive transaction rolled back; every order is still live."""

    def __init__(self, scope: str, **log_context: Any):
        super().__init__(
            f"Archiving {scope} failed, no orders were moved. Please try again.",
            scope=scope,
            **log_context,
        )


class MalformedOrderError(ValueError):
    """A stored order row failed validation when read back."""

    def __init__(self, order_id: str | None, reason: str):
        self.order_id = order_id
        self.reason = reason
        super().__init__(f"Malformed order {order_id}: {reason}")
