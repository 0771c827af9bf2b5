"""
Shared Pydantic schemas used across the application.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, model_validator

from shared.config.constants import Limits, OrderStatus, ItemStatus
from shared.utils.exceptions import MalformedOrderError


# =============================================================================
# Common Types
# =============================================================================

OrderStatusLiteral = Literal["Pending", "Received", "Ready", "Served"]
ItemStatusLiteral = Literal["Pending", "Served"]


# =============================================================================
# Order Schemas
# =============================================================================


class OrderItem(BaseModel):
    """One line of an order. Only status changes after submission."""

    name: str = Field(min_length=1, max_length=Limits.MAX_ITEM_NAME_LENGTH)
    quantity: int = Field(ge=1, le=Limits.MAX_ITEM_QUANTITY)
    unit_price: float = Field(default=0.0, ge=0)
    status: ItemStatusLiteral = "Pending"


class Order(BaseModel):
    """
    A live order as read from the store.

    Rows are validated here; anything that does not parse raises
    MalformedOrderError via from_row().
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    table_id: str
    order_number: int = Field(ge=1)
    items: list[OrderItem] = Field(min_length=1)
    status: OrderStatusLiteral
    help_requested: bool = False
    total_price: float = Field(ge=0)
    timestamp: datetime
    version: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def _served_iff_all_items_served(self) -> "Order":
        all_served = all(item.status == ItemStatus.SERVED for item in self.items)
        if all_served != (self.status == OrderStatus.SERVED):
            raise ValueError(
                f"status {self.status!r} disagrees with item statuses "
                f"{[item.status for item in self.items]}"
            )
        return self

    @classmethod
    def from_row(cls, row: Any) -> "Order":
        """Validate an ORM row (or mapping) into an Order."""
        try:
            return cls.model_validate(row)
        except PydanticValidationError as e:
            order_id = row.get("id") if isinstance(row, dict) else getattr(row, "id", None)
            raise MalformedOrderError(order_id, str(e)) from e


class SubmitItemInput(BaseModel):
    """Item as submitted from the cart."""

    name: str = Field(min_length=1, max_length=Limits.MAX_ITEM_NAME_LENGTH)
    quantity: int = Field(ge=1, le=Limits.MAX_ITEM_QUANTITY)
    unit_price: float = Field(default=0.0, ge=0)


class SubmitOrderRequest(BaseModel):
    """Customer order submission. A blank table_id means takeaway."""

    table_id: str | None = Field(default=None, max_length=Limits.MAX_TABLE_ID_LENGTH)
    items: list[SubmitItemInput] = Field(min_length=1, max_length=Limits.MAX_ITEMS_PER_ORDER)


class ArchiveResult(BaseModel):
    """
    Outcome of an archive call.

    nothing_to_archive is a normal result, not an error: the call
    changed nothing and message explains why.
    """

    archived_ids: list[str] = Field(default_factory=list)
    skipped_ids: list[str] = Field(default_factory=list)
    history_ids: list[str] = Field(default_factory=list)
    table_id: str | None = None
    nothing_to_archive: bool = False
    message: str = ""


# =============================================================================
# Table Board Schemas
# =============================================================================


class TableSummary(BaseModel):
    """Derived view of one table (or the takeaway bucket)."""

    key: str
    orders: list[Order] = Field(default_factory=list)
    is_occupied: bool = False
    has_pending: bool = False
    needs_help: bool = False
    awaiting_approval: bool = False
    ticket_count: int = 0


class BoardOutput(BaseModel):
    """Staff board: every table in display order."""

    tables: list[TableSummary]
    order_count: int
    generated_at: datetime


# =============================================================================
# Session Schemas
# =============================================================================


class SessionOutput(BaseModel):
    """Customer session state as of the server clock."""

    table_id: str
    device_id: str
    start_time: int  # epoch ms
    duration_ms: int
    time_left_ms: int
    time_left: str  # MM:SS
    expired: bool


# =============================================================================
# Error Schemas
# =============================================================================


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    code: str | None = None
