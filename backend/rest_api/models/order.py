"""
Order Models: LiveOrder, OrderHistory.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, new_id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LiveOrder(Base):
    """
    An order on the live board, from submission until archival.

    Items are embedded as a JSON array of {name, quantity, unit_price, status}.
    Every write bumps `version`; writers condition their UPDATE on the
    version and status they read.
    """

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    table_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    order_number: Mapped[int] = mapped_column(Integer, nullable=False)
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(Text, default="Pending", nullable=False, index=True)
    help_requested: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    total_price: Mapped[float] = mapped_column(Float, nullable=False)
    # Sole ordering key of the live feed (newest first)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False, index=True
    )
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    __table_args__ = (
        Index("ix_orders_table_timestamp", "table_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<LiveOrder(id={self.id}, order_number={self.order_number}, table_id='{self.table_id}', status='{self.status}')>"


class OrderHistory(Base):
    """
    Write-once archive record.

    kind="order" snapshots a whole order; kind="item" snapshots a single
    served item moved out of a still-live order.
    """

    __tablename__ = "order_history"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    order_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(Text, nullable=False)
    table_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    order_number: Mapped[int] = mapped_column(Integer, nullable=False)
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    total_price: Mapped[float] = mapped_column(Float, nullable=False)
    help_requested: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    final_status: Mapped[str] = mapped_column(Text, nullable=False)
    placed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    archived_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<OrderHistory(id={self.id}, order_id={self.order_id}, kind='{self.kind}')>"
