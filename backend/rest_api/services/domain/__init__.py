"""
Domain Services - Application Layer.

Services contain the business logic; routers and the WebSocket gateway
stay thin.

Structure:
    Router / WebSocket endpoint (thin controller)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    Model (entity)

Usage:
    from rest_api.services.domain import OrderService

    # In router
    service = OrderService(db)
    orders = service.list_live_orders(table_id="4")
"""

from .order_service import OrderService, compute_total_price
from .archive_service import ArchiveService
from .session_service import (
    CustomerSession,
    CustomerSessionService,
    compute_time_left,
    format_time_left,
    now_ms,
)
from .table_board import (
    build_board_output,
    build_table_board,
    default_table_keys,
    group_orders_by_table,
    normalize_table_key,
)

__all__ = [
    "OrderService",
    "compute_total_price",
    "ArchiveService",
    "CustomerSession",
    "CustomerSessionService",
    "compute_time_left",
    "format_time_left",
    "now_ms",
    "build_board_output",
    "build_table_board",
    "default_table_keys",
    "group_orders_by_table",
    "normalize_table_key",
]
