"""
Staff routers - /api/staff/*
Fulfillment board: live orders, lifecycle commands, table view and archival.
"""

from .orders import router as orders_router
from .tables import router as tables_router

__all__ = ["orders_router", "tables_router"]
