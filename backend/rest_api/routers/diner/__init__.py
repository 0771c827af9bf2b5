"""
Diner routers - /api/diner/*
Handles customer order submission, help requests and cart sessions.
"""

from .orders import router as orders_router
from .session import router as session_router

__all__ = ["orders_router", "session_router"]
