"""
SQLAlchemy ORM Models Package.

- base: Base class and id factory
- order: LiveOrder, OrderHistory
"""

from .base import Base, new_id
from .order import LiveOrder, OrderHistory

__all__ = [
    "Base",
    "new_id",
    "LiveOrder",
    "OrderHistory",
]
