"""
Event Services - change notifications for the live order feed.
"""

from .publisher import OrderEventPublisher, get_order_publisher

__all__ = [
    "OrderEventPublisher",
    "get_order_publisher",
]
