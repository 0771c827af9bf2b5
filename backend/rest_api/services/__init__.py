"""
Services module for business logic.

- domain/: Application services (orders, archive, sessions, table board)
- events/: Change notifications for the live order feed
- order_commands.py: Async command facade used by the WebSocket gateway

Usage:
    from rest_api.services.domain import OrderService
    service = OrderService(db)
    orders = service.list_live_orders()
"""
