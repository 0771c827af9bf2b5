"""
WebSocket endpoints: base lifecycle and the staff/diner implementations.
"""

from ws_gateway.components.endpoints.base import WebSocketEndpointBase
from ws_gateway.components.endpoints.handlers import (
    DinerEndpoint,
    StaffEndpoint,
    StaffCommand,
    DinerCommand,
)

__all__ = [
    "WebSocketEndpointBase",
    "StaffEndpoint",
    "DinerEndpoint",
    "StaffCommand",
    "DinerCommand",
]
