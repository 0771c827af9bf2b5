"""
WebSocket Gateway Constants.

Close codes, timeouts and the message types exchanged with clients.
"""

from enum import IntEnum
from typing import Final

__all__ = [
    "WSCloseCode",
    "WSConstants",
    "MSG_PING_PLAIN",
    "MSG_PING_JSON",
    "MSG_PONG_JSON",
    "BOARD_SNAPSHOT",
    "ORDERS_SNAPSHOT",
    "SESSION_TICK",
    "SESSION_EXPIRED",
    "SESSION_RESET",
    "COMMAND_ACCEPTED",
    "COMMAND_FAILED",
    "STAFF_ACTIONS",
]


class WSCloseCode(IntEnum):
    """
    WebSocket close codes used by the gateway.

    Standard codes (1000-1999) from RFC 6455.
    Custom codes (4000-4999) for application-specific errors.
    """

    # Standard codes (RFC 6455)
    NORMAL = 1000
    GOING_AWAY = 1001  # Server shutting down or client navigating away
    POLICY_VIOLATION = 1008
    MESSAGE_TOO_BIG = 1009
    SERVER_ERROR = 1011
    SERVER_OVERLOADED = 1013  # Connection limit reached, try again later

    # Custom application codes
    INVALID_IDENTITY = 4001  # Missing or malformed table/device identity
    SESSION_EXPIRED = 4008  # Customer session ran out; client should start over


class WSConstants:
    """Operational defaults. Runtime knobs live in settings."""

    # Longer than the client heartbeat (30s) so jitter does not drop live sockets
    WS_RECEIVE_TIMEOUT: Final[float] = 90.0

    WS_ACCEPT_TIMEOUT: Final[float] = 5.0

    # Period of the stale-connection sweep
    CLEANUP_INTERVAL: Final[float] = 30.0


# =============================================================================
# Heartbeat messages
# =============================================================================

MSG_PING_PLAIN: Final[str] = "ping"
MSG_PING_JSON: Final[str] = '{"type":"ping"}'
MSG_PONG_JSON: Final[str] = '{"type":"pong"}'


# =============================================================================
# Server -> client message types
# =============================================================================

BOARD_SNAPSHOT: Final[str] = "BOARD_SNAPSHOT"  # staff: every table
ORDERS_SNAPSHOT: Final[str] = "ORDERS_SNAPSHOT"  # diner: own table only
SESSION_TICK: Final[str] = "SESSION_TICK"
SESSION_EXPIRED: Final[str] = "SESSION_EXPIRED"
SESSION_RESET: Final[str] = "SESSION_RESET"
COMMAND_ACCEPTED: Final[str] = "COMMAND_ACCEPTED"
COMMAND_FAILED: Final[str] = "COMMAND_FAILED"


# =============================================================================
# Client -> server staff commands
# =============================================================================

STAFF_ACTIONS: Final[frozenset[str]] = frozenset({
    "approve",
    "ready",
    "serve",
    "serve_item",
    "resolve_help",
    "archive_order",
    "archive_table",
})
