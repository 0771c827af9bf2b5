"""
WebSocket Context.

Connection metadata carried through an endpoint's lifetime and its logs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from shared.config.logging import audit_ws_connection

# Control characters and bidi overrides stripped from user data before logging
_CONTROL_CHAR_PATTERN = re.compile(
    r'[\x00-\x1f\x7f-\x9f'
    r'\u200b-\u200f'
    r'\u202a-\u202e'
    r'\u2066-\u2069'
    r'\ufeff]'
)


def sanitize_log_data(data: str, max_length: int = 100) -> str:
    """
    Sanitize user-provided data before logging.

    Truncates first so escaping cannot change where the cut lands.
    """
    truncated = data[:max_length]
    sanitized = _CONTROL_CHAR_PATTERN.sub("", truncated)
    sanitized = sanitized.replace("\\", "\\\\").replace('"', '\\"')
    if len(data) > max_length:
        return sanitized + "..."
    return sanitized


@dataclass
class WebSocketContext:
    """
    Usage:
        context = WebSocketContext(endpoint="/ws/diner", table_id="4", device_id="abc")
        context.audit("CONNECT")
    """

    endpoint: str
    table_id: str | None = None
    device_id: str | None = None
    origin: str | None = None

    @property
    def identifier(self) -> str:
        if self.table_id is None:
            return "staff"
        return f"{self.table_id}:{self.device_id}"

    def audit(self, event_type: str, reason: str | None = None, **extra: Any) -> None:
        audit_ws_connection(
            event_type=event_type,
            endpoint=self.endpoint,
            table_id=self.table_id,
            device_id=self.device_id,
            reason=reason,
            origin=self.origin,
            **extra,
        )
