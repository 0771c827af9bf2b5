"""
Redis Channel and Key Naming.
"""

from __future__ import annotations

from shared.config.settings import settings


def _validate_key_part(value: str, name: str) -> None:
    """Key parts must be non-empty and must not contain the separator."""
    if not isinstance(value, str) or not value or ":" in value:
        raise ValueError(f"{name} must be a non-empty string without ':', got {value!r}")


def channel_orders() -> str:
    """Channel carrying every change to the live order set."""
    return settings.orders_channel


def key_customer_session(table_id: str, device_id: str) -> str:
    """Key holding the persisted start time of a customer session."""
    _validate_key_part(table_id, "table_id")
    _validate_key_part(device_id, "device_id")
    return f"customer_session:{table_id}:{device_id}"
