"""
Shared FastAPI dependencies.
"""

from fastapi import Header

from shared.infrastructure.events import get_redis_pool
from shared.infrastructure.session_store import RedisSessionStore
from shared.utils.exceptions import ValidationError
from rest_api.services.domain import CustomerSessionService, normalize_table_key


async def get_session_service() -> CustomerSessionService:
    """Customer session service backed by the shared Redis pool."""
    return CustomerSessionService(RedisSessionStore(await get_redis_pool()))


def validate_session_identity(table_id: str | None, device_id: str | None) -> tuple[str, str]:
    """Normalize (table, device); both end up as Redis key parts."""
    table_key = normalize_table_key(table_id)
    device_id = (device_id or "").strip()
    if not device_id:
        raise ValidationError("Device id is required", field="device_id")
    if ":" in table_key or ":" in device_id:
        raise ValidationError("Table and device ids must not contain ':'", table_id=table_key)
    return table_key, device_id


def session_identity(
    x_table_id: str | None = Header(default=None),
    x_device_id: str | None = Header(default=None),
) -> tuple[str, str]:
    """(table_id, device_id) taken from the X-Table-Id and X-Device-Id headers."""
    return validate_session_identity(x_table_id, x_device_id)
