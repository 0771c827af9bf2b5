"""
Infrastructure: the relational order store, the Redis live-orders feed and
customer session persistence.

- db.py: engine, request-scoped sessions, safe_commit
- events/: publishing order change notifications
- session_store.py: where customer session start times are kept
- correlation.py: request ids carried into logs and events
"""

from shared.infrastructure.db import engine, SessionLocal, get_db, safe_commit
from shared.infrastructure.events import get_redis_pool, close_redis_pool, publish_event
from shared.infrastructure.session_store import (
    SessionStore,
    InMemorySessionStore,
    RedisSessionStore,
)
from shared.infrastructure.correlation import get_request_id, resolve_request_id

__all__ = [
    "engine",
    "SessionLocal",
    "get_db",
    "safe_commit",
    "get_redis_pool",
    "close_redis_pool",
    "publish_event",
    "SessionStore",
    "InMemorySessionStore",
    "RedisSessionStore",
    "get_request_id",
    "resolve_request_id",
]
