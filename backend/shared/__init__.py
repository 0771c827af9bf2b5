"""
Shared module for common utilities across REST API and WS Gateway.

STRUCTURE:
- shared.infrastructure: Database, messaging and session persistence
  - db.py: SQLAlchemy sessions, safe_commit()
  - events/: Redis pub/sub, change notifications for the live order set
  - session_store.py: In-memory and Redis customer session stores
  - correlation.py: X-Request-ID propagation

- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging
  - constants.py: Actors, OrderStatus, ItemStatus, limits

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - schemas.py: Shared Pydantic schemas (Order, TableSummary, ...)
  - health.py: Health check helpers

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import OrderStatus, Actors
    from shared.utils.exceptions import OrderNotFoundError, InvalidTransitionError
"""
