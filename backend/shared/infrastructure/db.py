"""
Relational store for live and archived orders (SQLAlchemy 2.0).

PostgreSQL in deployment; tests and local runs may point DATABASE_URL at
SQLite, which gets a single-threaded-safe connection and no pool tuning.
"""

import os
from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from shared.config.settings import DATABASE_URL


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    # (2 * cores) + 1, at most 20
    pool_size = min((os.cpu_count() or 4) * 2 + 1, 20)
    return {
        "pool_pre_ping": True,
        "pool_size": pool_size,
        "max_overflow": 15,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "connect_args": {"connect_timeout": 10},
    }


engine = create_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session for FastAPI routes; closed when the response is sent."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def safe_commit(db: Session) -> None:
    """Commit, or roll back and re-raise so the caller sees the original error."""
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
