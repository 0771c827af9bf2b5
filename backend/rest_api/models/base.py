"""
Base class for all SQLAlchemy ORM models.
"""

from __future__ import annotations

import uuid

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


def new_id() -> str:
    """Opaque unique document id."""
    return uuid.uuid4().hex
