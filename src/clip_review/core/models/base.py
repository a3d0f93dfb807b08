"""SQLAlchemy declarative base for all ORM models.

Provides:
- Base: the DeclarativeBase subclass all models inherit from
- utc_now: timezone-aware "now" used for application-side timestamps
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Shared declarative base for all Clip Review models."""


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(tz=timezone.utc)
