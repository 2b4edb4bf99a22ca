"""SQLAlchemy Declarative Base — shared base class for all ORM models.

Invariants:
    - All models inherit from Base
    - Base is the single source of truth for table metadata

Design Decisions:
    - Separate file for Base: avoids circular imports between models
"""

from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    """Store-side timestamp source for created_at / updated_at."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ContentForge ORM models."""
    pass


def as_utc(value: datetime) -> datetime:
    """Normalize a caller timestamp to aware UTC (naive input is taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
