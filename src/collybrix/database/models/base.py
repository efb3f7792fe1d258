"""SQLAlchemy declarative base and common column helpers for Collybrix.

Defines the DeclarativeBase, a TimestampMixin that provides id, created_at
and updated_at columns, and portable column types so the same models run
on PostgreSQL (asyncpg) and SQLite (aiosqlite, used in tests).

Example:
    >>> class MyModel(TimestampMixin, Base):
    ...     __tablename__ = "my_table"
    ...     name: Mapped[str] = mapped_column(Text, nullable=False)
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime column that always round-trips as UTC.

    SQLite drops tzinfo on storage; values read back are re-tagged as UTC
    so comparisons with aware datetimes never raise.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class Base(DeclarativeBase):
    """SQLAlchemy 2.0 declarative base for all Collybrix models."""

    pass


class TimestampMixin:
    """Mixin providing id (UUID), created_at, and updated_at columns.

    List this mixin before Base in the class hierarchy. Defaults are
    generated application-side so they behave identically on every backend.

    Attributes:
        id: UUID primary key.
        created_at: Set on row creation.
        updated_at: Set on row creation and refreshed on each modification.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
