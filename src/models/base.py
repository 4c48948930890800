"""SQLAlchemy declarative base and shared column helpers."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    pass


def utc_now() -> datetime:
    """Current time as naive UTC at second precision — the stored form of `date_time`."""
    return datetime.now(UTC).replace(tzinfo=None, microsecond=0)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive stored timestamp; aware values are converted to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
