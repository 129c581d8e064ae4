"""Shared SQLAlchemy declarative base for all models."""

from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base
from sqlalchemy.types import DateTime, TypeDecorator

# Single Base for all models to ensure metadata consistency
# and allow foreign key relationships across model modules
Base = declarative_base()


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime | None) -> datetime | None:
    """Normalize a datetime loaded from either backend to naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class UTCDateTime(TypeDecorator):
    """timestamptz column that speaks naive UTC on the Python side.

    Naive values are taken to be UTC and sent to the driver as aware UTC, so
    the server never reinterprets them in the host's local zone. Loaded values
    come back naive UTC on Postgres and SQLite alike.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        return as_naive_utc(value)
