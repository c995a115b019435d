"""
Module: club_kernel.db.types
Responsibility: Custom column types shared by every ORM model.
Architecture position: Kernel > DB.  Imported by db/base.py and by models.
    MUST NOT import from models/, services/, selectors/ or outer layers.

Invariants enforced:
    - Timestamps round-trip as timezone-aware UTC datetimes on every backend.
      SQLite has no timezone storage, so values are stored as naive UTC and
      re-tagged on load.  PostgreSQL stores TIMESTAMP WITH TIME ZONE.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC datetime, portable across PostgreSQL and SQLite.

    Guarantees:
        - process_bind_param: aware -> UTC; naive values are assumed UTC.
        - process_result_value: always returns an aware UTC datetime.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    """Column default for audit timestamps.  Services pass clock time explicitly."""
    return datetime.now(timezone.utc)
