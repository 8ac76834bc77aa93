"""Portable SQL types that behave the same on PostgreSQL and SQLite."""

from datetime import timezone

import sqlalchemy as sa
from sqlalchemy import TypeDecorator


class UTCDateTime(TypeDecorator):
    """Timezone-aware ``DateTime`` that always reads back as UTC.

    PostgreSQL keeps the offset natively; SQLite stores naive values, so
    they are normalised on the way in and tagged UTC on the way out.
    """

    impl = sa.DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
            if dialect.name != "postgresql":
                value = value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
