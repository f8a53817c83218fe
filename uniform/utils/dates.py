"""
Date/time helpers.

All timestamps are stored as naive UTC. Rows read through raw SQL come back as
datetime objects on PostgreSQL and as ISO strings on SQLite, so values that
are compared or written back go through as_datetime()/as_date() first.
"""

from datetime import date, datetime, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def as_datetime(value: Union[str, datetime, date, None]) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return to_naive_utc(datetime.fromisoformat(str(value)))


def as_date(value: Union[str, datetime, date, None]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])
